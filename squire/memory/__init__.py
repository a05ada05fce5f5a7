"""Memory storage adapters for the Squire context engine.

Everything the engine reads lives in PostgreSQL with pgvector:
- Memories and entity mentions (candidate retrieval, entity roll-up)
- Living summaries, notes, lists and document chunks (auxiliary evidence)
- Context profiles (read-only configuration)
- The disclosure log (append-only audit trail)
"""
