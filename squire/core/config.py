"""Application configuration using pydantic-settings."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="forbid",
    )

    # Database Configuration - PostgreSQL (memories, notes, lists, documents, audit)
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "squire"
    postgres_password: str = "dev_password"
    postgres_db: str = "squire"

    @property
    def postgres_url(self) -> str:
        """Construct PostgreSQL connection URL."""
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # API Keys (External Services)
    openai_api_key: str = Field(
        default="",
        description="OpenAI API key for query embeddings",
    )
    embedding_model: str = Field(
        default="text-embedding-3-small",
        description="Embedding model used for queries and stored vectors",
    )

    # Candidate Retrieval
    candidate_limit: int = Field(
        default=100,
        description="Maximum candidate memories fetched per assembly",
    )
    excluded_conversation_mode: str = Field(
        default="meta_ai",
        description="Conversation mode whose memories never enter context",
    )
    similarity_threshold: float = Field(
        default=0.25,
        description="Minimum query similarity for candidate memories",
    )
    story_profile_name: str = Field(
        default="personal-story",
        description="Profile that uses the relaxed similarity threshold",
    )
    story_similarity_threshold: float = Field(
        default=0.15,
        description="Similarity threshold for the story profile",
    )
    salience_bypass: float = Field(
        default=6.0,
        description="Salience at which memories bypass the similarity filter",
    )

    # Auxiliary Evidence
    entity_limit: int = Field(default=20, description="Maximum entities per package")
    note_search_limit: int = 5
    note_search_threshold: float = 0.4
    list_search_limit: int = 5
    list_search_threshold: float = 0.3
    document_search_limit: int = 10
    document_search_threshold: float = 0.4
    default_max_document_tokens: int = Field(
        default=2000,
        description="Token budget for document excerpts when the caller gives none",
    )

    # Disclosure Audit
    disclosure_log_limit: int = Field(
        default=20,
        description="Default number of disclosure records returned",
    )


# Global settings instance
settings = Settings()
