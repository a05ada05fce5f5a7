"""Core configuration, domain models and utilities."""
