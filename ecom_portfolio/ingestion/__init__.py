"""
Data Ingestion Module
"""
from .seed_db import (
    InitializationResult,
    SeedValidationError,
    initialize_database,
    reset_schema,
)

__all__ = [
    "InitializationResult",
    "SeedValidationError",
    "initialize_database",
    "reset_schema",
]
