"""
Schema Migrations Module
"""
from .schema_evolution import MigrationResult, evolve_schema, plan_schema_changes

__all__ = ["MigrationResult", "evolve_schema", "plan_schema_changes"]
