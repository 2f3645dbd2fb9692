"""
Campus Library reservation service.

Key Components:
- models: Pydantic models for reservations, loans and catalog summaries
- database: SQLAlchemy schema, sessions and store repositories
- services: reservation lifecycle manager and query layer
- tools: MCP tool handlers wrapping the services
- config: settings loaded with pydantic-settings
"""

__version__ = "0.1.0"

from . import database

__all__ = [
    "__version__",
    "database",
]
