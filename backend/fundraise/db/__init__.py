"""
Database package for models, schemas, and the SQL document store.
"""

__all__ = [
    "models",           # Database models
    "schemas",          # Pydantic schemas
    "crud",            # SQL document store
    "session",         # Engine and session management
]
