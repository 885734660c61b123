"""
Startup Wallet Service - Backend Application

This package resolves the blockchain wallet address an investor should pay
when funding a startup, and manages the wallets users and founders connect.

Core Components:
- main: FastAPI application setup, middleware, and API documentation
- routes: REST API endpoints for wallet resolution and wallet mutations
- services: Wallet record store, resolver, seeder and store backends
- db: Database models, schemas, and the SQL document store
- tasks: Background seeding of the known wallets
- utils: Configuration, logging, errors and seed loading
- data: Known wallet seed file and logs
"""

# Version
__version__ = "1.0.0"

# Package exports
__all__ = [
    "main",           # FastAPI application
    "routes",         # API endpoints
    "services",       # Core services
    "db",            # Database operations
    "tasks",         # Background tasks
    "utils",         # Utilities
]
