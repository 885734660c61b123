# Routes package for API endpoints

"""
Routes package for API endpoints.

This package provides:
- Startup and user wallet resolution endpoints
- Wallet connect and disconnect
- Store status and seeding
"""

__all__ = [
    "wallets"
]
