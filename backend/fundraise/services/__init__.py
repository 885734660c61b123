"""
Services package for the Startup Wallet Service.
Contains the wallet record store, the resolver, the seeder and the
document store backends they run on.
"""

__all__ = [
    "document_store",   # Store contract and in-memory store
    "redis",            # Redis document store
    "backends",         # Backend construction
    "wallet_store",     # Wallet record store
    "resolver",         # Layered wallet resolution
    "seeder",           # Known wallet seeding
]
