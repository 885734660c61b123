"""
Background tasks for the Startup Wallet Service.
"""
