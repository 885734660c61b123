"""
Utilities for configuration, logging, errors and seed data.
"""
