"""Entity persistence layer.

This module writes court and judge entities to the shared store.
It owns table definitions and column-scoped updates.
"""
