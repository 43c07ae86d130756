"""Core business logic layer.

Subpackages:
- assignment: assigning templates to clients (index, selection, dispatch, cache reconciliation)
"""
__all__ = ["assignment"]
