"""
Repository pattern implementations for the metadata store.

Repositories translate between domain models and database representations.
"""

from .posts import PostRepository

__all__ = ["PostRepository"]
