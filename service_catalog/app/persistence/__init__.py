"""
Persistence package for the catalog service.

``CatalogRepository`` is the interface the service layer talks to;
``PostgresCatalogRepository`` is the asyncpg implementation.
"""

from .base import CatalogRepository
from .postgres import PostgresCatalogRepository

__all__ = ["CatalogRepository", "PostgresCatalogRepository"]
