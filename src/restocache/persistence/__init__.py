"""Persistence layer for restocache.

This module provides:
- Async PostgreSQL engine and session factory
- The restaurant table with cuisine, region and region+cuisine indexes
- The repository implementing the store gateway
"""

from restocache.persistence.db import close_db, get_engine, init_db
from restocache.persistence.repositories import RestaurantRepository
from restocache.persistence.tables import RestaurantTable

__all__ = [
    # DB
    "get_engine",
    "init_db",
    "close_db",
    # Tables
    "RestaurantTable",
    # Repositories
    "RestaurantRepository",
]
