"""
# Database Package

Persistence layer for the Pulse admin service.

- **`manager`**: `DatabaseManager` singleton owning the Motor client.
- **`paths`**: `StoragePath`, the address of a container or document.
- **`document_store`**: `DocumentStore` contract and its MongoDB implementation, which models
  MongoDB as a hierarchical store of containers and documents addressed by path.
"""

from pulse_admin.database.manager import DatabaseManager, db_manager

__all__ = ["DatabaseManager", "db_manager"]
