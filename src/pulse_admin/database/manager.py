"""
# Database Management Module

Core MongoDB infrastructure for the Pulse admin service. `DatabaseManager` owns the
**Motor** client: connection lifecycle with exponential-backoff retries, health checks,
collection access, index creation, and query timing helpers used by the document store.

## Usage

```python
from pulse_admin.database import db_manager

await db_manager.connect()
reflections = db_manager.get_collection("reflections")
await db_manager.disconnect()
```

## Configuration

- `MONGODB_URL`: Connection string (e.g., `mongodb://host:27017`)
- `MONGODB_DATABASE`: Target database name
- `MONGODB_USERNAME` / `MONGODB_PASSWORD`: Optional credentials
- `MONGODB_SERVER_SELECTION_TIMEOUT` / `MONGODB_CONNECTION_TIMEOUT`: Timeouts (ms)

The client is created with `tz_aware=True` so every datetime read back from MongoDB
carries UTC tzinfo and compares cleanly with `datetime.now(timezone.utc)`.

## Thread Safety

Designed for **asyncio**; call all methods from the same event loop.

Attributes:
    db_logger (Logger): Logger for database operations (`[DATABASE]`).
    perf_logger (Logger): Logger for timing metrics (`[DB_PERFORMANCE]`).
    health_logger (Logger): Logger for health checks (`[DB_HEALTH]`).
    db_manager (DatabaseManager): Global singleton, connected in the app lifespan.
"""

import asyncio
import time
from typing import Any, Dict, List, Optional, Tuple, Union

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo.errors import ConnectionFailure, PyMongoError, ServerSelectionTimeoutError

from pulse_admin.config import settings
from pulse_admin.managers.logging_manager import get_logger

db_logger = get_logger(prefix="[DATABASE]")
perf_logger = get_logger(prefix="[DB_PERFORMANCE]")
health_logger = get_logger(prefix="[DB_HEALTH]")

MAX_POOL_SIZE = 50
MIN_POOL_SIZE = 5

IndexSpec = Union[str, List[Tuple[str, int]]]


class DatabaseManager:
    """
    Manages the MongoDB connection and collection access.

    **Lifecycle:**
    1. **Instantiation**: `client` and `database` are `None`
    2. **Connection**: `connect()` builds the client and pings the server
    3. **Operations**: `get_collection()` hands out Motor collections
    4. **Shutdown**: `disconnect()` closes the pool

    Attributes:
        client (`Optional[AsyncIOMotorClient]`): Motor client, `None` until connected.
        database (`Optional[AsyncIOMotorDatabase]`): Selected database, `None` until connected.
    """

    def __init__(self):
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = None
        self._connection_retries = 3

    def _connection_string(self) -> str:
        if settings.MONGODB_USERNAME and settings.MONGODB_PASSWORD:
            password = settings.MONGODB_PASSWORD.get_secret_value()
            db_logger.debug("Using authenticated connection to MongoDB")
            return f"mongodb://{settings.MONGODB_USERNAME}:{password}@{settings.MONGODB_URL.replace('mongodb://', '')}"
        db_logger.debug("Using unauthenticated connection to MongoDB")
        return settings.MONGODB_URL

    async def connect(self):
        """
        Establish the MongoDB connection with exponential backoff (1s, 2s, ...).

        Raises:
            `ServerSelectionTimeoutError` / `ConnectionFailure`: If MongoDB is still
                unreachable after all attempts.
            `ConnectionError` / `TimeoutError`: For lower-level network errors (no retry).
        """
        start_time = time.time()
        db_logger.info("Starting MongoDB connection process")

        for attempt in range(self._connection_retries):
            attempt_start = time.time()
            try:
                db_logger.info("Connection attempt %d/%d to MongoDB", attempt + 1, self._connection_retries)
                db_logger.info(
                    "MongoDB connection config - URL: %s, Database: %s, MaxPool: %d, MinPool: %d, ServerTimeout: %dms, ConnTimeout: %dms",
                    settings.MONGODB_URL,
                    settings.MONGODB_DATABASE,
                    MAX_POOL_SIZE,
                    MIN_POOL_SIZE,
                    settings.MONGODB_SERVER_SELECTION_TIMEOUT,
                    settings.MONGODB_CONNECTION_TIMEOUT,
                )

                self.client = AsyncIOMotorClient(
                    self._connection_string(),
                    serverSelectionTimeoutMS=settings.MONGODB_SERVER_SELECTION_TIMEOUT,
                    connectTimeoutMS=settings.MONGODB_CONNECTION_TIMEOUT,
                    maxPoolSize=MAX_POOL_SIZE,
                    minPoolSize=MIN_POOL_SIZE,
                    tz_aware=True,
                )
                self.database = self.client[settings.MONGODB_DATABASE]

                ping_start = time.time()
                await self.client.admin.command("ping")
                ping_duration = time.time() - ping_start

                total_duration = time.time() - start_time
                perf_logger.info(
                    "MongoDB connection established successfully in %.3fs (ping: %.3fs)", total_duration, ping_duration
                )
                db_logger.info("Successfully connected to MongoDB database: %s", settings.MONGODB_DATABASE)
                return

            except (ServerSelectionTimeoutError, ConnectionFailure) as e:
                attempt_duration = time.time() - attempt_start
                perf_logger.warning("Connection attempt %d failed after %.3fs", attempt + 1, attempt_duration)
                db_logger.warning(
                    "Failed to connect to MongoDB (attempt %d/%d): %s", attempt + 1, self._connection_retries, e
                )
                if attempt == self._connection_retries - 1:
                    db_logger.error("All connection attempts failed after %.3fs", time.time() - start_time)
                    raise

                backoff_time = 2**attempt
                db_logger.info("Waiting %.1fs before retry (exponential backoff)", backoff_time)
                await asyncio.sleep(backoff_time)

            except (ConnectionError, TimeoutError) as e:
                perf_logger.error("Connection error after %.3fs", time.time() - attempt_start)
                db_logger.error("Connection error connecting to MongoDB: %s", e)
                raise

    async def disconnect(self):
        """Close the Motor client. Safe to call when not connected."""
        start_time = time.time()
        db_logger.info("Starting MongoDB disconnection process")

        if self.client is None:
            db_logger.warning("Disconnect called but no active MongoDB connection found")
            return

        self.client.close()
        self.client = None
        self.database = None
        perf_logger.info("MongoDB disconnection completed in %.3fs", time.time() - start_time)
        db_logger.info("Successfully disconnected from MongoDB")

    async def health_check(self) -> bool:
        """
        Ping MongoDB. Returns `False` instead of raising on any failure.
        """
        start_time = time.time()
        health_logger.debug("Starting database health check")

        if self.client is None:
            health_logger.warning("Health check failed: No database client available")
            return False

        try:
            await self.client.admin.command("ping")
        except (ServerSelectionTimeoutError, ConnectionFailure) as e:
            perf_logger.warning("Database health check failed after %.3fs", time.time() - start_time)
            health_logger.error("Database health check failed: %s", e)
            return False
        except (ConnectionError, TimeoutError, PyMongoError) as e:
            perf_logger.warning("Database health check error after %.3fs", time.time() - start_time)
            health_logger.error("Error during health check: %s", e)
            return False

        perf_logger.debug("Database health check completed successfully in %.3fs", time.time() - start_time)
        return True

    def get_collection(self, collection_name: str) -> AsyncIOMotorCollection:
        """
        Retrieve a MongoDB collection by name.

        Raises:
            `ConnectionError`: If `connect()` has not been called.
        """
        if self.database is None:
            db_logger.error("Attempted to get collection '%s' without database connection", collection_name)
            raise ConnectionError("Database not connected. Call connect() first.")

        db_logger.debug("Retrieving collection: %s", collection_name)
        return self.database[collection_name]

    async def create_indexes(self):
        """Create the indexes the document store queries rely on."""
        start_time = time.time()
        db_logger.info("Starting database index creation process")

        # Every container listing filters on _parent.
        for collection_name in (
            settings.REFLECTIONS_COLLECTION,
            settings.ACCESS_REQUESTS_COLLECTION,
            settings.CHALLENGES_COLLECTION,
        ):
            await self._create_index_if_not_exists(self.get_collection(collection_name), "_parent", {})

        reflections = self.get_collection(settings.REFLECTIONS_COLLECTION)
        await self._create_index_if_not_exists(reflections, [("_parent", 1), ("date", -1)], {})

        access_requests = self.get_collection(settings.ACCESS_REQUESTS_COLLECTION)
        await self._create_index_if_not_exists(access_requests, [("email", 1), ("status", 1)], {})
        await self._create_index_if_not_exists(access_requests, [("_parent", 1), ("created_at", -1)], {})

        perf_logger.info("Database index creation completed in %.3fs", time.time() - start_time)

    async def _create_index_if_not_exists(
        self, collection: AsyncIOMotorCollection, field_spec: IndexSpec, options: Dict[str, Any]
    ):
        """Create an index if it doesn't already exist"""
        start_time = time.time()

        try:
            await collection.create_index(field_spec, **options)
            perf_logger.debug("Created/ensured index '%s' in %.3fs", field_spec, time.time() - start_time)
        except PyMongoError as e:
            perf_logger.warning(
                "Failed to create/ensure index '%s' after %.3fs", field_spec, time.time() - start_time
            )
            db_logger.warning("Could not create/ensure index '%s': %s", field_spec, e)

    # Database operation logging utilities
    def log_query_start(self, collection_name: str, operation: str, query: Optional[Dict] = None) -> float:
        """Log the start of a database query and return start time for performance tracking"""
        db_logger.debug("Starting %s operation on collection '%s' - Query: %s", operation, collection_name, query or {})
        return time.time()

    def log_query_success(self, collection_name: str, operation: str, start_time: float):
        """Log successful completion of a database query with performance metrics"""
        duration = time.time() - start_time
        perf_logger.debug("%s on '%s' completed successfully in %.3fs", operation, collection_name, duration)

    def log_query_error(
        self, collection_name: str, operation: str, start_time: float, error: Exception, query: Optional[Dict] = None
    ):
        """Log database query errors with context and performance metrics"""
        duration = time.time() - start_time
        perf_logger.error("%s on '%s' failed after %.3fs", operation, collection_name, duration)
        db_logger.error(
            "%s operation failed on collection '%s' after %.3fs - Error: %s, Query: %s",
            operation,
            collection_name,
            duration,
            error,
            query or {},
        )


# Global database manager instance
db_manager = DatabaseManager()
