"""MongoDB Client - Connection and Collection Management"""
from typing import Any, Dict, Optional
from pymongo import MongoClient as PyMongoClient
from pymongo.database import Database
from pymongo.collection import Collection
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import ConnectionFailure, PyMongoError

from ..config.settings import settings
from ..utils.logger import get_logger

logger = get_logger(__name__)

# Global client instance
_client: Optional[PyMongoClient] = None
_database: Optional[Database] = None


def get_client() -> PyMongoClient:
    """Get or create MongoDB client"""
    global _client
    if _client is None:
        logger.info(f"Connecting to MongoDB: {settings.mongo_uri}")
        _client = PyMongoClient(
            settings.mongo_uri,
            serverSelectionTimeoutMS=5000,
            connectTimeoutMS=5000,
            socketTimeoutMS=30000,
            tz_aware=True,
        )
        # Test connection
        try:
            _client.admin.command("ping")
            logger.info("MongoDB connection successful")
        except ConnectionFailure as e:
            logger.error(f"MongoDB connection failed: {e}")
            _client = None
            raise
    return _client


def get_database() -> Database:
    """Get the application database"""
    global _database
    if _database is None:
        client = get_client()
        _database = client[settings.mongo_db]
        logger.info(f"Using database: {settings.mongo_db}")
    return _database


def get_collection(name: str) -> Collection:
    """Get a collection from the database"""
    db = get_database()
    return db[name]


def close_connection() -> None:
    """Close MongoDB connection"""
    global _client, _database
    if _client is not None:
        _client.close()
        _client = None
        _database = None
        logger.info("MongoDB connection closed")


def create_indexes() -> None:
    """Create all required indexes"""
    db = get_database()
    logger.info("Creating MongoDB indexes...")

    definitions = db["workflow_definitions"]
    definitions.create_index("definition_id", unique=True)
    definitions.create_index("updated_at", background=True)

    instances = db["workflow_instances"]
    instances.create_index("instance_id", unique=True)
    instances.create_index("status")
    instances.create_index([("target.type_name", ASCENDING), ("target.target_id", ASCENDING)])
    instances.create_index("definition_id")
    instances.create_index([("status", ASCENDING), ("current_action_type", ASCENDING)])
    instances.create_index("assigned_users")
    instances.create_index("assigned_groups")
    instances.create_index("updated_at", background=True)

    runtimes = db["action_runtimes"]
    runtimes.create_index("runtime_id", unique=True)
    runtimes.create_index([("instance_id", ASCENDING), ("created_at", ASCENDING)])

    audit_events = db["audit_events"]
    audit_events.create_index("audit_event_id", unique=True)
    audit_events.create_index([("instance_id", ASCENDING), ("timestamp", DESCENDING)])
    audit_events.create_index("correlation_id")

    groups = db["groups"]
    groups.create_index("group_id", unique=True)
    groups.create_index("members")

    logger.info("MongoDB indexes created successfully")


def health_check() -> Dict[str, Any]:
    """Check MongoDB health"""
    if settings.use_memory_storage:
        return {"status": "healthy", "database": "memory", "connection": "ok"}

    try:
        client = get_client()
        client.admin.command("ping")
        return {
            "status": "healthy",
            "database": settings.mongo_db,
            "connection": "ok"
        }
    except PyMongoError as e:
        logger.error(f"MongoDB health check failed: {e}")
        return {
            "status": "unhealthy",
            "database": settings.mongo_db,
            "error": str(e)
        }
