"""Target Repository - Read-only view of the objects workflows govern"""
from typing import Any, Dict, Optional
from pymongo.database import Database

from .mongo_client import get_database
from ..domain.models import TargetRef


class TargetRepository:
    """
    Load the target object as a plain document

    Each target kind lives in the collection named after its type_name.
    The engine only reads targets (for guard and behavior conditions).
    """

    def __init__(self, database: Optional[Database] = None):
        self._db: Database = database if database is not None else get_database()

    def get_target(self, target: TargetRef) -> Optional[Dict[str, Any]]:
        doc = self._db[target.type_name].find_one({"_id": target.target_id})
        if doc:
            doc.pop("_id", None)
        return doc
