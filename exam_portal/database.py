"""
MongoDB access for the exam portal.

The client is created once at import time from DATABASE_URL / DATABASE_NAME.
When either is missing ``db`` stays ``None`` and every route answers with a
500 until the environment is fixed.
"""

import logging
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient

from .config import settings
from .errors import ExamPortalError
from .utils import utcnow

logger = logging.getLogger(__name__)

db = None
if settings.DATABASE_URL and settings.DATABASE_NAME:
    client = MongoClient(settings.DATABASE_URL)
    db = client[settings.DATABASE_NAME]
else:
    logger.warning("DATABASE_URL/DATABASE_NAME not set; database unavailable")


def get_db():
    if db is None:
        raise ExamPortalError("Database not configured")
    return db


def create_document(collection_name: str, data: Union[BaseModel, Dict[str, Any]], database=None) -> str:
    """Insert a document stamped with created_at/updated_at and return its id."""
    database = database if database is not None else get_db()
    if isinstance(data, BaseModel):
        data_dict = data.model_dump()
    else:
        data_dict = dict(data)
    now = utcnow()
    data_dict.setdefault("created_at", now)
    data_dict["updated_at"] = now
    result = database[collection_name].insert_one(data_dict)
    return str(result.inserted_id)


def get_documents(collection_name: str, filter_dict: Optional[Dict[str, Any]] = None,
                  limit: Optional[int] = None, sort=None, database=None) -> List[Dict[str, Any]]:
    database = database if database is not None else get_db()
    cursor = database[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def ensure_indexes(database) -> None:
    """Create the indexes the application relies on. Safe to call repeatedly."""
    # One result per (user, exam): the second concurrent insert fails here
    database["result"].create_index(
        [("user_id", ASCENDING), ("exam_id", ASCENDING)], unique=True
    )
    database["result"].create_index("submitted_at")
    database["leaderboard"].create_index("user_id", unique=True)
    database["user"].create_index("email", unique=True)
    database["subject"].create_index("name", unique=True)
    database["question"].create_index("exam_id")
    database["notification"].create_index("user_id")
    logger.info("Indexes ensured on database %s", database.name)
