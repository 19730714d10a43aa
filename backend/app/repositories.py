"""Repository pattern for database operations.

This module provides repository classes for the forum collections,
abstracting database operations and providing a clean interface for the
service layer.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple
from flask import current_app
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError, PyMongoError
from bson import ObjectId

from . import db

logger = logging.getLogger(__name__)

UNIQUE_USER_FIELDS = ('email', 'username')


class UserAlreadyExistsError(Exception):
    """Raised by an insert rejected by a unique index.

    ``fields`` names the colliding keys (``email``, ``username``) when the
    server reports them; it is empty when the collision cannot be attributed.
    """

    def __init__(self, fields: Tuple[str, ...] = (), message: str = 'user already exists'):
        super().__init__(message)
        self.code = 'conflict'
        self.message = message
        self.status = 409
        self.fields = fields


def _duplicate_fields(error: DuplicateKeyError) -> Tuple[str, ...]:
    """Work out which unique user keys a DuplicateKeyError refers to."""
    details = getattr(error, 'details', None) or {}
    keys = dict(details.get('keyValue') or {})
    keys.update(details.get('keyPattern') or {})
    found = tuple(field for field in UNIQUE_USER_FIELDS if field in keys)
    if found:
        return found
    # Older servers only report the index name in the message
    message = str(details.get('errmsg') or error)
    return tuple(field for field in UNIQUE_USER_FIELDS if f'{field}_' in message or f'{{ {field}:' in message)


class BaseRepository:
    """Base repository class with common database operations."""

    def __init__(self, collection_name: str):
        """Initialize repository with collection name.

        Args:
            collection_name: Name of the MongoDB collection
        """
        self.collection_name = collection_name

    @property
    def collection(self) -> Collection:
        database = db.get_db()
        return database[self.collection_name]

    def insert_one(self, document: Dict[str, Any]) -> ObjectId:
        try:
            result = self.collection.insert_one(document)
            return result.inserted_id
        except DuplicateKeyError:
            raise
        except PyMongoError as e:
            logger.error(f"Error inserting document in {self.collection_name}: {e}")
            raise

    def count_documents(self, filter_dict: Dict[str, Any], limit: int = 0) -> int:
        try:
            return self.collection.count_documents(filter_dict, limit=limit)
        except PyMongoError as e:
            logger.error(f"Error counting documents in {self.collection_name}: {e}")
            raise


class UsersRepository(BaseRepository):
    """Forum accounts keyed uniquely by lower-cased email and username."""

    def __init__(self, collection_name: Optional[str] = None) -> None:
        super().__init__(collection_name or 'users')
        self._fixed_name = collection_name is not None

    @property
    def collection(self) -> Collection:
        if not self._fixed_name:
            self.collection_name = current_app.config.get('USERS_COLLECTION', 'users')
        return super().collection

    def exists(self, identifier: str) -> bool:
        """Return True if any account uses ``identifier`` as email or username."""
        key = identifier.lower()
        return self.count_documents({'$or': [{'email': key}, {'username': key}]}, limit=1) > 0

    def insert(self, user_data: Dict[str, Any]) -> ObjectId:
        """Insert a new account document.

        Raises:
            UserAlreadyExistsError: a unique index rejected the document
            PyMongoError: any other store failure
        """
        user_data['email'] = user_data['email'].lower()
        user_data['username'] = user_data['username'].lower()
        try:
            return self.insert_one(user_data)
        except DuplicateKeyError as e:
            fields = _duplicate_fields(e)
            logger.warning("Duplicate user creation attempt on %s", ', '.join(fields) or 'unknown key')
            raise UserAlreadyExistsError(fields) from e


# Repository instances for easy import
users_repo = UsersRepository()
