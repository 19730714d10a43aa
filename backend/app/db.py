"""Database connection and utility functions for MongoDB.

This module provides a centralized MongoDB client with connection management,
error handling, and the index setup the forum registration flow relies on.
"""

from __future__ import annotations

import logging
from typing import Optional
from pymongo import ASCENDING, MongoClient
from pymongo.errors import ConnectionFailure, PyMongoError, ServerSelectionTimeoutError
from flask import current_app, g

logger = logging.getLogger(__name__)

class DatabaseError(Exception):
    """Custom exception for database-related errors."""
    pass

def get_mongo_client() -> MongoClient:
    """Get or create MongoDB client instance.

    Returns:
        MongoClient: Configured MongoDB client instance

    Raises:
        DatabaseError: If connection cannot be established
    """
    if 'mongo_client' not in g:
        try:
            mongo_uri = current_app.config['MONGO_URI']
            g.mongo_client = MongoClient(
                mongo_uri,
                serverSelectionTimeoutMS=5000,  # 5 second timeout
                connectTimeoutMS=10000,         # 10 second connection timeout
                socketTimeoutMS=20000,          # 20 second socket timeout
                maxPoolSize=50,                 # Maximum connection pool size
                retryWrites=True
            )

            # Test the connection
            g.mongo_client.admin.command('ping')
            logger.info("MongoDB connection established successfully")

        except (ConnectionFailure, ServerSelectionTimeoutError) as e:
            g.pop('mongo_client', None)
            logger.error(f"Failed to connect to MongoDB: {e}")
            raise DatabaseError(f"Database connection failed: {e}")
        except PyMongoError as e:
            g.pop('mongo_client', None)
            logger.error(f"Unexpected error connecting to MongoDB: {e}")
            raise DatabaseError(f"Unexpected database error: {e}")

    return g.mongo_client


def get_db():
    """Get database instance for the current application.

    Returns:
        Database: MongoDB database instance

    Raises:
        DatabaseError: If database connection fails
    """
    client = get_mongo_client()
    db_name = current_app.config['MONGO_DB']
    return client[db_name]


def close_db(error: Optional[Exception] = None) -> None:
    """Close database connection if it exists.

    Args:
        error: Optional exception that caused the close (for logging)
    """
    mongo_client = g.pop('mongo_client', None)

    if mongo_client is not None:
        try:
            mongo_client.close()
            if error:
                logger.warning(f"Database connection closed due to error: {error}")
            else:
                logger.debug("Database connection closed successfully")
        except PyMongoError as e:
            logger.error(f"Error closing database connection: {e}")


def init_app(app) -> None:
    """Initialize database connection with Flask app.

    Args:
        app: Flask application instance
    """
    # Register teardown handler to close connections
    app.teardown_appcontext(close_db)


def missing_user_indexes(index_info: dict) -> list:
    """Return the user fields that lack a unique single-field index.

    Args:
        index_info: output of ``Collection.index_information()``
    """
    unique_fields = {
        spec['key'][0][0]
        for spec in index_info.values()
        if spec.get('unique') and len(spec.get('key', [])) == 1
    }
    return [field for field in ('email', 'username') if field not in unique_fields]


def health_check() -> dict:
    """Perform database health check.

    Returns:
        dict: Health check results with status and details
    """
    try:
        client = get_mongo_client()
        db = get_db()

        # Ping the database
        client.admin.command('ping')

        server_info = client.server_info()

        users_name = current_app.config.get('USERS_COLLECTION', 'users')
        missing = missing_user_indexes(db[users_name].index_information())

        result = {
            'status': 'healthy' if not missing else 'degraded',
            'database': current_app.config['MONGO_DB'],
            'server_version': server_info.get('version', 'unknown'),
            'users_collection': users_name,
            'missing_unique_indexes': missing,
            'message': 'Database connection is operational'
        }
        if missing:
            result['message'] = 'Unique user indexes missing; duplicate accounts are not guarded'
        return result

    except DatabaseError as e:
        return {
            'status': 'unhealthy',
            'error': str(e),
            'message': 'Database connection failed'
        }
    except PyMongoError as e:
        logger.error(f"Health check failed with unexpected error: {e}")
        return {
            'status': 'unhealthy',
            'error': f"Unexpected error: {str(e)}",
            'message': 'Database health check failed'
        }


def ensure_indexes() -> bool:
    """Ensure the unique user indexes exist.

    The registration flow checks for existing accounts before inserting, but
    two concurrent requests can both pass that check. These indexes make the
    insert itself reject the second account.

    Returns:
        bool: True if all indexes were created/verified successfully
    """
    try:
        db = get_db()
        users_collection = db[current_app.config.get('USERS_COLLECTION', 'users')]
        users_collection.create_index([('email', ASCENDING)], unique=True, name='email_unique')
        users_collection.create_index([('username', ASCENDING)], unique=True, name='username_unique')
        logger.info("Database indexes created/verified successfully")
        return True

    except (DatabaseError, PyMongoError) as e:
        logger.error(f"Failed to create indexes: {e}")
        return False
