"""
MongoDB utility functions for the train search request log and route analytics.
"""
import logging
from datetime import datetime, timezone

from pymongo import MongoClient
from pymongo.errors import ConnectionFailure, PyMongoError, ServerSelectionTimeoutError
from django.conf import settings

logger = logging.getLogger(__name__)

SEARCH_ENDPOINT = '/api/trains/'

# MongoDB client singleton
_mongo_client = None
_mongo_db = None
_mongo_available = None


def reset_connection():
    """Forget the cached client so the next call reconnects."""
    global _mongo_client, _mongo_db, _mongo_available
    if _mongo_client is not None:
        _mongo_client.close()
    _mongo_client = _mongo_db = _mongo_available = None


def get_mongo_db():
    """Get MongoDB database instance (singleton pattern); None when logging is off or unreachable."""
    global _mongo_client, _mongo_db, _mongo_available

    if not settings.MONGODB_ENABLED or _mongo_available is False:
        return None

    if _mongo_db is None:
        try:
            _mongo_client = MongoClient(
                settings.MONGODB_URI,
                serverSelectionTimeoutMS=3000,
                connectTimeoutMS=3000
            )
            _mongo_client.admin.command('ping')
            _mongo_db = _mongo_client[settings.MONGODB_NAME]
            _mongo_available = True
            _ensure_indexes(_mongo_db)
        except (ConnectionFailure, ServerSelectionTimeoutError) as e:
            logger.warning("MongoDB connection failed, request log disabled: %s", e)
            _mongo_available = False
            return None

    return _mongo_db


def _ensure_indexes(db):
    """Create necessary indexes for MongoDB collections."""
    try:
        db.api_logs.create_index([("timestamp", -1)])
        db.api_logs.create_index([("endpoint", 1), ("timestamp", -1)])
        db.api_logs.create_index([("request_params.from", 1), ("request_params.to", 1)])
        db.route_analytics.create_index([("search_count", -1)])
        db.route_analytics.create_index([("origin", 1), ("destination", 1)], unique=True)
    except PyMongoError as e:
        logger.error("Error creating MongoDB indexes: %s", e)


def log_api_request(endpoint, method, user_id, request_params,
                    response_status, execution_time_ms, results_count=None):
    """
    Log an API request to MongoDB.

    Args:
        endpoint: API endpoint path
        method: HTTP method (GET, POST, etc.)
        user_id: ID of the authenticated user, or None
        request_params: Dictionary of query parameters
        response_status: HTTP response status code
        execution_time_ms: Execution time in milliseconds
        results_count: Number of results returned (optional)
    """
    db = get_mongo_db()
    if db is None:
        return

    log_entry = {
        "endpoint": endpoint,
        "method": method,
        "user_id": user_id,
        "request_params": request_params,
        "response_status": response_status,
        "execution_time_ms": execution_time_ms,
        "timestamp": datetime.now(timezone.utc),
    }
    if results_count is not None:
        log_entry["results_count"] = results_count

    try:
        db.api_logs.insert_one(log_entry)
        if endpoint == SEARCH_ENDPOINT and request_params.get('from') and request_params.get('to'):
            update_route_analytics(request_params['from'], request_params['to'])
    except PyMongoError as e:
        logger.error("Error logging to MongoDB: %s", e)


def update_route_analytics(origin, destination):
    """Increment the search counter for an origin-destination pair."""
    db = get_mongo_db()
    if db is None:
        return

    try:
        db.route_analytics.update_one(
            {"origin": origin.strip().title(), "destination": destination.strip().title()},
            {
                "$inc": {"search_count": 1},
                "$set": {"last_updated": datetime.now(timezone.utc)}
            },
            upsert=True
        )
    except PyMongoError as e:
        logger.error("Error updating route analytics: %s", e)


def get_top_routes(limit=5):
    """
    Most searched routes, aggregated from the request log.

    Returns:
        List of dicts with origin, destination and search_count
    """
    db = get_mongo_db()
    if db is None:
        return []

    pipeline = [
        {
            "$match": {
                "endpoint": SEARCH_ENDPOINT,
                "request_params.from": {"$exists": True},
                "request_params.to": {"$exists": True}
            }
        },
        {
            "$group": {
                "_id": {
                    "origin": {"$toLower": "$request_params.from"},
                    "destination": {"$toLower": "$request_params.to"}
                },
                "search_count": {"$sum": 1}
            }
        },
        {"$sort": {"search_count": -1}},
        {"$limit": limit},
        {
            "$project": {
                "_id": 0,
                "origin": "$_id.origin",
                "destination": "$_id.destination",
                "search_count": 1
            }
        }
    ]

    try:
        return list(db.api_logs.aggregate(pipeline))
    except PyMongoError as e:
        logger.error("Error getting top routes: %s", e)
        return []
