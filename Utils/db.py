import logging
from urllib.parse import urlparse

from mongoengine import connect, disconnect

logger = logging.getLogger(__name__)


def init_db(mongo_uri="mongodb://localhost:27017/lostfound_db", mock=False):
    # Auto-detect DB name from URI
    parsed = urlparse(mongo_uri)
    db_name = (parsed.path or "").lstrip("/") or "lostfound_db"

    disconnect(alias="default")
    try:
        if mock:
            import mongomock
            connect(db=db_name, host=mongo_uri, alias="default",
                    mongo_client_class=mongomock.MongoClient)
        else:
            connect(db=db_name, host=mongo_uri, alias="default")
        logger.info(f"✅ MongoDB connected successfully → {db_name}{' (mongomock)' if mock else ''}")
    except Exception as e:
        logger.error(f"❌ MongoDB connection error: {e}")
        raise
    return db_name
