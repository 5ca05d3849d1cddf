import logging
from typing import Optional

from payform.memory import MemoryStorage
from payform.records import PaymentStorage
from payform.storage import DatabaseStorage

logger = logging.getLogger(__name__)


def create_storage(database_url: Optional[str] = None) -> PaymentStorage:
    """Pick the durable backend when a database URL is configured, memory otherwise."""
    if database_url:
        storage = DatabaseStorage(database_url)
        storage.init_db()
        logger.info("Using database storage")
        return storage
    logger.info("Using in-memory storage")
    return MemoryStorage()
