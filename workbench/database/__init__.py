"""Local data sources for the channel resolution pipeline.

Two interchangeable sources are provided:

    # Backend HTTP API
    client = LocalApiClient()
    channel = await client.get_channel("UC...")

    # MongoDB store (context manager recommended)
    async with MongoDBManager() as db:
        channel = await db.get_channel("UC...")
"""

from workbench.database.local_api import LocalApiClient
from workbench.database.manager import MongoDBManager, get_db_manager

__all__ = [
    "LocalApiClient",
    "MongoDBManager",
    "get_db_manager",
]
