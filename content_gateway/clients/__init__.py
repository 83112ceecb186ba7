"""
Content Gateway Client Modules

Clients for the external collaborators the pipeline consults:
the OpenAlex catalog, the DynamoDB harvest index and the API key store.
"""

from .index_client import DynamoIndexClient, IndexLookup
from .key_store import KeyRecord, SqliteKeyStore
from .openalex_client import OpenAlexClient

__all__ = [
    "DynamoIndexClient",
    "IndexLookup",
    "KeyRecord",
    "SqliteKeyStore",
    "OpenAlexClient",
]
