"""Remote platform adapters - Anti-Corruption Layer.

Concrete collaborators behind the connection domain's protocols:

    FileCredentialResolver: credential store (JSON file + environment)
    TableApiSessionFactory: builds httpx-backed Table API sessions
"""

from .credential_store import FileCredentialResolver, env_prefix
from .table_api_client import TABLE_API_PATH, TableApiSession, TableApiSessionFactory

__all__ = [
    "FileCredentialResolver",
    "TABLE_API_PATH",
    "TableApiSession",
    "TableApiSessionFactory",
    "env_prefix",
]
