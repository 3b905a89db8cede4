"""
Credential storage domain.

Persists serialized cookie sessions keyed by account identity.
"""

from liaison.contexts.storage.store import (
    CredentialStore,
    MemoryCredentialStore,
)
from liaison.contexts.storage.filesystem import FileCredentialStore
from liaison.contexts.storage.getter import get_credential_store

__all__ = [
    # Factory function (primary interface)
    "get_credential_store",
    # Interface and implementations
    "CredentialStore",
    "FileCredentialStore",
    "MemoryCredentialStore",
]
