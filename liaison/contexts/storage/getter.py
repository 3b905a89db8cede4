import os
from typing import Optional

from dotenv import load_dotenv

from liaison.contexts.storage.store import CredentialStore, MemoryCredentialStore
from liaison.contexts.storage.filesystem import FileCredentialStore

# Load environment variables from .env file
load_dotenv()
CREDENTIAL_BACKEND = os.getenv("CREDENTIAL_BACKEND", "file")

# Supported credential store backends
backend_class_map = {"file": FileCredentialStore, "memory": MemoryCredentialStore}
ALLOWED_BACKENDS = list(backend_class_map.keys())


def get_credential_store(backend: Optional[str] = None, **kwargs) -> CredentialStore:
    """
    Factory function to create the CredentialStore selected by the CREDENTIAL_BACKEND env var.

    Args:
        backend: Backend name overriding CREDENTIAL_BACKEND ("file" or "memory")
        **kwargs: Passed to the backend constructor (e.g. directory for "file")

    Returns:
        CredentialStore implementation for the configured backend

    Raises:
        ValueError: If the backend is unsupported
    """
    backend = (backend or CREDENTIAL_BACKEND or "").lower()

    if backend in ALLOWED_BACKENDS:
        return backend_class_map[backend](**kwargs)
    else:
        raise ValueError(
            f"Unsupported credential backend: '{backend}'. "
            f"Supported backends: {', '.join(ALLOWED_BACKENDS)}"
        )
