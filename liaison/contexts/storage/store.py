"""
Credential store interface.

Persists the serialized cookie session of an account so a session survives
process restarts. The blob is opaque here: a Set-Cookie string that
round-trips through the auth context's cookie parser.
"""

import threading
from abc import ABC, abstractmethod
from typing import Dict, Optional


class CredentialStore(ABC):
    """
    Abstract base class for cookie-session persistence.

    Implementations are keyed by account identity and must be safe to call
    from several threads.
    """

    @abstractmethod
    def get(self, identity: str) -> Optional[str]:
        """
        Get the stored session blob for an account.

        Args:
            identity: Account identity (e.g. login email)

        Returns:
            The blob, or None if nothing usable is stored
        """
        pass

    @abstractmethod
    def set(self, identity: str, blob: str) -> None:
        """
        Store (replace) the session blob for an account.

        Args:
            identity: Account identity
            blob: Serialized cookie session
        """
        pass

    @abstractmethod
    def delete(self, identity: str) -> bool:
        """
        Forget the stored session of an account.

        Returns:
            True if something was removed
        """
        pass


class MemoryCredentialStore(CredentialStore):
    """Dict-backed store. Sessions only live as long as the process."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._blobs = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, identity: str) -> Optional[str]:
        with self._lock:
            return self._blobs.get(identity)

    def set(self, identity: str, blob: str) -> None:
        with self._lock:
            self._blobs[identity] = blob

    def delete(self, identity: str) -> bool:
        with self._lock:
            return self._blobs.pop(identity, None) is not None
