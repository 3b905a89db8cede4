"""
File-backed credential store.

One JSON document per account under SESSIONS_PATH:
    {"cookies": "<Set-Cookie blob>", "updated_at": "<iso timestamp>"}
"""

import json
import os
import re
import tempfile
import threading
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv
from loguru import logger

from liaison.contexts.storage.store import CredentialStore

load_dotenv()
SESSIONS_PATH = Path(os.getenv("SESSIONS_PATH", "outs/sessions"))

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._@+-]")


class FileCredentialStore(CredentialStore):
    """
    JSON file implementation of CredentialStore.

    Writes go through a temporary file and an atomic rename, so a crash never
    leaves a half-written session behind. Unreadable files are treated as
    absent: the caller falls back to a fresh login.
    """

    def __init__(self, directory: Union[str, Path] = SESSIONS_PATH):
        self.directory = Path(directory)
        self._lock = threading.Lock()

    def path_for(self, identity: str) -> Path:
        """Path of the JSON document holding an account's session."""
        return self.directory / f"{_UNSAFE_FILENAME_CHARS.sub('_', identity)}.json"

    def get(self, identity: str) -> Optional[str]:
        path = self.path_for(identity)
        if not path.exists():
            return None

        with self._lock:
            try:
                with open(path, "r", encoding="utf-8") as f:
                    data = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"FileCredentialStore: could not read {path}, ignoring stored session: {e}")
                return None

        blob = data.get("cookies") if isinstance(data, dict) else None
        if not isinstance(blob, str) or not blob:
            logger.warning(f"FileCredentialStore: {path} holds no cookies, ignoring stored session")
            return None
        return blob

    def set(self, identity: str, blob: str) -> None:
        path = self.path_for(identity)
        payload = {"cookies": blob, "updated_at": datetime.now().isoformat()}

        with self._lock:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.directory, prefix=".session-", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(payload, f, indent=2)
                os.replace(tmp_path, path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
                raise

        logger.debug(f"FileCredentialStore: saved session to {path}")

    def delete(self, identity: str) -> bool:
        path = self.path_for(identity)
        with self._lock:
            try:
                path.unlink()
            except FileNotFoundError:
                return False
        logger.debug(f"FileCredentialStore: removed {path}")
        return True
