"""
Key-Value Storage Module

Slot storage used by the face registry. A slot is a string value stored
under a fixed key: one JSON file per key on disk, or a plain dict in memory.
"""

import logging
import os
import re
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class KeyValueStorage:
    """Minimal string key-value storage interface."""

    def get(self, key: str) -> Optional[str]:
        """Return the stored value for ``key`` or None if absent."""
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        raise NotImplementedError

    def remove(self, key: str) -> None:
        """Remove ``key``; removing an absent key is a no-op."""
        raise NotImplementedError


class MemoryStorage(KeyValueStorage):
    """In-process storage, lost when the process exits."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._data


class FileStorage(KeyValueStorage):
    """Stores every key as ``<data_dir>/<key>.json``."""

    def __init__(self, data_dir: str):
        """
        Initialize file storage.

        Args:
            data_dir: Directory holding the slot files (created if missing)
        """
        self.data_dir = data_dir
        os.makedirs(self.data_dir, exist_ok=True)
        logger.debug(f"File storage initialized at {self.data_dir}")

    def path_for(self, key: str) -> str:
        """Return the file path backing ``key``."""
        safe_key = re.sub(r'[^A-Za-z0-9_.-]', '_', key)
        return os.path.join(self.data_dir, f"{safe_key}.json")

    def get(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        if not os.path.exists(path):
            return None
        with open(path, 'r', encoding='utf-8') as f:
            return f.read()

    def set(self, key: str, value: str) -> None:
        path = self.path_for(key)
        tmp_path = path + '.tmp'
        # Slot file is replaced atomically
        with open(tmp_path, 'w', encoding='utf-8') as f:
            f.write(value)
        os.replace(tmp_path, path)

    def remove(self, key: str) -> None:
        path = self.path_for(key)
        if os.path.exists(path):
            os.remove(path)


def create_storage(config: Dict) -> KeyValueStorage:
    """
    Build the storage backend described by the ``storage`` config section.

    Args:
        config: Full configuration dictionary

    Returns:
        A FileStorage or MemoryStorage instance
    """
    storage_config = config.get('storage', {})
    backend = storage_config.get('backend', 'file')

    if backend == 'memory':
        return MemoryStorage()
    if backend != 'file':
        logger.warning(f"Unsupported storage backend: {backend}, falling back to file")

    return FileStorage(storage_config.get('data_dir', 'data'))
