"""
Backing stores for filesystem snapshots.

A store is any object offering the narrow key/value contract

    list() -> List[str]
    read(key) -> str
    write(key, value) -> None
    delete(key) -> None
    exists(key) -> bool

The FileSystem only ever calls exists/read on start-up and write after a
successful mutation.
"""

import logging
import os
import re
from typing import Dict, List

logger = logging.getLogger(__name__)


class MemoryStore:
    """Dictionary-backed store, used by tests and ephemeral sessions."""

    def __init__(self, initial: Dict[str, str] = None):
        self.data: Dict[str, str] = dict(initial or {})

    def list(self) -> List[str]:
        return sorted(self.data)

    def read(self, key: str) -> str:
        if key not in self.data:
            raise KeyError(key)
        return self.data[key]

    def write(self, key: str, value: str) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)

    def exists(self, key: str) -> bool:
        return key in self.data


class DirectoryStore:
    """
    Store keeping one JSON file per key inside a real directory.

    Keys are restricted to a safe file-name alphabet so that a key can never
    escape the directory.
    """

    SUFFIX = '.json'
    _KEY_PATTERN = re.compile(r'^[A-Za-z0-9_.-]+$')

    def __init__(self, directory: str):
        self.directory = os.path.abspath(os.path.expanduser(directory))
        os.makedirs(self.directory, exist_ok=True)

    def _path_for(self, key: str) -> str:
        if not self._KEY_PATTERN.match(key) or key in ('.', '..'):
            raise ValueError(f"invalid store key: {key!r}")
        return os.path.join(self.directory, key + self.SUFFIX)

    def list(self) -> List[str]:
        return sorted(name[:-len(self.SUFFIX)] for name in os.listdir(self.directory)
                      if name.endswith(self.SUFFIX))

    def read(self, key: str) -> str:
        with open(self._path_for(key), 'r', encoding='utf-8') as f:
            return f.read()

    def write(self, key: str, value: str) -> None:
        path = self._path_for(key)
        tmp_path = path + '.tmp'
        with open(tmp_path, 'w', encoding='utf-8') as f:
            f.write(value)
        os.replace(tmp_path, path)
        logger.debug("Saved %d bytes to %s", len(value), path)

    def delete(self, key: str) -> None:
        path = self._path_for(key)
        if os.path.exists(path):
            os.remove(path)

    def exists(self, key: str) -> bool:
        return os.path.exists(self._path_for(key))
