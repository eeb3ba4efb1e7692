"""
Local Key-Value Persistence
===========================

This module stands in for browser-local storage. Values are kept in a hidden
JSON file in the user's home directory (`~/.clinxr_storage.json` unless
`CLINXR_STORAGE_PATH` points elsewhere), so they survive a restart for the
same user profile.

Key Responsibilities:
---------------------
- File-System Persistence: Reads and writes a flat JSON object of string keys.
- Fault Tolerance: A missing or corrupted file is treated as empty storage.
- Security Logging: Save/load events are logged with values masked.

Author: ClinXR Project
"""

import json
import logging
from pathlib import Path
from typing import Dict, Optional, Union

from clinxr.core.config import storage_path
from clinxr.utils.logger import mask_sensitive_data


class LocalStorage:
    """
    JSON file backed key-value store with the localStorage contract.

    Each mutation rewrites the whole file; the store is tiny (a single
    credential in practice), so there is no need for anything incremental.

    Attributes:
        path: Location of the backing JSON file.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path is not None else storage_path()
        self.logger = logging.getLogger(__name__)

    def get_item(self, key: str) -> Optional[str]:
        """Return the stored value for `key`, or None if absent."""
        value = self._load().get(key)
        return value if isinstance(value, str) else None

    def set_item(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def remove_item(self, key: str) -> bool:
        """
        Delete `key` from storage.

        Returns:
            True if the key was present and has been removed.
        """
        data = self._load()
        if key not in data:
            return False
        del data[key]
        self._save(data)
        return True

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            self.logger.error(f"Local storage file is corrupted, ignoring it: {e}")
            return {}
        except (UnicodeDecodeError, OSError) as e:
            self.logger.error(f"Failed to read local storage at {self.path}, ignoring it: {e}", exc_info=True)
            return {}

        if not isinstance(data, dict):
            self.logger.error(f"Local storage at {self.path} is not a JSON object, ignoring it")
            return {}

        self.logger.debug(f"Loaded local storage: {mask_sensitive_data(data)}")
        return data

    def _save(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        self.logger.debug(f"Saved local storage to {self.path}: {mask_sensitive_data(data)}")
