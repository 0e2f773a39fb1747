"""Concrete implementations for the saved chat archive."""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from . import config
from .models import SavedChat

logger = logging.getLogger(__name__)


class Store(ABC):
    """Interface for saving and loading the chat archive.

    The archive is one ordered collection, most recent first. Saving a
    record whose id already exists replaces it and moves it to the front.
    """

    @abstractmethod
    def load_all(self) -> List[SavedChat]:
        """Loads every saved chat, most recent first."""
        pass

    @abstractmethod
    def save_one(self, record: SavedChat) -> None:
        """Inserts or replaces a single saved chat."""
        pass

    @abstractmethod
    def delete_one(self, chat_id: str) -> None:
        """Deletes a single saved chat; unknown ids are ignored."""
        pass

    def get(self, chat_id: str) -> Optional[SavedChat]:
        return next((rec for rec in self.load_all() if rec.id == chat_id), None)


def _upsert(records: List[SavedChat], record: SavedChat) -> List[SavedChat]:
    updated = [rec for rec in records if rec.id != record.id]
    updated.insert(0, record)
    return updated


class InMemory(Store):
    """Keeps the archive in a list for the life of the process."""

    def __init__(self):
        self._records: List[SavedChat] = []

    def load_all(self) -> List[SavedChat]:
        return [rec.model_copy(deep=True) for rec in self._records]

    def save_one(self, record: SavedChat) -> None:
        self._records = _upsert(self._records, record.model_copy(deep=True))

    def delete_one(self, chat_id: str) -> None:
        self._records = [rec for rec in self._records if rec.id != chat_id]


class File(Store):
    """Keeps the archive as a single JSON document under a fixed key.

    The whole collection lives in ``<directory>/<key>.json``: it is read on
    every load and rewritten in full on every save or delete.
    """

    def __init__(self, directory: str = None, key: str = config.ARCHIVE_KEY):
        self.directory = Path(directory) if directory else config.DATA_DIR
        self.key = key

    @property
    def path(self) -> Path:
        return self.directory / f"{self.key}.json"

    def load_all(self) -> List[SavedChat]:
        if not self.path.exists():
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return [SavedChat.model_validate(item) for item in data]
        except (ValueError, TypeError, ValidationError) as exc:
            logger.warning("Ignoring unreadable chat archive %s: %s", self.path, exc)
            return []

    def save_one(self, record: SavedChat) -> None:
        self._write(_upsert(self.load_all(), record))

    def delete_one(self, chat_id: str) -> None:
        self._write([rec for rec in self.load_all() if rec.id != chat_id])

    def _write(self, records: List[SavedChat]) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(".json.tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(
                [rec.model_dump(mode="json") for rec in records],
                f,
                ensure_ascii=False,
                indent=2,
            )
        tmp_path.replace(self.path)
