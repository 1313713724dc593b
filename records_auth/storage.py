"""
Key-value persistence surface for the security collections.

Any ``MutableMapping[str, str]`` works as a store; a plain ``dict`` is
enough for tests and single-process use. ``JsonFileStore`` keeps each
collection in its own file.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterator, List, MutableMapping

from .errors import PersistenceFailure

logger = logging.getLogger(__name__)


class JsonFileStore(MutableMapping):
    """
    Store each key as ``<directory>/<key>.json``.

    Writes go to a temporary file that is then renamed over the target,
    so a crash never leaves a half-written collection behind.
    """

    SUFFIX = ".json"

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key.startswith("."):
            raise KeyError(key)
        return self.directory / f"{key}{self.SUFFIX}"

    def __getitem__(self, key: str) -> str:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise KeyError(key) from None
        except OSError as e:
            raise PersistenceFailure(key, f"Failed to read {path}: {e}") from e

    def __setitem__(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(value)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise PersistenceFailure(key, f"Failed to write {path}: {e}") from e

    def __delitem__(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink()
        except FileNotFoundError:
            raise KeyError(key) from None
        except OSError as e:
            raise PersistenceFailure(key, f"Failed to delete {path}: {e}") from e

    def __iter__(self) -> Iterator[str]:
        if not self.directory.is_dir():
            return iter(())
        return iter(sorted(p.stem for p in self.directory.glob(f"*{self.SUFFIX}")))

    def __len__(self) -> int:
        return sum(1 for _ in self)


def read_collection(store: MutableMapping, key: str) -> List[Dict[str, Any]]:
    """
    Read a persisted JSON array.

    Absent, unreadable or malformed data yields an empty list; it is
    never a fatal error.
    """
    try:
        raw = store.get(key)
    except PersistenceFailure as e:
        logger.warning(f"Could not read {key}, starting empty: {e}")
        return []
    if raw is None:
        return []
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        logger.warning(f"Stored {key} is not valid JSON, starting empty: {e}")
        return []
    if not isinstance(data, list):
        logger.warning(f"Stored {key} is not a JSON array, starting empty")
        return []
    records = [item for item in data if isinstance(item, dict)]
    if len(records) != len(data):
        logger.warning(f"Skipped {len(data) - len(records)} non-object entries in {key}")
    return records


def write_collection(store: MutableMapping, key: str, records: List[Dict[str, Any]]) -> None:
    """
    Serialise and persist an entire collection.

    Raises:
        PersistenceFailure: if the store rejects the write
    """
    try:
        store[key] = json.dumps(records, ensure_ascii=False)
    except PersistenceFailure:
        raise
    except Exception as e:
        raise PersistenceFailure(key, f"Failed to persist collection {key!r}: {e}") from e
