"""
Bottle store — CRUD over persisted bottle records.

Layout, one directory per record::

    <bottles>/
        <id>/
            bottle.json     # BottleRecord, pretty JSON
            prefix/         # the isolated environment (WINEPREFIX)

The store performs its own filesystem access per call and holds no
in-process cache. Blocking work runs in a worker thread so callers on
the event loop only suspend their own task. Writes are atomic (temp
file in the same directory, then rename).

Callers that read, modify, and write back a record must hold the
bottle's lock from ``alloy.core.persistence.locks``; the store itself
does not lock.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import shutil
import tempfile
import uuid
from pathlib import Path

from pydantic import ValidationError

from alloy.core.errors import InvalidInputError, NotFoundError, StorageError
from alloy.core.models.bottle import BottleRecord, WineRuntime

logger = logging.getLogger(__name__)

BOTTLE_META = "bottle.json"
PREFIX_DIR = "prefix"

_CREATE_ATTEMPTS = 5


def sanitize_bottle_name(value: str) -> str:
    """Turn a display name into a slug: ``"My Game"`` → ``"my-game"``.

    Letters and digits are lower-cased, spaces become dashes, dashes and
    underscores are kept, everything else is dropped.

    Raises:
        InvalidInputError: If nothing usable is left.
    """
    clean = []
    for ch in value.strip():
        if ch.isascii() and ch.isalnum():
            clean.append(ch.lower())
        elif ch in "-_":
            clean.append(ch)
        elif ch == " ":
            clean.append("-")

    slug = "".join(clean).strip("-_")
    if not slug:
        raise InvalidInputError(
            "please pick a bottle name that uses letters, numbers, dashes, or underscores"
        )
    return slug


class BottleStore:
    """Directory-backed store of ``BottleRecord`` objects."""

    def __init__(self, root: Path):
        self._root = root
        try:
            self._root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"failed to create bottle root {root}: {e}") from e

    @property
    def root(self) -> Path:
        return self._root

    # ── Paths (pure, no I/O) ─────────────────────────────────────

    def bottle_dir(self, bottle_id: uuid.UUID) -> Path:
        return self._root / str(bottle_id)

    def bottle_prefix(self, bottle_id: uuid.UUID) -> Path:
        """Path of the bottle's prefix. Not checked for existence."""
        return self.bottle_dir(bottle_id) / PREFIX_DIR

    def metadata_path(self, bottle_id: uuid.UUID) -> Path:
        return self.bottle_dir(bottle_id) / BOTTLE_META

    # ── Operations ───────────────────────────────────────────────

    async def create(self, name: str, runtime: WineRuntime) -> BottleRecord:
        """Create a new bottle with a fresh id and an empty environment."""
        slug = sanitize_bottle_name(name)
        return await asyncio.to_thread(self._create, slug, runtime)

    async def list(self) -> list[BottleRecord]:
        """All readable records, ordered by name. Unreadable entries are skipped."""
        return await asyncio.to_thread(self._list)

    async def record(self, bottle_id: uuid.UUID) -> BottleRecord:
        return await asyncio.to_thread(self._read, bottle_id)

    async def update(self, bottle_id: uuid.UUID, record: BottleRecord) -> None:
        """Overwrite an existing record's metadata. Never creates a record."""
        await asyncio.to_thread(self._update, bottle_id, record)

    async def remove(self, bottle_id: uuid.UUID) -> None:
        """Delete the bottle directory, prefix and all."""
        await asyncio.to_thread(self._remove, bottle_id)

    # ── Blocking implementations ─────────────────────────────────

    def _create(self, name: str, runtime: WineRuntime) -> BottleRecord:
        for _ in range(_CREATE_ATTEMPTS):
            record = BottleRecord(name=name, wine_runtime=runtime)
            bottle_dir = self.bottle_dir(record.id)
            try:
                bottle_dir.mkdir()
            except FileExistsError:
                logger.warning("Bottle id %s already in use, drawing another", record.id)
                continue
            except OSError as e:
                raise StorageError(f"failed to create bottle directory {bottle_dir}: {e}") from e
            break
        else:
            raise StorageError("could not allocate a unique bottle id")

        try:
            (bottle_dir / PREFIX_DIR).mkdir()
            self._write(bottle_dir, record)
        except (OSError, StorageError) as e:
            shutil.rmtree(bottle_dir, ignore_errors=True)
            if isinstance(e, StorageError):
                raise
            raise StorageError(f"failed to create wine prefix directory: {e}") from e

        logger.info("Created bottle %s (%s)", record.name, record.id)
        return record

    def _list(self) -> list[BottleRecord]:
        bottles: list[BottleRecord] = []
        try:
            entries = sorted(self._root.iterdir())
        except OSError as e:
            raise StorageError(f"failed to read bottle root {self._root}: {e}") from e

        for entry in entries:
            if not entry.is_dir():
                continue
            meta_path = entry / BOTTLE_META
            if not meta_path.is_file():
                logger.debug("Skipping %s: no %s", entry.name, BOTTLE_META)
                continue
            try:
                bottles.append(self._parse(meta_path))
            except StorageError as e:
                logger.warning("Ignored bottle %s: %s", entry.name, e)

        bottles.sort(key=lambda b: (b.name, str(b.id)))
        return bottles

    def _read(self, bottle_id: uuid.UUID) -> BottleRecord:
        meta_path = self.metadata_path(bottle_id)
        if not meta_path.is_file():
            raise NotFoundError(f"bottle {bottle_id} not found")
        return self._parse(meta_path)

    def _update(self, bottle_id: uuid.UUID, record: BottleRecord) -> None:
        bottle_dir = self.bottle_dir(bottle_id)
        if not bottle_dir.is_dir():
            raise NotFoundError(f"bottle {bottle_id} not found")
        if record.id != bottle_id:
            raise InvalidInputError(
                f"record id {record.id} does not match bottle {bottle_id}"
            )
        self._write(bottle_dir, record)
        logger.debug("Updated bottle %s", bottle_id)

    def _remove(self, bottle_id: uuid.UUID) -> None:
        bottle_dir = self.bottle_dir(bottle_id)
        if not bottle_dir.is_dir():
            raise NotFoundError(f"bottle {bottle_id} not found")
        try:
            shutil.rmtree(bottle_dir)
        except OSError as e:
            raise StorageError(f"failed to remove bottle {bottle_id}: {e}") from e
        logger.info("Removed bottle %s", bottle_id)

    @staticmethod
    def _parse(meta_path: Path) -> BottleRecord:
        try:
            data = json.loads(meta_path.read_text(encoding="utf-8"))
            return BottleRecord.model_validate(data)
        except OSError as e:
            raise StorageError(f"failed to read bottle metadata {meta_path}: {e}") from e
        except (UnicodeDecodeError, json.JSONDecodeError, ValidationError) as e:
            raise StorageError(f"corrupt bottle metadata {meta_path}: {e}") from e

    @staticmethod
    def _write(bottle_dir: Path, record: BottleRecord) -> None:
        """Atomic write: temp file in the bottle directory, then rename."""
        meta_path = bottle_dir / BOTTLE_META
        content = json.dumps(record.model_dump(mode="json"), indent=2, ensure_ascii=False) + "\n"

        try:
            fd, tmp_path = tempfile.mkstemp(dir=bottle_dir, prefix=".bottle_", suffix=".tmp")
            tmp = Path(tmp_path)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(content)
                os.replace(tmp, meta_path)
            except Exception:
                tmp.unlink(missing_ok=True)
                raise
        except OSError as e:
            logger.error("Failed to write %s: %s", meta_path, e)
            raise StorageError(f"failed to write {meta_path}: {e}") from e
