"""Binary object storage for recorded audio."""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from medbridge.config import get_settings
from medbridge.exceptions import InvalidInputError, PersistenceError

logger = logging.getLogger(__name__)


class ObjectStore(Protocol):
    def put(self, blob: bytes, name: str) -> str:
        """Store ``blob`` under ``name`` and return its public URL."""


@dataclass(slots=True)
class LocalObjectStore:
    """Stores blobs as files and serves them under a public base URL."""

    root_dir: Path
    public_base_url: str

    def put(self, blob: bytes, name: str) -> str:
        target = self._resolve(name)
        if target.exists():
            raise PersistenceError(f"Object already exists: {name}")
        target.parent.mkdir(parents=True, exist_ok=True)
        try:
            with tempfile.NamedTemporaryFile("wb", delete=False, dir=str(target.parent)) as tmp:
                tmp.write(blob)
                tmp_name = tmp.name
            os.replace(tmp_name, target)
        except OSError as exc:
            logger.exception("storage.put_failed name=%s bytes=%d", name, len(blob))
            raise PersistenceError(f"Failed to store {name}: {exc}") from exc
        logger.info("storage.put name=%s bytes=%d", name, len(blob))
        return f"{self.public_base_url.rstrip('/')}/{name}"

    def _resolve(self, name: str) -> Path:
        root = self.root_dir.resolve()
        target = (root / name).resolve()
        if not name or root not in target.parents:
            raise InvalidInputError(f"Invalid object name: {name!r}")
        return target


def get_default_object_store() -> LocalObjectStore:
    settings = get_settings()
    return LocalObjectStore(root_dir=Path(settings.recordings_dir), public_base_url=settings.recordings_base_url)
