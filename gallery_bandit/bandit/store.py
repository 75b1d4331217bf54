"""Persistence backends for per-user LinUCB models."""

from __future__ import annotations

import hashlib
import json
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from ..errors import DimensionMismatch, ModelStoreUnavailable, ModelVersionConflict
from .model import LinUCBModel

# ``expected_version`` value that skips the version check.
UNCONDITIONAL = -1


def _check_version(user_id: str, expected: int | None, current: int | None) -> int:
    """Validate a conditional write and return the version to store."""

    if expected != UNCONDITIONAL and expected != current:
        raise ModelVersionConflict(user_id, expected, current)
    return (current or 0) + 1


class ModelStore(ABC):
    """Keyed storage of serialized models.

    ``read`` returns ``None`` for an unknown user. Backend faults surface as
    ``ModelStoreUnavailable``.

    ``write`` is a compare-and-swap on the stored ``version``: it succeeds
    only when the stored version equals ``expected_version`` (``None`` means
    no model is stored yet) and raises ``ModelVersionConflict`` otherwise.
    ``UNCONDITIONAL`` overwrites whatever is stored. Every successful write
    stores and returns the next version.
    """

    @abstractmethod
    def read(self, user_id: str) -> LinUCBModel | None:
        """Return the stored model for ``user_id`` if any."""

    @abstractmethod
    def write(
        self, user_id: str, model: LinUCBModel, expected_version: int | None = UNCONDITIONAL
    ) -> int:
        """Replace the stored model for ``user_id`` and return its new version."""


class InMemoryModelStore(ModelStore):
    """Process-local store; keeps serialized snapshots so reads never tear."""

    def __init__(self) -> None:
        self._models: dict[str, dict] = {}
        self._lock = threading.Lock()

    def read(self, user_id: str) -> LinUCBModel | None:
        with self._lock:
            payload = self._models.get(user_id)
        if payload is None:
            return None
        return LinUCBModel.from_dict(payload)

    def write(
        self, user_id: str, model: LinUCBModel, expected_version: int | None = UNCONDITIONAL
    ) -> int:
        payload = model.to_dict()
        with self._lock:
            current = self._models.get(user_id)
            current_version = None if current is None else int(current.get("version", 0))
            payload["version"] = _check_version(user_id, expected_version, current_version)
            self._models[user_id] = payload
        return payload["version"]

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._models


class JsonFileModelStore(ModelStore):
    """One JSON document per user, replaced atomically on write.

    The version check and the replace happen under one lock, so conditional
    writes are safe between threads of one process.
    """

    def __init__(self, root: Path) -> None:
        self._root = Path(root)
        self._write_lock = threading.Lock()

    def path_for(self, user_id: str) -> Path:
        digest = hashlib.sha256(user_id.encode("utf-8")).hexdigest()
        return self._root / f"{digest}.json"

    def _load(self, user_id: str) -> dict[str, Any] | None:
        path = self.path_for(user_id)
        try:
            with path.open("r", encoding="utf-8") as handle:
                document = json.load(handle)
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError) as exc:
            raise ModelStoreUnavailable(f"Could not read model for {user_id}: {exc}") from exc
        if not isinstance(document, dict) or not isinstance(document.get("model"), dict):
            raise ModelStoreUnavailable(f"Corrupt model document for {user_id}")
        return document["model"]

    def read(self, user_id: str) -> LinUCBModel | None:
        payload = self._load(user_id)
        if payload is None:
            return None
        try:
            return LinUCBModel.from_dict(payload)
        except (KeyError, TypeError, ValueError, DimensionMismatch) as exc:
            raise ModelStoreUnavailable(f"Corrupt model document for {user_id}: {exc}") from exc

    def write(
        self, user_id: str, model: LinUCBModel, expected_version: int | None = UNCONDITIONAL
    ) -> int:
        path = self.path_for(user_id)
        payload = model.to_dict()
        with self._write_lock:
            try:
                current = self._load(user_id)
            except ModelStoreUnavailable:
                # An unreadable document may only be overwritten unconditionally.
                if expected_version != UNCONDITIONAL:
                    raise
                current = None
            current_version = None if current is None else int(current.get("version", 0))
            payload["version"] = _check_version(user_id, expected_version, current_version)
            document = {"user_id": user_id, "model": payload}
            try:
                self._root.mkdir(parents=True, exist_ok=True)
                fd, tmp_name = tempfile.mkstemp(dir=self._root, suffix=".tmp")
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as handle:
                        json.dump(document, handle)
                    os.replace(tmp_name, path)
                except BaseException:
                    Path(tmp_name).unlink(missing_ok=True)
                    raise
            except OSError as exc:
                raise ModelStoreUnavailable(f"Could not write model for {user_id}: {exc}") from exc
        return payload["version"]

