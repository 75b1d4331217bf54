"""Utilities for writing interaction logs."""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .types import BanditReward

_APPEND_LOCK = threading.Lock()

logger = logging.getLogger(__name__)


def utc_timestamp(moment: datetime | None = None) -> str:
    moment = moment or datetime.now(timezone.utc)
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment.isoformat(timespec="milliseconds") + "Z"


def reward_to_dict(record: BanditReward, status: str | None = None) -> dict[str, Any]:
    payload = {
        "timestamp": record.timestamp,
        "user_id": record.user_id,
        "artwork_id": record.artwork_id,
        "action": record.action,
        "reward": record.reward,
        "reason": record.reason,
        "context": record.context.to_dict(),
        "features": list(record.features),
    }
    if status is not None:
        payload["status"] = status
    return payload


@dataclass
class JsonlInteractionLogger:
    """Append-only JSONL logger for reward interactions."""

    path: Path

    def log(self, record: BanditReward, status: str | None = None) -> bool:
        """Append ``record``; return False instead of raising on I/O faults."""

        line = json.dumps(reward_to_dict(record, status), ensure_ascii=False)
        try:
            with _APPEND_LOCK:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with self.path.open("a", encoding="utf-8") as handle:
                    handle.write(line + "\n")
        except OSError:
            logger.exception("Failed to append interaction for user %s", record.user_id)
            return False
        return True

    def read(self) -> list[dict[str, Any]]:
        """Return all parseable records, skipping malformed lines."""

        records: list[dict[str, Any]] = []
        if not self.path.exists():
            return records
        with self.path.open("r", encoding="utf-8") as handle:
            for line in handle:
                content = line.strip()
                if not content:
                    continue
                try:
                    records.append(json.loads(content))
                except json.JSONDecodeError:
                    continue
        return records
