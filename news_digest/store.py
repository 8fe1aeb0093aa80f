"""
Rolling JSON history of compiled digests.

The history file holds at most ``max_entries`` digests, newest first, with
one digest per local calendar day. Before every overwrite the current file is
copied to a ``.backup`` sibling, which is also the fallback when the main file
cannot be read.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
import shutil

from .logging_utils import log_event
from .types import Digest


logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 30


class DigestStore:
    """Load, upsert and persist the digest history file."""

    def __init__(self, path: Path | str, max_entries: int = DEFAULT_MAX_ENTRIES):
        self.path = Path(path)
        self.backup_path = self.path.with_name(self.path.name + ".backup")
        self.max_entries = max_entries

    def upsert(self, digest: Digest) -> list[Digest]:
        """Insert ``digest`` or replace the entry for the same calendar day.

        Returns:
            The persisted list, newest first and capped at ``max_entries``.
        """
        digests = self._load()
        day = digest.calendar_date

        replaced = False
        for idx, existing in enumerate(digests):
            if existing.calendar_date == day:
                digests[idx] = digest
                replaced = True
                break
        if not replaced:
            digests.append(digest)

        digests.sort(key=lambda item: item.timestamp, reverse=True)
        dropped = len(digests) - self.max_entries
        digests = digests[: self.max_entries]

        self._save(digests)
        log_event(
            logger,
            f"{'Updated' if replaced else 'Added'} digest for {digest.date}",
            event="store_upsert",
            replaced=replaced,
            entries=len(digests),
            dropped=max(dropped, 0),
        )
        return digests

    def _load(self) -> list[Digest]:
        if not self.path.exists():
            logger.info("No digest history found, starting with an empty list")
            return []
        try:
            return _read_digests(self.path)
        except (OSError, ValueError, TypeError, KeyError) as exc:
            logger.error(
                "Could not load digest history: %s",
                exc,
                extra={"event": "store_load_failed", "path": str(self.path)},
            )

        if self.backup_path.exists():
            try:
                digests = _read_digests(self.backup_path)
            except (OSError, ValueError, TypeError, KeyError) as exc:
                logger.error(
                    "Could not load digest backup: %s",
                    exc,
                    extra={"event": "store_backup_failed", "path": str(self.backup_path)},
                )
            else:
                logger.warning("Loaded %d digests from backup", len(digests))
                return digests

        logger.warning("Starting with an empty digest list")
        return []

    def _save(self, digests: list[Digest]) -> None:
        try:
            if self.path.exists():
                shutil.copyfile(self.path, self.backup_path)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            payload = [digest.to_dict() for digest in digests]
            self.path.write_text(f"{json.dumps(payload, ensure_ascii=False, indent=2)}\n", encoding="utf-8")
        except OSError:
            logger.exception("Could not save digest history", extra={"event": "store_save_failed"})
            if self.backup_path.exists():
                try:
                    shutil.copyfile(self.backup_path, self.path)
                except OSError:
                    logger.exception("Could not restore digest history from backup")
                else:
                    logger.warning("Restored digest history from backup")
            raise


def _read_digests(path: Path) -> list[Digest]:
    raw = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(raw, list):
        raise ValueError("Digest data is not an array")
    return [Digest.from_dict(item) for item in raw]
