from __future__ import annotations
import json
import logging
import os
import re
from collections import deque
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .models import HealthSample, TransitionEvent, LifecycleEvent, event_from_record

logger = logging.getLogger(__name__)

EVENTS_FILE = "events.jsonl"
HEALTH_PREFIX = "health-"
HEALTH_SUFFIX = ".jsonl"
_HEALTH_RE = re.compile(r"^health-(\d{4}-\d{2}-\d{2})\.jsonl$")

Event = Union[TransitionEvent, LifecycleEvent]


def now_iso() -> str:
    return datetime.now().astimezone().isoformat(timespec="milliseconds")


def sample_day(ts: str) -> date:
    try:
        return datetime.fromisoformat(ts).date()
    except ValueError:
        logger.warning("Unparseable sample timestamp %r; filing under today", ts)
        return date.today()


def _dumps(rec: Dict[str, Any]) -> str:
    return json.dumps(rec, ensure_ascii=False, separators=(",", ":"))


class LogStore:
    """
    Append-only JSON Lines storage:

    - health-YYYY-MM-DD.jsonl: one sample per line, one file per day
    - events.jsonl: transitions and lifecycle events, never date-rotated

    Every write opens, appends one whole line and closes, so external
    readers can tail the files at any time.
    """
    def __init__(self, log_dir: Union[str, Path]):
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)

    @property
    def events_path(self) -> Path:
        return self.log_dir / EVENTS_FILE

    def health_path(self, day: Optional[date] = None) -> Path:
        day = day or date.today()
        return self.log_dir / f"{HEALTH_PREFIX}{day.isoformat()}{HEALTH_SUFFIX}"

    # ── writes ────────────────────────────────
    def _append(self, path: Path, rec: Dict[str, Any]) -> None:
        line = _dumps(rec) + "\n"
        # the directory may have been removed while we were running
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "a", encoding="utf-8", newline="\n") as fh:
            fh.write(line)

    def append_sample(self, sample: HealthSample, day: Optional[date] = None) -> None:
        """Append to the daily file of the sample's own local timestamp."""
        self._append(self.health_path(day or sample_day(sample.ts)), sample.to_record())

    def append_event(self, event: Event) -> None:
        self._append(self.events_path, event.to_record())

    # ── reads ─────────────────────────────────
    @staticmethod
    def _read_lines(path: Path) -> List[Dict[str, Any]]:
        if not path.exists():
            return []
        rows: List[Dict[str, Any]] = []
        with open(path, "r", encoding="utf-8") as fh:
            for line in fh:
                line = line.strip()
                if not line:
                    continue
                try:
                    rows.append(json.loads(line))
                except ValueError:
                    # torn line from a crash mid-write
                    continue
        return rows

    def list_samples(self, day: Optional[date] = None) -> List[HealthSample]:
        return [HealthSample.from_record(r) for r in self._read_lines(self.health_path(day))]

    def list_events(self, limit: int = 200) -> List[Event]:
        """Most recent *limit* events, oldest first."""
        rows = self._read_lines(self.events_path)
        return [event_from_record(r) for r in rows[-limit:]]

    # ── sweep ─────────────────────────────────
    def sweep(self, retention_days: int, events_max_bytes: int, events_keep_lines: int,
              today: Optional[date] = None) -> None:
        """Retention pass; run at the head of every iteration. Never raises OSError."""
        self.delete_expired(retention_days, today)
        self.trim_events(events_max_bytes, events_keep_lines)

    def delete_expired(self, retention_days: int, today: Optional[date] = None) -> List[Path]:
        cutoff = (today or date.today()) - timedelta(days=retention_days)
        removed: List[Path] = []
        try:
            entries = list(self.log_dir.iterdir())
        except OSError as e:
            logger.warning("Cannot list %s: %s", self.log_dir, e)
            return removed

        for path in entries:
            m = _HEALTH_RE.match(path.name)
            if not m:
                continue
            try:
                file_day = date.fromisoformat(m.group(1))
            except ValueError:
                continue
            if file_day >= cutoff:
                continue
            try:
                path.unlink()
                removed.append(path)
                logger.info("Deleted expired log %s", path.name)
            except OSError as e:
                logger.warning("Could not delete %s: %s", path.name, e)
        return removed

    def trim_events(self, max_bytes: int, keep_lines: int) -> bool:
        path = self.events_path
        try:
            if not path.exists() or path.stat().st_size <= max_bytes:
                return False
            with open(path, "r", encoding="utf-8", errors="replace") as fh:
                tail = deque(fh, maxlen=keep_lines)
            # drop a torn last line so every kept line is a whole record
            if tail and not tail[-1].endswith("\n"):
                tail.pop()
            tmp = path.with_suffix(".tmp")
            with open(tmp, "w", encoding="utf-8", newline="\n") as fh:
                fh.writelines(tail)
            os.replace(tmp, path)
            logger.info("Trimmed %s to last %d lines", path.name, len(tail))
            return True
        except OSError as e:
            logger.warning("Could not trim %s: %s", path.name, e)
            return False
