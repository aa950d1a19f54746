# src/bcal/core/stores/json_store.py
from __future__ import annotations

"""
Single-file JSON store for the ledger and user settings.

Layout:
  {
    "anchors":           [{"year": 6026, "month": 1, "start": "2026-03-19", "confirmed": true}, ...],
    "leap_decisions":    [{"year": 6026, "is_aviv": false, "decided_on": "2026-03-17"}, ...],
    "projected_lengths": {"6026-2": 29, ...},
    "location":          {"latitude": 31.77, "longitude": 35.21, "cached_at": "...+00:00"} | null,
    "preferences":       {...}
  }

Every write is a load-modify-save under a lock shared by all stores on the
same path, then an atomic replace through a unique temp file. Readers never
see a half-written file. One process; other processes are not locked out.
"""

import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from ..settings import CachedLocation, Preferences, parse_projected_key, projected_key
from ..types import LedgerStorageError, MonthAnchor, YearLeapDecision

log = logging.getLogger(__name__)


_LOCKS: Dict[Path, threading.RLock] = {}
_LOCKS_GUARD = threading.Lock()


def _lock_for(path: Path) -> threading.RLock:
    key = path.resolve()
    with _LOCKS_GUARD:
        lock = _LOCKS.get(key)
        if lock is None:
            lock = _LOCKS[key] = threading.RLock()
        return lock


def _empty_doc() -> Dict[str, Any]:
    return {
        "anchors": [],
        "leap_decisions": [],
        "projected_lengths": {},
        "location": None,
        "preferences": {},
    }


def _opt_date(s: Optional[str]) -> Optional[date]:
    return date.fromisoformat(s) if s else None


class JsonFileStore:
    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path).expanduser()
        self._lock = _lock_for(self.path)

    # ---- file I/O ----
    def _load(self) -> Dict[str, Any]:
        with self._lock:
            if not self.path.exists():
                return _empty_doc()
            try:
                raw = json.loads(self.path.read_text(encoding="utf-8") or "{}")
            except json.JSONDecodeError as e:
                raise LedgerStorageError(f"ledger file is not valid JSON: {self.path}: {e}") from e
        if not isinstance(raw, dict):
            raise LedgerStorageError(f"ledger file must hold a JSON object: {self.path}")
        doc = _empty_doc()
        doc.update(raw)
        return doc

    def _save(self, doc: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(doc, f, ensure_ascii=False, indent=2, sort_keys=True)
            os.replace(tmp, self.path)
        except Exception:
            Path(tmp).unlink(missing_ok=True)
            raise
        log.debug("ledger written: %s", self.path)

    @contextmanager
    def _update(self) -> Iterator[Dict[str, Any]]:
        """Load, let the caller edit, save; all under the path lock."""
        with self._lock:
            doc = self._load()
            yield doc
            self._save(doc)

    # ---- LedgerStore ----
    def upsert_anchor(self, anchor: MonthAnchor) -> None:
        with self._update() as doc:
            rows = [
                r for r in doc["anchors"]
                if not (int(r["year"]) == anchor.year_number and int(r["month"]) == anchor.month_number)
            ]
            rows.append(
                {
                    "year": anchor.year_number,
                    "month": anchor.month_number,
                    "start": anchor.start_date.isoformat(),
                    "confirmed": bool(anchor.confirmed),
                }
            )
            rows.sort(key=lambda r: r["start"])
            doc["anchors"] = rows

    def delete_anchor(self, year: int, month: int) -> None:
        with self._update() as doc:
            doc["anchors"] = [
                r for r in doc["anchors"]
                if not (int(r["year"]) == int(year) and int(r["month"]) == int(month))
            ]

    def list_anchors(self) -> List[MonthAnchor]:
        out: List[MonthAnchor] = []
        for r in self._load()["anchors"]:
            out.append(
                MonthAnchor(
                    year_number=int(r["year"]),
                    month_number=int(r["month"]),
                    start_date=date.fromisoformat(r["start"]),
                    confirmed=bool(r.get("confirmed", True)),
                )
            )
        out.sort(key=lambda a: a.start_date)
        return out

    def upsert_leap_decision(self, decision: YearLeapDecision) -> None:
        with self._update() as doc:
            rows = [r for r in doc["leap_decisions"] if int(r["year"]) != decision.year_number]
            rows.append(
                {
                    "year": decision.year_number,
                    "is_aviv": decision.is_aviv,
                    "decided_on": decision.decided_on.isoformat() if decision.decided_on else None,
                }
            )
            rows.sort(key=lambda r: r["year"])
            doc["leap_decisions"] = rows

    def get_leap_decision(self, year: int) -> Optional[YearLeapDecision]:
        for r in self._load()["leap_decisions"]:
            if int(r["year"]) == int(year):
                return YearLeapDecision(
                    year_number=int(r["year"]),
                    is_aviv=r.get("is_aviv"),
                    decided_on=_opt_date(r.get("decided_on")),
                )
        return None

    # ---- SettingsStore ----
    def get_preferences(self) -> Preferences:
        return Preferences.from_stored(self._load().get("preferences"))

    def set_preferences(self, prefs: Preferences) -> None:
        with self._update() as doc:
            doc["preferences"] = prefs.to_stored()

    def get_projected_length(self, year: int, month: int) -> Optional[int]:
        v = self._load()["projected_lengths"].get(projected_key(year, month))
        return None if v is None else int(v)

    def set_projected_length(self, year: int, month: int, length: Optional[int]) -> None:
        key = projected_key(year, month)
        with self._update() as doc:
            if length is None:
                doc["projected_lengths"].pop(key, None)
            else:
                doc["projected_lengths"][key] = int(length)

    def projected_lengths_for_year(self, year: int) -> Dict[int, int]:
        out: Dict[int, int] = {}
        for key, v in self._load()["projected_lengths"].items():
            ym = parse_projected_key(key)
            if ym is None or ym[0] != int(year):
                continue
            out[ym[1]] = int(v)
        return out

    def get_location(self) -> Optional[CachedLocation]:
        r = self._load().get("location")
        if not r:
            return None
        return CachedLocation(
            latitude=float(r["latitude"]),
            longitude=float(r["longitude"]),
            cached_at=datetime.fromisoformat(r["cached_at"]),
        )

    def set_location(self, location: Optional[CachedLocation]) -> None:
        with self._update() as doc:
            if location is None:
                doc["location"] = None
            else:
                doc["location"] = {
                    "latitude": float(location.latitude),
                    "longitude": float(location.longitude),
                    "cached_at": location.cached_at.isoformat(),
                }
