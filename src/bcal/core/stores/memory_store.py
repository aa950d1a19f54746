# src/bcal/core/stores/memory_store.py
from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from ..settings import CachedLocation, Preferences
from ..types import MonthAnchor, YearLeapDecision


class InMemoryStore:
    """
    Dict-backed ledger + settings store.
    Satisfies both LedgerStore and SettingsStore; nothing survives the process.
    """

    def __init__(
        self,
        anchors: Optional[List[MonthAnchor]] = None,
        *,
        preferences: Optional[Preferences] = None,
    ) -> None:
        self._anchors: Dict[Tuple[int, int], MonthAnchor] = {}
        self._decisions: Dict[int, YearLeapDecision] = {}
        self._projected: Dict[Tuple[int, int], int] = {}
        self._prefs: Preferences = preferences or Preferences()
        self._location: Optional[CachedLocation] = None
        for a in anchors or []:
            self.upsert_anchor(a)

    # ---- LedgerStore ----
    def upsert_anchor(self, anchor: MonthAnchor) -> None:
        self._anchors[anchor.key] = anchor

    def delete_anchor(self, year: int, month: int) -> None:
        self._anchors.pop((int(year), int(month)), None)

    def list_anchors(self) -> List[MonthAnchor]:
        return sorted(self._anchors.values(), key=lambda a: a.start_date)

    def upsert_leap_decision(self, decision: YearLeapDecision) -> None:
        self._decisions[decision.year_number] = decision

    def get_leap_decision(self, year: int) -> Optional[YearLeapDecision]:
        return self._decisions.get(int(year))

    # ---- SettingsStore ----
    def get_preferences(self) -> Preferences:
        return self._prefs

    def set_preferences(self, prefs: Preferences) -> None:
        self._prefs = prefs

    def get_projected_length(self, year: int, month: int) -> Optional[int]:
        return self._projected.get((int(year), int(month)))

    def set_projected_length(self, year: int, month: int, length: Optional[int]) -> None:
        key = (int(year), int(month))
        if length is None:
            self._projected.pop(key, None)
        else:
            self._projected[key] = int(length)

    def projected_lengths_for_year(self, year: int) -> Dict[int, int]:
        return {m: n for (y, m), n in self._projected.items() if y == int(year)}

    def get_location(self) -> Optional[CachedLocation]:
        return self._location

    def set_location(self, location: Optional[CachedLocation]) -> None:
        self._location = location
