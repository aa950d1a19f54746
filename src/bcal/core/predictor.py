# src/bcal/core/predictor.py
from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence, Tuple

from .config import PredictorConfig
from .settings import ProjectedLengthCache

log = logging.getLogger(__name__)

MonthKey = Tuple[int, int]


def opposite(length: int) -> int:
    return 30 if int(length) == 29 else 29


def heuristic_length(
    month: int,
    confirmed_lengths: Sequence[int],
    *,
    config: PredictorConfig = PredictorConfig(),
) -> int:
    """
    Estimate a month length (29 or 30) from recent confirmed lengths.

    Rules, in order:
      - no history: odd month -> 30, even month -> 29
      - one entry: alternate from it
      - last two differ (29,30 / 30,29): keep alternating
      - last three shaped a,a,b: predict the opposite of b
      - mean of all history: < low -> 29, > high -> 30, else alternate from last
    """
    xs = [int(x) for x in confirmed_lengths]
    if not xs:
        return 30 if int(month) % 2 == 1 else 29

    if len(xs) == 1:
        return opposite(xs[-1])

    tail = xs[-config.history_tail:]

    if len(tail) >= 2 and tail[-2] != tail[-1]:
        return opposite(tail[-1])

    if len(tail) >= 3 and tail[-3] == tail[-2] and tail[-2] != tail[-1]:
        return opposite(tail[-1])

    mean = sum(xs) / len(xs)
    if mean < config.low_mean:
        return 29
    if mean > config.high_mean:
        return 30
    return opposite(xs[-1])


class MonthLengthPredictor:
    """
    Projected lengths for months with no confirming successor anchor.

    Every answer is written to the projected-length cache; once cached, the
    same (year, month) keeps its length until cleared by a confirmation or
    overwritten by a cascade. Writes are idempotent by key, so concurrent
    duplicate predictions are harmless.
    """

    def __init__(
        self,
        cache: ProjectedLengthCache,
        *,
        config: PredictorConfig = PredictorConfig(),
    ) -> None:
        self.cache = cache
        self.config = config

    def predict(
        self,
        year: int,
        month: int,
        prior_confirmed_lengths: Sequence[int],
        user_override: Optional[int] = None,
    ) -> int:
        if user_override is not None:
            if int(user_override) not in (29, 30):
                raise ValueError(f"user_override must be 29 or 30 (got {user_override})")
            self.cache.put(year, month, int(user_override))
            return int(user_override)

        cached = self.cache.get(year, month)
        if cached is not None:
            return int(cached)

        n = heuristic_length(month, prior_confirmed_lengths, config=self.config)
        self.cache.put(year, month, n)
        log.debug("projected length: year=%d month=%d -> %d (history=%s)", year, month, n, list(prior_confirmed_lengths))
        return n

    def clear(self, year: int, month: int) -> None:
        self.cache.clear(year, month)

    def cascade_from(
        self,
        start_year: int,
        start_month: int,
        seed_length: int,
        *,
        successor: Callable[[int, int], MonthKey],
        is_confirmed: Callable[[int, int], bool],
    ) -> List[Tuple[int, int, int]]:
        """
        Overwrite projections from (start_year, start_month) onward with a plain
        29/30 alternation seeded by seed_length: the start month gets the
        opposite of seed_length, the following month seed_length, and so on.

        Stops at the first later month that already has an anchor, or after
        config.cascade_cap months. Returns the (year, month, length) written.
        """
        written: List[Tuple[int, int, int]] = []
        y, m = int(start_year), int(start_month)
        length = opposite(seed_length)

        for i in range(self.config.cascade_cap):
            if i > 0 and is_confirmed(y, m):
                break
            self.cache.put(y, m, length)
            written.append((y, m, length))
            length = opposite(length)
            y, m = successor(y, m)

        if written:
            log.info(
                "cascaded %d projected lengths from %d/%d (seed=%d)",
                len(written),
                start_month,
                start_year,
                seed_length,
            )
        return written
