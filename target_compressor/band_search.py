"""
Asymmetric band search over a scalar encoder setting.

The same loop drives raster quality, per-page quality and whole-document
quality: measure the real encoded size at the current setting, accept the first
result inside [target * lower_band_ratio, target], otherwise step down on
overshoot (bigger steps for big overshoots) and up on undershoot, within a
fixed iteration cap.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

from .config import SearchTuning
from .errors import EncodeFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Settings are rounded so repeated float steps land exactly on floor/ceiling.
_PRECISION = 4


@dataclass(frozen=True)
class Attempt(Generic[T]):
    value: float
    size: int
    payload: T


@dataclass(frozen=True)
class BandResult(Generic[T]):
    attempt: Attempt[T]
    target: int
    attempts: int
    reason: str
    interrupted: bool = False

    @property
    def exceeded(self) -> bool:
        return self.attempt.size > self.target


def _closer_under(candidate: Attempt, best: Attempt | None) -> bool:
    if best is None:
        return True
    if candidate.size != best.size:
        return candidate.size > best.size
    return candidate.value > best.value


def band_search(measure: Callable[[float], Attempt[T]], target: int, tuning: SearchTuning,
                on_attempt: Callable[[int, Attempt[T]], None] | None = None) -> BandResult[T]:
    """
    Run the search and return the accepted attempt.

    Outside the band the result is the under-target attempt closest to target
    (equal sizes prefer the higher setting), or the smallest attempt when
    every attempt overshot. An EncodeFailure from measure ends the search with
    the best earlier attempt when there is one and propagates otherwise.
    """
    if tuning.max_iterations < 1:
        raise ValueError("max_iterations must be at least 1")

    lower = target * tuning.lower_band_ratio
    value = round(tuning.start, _PRECISION)
    best_under: Attempt[T] | None = None
    smallest_over: Attempt[T] | None = None
    lowest_overshoot: float | None = None
    attempts = 0
    reason = "exhausted"

    while attempts < tuning.max_iterations:
        try:
            attempt = measure(value)
        except EncodeFailure as e:
            fallback = best_under or smallest_over
            if fallback is None:
                raise
            logger.warning("Encode failed at %.2f (%s); keeping earlier result at %.2f",
                           value, e, fallback.value)
            return BandResult(fallback, target, attempts, "encode_failed", interrupted=True)

        attempts += 1
        if on_attempt:
            on_attempt(attempts, attempt)
        logger.debug("Attempt %d: setting %.2f -> %d bytes (target %d)", attempts, value, attempt.size, target)

        if lower <= attempt.size <= target:
            return BandResult(attempt, target, attempts, "in_band")

        if attempt.size <= target:
            if _closer_under(attempt, best_under):
                best_under = attempt
        else:
            if smallest_over is None or attempt.size < smallest_over.size:
                smallest_over = attempt
            if lowest_overshoot is None or value < lowest_overshoot:
                lowest_overshoot = value

        if (attempts == 1 and tuning.early_exit_ratio is not None
                and attempt.size < lower * tuning.early_exit_ratio):
            # Naturally small at this size; raising the setting won't matter.
            return BandResult(attempt, target, attempts, "early_exit")

        if attempt.size > target:
            if value <= tuning.floor:
                reason = "floor"
                break
            if attempt.size > target * tuning.large_overshoot_ratio:
                step = tuning.step_down_large
            else:
                step = tuning.step_down
            value = round(max(tuning.floor, value - step), _PRECISION)
        else:
            if value >= tuning.ceiling:
                reason = "ceiling"
                break
            raised = round(min(tuning.ceiling, value + tuning.step_up), _PRECISION)
            if lowest_overshoot is not None and raised >= lowest_overshoot:
                reason = "known_overshoot"
                break
            value = raised

    chosen = best_under or smallest_over
    return BandResult(chosen, target, attempts, reason)
