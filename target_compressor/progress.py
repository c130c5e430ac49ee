"""Monotonic 0-100 progress reporting with nested sub-ranges."""

from typing import Callable

ProgressCallback = Callable[[int], None]


class ProgressReporter:
    """
    Maps a local 0-100 scale onto a slice of the root range.

    The root only forwards values that are strictly larger than the last one it
    sent, so the callback sees a non-decreasing series that hits 100 at most
    once. Sub-reporters created with child() never send the root past the end
    of their slice.
    """

    def __init__(self, callback: ProgressCallback | None = None, start: float = 0.0,
                 end: float = 100.0, _root: "ProgressReporter | None" = None):
        self._callback = callback or (lambda *_: None)
        self._start = start
        self._end = end
        self._root = _root or self
        self._last = -1

    def report(self, value: float) -> None:
        value = max(0.0, min(100.0, float(value)))
        mapped = self._start + (self._end - self._start) * value / 100.0
        self._root._emit(int(round(mapped)))

    def child(self, start: float, end: float) -> "ProgressReporter":
        span = self._end - self._start
        return ProgressReporter(
            start=self._start + span * start / 100.0,
            end=self._start + span * end / 100.0,
            _root=self._root,
        )

    def finish(self) -> None:
        self.report(100)

    @property
    def last(self) -> int:
        return self._root._last

    def _emit(self, value: int) -> None:
        if value <= self._last:
            return
        self._last = value
        self._callback(value)


def as_reporter(progress: "ProgressReporter | ProgressCallback | None") -> ProgressReporter:
    if isinstance(progress, ProgressReporter):
        return progress
    return ProgressReporter(progress)
