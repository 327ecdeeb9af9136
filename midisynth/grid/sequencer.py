"""MIDISYNTH Sequencer — Merge per-track delta-time streams into global tick order.

Each MIDI track keeps its own clock (delta ticks since the previous event on
the same track). A TrackCursor turns one stream into absolute ticks; the
Sequencer repeatedly picks the cursor with the smallest tick, so the merged
stream is globally non-decreasing.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any

# ── Data Types ───────────────────────────────────────────


@dataclass
class TrackCursor:
    """Lookahead state over one track's delta-time event stream.

    ``tick`` is the absolute tick of ``pending``; both are None once the
    track is exhausted.
    """

    index: int
    events: Iterator[Any]
    count: int
    tick: int | None = 0
    pending: Any = None
    _running: int = field(default=0, repr=False)

    @classmethod
    def create(cls, index: int, events: Iterable[Any]) -> TrackCursor:
        """Build a cursor and load its first event."""
        events = list(events)
        cursor = cls(index=index, events=iter(events), count=len(events))
        cursor.advance()
        return cursor

    @property
    def exhausted(self) -> bool:
        return self.tick is None

    def advance(self) -> None:
        """Pop the next event and add its delta to the running tick."""
        nxt = next(self.events, None)
        if nxt is None:
            self.pending = None
            self.tick = None
            return
        self._running += int(nxt.time)
        self.pending = nxt
        self.tick = self._running


@dataclass(frozen=True)
class MergedEvent:
    """One event of the merged stream."""

    track: int
    tick: int
    event: Any


# ── Sequencer ────────────────────────────────────────────


class Sequencer:
    """k-way merge of TrackCursors by absolute tick.

    Ties go to the lowest track index. Selection is a linear scan per event,
    which is fine for the tens of tracks a MIDI file carries.
    """

    def __init__(self, tracks: Iterable[Iterable[Any]]) -> None:
        self.cursors: list[TrackCursor] = [
            TrackCursor.create(idx, events) for idx, events in enumerate(tracks)
        ]

    @property
    def total_events(self) -> int:
        return sum(c.count for c in self.cursors)

    def next(self) -> MergedEvent | None:
        """Emit the globally earliest pending event, or None when all tracks are done."""
        best: TrackCursor | None = None
        for cursor in self.cursors:
            if cursor.exhausted:
                continue
            if best is None or cursor.tick < best.tick:  # type: ignore[operator]
                best = cursor

        if best is None:
            return None

        merged = MergedEvent(track=best.index, tick=best.tick, event=best.pending)  # type: ignore[arg-type]
        best.advance()
        return merged

    def __iter__(self) -> Iterator[MergedEvent]:
        while (merged := self.next()) is not None:
            yield merged
