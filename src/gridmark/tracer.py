"""
Debug tracing for pointer gestures.

When debug mode is enabled on an InteractionController, every gesture is
recorded as a GestureRecord holding the press, move, snap and release events
it went through, together with the outcome (committed, discarded or
cancelled).

This is primarily useful for:
1. Debugging snapping (seeing which cell an edge or corner locked onto)
2. Reproducing gesture bugs from a recorded event sequence
3. Writing targeted tests (verifying specific interaction decisions)

Usage:
    >>> controller = InteractionController(session, debug=True)
    >>> controller.press(10, 10)
    >>> controller.move(60, 40)
    >>> controller.release(60, 40)
    >>> print(controller.get_trace().summary())
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class TraceEvent:
    """
    One pointer or engine event within a gesture.

    Attributes:
        kind: Event type ("press", "move", "snap", "release", "cancel", ...)
        x: Pointer x in document coordinates
        y: Pointer y in document coordinates
        detail: Extra data, e.g. the matched cell id of a snap
    """

    kind: str
    x: float
    y: float
    detail: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        text = f"{self.kind} ({self.x:.1f},{self.y:.1f})"
        if self.detail:
            extras = ", ".join(f"{k}={v}" for k, v in self.detail.items())
            text += f" [{extras}]"
        return text


@dataclass
class GestureRecord:
    """
    Events of a single press-to-release gesture.

    Attributes:
        mode: Editing mode the gesture ran in ("create", "move", "resize")
        cell_id: Cell the gesture acted on, if any
        events: Events in arrival order
        outcome: "committed", "discarded", "cancelled" or None while active
    """

    mode: str
    cell_id: Optional[str] = None
    events: List[TraceEvent] = field(default_factory=list)
    outcome: Optional[str] = None

    def __str__(self) -> str:
        target = f" on {self.cell_id}" if self.cell_id else ""
        lines = [f"=== Gesture: {self.mode}{target} -> {self.outcome} ==="]
        for event in self.events:
            lines.append(f"  {event}")
        return "\n".join(lines)


@dataclass
class GestureTrace:
    """
    Trace of all gestures run through a controller.

    Attributes:
        gestures: Recorded gestures, oldest first
    """

    gestures: List[GestureRecord] = field(default_factory=list)

    @property
    def active(self) -> Optional[GestureRecord]:
        """The gesture that has started but not yet ended."""
        if self.gestures and self.gestures[-1].outcome is None:
            return self.gestures[-1]
        return None

    def start_gesture(self, mode: str, cell_id: Optional[str] = None) -> GestureRecord:
        record = GestureRecord(mode, cell_id)
        self.gestures.append(record)
        return record

    def add_event(self, kind: str, x: float, y: float, **detail: Any) -> None:
        """Append an event to the active gesture; ignored if none is active."""
        record = self.active
        if record is not None:
            record.events.append(TraceEvent(kind, x, y, detail))

    def end_gesture(self, outcome: str) -> None:
        record = self.active
        if record is not None:
            record.outcome = outcome

    def get_events_by_kind(self, kind: str) -> List[TraceEvent]:
        """All events of one kind across every gesture."""
        return [e for g in self.gestures for e in g.events if e.kind == kind]

    def get_gestures_by_outcome(self, outcome: str) -> List[GestureRecord]:
        return [g for g in self.gestures if g.outcome == outcome]

    def summary(self) -> str:
        """
        Generate a human-readable summary of the trace.

        Returns a string with gesture counts by mode and outcome and the
        number of snap events.
        """
        lines = [
            "=" * 60,
            "GESTURE TRACE SUMMARY",
            "=" * 60,
            "",
            f"Gestures: {len(self.gestures)}",
            f"Snap events: {len(self.get_events_by_kind('snap'))}",
            "",
        ]

        counts: Dict[str, int] = {}
        for g in self.gestures:
            key = f"{g.mode}/{g.outcome}"
            counts[key] = counts.get(key, 0) + 1

        lines.append("Gestures by mode/outcome:")
        for key, count in sorted(counts.items(), key=lambda x: -x[1]):
            lines.append(f"  {key}: {count}")

        return "\n".join(lines)

    def dump(self) -> str:
        """Summary followed by every gesture and its events."""
        lines = [self.summary(), "", "=" * 60, "DETAILED TRACE", "=" * 60, ""]
        for gesture in self.gestures:
            lines.append(str(gesture))
            lines.append("")
        return "\n".join(lines)

    def dump_to_file(self, filename: str) -> None:
        """Write the complete trace dump to a file."""
        with open(filename, "w", encoding="utf-8") as f:
            f.write(self.dump())
