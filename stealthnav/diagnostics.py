# stealthnav/diagnostics.py
"""
Structured debug records produced by the engine.

Core operations accept an optional :class:`Diagnostics` context. When it is
enabled they append lines and circles tagged with a short ``reason`` string
(``"astar-edge"``, ``"fan-point"``, ...). Nothing is drawn here; the caller
decides whether and how to render the records.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator

from stealthnav.world.shapes import Point


@dataclass(frozen=True)
class DiagnosticLine:
    start: Point
    end: Point
    reason: str


@dataclass(frozen=True)
class DiagnosticCircle:
    center: Point
    radius: float
    reason: str


@dataclass
class Diagnostics:
    """Collector passed explicitly into engine calls."""

    enabled: bool = False
    lines: list[DiagnosticLine] = field(default_factory=list)
    circles: list[DiagnosticCircle] = field(default_factory=list)

    def line(self, start: Point, end: Point, reason: str) -> None:
        if self.enabled:
            self.lines.append(
                DiagnosticLine((start[0], start[1]), (end[0], end[1]), reason)
            )

    def circle(self, center: Point, radius: float, reason: str) -> None:
        if self.enabled:
            self.circles.append(
                DiagnosticCircle((center[0], center[1]), radius, reason)
            )

    def by_reason(self, reason: str) -> Iterator[DiagnosticLine | DiagnosticCircle]:
        """Yield every record tagged with ``reason``, lines first."""
        for record in self.lines:
            if record.reason == reason:
                yield record
        for record in self.circles:
            if record.reason == reason:
                yield record

    def clear(self) -> None:
        self.lines.clear()
        self.circles.clear()


__all__ = ["Diagnostics", "DiagnosticLine", "DiagnosticCircle"]
