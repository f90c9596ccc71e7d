"""Bounding geometry for SVG path data.

The box returned for a path is the hull of every end point and control
point (Bezier curves lie inside the hull of their control points). Arcs
contribute the box of their whole ellipse, so the result always contains
the rendered outline, possibly with some slack.
"""

from __future__ import annotations

import math
from typing import List, Optional

from .errors import MalformedDocumentError
from .geometry_types import BoundingBox, Point
from .svg_transform import NUMBER_RE

_COMMANDS = set("MmZzLlHhVvCcSsQqTtAa")
_SEPARATORS = " \t\r\n,"


class _PathReader:
    def __init__(self, data: str) -> None:
        self.data = data
        self.pos = 0

    def _skip(self) -> None:
        while self.pos < len(self.data) and self.data[self.pos] in _SEPARATORS:
            self.pos += 1

    def at_end(self) -> bool:
        self._skip()
        return self.pos >= len(self.data)

    def command(self) -> Optional[str]:
        self._skip()
        if self.pos < len(self.data) and self.data[self.pos] in _COMMANDS:
            self.pos += 1
            return self.data[self.pos - 1]
        return None

    def number(self) -> float:
        self._skip()
        match = NUMBER_RE.match(self.data, self.pos)
        if not match:
            raise MalformedDocumentError(
                f"Expected a number in path data at offset {self.pos}: '{self.data}'"
            )
        self.pos = match.end()
        return float(match.group(0))

    def flag(self) -> bool:
        self._skip()
        if self.pos < len(self.data) and self.data[self.pos] in "01":
            self.pos += 1
            return self.data[self.pos - 1] == "1"
        raise MalformedDocumentError(f"Expected an arc flag at offset {self.pos}: '{self.data}'")


def arc_extent(
    start: Point,
    rx: float,
    ry: float,
    rotation_deg: float,
    large_arc: bool,
    sweep: bool,
    end: Point,
) -> List[Point]:
    """Corner points of the full ellipse an SVG arc segment lies on.

    Follows the endpoint-to-center conversion of the SVG implementation
    notes, including radius correction for out-of-range radii.
    """
    rx, ry = abs(rx), abs(ry)
    if rx == 0 or ry == 0 or start == end:
        return [end]

    phi = math.radians(rotation_deg)
    cos, sin = math.cos(phi), math.sin(phi)
    dx2 = (start[0] - end[0]) / 2
    dy2 = (start[1] - end[1]) / 2
    x1p = cos * dx2 + sin * dy2
    y1p = -sin * dx2 + cos * dy2

    lam = (x1p * x1p) / (rx * rx) + (y1p * y1p) / (ry * ry)
    if lam > 1:
        scale = math.sqrt(lam)
        rx *= scale
        ry *= scale

    num = rx * rx * ry * ry - rx * rx * y1p * y1p - ry * ry * x1p * x1p
    den = rx * rx * y1p * y1p + ry * ry * x1p * x1p
    coef = math.sqrt(max(0.0, num / den)) if den else 0.0
    if large_arc == sweep:
        coef = -coef
    cxp = coef * (rx * y1p / ry)
    cyp = coef * (-ry * x1p / rx)
    cx = cos * cxp - sin * cyp + (start[0] + end[0]) / 2
    cy = sin * cxp + cos * cyp + (start[1] + end[1]) / 2

    half_w = math.hypot(rx * cos, ry * sin)
    half_h = math.hypot(rx * sin, ry * cos)
    return [end, (cx - half_w, cy - half_h), (cx + half_w, cy + half_h)]


def path_points(data: str) -> List[Point]:
    """End and control points of every segment in ``data``."""
    reader = _PathReader(data)
    points: List[Point] = []
    cur: Point = (0.0, 0.0)
    start: Point = (0.0, 0.0)
    last_ctrl: Optional[Point] = None
    last_upper = ""
    command: Optional[str] = None

    while True:
        explicit = reader.command()
        if explicit is not None:
            command = explicit
        elif reader.at_end():
            break
        elif command is None or command in "Zz":
            raise MalformedDocumentError(f"Path data must start with a command: '{data}'")
        elif command in "Mm":
            # coordinate pairs after a moveto are implicit linetos
            command = "l" if command == "m" else "L"

        upper = command.upper()
        ox, oy = cur if command.islower() else (0.0, 0.0)

        def pt() -> Point:
            x = reader.number()
            y = reader.number()
            return (ox + x, oy + y)

        ctrl: Optional[Point] = None
        if upper == "Z":
            cur = start
        elif upper == "M":
            cur = start = pt()
            points.append(cur)
        elif upper == "L" or upper == "T":
            end = pt()
            if upper == "T":
                ctrl = _reflect(cur, last_ctrl if last_upper in ("Q", "T") else None)
                points.append(ctrl)
            cur = end
            points.append(cur)
        elif upper == "H":
            cur = (ox + reader.number(), cur[1])
            points.append(cur)
        elif upper == "V":
            cur = (cur[0], oy + reader.number())
            points.append(cur)
        elif upper == "C":
            c1, ctrl, end = pt(), pt(), pt()
            points.extend([c1, ctrl, end])
            cur = end
        elif upper == "S":
            c1 = _reflect(cur, last_ctrl if last_upper in ("C", "S") else None)
            ctrl, end = pt(), pt()
            points.extend([c1, ctrl, end])
            cur = end
        elif upper == "Q":
            ctrl, end = pt(), pt()
            points.extend([ctrl, end])
            cur = end
        elif upper == "A":
            rx = reader.number()
            ry = reader.number()
            rotation = reader.number()
            large_arc = reader.flag()
            sweep = reader.flag()
            end = pt()
            points.extend(arc_extent(cur, rx, ry, rotation, large_arc, sweep, end))
            cur = end

        last_ctrl = ctrl
        last_upper = upper
    return points


def _reflect(cur: Point, ctrl: Optional[Point]) -> Point:
    if ctrl is None:
        return cur
    return (2 * cur[0] - ctrl[0], 2 * cur[1] - ctrl[1])


def path_bounding_box(data: Optional[str]) -> Optional[BoundingBox]:
    if not data or not data.strip():
        return None
    return BoundingBox.from_points(path_points(data))
