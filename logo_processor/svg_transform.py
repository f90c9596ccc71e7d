"""SVG ``transform`` attribute parsing and numeric attribute helpers.

Transform lists are folded left to right: every function call appends its
matrix to the accumulated one (``M = M . M_op``), so the rightmost operation
is the first one applied to a point. ``rotate(a, cx, cy)`` is expanded to
``translate(cx, cy) rotate(a) translate(-cx, -cy)``.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Dict, List, Optional, Tuple

from .errors import MalformedDocumentError
from .geometry_types import AffineTransform

logger = logging.getLogger(__name__)

_TRANSFORM_RE = re.compile(r"([A-Za-z]+)\s*\(([^()]*)\)")
NUMBER_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_LENGTH_RE = re.compile(
    r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)\s*(px|pt|pc|mm|cm|in|em|ex|%)?\s*$"
)
_SEPARATORS = " \t\r\n,"


def _rotate(args: List[float]) -> AffineTransform:
    angle = args[0]
    cx, cy = (args[1], args[2]) if len(args) == 3 else (0.0, 0.0)
    return AffineTransform.rotation(angle, cx, cy)


# name -> (accepted argument counts, factory)
_TRANSFORM_FUNCTIONS: Dict[str, Tuple[Tuple[int, ...], Callable[[List[float]], AffineTransform]]] = {
    "translate": ((1, 2), lambda a: AffineTransform.translation(*a)),
    "scale": ((1, 2), lambda a: AffineTransform.scaling(*a)),
    "rotate": ((1, 3), _rotate),
    "skewX": ((1,), lambda a: AffineTransform.skew_x(a[0])),
    "skewY": ((1,), lambda a: AffineTransform.skew_y(a[0])),
    "matrix": ((6,), AffineTransform.from_sequence),
}


def parse_number_list(raw: str, *, context: str) -> List[float]:
    """Split an SVG number list (comma/whitespace separated, compact signs allowed)."""
    leftover = NUMBER_RE.sub(" ", raw)
    if leftover.strip(_SEPARATORS):
        raise MalformedDocumentError(f"Non-numeric value in {context}: '{raw}'")
    return [float(token) for token in NUMBER_RE.findall(raw)]


def transform_for(name: str, args: List[float]) -> AffineTransform:
    """Matrix for a single transform function call."""
    entry = _TRANSFORM_FUNCTIONS.get(name)
    if entry is None:
        logger.warning("Ignoring unsupported transform function '%s'", name)
        return AffineTransform.identity()
    counts, factory = entry
    if len(args) not in counts:
        raise MalformedDocumentError(
            f"{name}() takes {' or '.join(str(c) for c in counts)} arguments, got {len(args)}"
        )
    return factory(args)


def parse_transform(transform_str: Optional[str]) -> AffineTransform:
    """Parse a transform attribute; a missing or blank value is the identity."""
    matrix = AffineTransform.identity()
    if not transform_str or not transform_str.strip():
        return matrix

    pos = 0
    for match in _TRANSFORM_RE.finditer(transform_str):
        if transform_str[pos : match.start()].strip(_SEPARATORS):
            raise MalformedDocumentError(f"Malformed transform list: '{transform_str}'")
        name = match.group(1)
        args = parse_number_list(match.group(2), context=f"{name}()")
        matrix = matrix.multiply(transform_for(name, args))
        pos = match.end()

    if transform_str[pos:].strip(_SEPARATORS):
        raise MalformedDocumentError(f"Malformed transform list: '{transform_str}'")
    return matrix


def parse_number(value: Optional[str], *, attribute: str, default: float = 0.0) -> float:
    """Parse a geometry attribute; absolute units are read as user units."""
    if value is None or not value.strip():
        return default
    match = _LENGTH_RE.match(value)
    if not match or match.group(2) == "%":
        raise MalformedDocumentError(f"Non-numeric value for '{attribute}': '{value}'")
    return float(match.group(1))


def parse_length(value: Optional[str]) -> Optional[float]:
    """Parse a root ``width``/``height``; relative or unparseable sizes are absent."""
    if not value:
        return None
    match = _LENGTH_RE.match(value)
    if not match or match.group(2) == "%":
        return None
    return float(match.group(1))
