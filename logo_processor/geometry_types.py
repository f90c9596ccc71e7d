"""Data structures for logo geometry, masks, crops, layouts and analysis."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

import numpy as np

Point = Tuple[float, float]


@dataclass(frozen=True)
class AffineTransform:
    """2D affine map ``(x, y) -> (a*x + c*y + e, b*x + d*y + f)``."""

    a: float = 1.0
    b: float = 0.0
    c: float = 0.0
    d: float = 1.0
    e: float = 0.0
    f: float = 0.0

    @classmethod
    def identity(cls) -> AffineTransform:
        return cls()

    @classmethod
    def from_sequence(cls, values: Sequence[float]) -> AffineTransform:
        if len(values) != 6:
            raise ValueError(f"An affine matrix needs 6 values, got {len(values)}.")
        return cls(*(float(v) for v in values))

    @classmethod
    def translation(cls, tx: float, ty: float = 0.0) -> AffineTransform:
        return cls(1.0, 0.0, 0.0, 1.0, float(tx), float(ty))

    @classmethod
    def scaling(cls, sx: float, sy: Optional[float] = None) -> AffineTransform:
        sy = sx if sy is None else sy
        return cls(float(sx), 0.0, 0.0, float(sy), 0.0, 0.0)

    @classmethod
    def rotation(cls, angle_deg: float, cx: float = 0.0, cy: float = 0.0) -> AffineTransform:
        """Rotation by ``angle_deg`` about the pivot ``(cx, cy)``.

        The pivot form is ``translate(cx, cy) . rotate(angle) . translate(-cx, -cy)``
        folded into a single matrix.
        """
        rad = math.radians(angle_deg)
        cos = math.cos(rad)
        sin = math.sin(rad)
        rotate = cls(cos, sin, -sin, cos, 0.0, 0.0)
        if cx == 0 and cy == 0:
            return rotate
        return cls.translation(cx, cy).multiply(rotate).multiply(cls.translation(-cx, -cy))

    @classmethod
    def skew_x(cls, angle_deg: float) -> AffineTransform:
        return cls(1.0, 0.0, math.tan(math.radians(angle_deg)), 1.0, 0.0, 0.0)

    @classmethod
    def skew_y(cls, angle_deg: float) -> AffineTransform:
        return cls(1.0, math.tan(math.radians(angle_deg)), 0.0, 1.0, 0.0, 0.0)

    def multiply(self, other: AffineTransform) -> AffineTransform:
        """Return ``self . other``; ``other`` is applied to points first."""
        return AffineTransform(
            a=self.a * other.a + self.c * other.b,
            b=self.b * other.a + self.d * other.b,
            c=self.a * other.c + self.c * other.d,
            d=self.b * other.c + self.d * other.d,
            e=self.a * other.e + self.c * other.f + self.e,
            f=self.b * other.e + self.d * other.f + self.f,
        )

    __matmul__ = multiply

    def apply(self, x: float, y: float) -> Point:
        return (self.a * x + self.c * y + self.e, self.b * x + self.d * y + self.f)

    def as_tuple(self) -> Tuple[float, float, float, float, float, float]:
        return (self.a, self.b, self.c, self.d, self.e, self.f)

    def is_close(self, other: AffineTransform, tol: float = 1e-9) -> bool:
        return all(
            math.isclose(mine, theirs, rel_tol=tol, abs_tol=tol)
            for mine, theirs in zip(self.as_tuple(), other.as_tuple())
        )

    @property
    def is_identity(self) -> bool:
        return self.is_close(AffineTransform())


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box; zero area is a valid (degenerate) box."""

    x: float
    y: float
    width: float
    height: float

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError(
                f"Bounding box size must be non-negative, got {self.width}x{self.height}."
            )

    @classmethod
    def from_extents(cls, x0: float, y0: float, x1: float, y1: float) -> BoundingBox:
        return cls(x=x0, y=y0, width=x1 - x0, height=y1 - y0)

    @classmethod
    def from_points(cls, points: Iterable[Point]) -> Optional[BoundingBox]:
        pts = list(points)
        if not pts:
            return None
        xs = [p[0] for p in pts]
        ys = [p[1] for p in pts]
        return cls.from_extents(min(xs), min(ys), max(xs), max(ys))

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Point:
        return (self.x + self.width / 2, self.y + self.height / 2)

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def aspect_ratio(self) -> float:
        if self.height == 0:
            return math.inf if self.width > 0 else 1.0
        return self.width / self.height

    def corners(self) -> List[Point]:
        return [
            (self.x, self.y),
            (self.right, self.y),
            (self.right, self.bottom),
            (self.x, self.bottom),
        ]

    def union(self, other: BoundingBox) -> BoundingBox:
        return BoundingBox.from_extents(
            min(self.x, other.x),
            min(self.y, other.y),
            max(self.right, other.right),
            max(self.bottom, other.bottom),
        )

    def contains(self, other: BoundingBox, tol: float = 1e-9) -> bool:
        return (
            other.x >= self.x - tol
            and other.y >= self.y - tol
            and other.right <= self.right + tol
            and other.bottom <= self.bottom + tol
        )

    def transformed(self, transform: AffineTransform) -> BoundingBox:
        """Box of the four transformed corners."""
        box = BoundingBox.from_points(transform.apply(x, y) for x, y in self.corners())
        assert box is not None
        return box

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.x, self.y, self.width, self.height)


def union_boxes(boxes: Iterable[Optional[BoundingBox]]) -> Optional[BoundingBox]:
    """Union of all present boxes; ``None`` when there is no content at all."""
    result: Optional[BoundingBox] = None
    for box in boxes:
        if box is None:
            continue
        result = box if result is None else result.union(box)
    return result


class NodeKind(str, Enum):
    ROOT = "root"
    GROUP = "group"
    PATH = "path"
    RECT = "rect"
    CIRCLE = "circle"
    ELLIPSE = "ellipse"
    LINE = "line"
    TEXT = "text"
    OTHER = "other"


@dataclass(frozen=True)
class VectorNode:
    """A parsed vector element carrying its resolved (pre-composed) transform."""

    kind: NodeKind
    tag: str
    attributes: Mapping[str, str]
    local_transform: AffineTransform
    transform: AffineTransform
    intrinsic_box: Optional[BoundingBox] = None
    children: Tuple[VectorNode, ...] = ()
    text: Optional[str] = None

    def resolved_box(self) -> Optional[BoundingBox]:
        if self.intrinsic_box is None:
            return None
        return self.intrinsic_box.transformed(self.transform)

    def overall_box(self) -> Optional[BoundingBox]:
        """Union of this node's resolved box and every descendant's."""
        return union_boxes(
            [self.resolved_box()] + [child.overall_box() for child in self.children]
        )

    def iter_nodes(self) -> Iterator[VectorNode]:
        """Depth-first, document order."""
        yield self
        for child in self.children:
            yield from child.iter_nodes()


@dataclass
class ElementCounts:
    paths: int = 0
    circles: int = 0
    rects: int = 0
    polygons: int = 0
    text: int = 0
    groups: int = 0


@dataclass
class VectorDocument:
    """Structural analysis of a vector logo."""

    root: VectorNode
    canvas_box: BoundingBox
    content_box: Optional[BoundingBox] = None
    width: Optional[float] = None
    height: Optional[float] = None
    view_box: Optional[BoundingBox] = None
    element_counts: ElementCounts = field(default_factory=ElementCounts)
    color_palette: List[str] = field(default_factory=list)

    @property
    def bounding_box(self) -> BoundingBox:
        return self.content_box if self.content_box is not None else self.canvas_box

    @property
    def has_text(self) -> bool:
        return self.element_counts.text > 0


@dataclass
class RasterAnalysis:
    """Header, colour and content information of a bitmap logo."""

    width: int
    height: int
    channels: int
    has_alpha: bool
    bounding_box: BoundingBox
    dominant_colors: List[str] = field(default_factory=list)
    trim_box: Optional[BoundingBox] = None

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height


@dataclass(frozen=True)
class SafeMargins:
    """Fractional padding per side, relative to the canvas size."""

    top: float
    right: float
    bottom: float
    left: float

    @classmethod
    def uniform(cls, margin: float) -> SafeMargins:
        return cls(top=margin, right=margin, bottom=margin, left=margin)

    def with_overrides(self, overrides: Optional[Mapping[str, float]]) -> SafeMargins:
        if not overrides:
            return self
        unknown = set(overrides) - {"top", "right", "bottom", "left"}
        if unknown:
            raise ValueError(f"Unknown margin sides: {', '.join(sorted(unknown))}")
        values: Dict[str, float] = {
            "top": self.top,
            "right": self.right,
            "bottom": self.bottom,
            "left": self.left,
        }
        values.update({side: float(v) for side, v in overrides.items() if v is not None})
        return SafeMargins(**values)


class LogoKind(str, Enum):
    VECTOR = "vector"
    RASTER = "raster"


@dataclass
class LogoAnalysis:
    """Result of ``analyze``: everything layout needs to know about a logo."""

    kind: LogoKind
    bounding_box: BoundingBox
    intrinsic_aspect_ratio: float
    safe_margins: SafeMargins
    dominant_colors: List[str] = field(default_factory=list)
    has_alpha: bool = False
    has_text: bool = False
    width: Optional[float] = None
    height: Optional[float] = None
    vector: Optional[VectorDocument] = None
    raster: Optional[RasterAnalysis] = None


@dataclass(frozen=True)
class MaskOptions:
    edge_detection: bool = True
    threshold: int = 10
    blur: float = 0.0
    dilate: int = 0
    erode: int = 0


@dataclass(frozen=True, eq=False)
class Mask:
    """Single-channel coverage buffer (``uint8``, shape ``(height, width)``).

    ``bounding_box`` is ``None`` when no pixel exceeds the coverage threshold.
    """

    data: np.ndarray
    bounding_box: Optional[BoundingBox]
    coverage: float

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def height(self) -> int:
        return int(self.data.shape[0])

    def tobytes(self) -> bytes:
        return self.data.tobytes()


class CropMode(str, Enum):
    CENTER = "center"
    SMART = "smart"
    ATTENTION = "attention"


@dataclass(frozen=True)
class CropSpec:
    """Crop rectangle in source pixel coordinates (not rounded)."""

    x: float
    y: float
    width: float
    height: float

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    @property
    def center(self) -> Point:
        return (self.x + self.width / 2, self.y + self.height / 2)

    def as_box(self) -> BoundingBox:
        return BoundingBox(self.x, self.y, self.width, self.height)


@dataclass(frozen=True)
class CropResult:
    crop: CropSpec
    buffer: bytes
    width: int
    height: int
    mode: CropMode


class Alignment(str, Enum):
    CENTER = "center"
    TOP = "top"
    BOTTOM = "bottom"
    LEFT = "left"
    RIGHT = "right"
    TOP_LEFT = "top-left"
    TOP_RIGHT = "top-right"
    BOTTOM_LEFT = "bottom-left"
    BOTTOM_RIGHT = "bottom-right"


class FillMode(str, Enum):
    CONTAIN = "contain"
    COVER = "cover"
    STRETCH = "stretch"


@dataclass(frozen=True)
class LayoutOptions:
    alignment: Alignment = Alignment.CENTER
    fill_mode: FillMode = FillMode.CONTAIN
    custom_margins: Optional[Mapping[str, float]] = None


@dataclass(frozen=True)
class LayoutCalculation:
    """Placement of a logo on a target canvas, in integer pixels.

    ``logo_scale`` and the ``margin_*`` fractions are left unrounded.
    """

    canvas_width: int
    canvas_height: int
    canvas_aspect_ratio: float
    logo_width: int
    logo_height: int
    logo_x: int
    logo_y: int
    logo_scale: float
    margin_top: float
    margin_right: float
    margin_bottom: float
    margin_left: float
    usable_width: int
    usable_height: int
    usable_x: int
    usable_y: int

    @property
    def margins(self) -> SafeMargins:
        return SafeMargins(
            top=self.margin_top,
            right=self.margin_right,
            bottom=self.margin_bottom,
            left=self.margin_left,
        )


@dataclass(frozen=True)
class CompositeResult:
    buffer: bytes
    format: str
    width: int
    height: int
    size: int


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from negative infinity."""
    return int(math.floor(value + 0.5))
