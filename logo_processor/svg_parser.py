"""Structural analysis of SVG logos.

The document is stream-parsed once. Each element becomes a ``VectorNode``
carrying its resolved transform (parent transform composed with its own),
so bounding boxes never need to walk back up the tree.
"""

from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterator, List, Optional

from .errors import MalformedDocumentError
from .geometry_types import (
    AffineTransform,
    BoundingBox,
    ElementCounts,
    NodeKind,
    VectorDocument,
    VectorNode,
)
from .svg_path import path_bounding_box
from .svg_transform import parse_length, parse_number, parse_number_list, parse_transform

logger = logging.getLogger(__name__)

SVG_NS = "http://www.w3.org/2000/svg"
XLINK_NS = "http://www.w3.org/1999/xlink"
FALLBACK_CANVAS = BoundingBox(0.0, 0.0, 100.0, 100.0)
MAX_PALETTE_COLORS = 10
_CHUNK_SIZE = 64 * 1024

ET.register_namespace("", SVG_NS)
ET.register_namespace("xlink", XLINK_NS)

_TAG_KINDS: Dict[str, NodeKind] = {
    "svg": NodeKind.GROUP,
    "g": NodeKind.GROUP,
    "path": NodeKind.PATH,
    "rect": NodeKind.RECT,
    "circle": NodeKind.CIRCLE,
    "ellipse": NodeKind.ELLIPSE,
    "line": NodeKind.LINE,
    "text": NodeKind.TEXT,
}

# Subtrees that are referenced rather than painted.
_NON_RENDERED = {
    "defs",
    "clipPath",
    "mask",
    "symbol",
    "pattern",
    "marker",
    "linearGradient",
    "radialGradient",
    "filter",
    "metadata",
    "title",
    "desc",
}

_FLAT_KINDS = {
    NodeKind.PATH,
    NodeKind.RECT,
    NodeKind.CIRCLE,
    NodeKind.ELLIPSE,
    NodeKind.LINE,
    NodeKind.TEXT,
}

_COLOR_ATTR_RE = re.compile(r"(?:^|;)\s*(fill|stroke)\s*:\s*([^;]+)")
_HEX_COLOR_RE = re.compile(r"^#[0-9a-f]{3,8}$", re.IGNORECASE)
_NAMED_COLOR_RE = re.compile(r"^[a-z]+$", re.IGNORECASE)
_NOT_COLORS = {"none", "transparent", "currentcolor", "inherit", "initial", "unset"}


def local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1] if tag.startswith("{") else tag


def _is_color(value: str) -> bool:
    if value.lower() in _NOT_COLORS:
        return False
    return bool(
        _HEX_COLOR_RE.match(value)
        or value.lower().startswith(("rgb(", "rgba("))
        or _NAMED_COLOR_RE.match(value)
    )


def _colors_from_attributes(attrs: Dict[str, str]) -> Iterator[str]:
    for name in ("fill", "stroke"):
        value = attrs.get(name)
        if value:
            yield value.strip()
    style = attrs.get("style")
    if style:
        for match in _COLOR_ATTR_RE.finditer(style):
            yield match.group(2).strip()


def intrinsic_box(kind: NodeKind, attrs: Dict[str, str]) -> Optional[BoundingBox]:
    """Untransformed box of a shape element, or ``None`` without known geometry.

    Rects, circles and ellipses with a zero size are not painted and get no box.
    """

    def num(name: str) -> float:
        return parse_number(attrs.get(name), attribute=name)

    def size(name: str) -> float:
        value = num(name)
        if value < 0:
            raise MalformedDocumentError(f"Negative '{name}' on <{kind.value}>: {value}")
        return value

    if kind is NodeKind.RECT:
        width, height = size("width"), size("height")
        if width == 0 or height == 0:
            return None
        return BoundingBox(num("x"), num("y"), width, height)
    if kind is NodeKind.CIRCLE:
        cx, cy, r = num("cx"), num("cy"), size("r")
        if r == 0:
            return None
        return BoundingBox(cx - r, cy - r, 2 * r, 2 * r)
    if kind is NodeKind.ELLIPSE:
        cx, cy, rx, ry = num("cx"), num("cy"), size("rx"), size("ry")
        if rx == 0 or ry == 0:
            return None
        return BoundingBox(cx - rx, cy - ry, 2 * rx, 2 * ry)
    if kind is NodeKind.LINE:
        x1, y1, x2, y2 = num("x1"), num("y1"), num("x2"), num("y2")
        return BoundingBox.from_extents(min(x1, x2), min(y1, y2), max(x1, x2), max(y1, y2))
    if kind is NodeKind.PATH:
        return path_bounding_box(attrs.get("d"))
    return None


def parse_view_box(value: Optional[str]) -> Optional[BoundingBox]:
    if not value:
        return None
    try:
        parts = parse_number_list(value, context="viewBox")
    except MalformedDocumentError:
        logger.warning("Ignoring unparseable viewBox '%s'", value)
        return None
    if len(parts) != 4 or parts[2] < 0 or parts[3] < 0:
        logger.warning("Ignoring invalid viewBox '%s'", value)
        return None
    return BoundingBox(*parts)


def canvas_box(
    view_box: Optional[BoundingBox], width: Optional[float], height: Optional[float]
) -> BoundingBox:
    """viewBox first, then explicit width/height, then the 100x100 fallback."""
    if view_box is not None:
        return view_box
    if width and height:
        return BoundingBox(0.0, 0.0, width, height)
    return FALLBACK_CANVAS


@dataclass
class _NodeBuilder:
    kind: NodeKind
    tag: str
    attributes: Dict[str, str]
    local_transform: AffineTransform
    transform: AffineTransform
    box: Optional[BoundingBox]
    rendered: bool
    children: List[VectorNode] = field(default_factory=list)

    def freeze(self, text: Optional[str]) -> VectorNode:
        return VectorNode(
            kind=self.kind,
            tag=self.tag,
            attributes=MappingProxyType(dict(self.attributes)),
            local_transform=self.local_transform,
            transform=self.transform,
            intrinsic_box=self.box,
            children=tuple(self.children),
            text=text.strip() if text and text.strip() else None,
        )


class _TreeBuilder:
    """Turns pull-parser events into an immutable node tree plus statistics."""

    def __init__(self) -> None:
        self.stack: List[_NodeBuilder] = []
        self.root: Optional[VectorNode] = None
        self.counts = ElementCounts()
        self.palette: List[str] = []

    def start(self, elem: ET.Element) -> None:
        tag = local_name(elem.tag)
        attrs = dict(elem.attrib)
        parent = self.stack[-1] if self.stack else None

        if parent is None:
            if tag != "svg":
                raise MalformedDocumentError(f"Root element is <{tag}>, expected <svg>")
            kind = NodeKind.ROOT
        else:
            kind = _TAG_KINDS.get(tag, NodeKind.OTHER)

        local = parse_transform(attrs.get("transform"))
        if kind is NodeKind.GROUP and tag == "svg":
            # nested viewport: x/y offset its content
            local = AffineTransform.translation(
                parse_number(attrs.get("x"), attribute="x"),
                parse_number(attrs.get("y"), attribute="y"),
            ).multiply(local)

        rendered = (parent is None or parent.rendered) and tag not in _NON_RENDERED
        resolved = parent.transform.multiply(local) if parent else local
        box = intrinsic_box(kind, attrs) if rendered else None

        self._count(tag)
        self._collect_colors(attrs)
        self.stack.append(
            _NodeBuilder(
                kind=kind,
                tag=tag,
                attributes=attrs,
                local_transform=local,
                transform=resolved,
                box=box,
                rendered=rendered,
            )
        )

    def end(self, elem: ET.Element) -> None:
        builder = self.stack.pop()
        text = "".join(elem.itertext()) if builder.kind is NodeKind.TEXT else None
        node = builder.freeze(text)
        if self.stack:
            self.stack[-1].children.append(node)
        else:
            self.root = node
        # tspan content is read by the enclosing <text> when it closes
        if not any(open_node.kind is NodeKind.TEXT for open_node in self.stack):
            elem.clear()

    def _count(self, tag: str) -> None:
        if tag == "path":
            self.counts.paths += 1
        elif tag == "circle":
            self.counts.circles += 1
        elif tag == "rect":
            self.counts.rects += 1
        elif tag in ("polygon", "polyline"):
            self.counts.polygons += 1
        elif tag == "text":
            self.counts.text += 1
        elif tag == "g":
            self.counts.groups += 1

    def _collect_colors(self, attrs: Dict[str, str]) -> None:
        for value in _colors_from_attributes(attrs):
            if len(self.palette) >= MAX_PALETTE_COLORS:
                return
            color = value.lower()
            if _is_color(value) and color not in self.palette:
                self.palette.append(color)


def parse_svg(data: bytes) -> VectorDocument:
    """Parse SVG markup into a node tree, content box and canvas box.

    Raises:
        MalformedDocumentError: unbalanced or invalid markup, a non-SVG root,
            or non-numeric geometry.
    """
    if isinstance(data, str):
        data = data.encode("utf-8")

    builder = _TreeBuilder()
    parser = ET.XMLPullParser(events=("start", "end"))
    try:
        for offset in range(0, len(data), _CHUNK_SIZE):
            parser.feed(data[offset : offset + _CHUNK_SIZE])
            _drain(parser, builder)
        parser.close()
        _drain(parser, builder)
    except ET.ParseError as exc:
        raise MalformedDocumentError(f"Failed to parse SVG: {exc}") from exc

    if builder.root is None:
        raise MalformedDocumentError("Failed to parse SVG: no root element")

    root = builder.root
    width = parse_length(root.attributes.get("width"))
    height = parse_length(root.attributes.get("height"))
    view_box = parse_view_box(root.attributes.get("viewBox"))
    content = root.overall_box()
    logger.debug(
        "parse_svg: %d nodes, content box %s",
        sum(1 for _ in root.iter_nodes()),
        content.as_tuple() if content else None,
    )
    return VectorDocument(
        root=root,
        canvas_box=canvas_box(view_box, width, height),
        content_box=content,
        width=width,
        height=height,
        view_box=view_box,
        element_counts=builder.counts,
        color_palette=builder.palette,
    )


def _drain(parser: ET.XMLPullParser, builder: _TreeBuilder) -> None:
    for event, elem in parser.read_events():
        if event == "start":
            builder.start(elem)
        else:
            builder.end(elem)


def _fmt(value: float) -> str:
    text = f"{value:.6f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


def _flat_elements(node: VectorNode, rendered: bool = True) -> Iterator[VectorNode]:
    rendered = rendered and node.tag not in _NON_RENDERED
    if not rendered:
        return
    if node.kind in _FLAT_KINDS or (node.kind is NodeKind.OTHER and not node.children):
        yield node
        return
    for child in node.children:
        yield from _flat_elements(child, rendered)


def flatten_svg(data: bytes) -> str:
    """Re-emit the document with groups dissolved and transforms baked per element."""
    document = parse_svg(data)
    box = document.bounding_box
    root = ET.Element(
        "svg",
        {
            "xmlns": SVG_NS,
            "width": _fmt(box.width),
            "height": _fmt(box.height),
            "viewBox": " ".join(_fmt(v) for v in box.as_tuple()),
        },
    )
    for node in _flat_elements(document.root):
        attrs = {k: v for k, v in node.attributes.items() if k != "transform"}
        if not node.transform.is_identity:
            attrs["transform"] = "matrix({})".format(
                ",".join(_fmt(v) for v in node.transform.as_tuple())
            )
        element = ET.SubElement(root, node.tag, attrs)
        if node.text:
            element.text = node.text
    return ET.tostring(root, encoding="unicode")


def reframe_svg(data: bytes, view_box: BoundingBox, width: int, height: int) -> bytes:
    """Markup whose root viewport maps exactly ``view_box`` onto ``width x height``.

    Used to rasterise only the drawn content of a logo instead of its whole canvas.
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    try:
        root = ET.fromstring(data)
    except ET.ParseError as exc:
        raise MalformedDocumentError(f"Failed to parse SVG: {exc}") from exc
    root.set("viewBox", " ".join(_fmt(v) for v in view_box.as_tuple()))
    root.set("width", str(width))
    root.set("height", str(height))
    root.set("preserveAspectRatio", "none")
    return ET.tostring(root, encoding="utf-8")
