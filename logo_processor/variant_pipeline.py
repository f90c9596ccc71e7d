"""End-to-end variant generation: one logo, many presets.

The logo is analyzed once; every preset then runs layout, background,
logo preparation and compositing on its own worker. Workers share no
buffers, so no locking is needed.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from . import config
from .background_generator import FALLBACK_COLOR, background_for_type, generate_background
from .compositor import composite, prepare_logo
from .errors import UnknownPresetError
from .geometry_types import LayoutCalculation, LayoutOptions, LogoAnalysis, LogoKind
from .layout_engine import compute_layout
from .logo_analysis import analyze
from .presets import Preset, get_preset_by_name

logger = logging.getLogger(__name__)

DEFAULT_BACKGROUND_TYPE = "solid"


@dataclass(frozen=True)
class VariantJob:
    """One (logo, preset) unit of work as received from a job queue."""

    logo_id: str
    preset_name: str
    background_type: Optional[str] = None
    background_color: Optional[str] = None


@dataclass
class VariantResult:
    preset_name: str
    width: int
    height: int
    format: str
    size: int
    buffer: bytes
    layout: LayoutCalculation


@dataclass
class VariantBatchResult:
    analysis: Optional[LogoAnalysis]
    variants: List[VariantResult] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


def resolve_background_color(analysis: LogoAnalysis, background_color: Optional[str]) -> str:
    """Explicit colour, else the logo's first palette colour, else white."""
    if background_color:
        return background_color
    if analysis.dominant_colors:
        return analysis.dominant_colors[0]
    return FALLBACK_COLOR


def resolve_preset(name: str) -> Preset:
    preset = get_preset_by_name(name)
    if preset is None:
        raise UnknownPresetError(name)
    return preset


def generate_variant(
    logo_bytes: bytes,
    analysis: LogoAnalysis,
    preset: Preset,
    *,
    background_type: Optional[str] = None,
    background_color: Optional[str] = None,
    layout_options: Optional[LayoutOptions] = None,
    output_format: Optional[str] = None,
    quality: Optional[int] = None,
) -> VariantResult:
    """Render ``logo_bytes`` onto one preset canvas."""
    layout = compute_layout(analysis, preset.width, preset.height, layout_options)
    options = background_for_type(
        background_type or DEFAULT_BACKGROUND_TYPE,
        resolve_background_color(analysis, background_color),
    )
    background = generate_background(preset.width, preset.height, options)
    logo_format = "svg" if analysis.kind is LogoKind.VECTOR else "png"
    prepared = prepare_logo(logo_bytes, logo_format, layout.logo_width, layout.logo_height)
    result = composite(background, prepared, layout, output_format=output_format, quality=quality)
    logger.info(
        "Generated variant %s (%dx%d, %d bytes)", preset.name, result.width, result.height, result.size
    )
    return VariantResult(
        preset_name=preset.name,
        width=result.width,
        height=result.height,
        format=result.format,
        size=result.size,
        buffer=result.buffer,
        layout=layout,
    )


def generate_variants(
    logo_bytes: bytes,
    mime_type: str,
    preset_names: Sequence[str],
    *,
    background_type: Optional[str] = None,
    background_color: Optional[str] = None,
    layout_options: Optional[LayoutOptions] = None,
    output_format: Optional[str] = None,
    quality: Optional[int] = None,
    max_workers: Optional[int] = None,
) -> VariantBatchResult:
    """Analyze once and render every named preset on a bounded worker pool.

    Variants come back in the order the presets were requested. A failing
    preset is recorded in ``errors`` and does not stop the others; unknown
    preset names are skipped unless ``LOGO_STRICT_PRESETS`` is set.
    """
    try:
        analysis = analyze(logo_bytes, mime_type)
    except Exception as exc:
        logger.warning("Logo analysis failed: %s", exc)
        return VariantBatchResult(analysis=None, errors=[f"analysis: {exc}"])

    batch = VariantBatchResult(analysis=analysis)
    presets: List[Preset] = []
    for name in preset_names:
        preset = get_preset_by_name(name)
        if preset is None:
            if config.STRICT_PRESETS:
                raise UnknownPresetError(name)
            logger.warning("Preset not found: %s", name)
            batch.skipped.append(name)
            continue
        presets.append(preset)

    if not presets:
        return batch

    workers = min(max_workers or config.MAX_WORKERS, len(presets))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [
            pool.submit(
                generate_variant,
                logo_bytes,
                analysis,
                preset,
                background_type=background_type,
                background_color=background_color,
                layout_options=layout_options,
                output_format=output_format,
                quality=quality,
            )
            for preset in presets
        ]
        for preset, future in zip(presets, futures):
            try:
                batch.variants.append(future.result())
            except Exception as exc:
                logger.exception("Variant generation failed for preset %s", preset.name)
                batch.errors.append(f"{preset.name}: {exc}")

    logger.info(
        "Generated %d of %d variants (%d skipped, %d failed)",
        len(batch.variants),
        len(preset_names),
        len(batch.skipped),
        len(batch.errors),
    )
    return batch


def process_job(job: VariantJob, logo_bytes: bytes, mime_type: str) -> VariantResult:
    """Run a single queued job; every failure propagates to the caller."""
    preset = resolve_preset(job.preset_name)
    analysis = analyze(logo_bytes, mime_type)
    logger.info("Processing logo %s for preset %s", job.logo_id, preset.name)
    return generate_variant(
        logo_bytes,
        analysis,
        preset,
        background_type=job.background_type,
        background_color=job.background_color,
    )
