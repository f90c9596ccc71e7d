"""Logo geometry analysis and variant composition.

This package exposes the analysis, layout, cropping and compositing
routines used to turn one logo into canvases for many target presets.
"""

from .background_generator import generate_background, generate_from_palette  # noqa: F401
from .compositor import add_watermark, batch_composite, composite, create_preview, prepare_logo  # noqa: F401
from .errors import (  # noqa: F401
    CompositeDimensionMismatchError,
    InvalidImageDimensionsError,
    InvalidTargetSizeError,
    LogoProcessingError,
    MalformedDocumentError,
    UnknownPresetError,
    UnsupportedMimeTypeError,
)
from .layout_engine import adjust_for_aspect_ratio, calculate_scale_factor, compute_layout  # noqa: F401
from .logo_analysis import analyze, calculate_optimal_dimensions, calculate_safe_margins  # noqa: F401
from .mask_generator import apply_mask, dilate_mask, erode_mask, generate_mask, invert_mask  # noqa: F401
from .presets import DEFAULT_PRESETS, get_preset_by_name, get_presets_by_category  # noqa: F401
from .raster_analyzer import analyze_raster  # noqa: F401
from .smart_cropper import smart_crop  # noqa: F401
from .svg_parser import flatten_svg, parse_svg  # noqa: F401
from .variant_pipeline import VariantJob, generate_variant, generate_variants, process_job  # noqa: F401
