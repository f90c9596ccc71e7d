"""Error taxonomy for logo analysis and variant generation."""

from __future__ import annotations


class LogoProcessingError(ValueError):
    """Base class for terminal errors of a single (logo, preset) unit."""


class MalformedDocumentError(LogoProcessingError):
    """Raised when vector markup cannot be parsed."""


class InvalidImageDimensionsError(LogoProcessingError):
    """Raised when a raster has missing or zero dimensions."""


class UnsupportedMimeTypeError(LogoProcessingError):
    """Raised for inputs outside vector markup and PNG-like rasters."""

    def __init__(self, mime_type: str) -> None:
        super().__init__(f"Unsupported file type: {mime_type}")
        self.mime_type = mime_type


class InvalidTargetSizeError(LogoProcessingError):
    """Raised when a target width or height is not positive."""

    def __init__(self, width: float, height: float) -> None:
        super().__init__(
            f"Target size must be positive, got {width}x{height}."
        )
        self.width = width
        self.height = height


class CompositeDimensionMismatchError(LogoProcessingError):
    """Raised when a prepared raster does not match the declared layout."""


class UnknownPresetError(LogoProcessingError):
    """Raised when a preset name is not in the catalogue."""

    def __init__(self, preset_name: str) -> None:
        super().__init__(f"Preset not found: {preset_name}")
        self.preset_name = preset_name
