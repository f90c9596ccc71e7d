"""Catalogue of named target canvases."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

PRESET_CATEGORIES: Dict[str, str] = {
    "web": "Web & Digital",
    "social": "Social Media",
    "mobile": "Mobile & Apps",
    "print": "Print & Marketing",
}


@dataclass(frozen=True)
class Preset:
    name: str
    width: int
    height: int
    description: str
    category: str

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height


DEFAULT_PRESETS: List[Preset] = [
    Preset("Website Header", 1600, 400, "Wide header format for website banners", "web"),
    Preset("Social Square", 1200, 1200, "Square format for social media profile pictures", "social"),
    Preset("App Icon", 1024, 1024, "High-resolution app icon", "mobile"),
    Preset("Favicon", 48, 48, "Small icon for browser tabs", "web"),
    Preset("Profile Picture", 400, 400, "Standard profile picture size", "social"),
    Preset("Facebook Cover", 820, 312, "Facebook page cover photo", "social"),
    Preset("Facebook Post", 1200, 630, "Facebook shared post image", "social"),
    Preset("Instagram Post", 1080, 1080, "Instagram square post", "social"),
    Preset("Instagram Story", 1080, 1920, "Instagram story format", "social"),
    Preset("Twitter Header", 1500, 500, "Twitter/X profile header", "social"),
    Preset("Twitter Post", 1200, 675, "Twitter/X post image", "social"),
    Preset("LinkedIn Cover", 1584, 396, "LinkedIn profile banner", "social"),
    Preset("YouTube Thumbnail", 1280, 720, "YouTube video thumbnail", "social"),
    Preset("YouTube Channel Art", 2560, 1440, "YouTube channel banner", "social"),
    Preset("iOS App Icon", 1024, 1024, "iOS app icon (all sizes generated)", "mobile"),
    Preset("Android App Icon", 512, 512, "Android adaptive icon", "mobile"),
    Preset("iOS Splash Screen", 1242, 2688, "iOS launch screen", "mobile"),
    Preset("Open Graph", 1200, 630, "Open Graph / social media preview", "web"),
    Preset("Twitter Card", 1200, 628, "Twitter Card image", "web"),
    Preset("Email Signature", 600, 200, "Email signature logo", "web"),
    Preset("Business Card", 1050, 600, 'Business card (3.5" x 2", 300 DPI)', "print"),
    Preset("Letterhead", 2550, 3300, 'Letterhead header (8.5" x 11", 300 DPI)', "print"),
]

_PRESETS_BY_NAME: Dict[str, Preset] = {preset.name: preset for preset in DEFAULT_PRESETS}


def get_preset_by_name(name: str) -> Optional[Preset]:
    return _PRESETS_BY_NAME.get(name)


def get_presets_by_category(category: str) -> List[Preset]:
    if category not in PRESET_CATEGORIES:
        raise ValueError(f"Unknown preset category '{category}'")
    return [preset for preset in DEFAULT_PRESETS if preset.category == category]
