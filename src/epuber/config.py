# ABOUTME: Conversion defaults and the ConversionOptions record.
# ABOUTME: DPI limits, spread detection ratio, JPEG quality and the fallback language live here.

from dataclasses import dataclass

DEFAULT_LANGUAGE = "en"
DEFAULT_TITLE = "(Untitled)"

DEFAULT_DPI = 150
MIN_DPI = 90
MAX_DPI = 450

# Pages wider than this (width / height) are treated as two-page spreads
SPREAD_RATIO = 1.30

JPEG_QUALITY = 90


def clamp_dpi(dpi: int) -> int:
    """Clamp a requested rendering resolution into [MIN_DPI, MAX_DPI]."""
    return max(MIN_DPI, min(MAX_DPI, int(dpi)))


@dataclass
class ConversionOptions:
    """Knobs for a single PDF to fixed-layout EPUB conversion.

    The DPI is clamped on construction, so an out-of-range value behaves
    exactly like the nearest limit.
    """

    split_spreads: bool = False
    dpi: int = DEFAULT_DPI
    language: str = DEFAULT_LANGUAGE
    jpeg_quality: int = JPEG_QUALITY

    def __post_init__(self) -> None:
        self.dpi = clamp_dpi(self.dpi)
