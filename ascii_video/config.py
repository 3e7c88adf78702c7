"""Immutable settings shared by every stage of one conversion run."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from .ascii_art import ASCII_CHARS, GlyphRamp, LuminanceModel
from .errors import ConfigurationError

DEFAULT_CELL_SIZE = (6, 12)

DEFAULT_GRID_WIDTH = 80
MIN_GRID_WIDTH = 20
MAX_GRID_WIDTH = 300

FFMPEG_CODEC = "ffmpeg"


def validate_grid_width(width) -> int:
    """Return ``width`` as an int if it lies in [MIN_GRID_WIDTH, MAX_GRID_WIDTH]."""
    try:
        value = int(width)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Grid width must be an integer, got {width!r}") from None
    if not MIN_GRID_WIDTH <= value <= MAX_GRID_WIDTH:
        raise ConfigurationError(
            f"Grid width must be between {MIN_GRID_WIDTH} and {MAX_GRID_WIDTH}, got {value}"
        )
    return value


@dataclass(frozen=True)
class ConversionConfig:
    glyphs: str = ASCII_CHARS
    # None: 6x12 for the Hershey font, sized from the font metrics with font_path
    cell_width: Optional[int] = None
    cell_height: Optional[int] = None
    font_scale: float = 0.3
    # TrueType font rendered with Pillow instead of the Hershey font
    font_path: Optional[str] = None
    font_size: Optional[int] = None
    channel_order: str = "bgr"
    codecs: Tuple[str, ...] = ("mp4v", "avc1", FFMPEG_CODEC)
    fallback_fps: float = 30.0
    progress_every: int = 30
    progress_bar: bool = False
    debug: bool = False

    def __post_init__(self) -> None:
        if any(v is not None and v < 1 for v in (self.cell_width, self.cell_height)):
            raise ConfigurationError(
                f"Cell size must be positive, got {self.cell_width}x{self.cell_height}"
            )
        if self.font_scale <= 0:
            raise ConfigurationError(f"Font scale must be positive, got {self.font_scale}")
        if self.font_size is not None and self.font_size < 1:
            raise ConfigurationError(f"Font size must be positive, got {self.font_size}")
        if not self.codecs:
            raise ConfigurationError("At least one candidate codec is required")
        for codec in self.codecs:
            if codec != FFMPEG_CODEC and len(codec) != 4:
                raise ConfigurationError(
                    f"Codec {codec!r} is neither a FourCC nor {FFMPEG_CODEC!r}"
                )
        if self.fallback_fps <= 0:
            raise ConfigurationError(f"Fallback fps must be positive, got {self.fallback_fps}")
        if self.progress_every < 1:
            raise ConfigurationError(
                f"Progress cadence must be at least 1 frame, got {self.progress_every}"
            )
        # fail on a bad ramp or channel order now rather than mid-run
        self.ramp()
        self.luminance()

    @property
    def cell_size(self) -> Tuple[Optional[int], Optional[int]]:
        if self.font_path:
            return self.cell_width, self.cell_height
        return self.cell_width or DEFAULT_CELL_SIZE[0], self.cell_height or DEFAULT_CELL_SIZE[1]

    def ramp(self) -> GlyphRamp:
        return GlyphRamp(self.glyphs)

    def luminance(self) -> LuminanceModel:
        return LuminanceModel(self.channel_order)
