"""Re-render videos as colored character art."""

from .ascii_art import ASCII_CHARS, GlyphRamp, LuminanceModel
from .ascii_to_mp4 import (
    ConversionPipeline,
    ConversionSession,
    PipelineState,
    ascii_video_to_mp4,
    compute_grid_height,
)
from .config import ConversionConfig, validate_grid_width
from .errors import (
    ConfigurationError,
    ConversionError,
    FrameDecodeError,
    FrameEncodeError,
    InvalidDimensionsError,
    SinkOpenError,
    SourceOpenError,
)
from .rasterizer import CellTracer, FrameRasterizer, GridCell

__version__ = "0.1.0"
