import math
import os
import platform
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

import cv2
import numpy as np
from PIL import Image, ImageDraw, ImageFont

from .ascii_art import GlyphRamp, LuminanceModel
from .config import DEFAULT_CELL_SIZE
from .errors import ConfigurationError

IS_WINDOWS = platform.system() == "Windows"
IS_LINUX = platform.system() == "Linux"
IS_MAC = platform.system() == "Darwin"

# baseline sits this many pixels above the bottom edge of a cell
BASELINE_OFFSET = 2


def find_mono_font():
    """Return the path of an installed monospace TrueType font, or None."""
    linux_fonts = [
        "/usr/share/fonts/truetype/dejavu/DejaVuSansMono.ttf",
        "/usr/share/fonts/truetype/liberation/LiberationMono-Regular.ttf",
        "/usr/share/fonts/truetype/noto/NotoMono-Regular.ttf",
    ]
    win_fonts = [
        "C:/Windows/Fonts/consola.ttf",
        "C:/Windows/Fonts/lucon.ttf",
        "C:/Windows/Fonts/cour.ttf",
    ]
    mac_fonts = [
        "/System/Library/Fonts/Menlo.ttc",
        "/System/Library/Fonts/Monaco.ttf",
    ]
    candidates = []
    if IS_LINUX:
        candidates = linux_fonts
    elif IS_WINDOWS:
        candidates = win_fonts
    elif IS_MAC:
        candidates = mac_fonts
    for f in candidates:
        if os.path.exists(f):
            return f
    return None


# pixel size of a TrueType font when the cell height does not pin it
DEFAULT_FONT_SIZE = 14


def _hershey_tile(glyph, cw, ch, font_scale):
    tile = np.zeros((ch, cw), dtype=np.uint8)
    cv2.putText(tile, glyph, (0, ch - BASELINE_OFFSET), cv2.FONT_HERSHEY_SIMPLEX,
                font_scale, 255, 1, cv2.LINE_AA)
    return tile


def _truetype_tile(glyph, cw, ch, font, origin):
    img = Image.new("L", (cw, ch), 0)
    d = ImageDraw.Draw(img)
    d.text(origin, glyph, font=font, fill=255, anchor="ls")
    return np.array(img, dtype=np.uint8)


def truetype_cell_metrics(font, ramp):
    """Smallest cell holding every ramp glyph drawn at a shared baseline.

    Returns (cell_width, cell_height, origin) where origin is the
    (x, baseline y) to draw each glyph at.
    """
    asc, desc = font.getmetrics()
    left, top, right, bottom = 0, -asc, 1, desc
    for glyph in ramp:
        l, t, r, b = font.getbbox(glyph, anchor="ls")
        left = min(left, l)
        top = min(top, t)
        right = max(right, r, math.ceil(font.getlength(glyph)))
        bottom = max(bottom, b)
    return right - left, bottom - top, (-left, -top)


def build_char_cache(ramp, cell_size=None, font_scale=0.3, font_path=None, font_size=None):
    """Render every ramp glyph once as an anti-aliased coverage mask.

    Returns a uint8 array of shape (N, cell_height, cell_width); 255 means
    the glyph fully covers that pixel. With a TrueType font, a cell
    dimension left as None is sized from the font so nothing is clipped;
    an explicit dimension is honored and may clip wide glyphs.
    """
    cw, ch = cell_size if cell_size is not None else (None, None)
    if not font_path:
        cw = cw or DEFAULT_CELL_SIZE[0]
        ch = ch or DEFAULT_CELL_SIZE[1]
        cache = np.zeros((len(ramp), ch, cw), dtype=np.uint8)
        for i, glyph in enumerate(ramp):
            cache[i] = _hershey_tile(glyph, cw, ch, font_scale)
        return cache

    try:
        font = ImageFont.truetype(font_path, font_size or ch or DEFAULT_FONT_SIZE)
    except OSError as exc:
        raise ConfigurationError(f"Cannot load font {font_path}: {exc}") from exc
    fit_w, fit_h, (ox, oy) = truetype_cell_metrics(font, ramp)
    if cw is None:
        cw = fit_w
    else:
        ox = 0
    if ch is None:
        ch = fit_h
    else:
        oy = ch - BASELINE_OFFSET
    cache = np.zeros((len(ramp), ch, cw), dtype=np.uint8)
    for i, glyph in enumerate(ramp):
        cache[i] = _truetype_tile(glyph, cw, ch, font, (ox, oy))
    return cache


def ascii_to_image_color(idx, small, char_cache):
    """Composite glyph tiles tinted by each cell's color.

    idx: (H, W) glyph indices, small: (H, W, 3) uint8 colors in decoder
    channel order. Returns an (H*ch, W*cw, 3) uint8 canvas on black.
    """
    h, w = idx.shape
    _, ch, cw = char_cache.shape
    tiles = char_cache[idx].astype(np.uint16)
    color = small.astype(np.uint16)
    out = (tiles[..., None] * color[:, :, None, None, :] + 127) // 255
    return out.astype(np.uint8).transpose(0, 2, 1, 3, 4).reshape(h * ch, w * cw, 3)


@dataclass(frozen=True)
class GridCell:
    column: int
    row: int
    color: Tuple[int, int, int]
    glyph: str
    brightness: float


class CellTracer:
    """Debug hook reporting glyph choices for the top-left cells of one frame.

    Only the first frame handed to the tracer is reported; after that it
    stays silent.
    """

    def __init__(self, columns=3, rows=2, emit=print):
        self.columns = columns
        self.rows = rows
        self.emit = emit
        self.active = True

    def reset(self):
        """Trace the next frame again, e.g. at the start of another run."""
        self.active = True

    def __call__(self, cells: Iterator[GridCell]) -> None:
        if not self.active:
            return
        self.active = False
        for cell in cells:
            if cell.row >= self.rows:
                break
            if cell.column < self.columns:
                self.emit(
                    f"cell({cell.column},{cell.row}): brightness={cell.brightness:.3f}, "
                    f"glyph='{cell.glyph}'"
                )


class FrameRasterizer:
    def __init__(
        self,
        ramp: GlyphRamp,
        model: LuminanceModel,
        cell_size: Optional[Tuple[Optional[int], Optional[int]]] = DEFAULT_CELL_SIZE,
        font_scale: float = 0.3,
        font_path: Optional[str] = None,
        font_size: Optional[int] = None,
    ):
        self.ramp = ramp
        self.model = model
        self.font_scale = font_scale
        self.char_cache = build_char_cache(ramp, cell_size, font_scale, font_path, font_size)
        # resolved size; a TrueType font may have filled in missing dimensions
        self.cell_size = (self.char_cache.shape[2], self.char_cache.shape[1])

    @classmethod
    def from_config(cls, config):
        return cls(
            config.ramp(),
            config.luminance(),
            cell_size=config.cell_size,
            font_scale=config.font_scale,
            font_path=config.font_path,
            font_size=config.font_size,
        )

    def canvas_size(self, grid_width, grid_height):
        """(width, height) in pixels of the canvas for a grid."""
        cw, ch = self.cell_size
        return grid_width * cw, grid_height * ch

    @staticmethod
    def _check_grid(grid):
        grid = np.asarray(grid)
        if grid.ndim != 3 or grid.shape[2] != 3 or grid.shape[0] < 1 or grid.shape[1] < 1:
            raise ValueError(f"Expected a non-empty (rows, columns, 3) color grid, got shape {grid.shape}")
        return grid

    def select_glyphs(self, grid):
        """Return (brightness, glyph index) arrays for every cell."""
        grid = self._check_grid(grid)
        brightness = self.model.brightness_map(grid)
        return brightness, self.ramp.indices_for(brightness)

    def cells(self, grid) -> Iterator[GridCell]:
        """Yield the grid cells in row-major order."""
        grid = self._check_grid(grid)
        brightness, idx = self.select_glyphs(grid)
        rows, cols = idx.shape
        for y in range(rows):
            for x in range(cols):
                color = tuple(int(c) for c in np.clip(grid[y, x], 0, 255))
                yield GridCell(x, y, color, self.ramp[int(idx[y, x])], float(brightness[y, x]))

    def rasterize(self, grid, trace=None):
        """Draw one colored glyph per grid cell onto a black canvas."""
        grid = self._check_grid(grid)
        _, idx = self.select_glyphs(grid)
        colors = np.clip(grid, 0, 255).astype(np.uint8)
        if trace is not None:
            trace(self.cells(grid))
        return ascii_to_image_color(idx, colors, self.char_cache)
