import math

import numpy as np

from .errors import ConfigurationError

# Sparse -> dense. Index 0 is drawn as empty space.
ASCII_CHARS = " .'`^\",:;Il!i><~+_-?][}{1)(|\\/tfjrxnuvczXYUJCLQ0OZmwqpdbkhao*#MW&8%B@$"
WEIGHTS = (0.299, 0.587, 0.114)

# pure white can come out a few ULP under 1.0; treat anything this close as full
_SNAP = 1e-9


def rgb_to_weighted_luminance(r, g, b, r_w=WEIGHTS[0], g_w=WEIGHTS[1], b_w=WEIGHTS[2]):
    """Compute weighted luminance from RGB, normalized to [0, 1] and clamped."""
    lum = (r * r_w + g * g_w + b * b_w) / 255.0
    return min(1.0, max(0.0, lum))


class GlyphRamp:
    """Ordered glyph palette spanning dark (index 0) to light (index N-1).

    Glyph ``i`` stands for brightness ``i / (N-1)``.
    """

    __slots__ = ("_glyphs",)

    def __init__(self, glyphs=ASCII_CHARS):
        glyphs = tuple(glyphs)
        if len(glyphs) < 2:
            raise ConfigurationError(f"Glyph ramp needs at least 2 glyphs, got {len(glyphs)}")
        if len(set(glyphs)) != len(glyphs):
            dupes = sorted({g for g in glyphs if glyphs.count(g) > 1})
            raise ConfigurationError(f"Glyph ramp contains duplicates: {''.join(dupes)!r}")
        for g in glyphs:
            if len(g) != 1 or not g.isprintable():
                raise ConfigurationError(f"Glyph ramp entry {g!r} is not a single printable character")
        self._glyphs = glyphs

    def __len__(self):
        return len(self._glyphs)

    def __getitem__(self, index):
        return self._glyphs[index]

    def __iter__(self):
        return iter(self._glyphs)

    def __repr__(self):
        return f"GlyphRamp({''.join(self._glyphs)!r})"

    @property
    def glyphs(self):
        return self._glyphs

    def brightness_of_index(self, index: int) -> float:
        return index / (len(self._glyphs) - 1)

    def index_for(self, brightness: float) -> int:
        brightness = min(1.0, max(0.0, float(brightness)))
        top = len(self._glyphs) - 1
        if brightness >= 1.0 - _SNAP:
            return top
        index = math.floor(brightness * top)
        return min(top, max(0, index))

    def glyph_for(self, brightness: float) -> str:
        return self._glyphs[self.index_for(brightness)]

    def indices_for(self, brightness: np.ndarray) -> np.ndarray:
        """Vectorized ``index_for`` over an array of brightness values."""
        top = len(self._glyphs) - 1
        b = np.clip(np.asarray(brightness, dtype=np.float64), 0.0, 1.0)
        idx = np.floor(b * top).astype(np.intp)
        idx[b >= 1.0 - _SNAP] = top
        return np.clip(idx, 0, top)


class LuminanceModel:
    """Turns a color sample into brightness in [0, 1].

    Parameters:
      channel_order: storage order of the channels in a sample. OpenCV
        decodes to "bgr", so the red weight applies to the last channel.
      weights: perceptual (red, green, blue) weights.
    """

    def __init__(self, channel_order="bgr", weights=WEIGHTS):
        order = channel_order.lower()
        if sorted(order) != ["b", "g", "r"]:
            raise ConfigurationError(f"Channel order must be a permutation of 'rgb', got {channel_order!r}")
        if len(weights) != 3 or any(w < 0 for w in weights):
            raise ConfigurationError(f"Luminance weights must be three non-negative numbers, got {weights!r}")
        self.channel_order = order
        self.weights = tuple(float(w) for w in weights)

    def __repr__(self):
        return f"LuminanceModel(channel_order={self.channel_order!r}, weights={self.weights!r})"

    def brightness_of(self, sample) -> float:
        values = dict(zip(self.channel_order, (float(v) for v in sample)))
        return rgb_to_weighted_luminance(values["r"], values["g"], values["b"], *self.weights)

    def brightness_map(self, grid: np.ndarray) -> np.ndarray:
        """Brightness for every cell of an (H, W, 3) color grid."""
        grid = np.asarray(grid, dtype=np.float64)
        r_i, g_i, b_i = (self.channel_order.index(c) for c in "rgb")
        r_w, g_w, b_w = self.weights
        # same operation order as brightness_of so scalar and grid results agree
        lum = (grid[..., r_i] * r_w + grid[..., g_i] * g_w + grid[..., b_i] * b_w) / 255.0
        return np.clip(lum, 0.0, 1.0)
