"""Turn raw rgb24 frames from ffmpeg into terminal cells.

Two styles, matching the built-in renderer's two modes:

- color: each pixel becomes two spaces on a truecolor background, so a
  frame of ``columns`` pixels fills ``2 * columns`` terminal columns
- ascii: each pixel becomes one character from a luminance ramp
"""
from dataclasses import dataclass

import numpy as np

ASCII_RAMP = "@%#*+=-:. "
RESET = "\x1b[0m"

# Rec. 709 luma coefficients
_LUMA = np.array([0.2126, 0.7152, 0.0722], dtype=np.float32)
_RAMP = np.array(list(ASCII_RAMP))
_STEP_TOLERANCE = 1e-3


@dataclass(frozen=True)
class FrameGeometry:
    """Pixel size of one raw frame as produced by the renderer."""
    columns: int
    rows: int
    color: bool = True

    @property
    def frame_size(self) -> int:
        """Bytes in one rgb24 frame."""
        return self.columns * self.rows * 3

    @property
    def terminal_columns(self) -> int:
        return self.columns * 2 if self.color else self.columns


class FramePainter:
    """Callable converting one raw frame into display-ready bytes."""

    def __init__(self, geometry: FrameGeometry) -> None:
        self.geometry = geometry

    def __call__(self, raw: bytes) -> bytes:
        pixels = self._pixels(raw)
        if self.geometry.color:
            return paint_color(pixels)
        return paint_ascii(pixels)

    def _pixels(self, raw: bytes) -> np.ndarray:
        expected = self.geometry.frame_size
        data = np.frombuffer(raw, dtype=np.uint8)
        if data.size < expected:
            data = np.concatenate([data, np.zeros(expected - data.size, dtype=np.uint8)])
        return data[:expected].reshape(self.geometry.rows, self.geometry.columns, 3)


def paint_ascii(pixels: np.ndarray) -> bytes:
    """Map each pixel to a ramp character; brighter pixels get denser glyphs."""
    luminance = pixels.astype(np.float32) @ _LUMA
    # truncate to a ramp step; the tolerance keeps pure white from landing one short
    steps = np.floor(luminance / 255.0 * (len(ASCII_RAMP) - 1) + _STEP_TOLERANCE).astype(np.intp)
    chars = _RAMP[len(ASCII_RAMP) - 1 - np.clip(steps, 0, len(ASCII_RAMP) - 1)]
    return "\n".join("".join(row) for row in chars).encode("ascii")


def paint_color(pixels: np.ndarray) -> bytes:
    """Paint each pixel as two background-colored spaces."""
    lines = []
    for row in pixels.tolist():
        cells = "".join(f"\x1b[48;2;{r};{g};{b}m  " for r, g, b in row)
        lines.append(cells + RESET)
    return "\n".join(lines).encode("ascii")
