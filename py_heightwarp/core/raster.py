"""
Dense 2-D raster grids addressed by normalized coordinates.

RasterGrid is the single container used for the source heightmap, the IDW
elevation grid and the confidence grid. Rows are indexed first; row 0 maps
to normalized v = 0 and column 0 to normalized u = 0.
"""

from typing import Tuple, Union

import numpy as np

from .errors import ConfigurationError

ArrayLike = Union[float, np.ndarray]


class RasterGrid:
    """Row-major float grid with clamped bilinear sampling."""

    def __init__(self, data: np.ndarray):
        data = np.asarray(data, dtype=np.float32)
        if data.ndim != 2:
            raise ConfigurationError(f"RasterGrid needs a 2-D array, got {data.ndim}-D")
        if data.shape[0] == 0 or data.shape[1] == 0:
            raise ConfigurationError(f"RasterGrid cannot be empty, got shape {data.shape}")
        self.data = data

    @classmethod
    def zeros(cls, rows: int, cols: int) -> "RasterGrid":
        if rows <= 0 or cols <= 0:
            raise ConfigurationError(f"Grid dimensions must be positive, got {rows}x{cols}")
        return cls(np.zeros((rows, cols), dtype=np.float32))

    @classmethod
    def filled(cls, rows: int, cols: int, value: float) -> "RasterGrid":
        grid = cls.zeros(rows, cols)
        grid.data.fill(value)
        return grid

    @property
    def shape(self) -> Tuple[int, int]:
        return self.data.shape

    @property
    def rows(self) -> int:
        return self.data.shape[0]

    @property
    def cols(self) -> int:
        return self.data.shape[1]

    def __getitem__(self, index):
        return self.data[index]

    def __setitem__(self, index, value):
        self.data[index] = value

    def copy(self) -> "RasterGrid":
        return RasterGrid(self.data.copy())

    def sample(self, u: ArrayLike, v: ArrayLike) -> ArrayLike:
        """
        Bilinear sample at normalized (u, v).

        Coordinates outside [0, 1] are clamped. The four taps clamp to the
        last row/column, so single-row or single-column grids sample fine.

        Args:
            u: Normalized column coordinate(s)
            v: Normalized row coordinate(s)

        Returns:
            Interpolated value(s); a float for scalar input, an array otherwise
        """
        scalar = np.ndim(u) == 0 and np.ndim(v) == 0
        u = np.clip(np.asarray(u, dtype=np.float64), 0.0, 1.0)
        v = np.clip(np.asarray(v, dtype=np.float64), 0.0, 1.0)

        h, w = self.data.shape
        px = u * (w - 1)
        py = v * (h - 1)

        x0 = np.floor(px).astype(np.intp)
        y0 = np.floor(py).astype(np.intp)
        x1 = np.minimum(x0 + 1, w - 1)
        y1 = np.minimum(y0 + 1, h - 1)
        fx = px - x0
        fy = py - y0

        h00 = self.data[y0, x0]
        h10 = self.data[y0, x1]
        h01 = self.data[y1, x0]
        h11 = self.data[y1, x1]

        top = h00 + (h10 - h00) * fx
        bottom = h01 + (h11 - h01) * fx
        result = top + (bottom - top) * fy

        if scalar:
            return float(result)
        return result

    def __repr__(self) -> str:
        return f"RasterGrid(shape={self.shape})"
