"""Line-distance difference between neighbouring pixels of a range image.

Works like the angle difference, but after the angle beta of the line spanned
by two beam endpoints is known, the result is ``d1 * sin(beta)``: the distance
from the farther endpoint to the line along the nearer beam.
"""

from __future__ import annotations

import math

import numpy as np

from depthcluster.angle_diff import _alpha_vectors, _beta, _beta_array
from depthcluster.diff_base import AbstractDiff
from depthcluster.pixel import PixelCoord
from depthcluster.projection_params import ProjectionParams

_MIN_DEPTH = 0.001
_MIN_VISIBLE_DEPTH = 0.01
_MAX_DIST = 20.0
_BORDER_MARGIN = 0.05


def _line_dist(alpha: float, current_depth: float, neighbor_depth: float) -> float:
    d1 = max(current_depth, neighbor_depth)
    return d1 * math.sin(_beta(alpha, current_depth, neighbor_depth))


def _line_dist_array(alpha: np.ndarray, current: np.ndarray, neighbor: np.ndarray) -> np.ndarray:
    d1 = np.maximum(current, neighbor)
    beta = _beta_array(alpha, current, neighbor)
    return (d1 * np.sin(beta)).astype(np.float32)


class LineDistDiff(AbstractDiff):
    """Distance to the line spanned by the endpoints of two neighbouring beams."""

    def __init__(self, source_image: np.ndarray, params: ProjectionParams):
        super().__init__(np.asarray(source_image, dtype=np.float32))
        self._params = params
        self._row_alphas, self._col_alphas = _alpha_vectors(params, abs_last_col=False)

    def diff_at(self, start: PixelCoord, end: PixelCoord) -> float:
        current_depth = float(self._source_image[start.row, start.col])
        neighbor_depth = float(self._source_image[end.row, end.col])
        alpha = self.compute_alpha(start, end)
        span = self._params.h_span
        if alpha > span - _BORDER_MARGIN:
            # the pair lies across the border of the horizontal span
            alpha = alpha - span if alpha > span else span - alpha
        return _line_dist(alpha, current_depth, neighbor_depth)

    def satisfies_threshold(self, value: float, threshold: float) -> bool:
        """Satisfied when the value is bigger than the threshold."""
        return value > threshold

    def compute_alpha(self, current: PixelCoord, neighbor: PixelCoord) -> float:
        """Angle between the beams through two neighbouring pixels."""
        last_col = self._params.cols - 1
        if (current.col == 0 and neighbor.col == last_col) or (
            neighbor.col == 0 and current.col == last_col
        ):
            return self._col_alphas[-1]
        if current.row < neighbor.row:
            return self._row_alphas[current.row]
        if current.row > neighbor.row:
            return self._row_alphas[neighbor.row]
        if current.col < neighbor.col:
            return self._col_alphas[current.col]
        if current.col > neighbor.col:
            return self._col_alphas[neighbor.col]
        return 0.0


class LineDistDiffPrecomputed(AbstractDiff):
    """Line-distance difference with all row-wise and column-wise values computed up front."""

    def __init__(self, source_image: np.ndarray, params: ProjectionParams):
        super().__init__(np.asarray(source_image, dtype=np.float32))
        self._params = params
        self._row_alphas, self._col_alphas = _alpha_vectors(params, abs_last_col=True)
        self._dists_row, self._dists_col = self._precompute_line_dists()

    def _precompute_line_dists(self) -> tuple[np.ndarray, np.ndarray]:
        rows, cols = self._params.rows, self._params.cols
        image = self._source_image[:rows, :cols]
        dists_row = np.zeros((rows, cols), dtype=np.float32)
        dists_col = np.zeros((rows, cols), dtype=np.float32)
        valid = image >= _MIN_DEPTH

        col_alphas = np.asarray(self._col_alphas, dtype=np.float32)[np.newaxis, :]
        next_cols = np.roll(image, -1, axis=1)
        col_dists = _line_dist_array(col_alphas, image, next_cols)
        dists_col[valid] = col_dists[valid]

        if rows > 1:
            row_alphas = np.asarray(self._row_alphas[:-1], dtype=np.float32)[:, np.newaxis]
            row_dists = _line_dist_array(row_alphas, image[:-1], image[1:])
            inner_valid = valid[:-1]
            dists_row[:-1][inner_valid] = row_dists[inner_valid]
        return dists_row, dists_col

    @property
    def dists_row(self) -> np.ndarray:
        return self._dists_row

    @property
    def dists_col(self) -> np.ndarray:
        return self._dists_col

    def diff_at(self, start: PixelCoord, end: PixelCoord) -> float:
        """Precomputed line distance between two pixels that differ in exactly one direction."""
        last_row = self._params.rows - 1
        if (start.row == last_row and end.row == 0) or (start.row == 0 and end.row == last_row):
            row = last_row
        else:
            row = min(start.row, end.row)
        last_col = self._params.cols - 1
        if (start.col == last_col and end.col == 0) or (start.col == 0 and end.col == last_col):
            col = last_col
        else:
            col = min(start.col, end.col)
        if start.row != end.row:
            return float(self._dists_row[row, col])
        if start.col != end.col:
            return float(self._dists_col[row, col])
        raise ValueError("Asking for difference of same pixels.")

    def satisfies_threshold(self, value: float, threshold: float) -> bool:
        """Satisfied when the value is bigger than the threshold."""
        return value > threshold

    def visualize(self) -> np.ndarray:
        """Colour image: first channel from row-wise distances, second from column-wise ones."""
        rows, cols = self._dists_row.shape
        colors = np.zeros((rows, cols, 3), dtype=np.uint8)
        visible = self._source_image[:rows, :cols] >= _MIN_VISIBLE_DEPTH

        def to_channel(dists: np.ndarray) -> np.ndarray:
            scaled = 255.0 * (dists.astype(np.float64) / _MAX_DIST)
            return (scaled.astype(np.int64) % 256).astype(np.uint8)

        row_color = to_channel(self._dists_row)
        col_color = to_channel(self._dists_col)
        colors[..., 0] = np.where(visible, 255 - row_color, 0)
        colors[..., 1] = np.where(visible, 255 - col_color, 0)
        return colors

    def get_line_dist(self, alpha: float, current_depth: float, neighbor_depth: float) -> float:
        """Distance from the farther beam endpoint to the line spanned by both endpoints."""
        return _line_dist(alpha, current_depth, neighbor_depth)