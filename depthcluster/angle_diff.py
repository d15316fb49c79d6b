"""Angle-based difference between neighbouring pixels of a range image."""

from __future__ import annotations

import math

import numpy as np

from depthcluster.diff_base import AbstractDiff
from depthcluster.pixel import PixelCoord
from depthcluster.projection_params import ProjectionParams

_MIN_DEPTH = 0.001
_MIN_VISIBLE_DEPTH = 0.01
_MAX_ANGLE_DEG = 90.0
_BORDER_MARGIN = 0.05


def _beta(alpha: float, current_depth: float, neighbor_depth: float) -> float:
    """Incline of the line spanned by the endpoints of two beams ``alpha`` apart."""
    d1 = max(current_depth, neighbor_depth)
    d2 = min(current_depth, neighbor_depth)
    return abs(math.atan2(d2 * math.sin(alpha), d1 - d2 * math.cos(alpha)))


def _beta_array(alpha: np.ndarray, current: np.ndarray, neighbor: np.ndarray) -> np.ndarray:
    d1 = np.maximum(current, neighbor)
    d2 = np.minimum(current, neighbor)
    beta = np.arctan2(d2 * np.sin(alpha), d1 - d2 * np.cos(alpha))
    return np.abs(beta).astype(np.float32)


def _alpha_vectors(params: ProjectionParams, abs_last_col: bool) -> tuple[list[float], list[float]]:
    """Angles between consecutive rows and columns; the last column alpha wraps around."""
    rows, cols = params.rows, params.cols
    row_alphas = [
        abs(params.angle_from_row(r + 1) - params.angle_from_row(r)) for r in range(rows - 1)
    ]
    row_alphas.append(0.0)
    col_alphas = [
        abs(params.angle_from_col(c + 1) - params.angle_from_col(c)) for c in range(cols - 1)
    ]
    last_alpha = abs(params.angle_from_col(0) - params.angle_from_col(cols - 1)) - params.h_span
    col_alphas.append(abs(last_alpha) if abs_last_col else last_alpha)
    return row_alphas, col_alphas


class AngleDiff(AbstractDiff):
    """Angle between the line spanned by two beam endpoints and the beam itself."""

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
        return _beta(alpha, current_depth, neighbor_depth)

    def satisfies_threshold(self, value: float, threshold: float) -> bool:
        """Satisfied when the angle is bigger than the threshold."""
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


class AngleDiffPrecomputed(AbstractDiff):
    """Angle difference with all row-wise and column-wise angles computed up front."""

    def __init__(self, source_image: np.ndarray, params: ProjectionParams):
        super().__init__(np.asarray(source_image, dtype=np.float32))
        self._params = params
        self._row_alphas, self._col_alphas = _alpha_vectors(params, abs_last_col=True)
        self._beta_rows, self._beta_cols = self._precompute_betas()

    def _precompute_betas(self) -> tuple[np.ndarray, np.ndarray]:
        rows, cols = self._params.rows, self._params.cols
        image = self._source_image[:rows, :cols]
        beta_rows = np.zeros((rows, cols), dtype=np.float32)
        beta_cols = np.zeros((rows, cols), dtype=np.float32)
        valid = image >= _MIN_DEPTH

        col_alphas = np.asarray(self._col_alphas, dtype=np.float32)[np.newaxis, :]
        next_cols = np.roll(image, -1, axis=1)
        cols_betas = _beta_array(col_alphas, image, next_cols)
        beta_cols[valid] = cols_betas[valid]

        if rows > 1:
            row_alphas = np.asarray(self._row_alphas[:-1], dtype=np.float32)[:, np.newaxis]
            rows_betas = _beta_array(row_alphas, image[:-1], image[1:])
            inner_valid = valid[:-1]
            beta_rows[:-1][inner_valid] = rows_betas[inner_valid]
        return beta_rows, beta_cols

    @property
    def beta_rows(self) -> np.ndarray:
        return self._beta_rows

    @property
    def beta_cols(self) -> np.ndarray:
        return self._beta_cols

    def diff_at(self, start: PixelCoord, end: PixelCoord) -> float:
        """Precomputed angle between two pixels that differ in exactly one direction."""
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
            return float(self._beta_rows[row, col])
        if start.col != end.col:
            return float(self._beta_cols[row, col])
        raise ValueError("Asking for difference of same pixels.")

    def satisfies_threshold(self, value: float, threshold: float) -> bool:
        """Satisfied when the angle is bigger than the threshold."""
        return value > threshold

    def visualize(self) -> np.ndarray:
        """Colour image: first channel from row-wise angles, second from column-wise ones."""
        rows, cols = self._beta_rows.shape
        colors = np.zeros((rows, cols, 3), dtype=np.uint8)
        visible = self._source_image[:rows, :cols] >= _MIN_VISIBLE_DEPTH

        def to_channel(betas: np.ndarray) -> np.ndarray:
            scaled = 255.0 * (np.degrees(betas.astype(np.float64)) / _MAX_ANGLE_DEG)
            return (scaled.astype(np.int64) % 256).astype(np.uint8)

        row_color = to_channel(self._beta_rows)
        col_color = to_channel(self._beta_cols)
        colors[..., 0] = np.where(visible, 255 - row_color, 0)
        colors[..., 1] = np.where(visible, 255 - col_color, 0)
        return colors

    def get_beta(self, alpha: float, current_depth: float, neighbor_depth: float) -> float:
        """Incline of the line spanned by the endpoints of two beams ``alpha`` apart."""
        return _beta(alpha, current_depth, neighbor_depth)