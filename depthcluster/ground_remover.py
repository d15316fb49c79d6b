"""Removal of ground pixels from a range image using the incline of neighbouring beams."""

from __future__ import annotations

import itertools
import logging
import math
import time
from typing import Any, Protocol

import numpy as np
from scipy import ndimage

from depthcluster.cloud_projection import CloudProjection
from depthcluster.diff_base import SimpleDiff
from depthcluster.labelers import LinearImageLabeler
from depthcluster.pixel import PixelCoord
from depthcluster.projection_params import ProjectionParams

logger = logging.getLogger(__name__)

_EPS = np.float32(0.001)
_START_THRESHOLD = math.radians(30.0)
_REPAIR_STEP = 5
_REPAIR_DEPTH_THRESHOLD = 1.0

# Savitsky-Golay smoothing coefficients (numerators and common denominator).
_SAVITSKY_GOLAY = {
    5: ((-3, 12, 17, 12, -3), 35.0),
    7: ((-2, 3, 6, 7, 6, 3, -2), 21.0),
    9: ((-21, 14, 39, 54, 59, 54, 39, 14, -21), 231.0),
    11: ((-36, 9, 44, 69, 84, 89, 84, 69, 44, 9, -36), 429.0),
}

_sender_ids = itertools.count()


class ProjectionClient(Protocol):
    """Anything that can receive a processed projection."""

    def on_new_object_received(self, projection: CloudProjection, sender_id: int) -> Any:
        ...


class DepthGroundRemover:
    """Zeroes out the ground in a projection's depth image and passes the result on.

    Angles (``ground_remove_angle`` and thresholds) are in radians.
    """

    def __init__(self, params: ProjectionParams, ground_remove_angle: float, window_size: int = 5):
        self._params = params
        self._ground_remove_angle = float(ground_remove_angle)
        self._window_size = int(window_size)
        self._clients: list[ProjectionClient] = []
        self.sender_id = next(_sender_ids)
        self.processed = 0

    @property
    def params(self) -> ProjectionParams:
        return self._params

    @property
    def window_size(self) -> int:
        return self._window_size

    @property
    def ground_remove_angle(self) -> float:
        return self._ground_remove_angle

    def add_client(self, client: ProjectionClient) -> None:
        """Register a receiver of projections with the ground removed."""
        self._clients.append(client)

    def on_new_object_received(self, projection: CloudProjection | None, sender_id: int) -> None:
        """Remove the ground from a copy of ``projection`` and share it with all clients."""
        if projection is None:
            logger.warning("No projection in cloud. Skipping ground removal.")
            return
        result = projection.clone()
        depth_image = self.repair_depth(
            projection.depth_image, _REPAIR_STEP, _REPAIR_DEPTH_THRESHOLD
        )
        started = time.perf_counter()
        result.depth_image = self.remove_ground(depth_image)
        logger.info(
            "Ground removed in %d us", int((time.perf_counter() - started) * 1_000_000)
        )
        for client in self._clients:
            client.on_new_object_received(result, self.sender_id)
        self.processed += 1

    def remove_ground(self, depth_image: np.ndarray) -> np.ndarray:
        """Depth image with every ground pixel set to zero."""
        depth = np.asarray(depth_image, dtype=np.float32)
        angle_image = self.create_angle_image(depth)
        smoothed = self.apply_savitsky_golay_smoothing(angle_image, self._window_size)
        return self.zero_out_ground_bfs(
            depth, smoothed, self._ground_remove_angle, self._window_size
        )

    def zero_out_ground(
        self, image: np.ndarray, angle_image: np.ndarray, threshold: float
    ) -> np.ndarray:
        """Keep only the pixels whose angle is above ``threshold``."""
        image = np.asarray(image, dtype=np.float32)
        angles = np.asarray(angle_image, dtype=np.float32)
        return np.where(angles > threshold, image, np.float32(0.0)).astype(np.float32)

    def zero_out_ground_bfs(
        self,
        image: np.ndarray,
        angle_image: np.ndarray,
        threshold: float,
        kernel_size: int,
    ) -> np.ndarray:
        """Grow the ground from the bottom pixel of every column and zero it out."""
        image = np.asarray(image, dtype=np.float32)
        angles = np.asarray(angle_image, dtype=np.float32)
        labeler = LinearImageLabeler(image, self._params, threshold)
        diff_helper = SimpleDiff(angles)
        rows, cols = image.shape
        for col in range(cols):
            row = rows - 1
            while row > 0 and image[row, col] < _EPS:
                row -= 1
            start = PixelCoord(row, col)
            if labeler.label_at(start) > 0:
                continue
            if angles[row, col] > _START_THRESHOLD:
                continue
            labeler.label_one_component(1, start, diff_helper)

        size = max(kernel_size - 2, 3)
        footprint = self.uniform_kernel(size) != 0
        dilated = ndimage.grey_dilation(
            labeler.label_image, footprint=footprint, mode="constant", cval=0
        )
        return np.where(dilated == 0, image, np.float32(0.0)).astype(np.float32)

    def create_angle_image(self, depth_image: np.ndarray) -> np.ndarray:
        """Per pixel, the incline (radians) of the line to the pixel one row above."""
        depth = np.asarray(depth_image, dtype=np.float32)
        rows = depth.shape[0]
        if rows != self._params.rows:
            raise ValueError(
                f"depth image has {rows} rows, projection params have {self._params.rows}"
            )
        cosines = np.asarray(self._params.row_angle_cosines, dtype=np.float32)[:, np.newaxis]
        sines = np.asarray(self._params.row_angle_sines, dtype=np.float32)[:, np.newaxis]
        x = depth * cosines
        y = depth * sines
        angle_image = np.zeros(depth.shape, dtype=np.float32)
        dx = np.abs(x[1:] - x[:-1])
        dy = np.abs(y[1:] - y[:-1])
        angle_image[1:] = np.arctan2(dy, dx)
        return angle_image

    def savitsky_golay_kernel(self, window_size: int) -> np.ndarray:
        """Column kernel of a Savitsky-Golay smoothing filter."""
        if window_size % 2 == 0:
            raise ValueError("only odd window size allowed")
        if window_size not in _SAVITSKY_GOLAY:
            raise ValueError("bad window size")
        coefficients, norm = _SAVITSKY_GOLAY[window_size]
        kernel = np.asarray(coefficients, dtype=np.float32) / np.float32(norm)
        return kernel.reshape(window_size, 1)

    def uniform_kernel(self, window_size: int) -> np.ndarray:
        """Column kernel averaging the two pixels at the ends of the window."""
        if window_size % 2 == 0:
            raise ValueError("only odd window size allowed")
        kernel = np.zeros((window_size, 1), dtype=np.float32)
        kernel[0, 0] = 1.0
        kernel[window_size - 1, 0] = 1.0
        return kernel / np.float32(2.0)

    def apply_savitsky_golay_smoothing(self, image: np.ndarray, window_size: int) -> np.ndarray:
        """Smooth every column of ``image`` with a Savitsky-Golay filter."""
        kernel = self.savitsky_golay_kernel(window_size)
        return _filter_columns(image, kernel)

    def line_angle(self, depth_image: np.ndarray, col: int, row_curr: int, row_neigh: int) -> float:
        """Incline (radians) of the line through two pixels of one column; 0 for missing depth."""
        current_angle = self._params.angle_from_row(row_curr)
        neighbor_angle = self._params.angle_from_row(row_neigh)
        depth_current = float(depth_image[row_curr, col])
        depth_neighbor = float(depth_image[row_neigh, col])
        if depth_current < _EPS or depth_neighbor < _EPS:
            return 0.0
        dx = abs(depth_current * math.cos(current_angle) - depth_neighbor * math.cos(neighbor_angle))
        dy = abs(depth_current * math.sin(current_angle) - depth_neighbor * math.sin(neighbor_angle))
        return math.atan2(dy, dx)

    def repair_depth(
        self, image: np.ndarray, step: int = _REPAIR_STEP, depth_threshold: float = _REPAIR_DEPTH_THRESHOLD
    ) -> np.ndarray:
        """Fill missing depths from pairs of close readings above and below in the column.

        Pixels are repaired top to bottom, so a repaired pixel can help the ones below it.
        """
        repaired = np.array(image, dtype=np.float32, copy=True)
        rows = repaired.shape[0]
        threshold = np.float32(depth_threshold)
        for column in repaired.T:
            for row in range(rows):
                if column[row] >= _EPS:
                    continue
                above = column[max(row - step + 1, 0):row]
                below = column[row + 1:min(row + step, rows)]
                above = above[above > _EPS]
                below = below[below > _EPS]
                if above.size == 0 or below.size == 0:
                    continue
                close = np.abs(above[:, np.newaxis] - below[np.newaxis, :]) < threshold
                pairs = int(close.sum())
                if pairs == 0:
                    continue
                sums = (above[:, np.newaxis] + below[np.newaxis, :])[close]
                column[row] = np.float32(sums.sum()) / np.float32(2 * pairs)
        return repaired

    def repair_depth_filtered(self, depth_image: np.ndarray) -> np.ndarray:
        """Fill missing depths with the mean of the readings two rows above and below."""
        depth = np.asarray(depth_image, dtype=np.float32)
        filtered = _filter_columns(depth, self.uniform_kernel(5))
        return np.where(depth > 0, depth, filtered).astype(np.float32)


def _filter_columns(image: np.ndarray, kernel: np.ndarray) -> np.ndarray:
    """Correlate with a centred kernel, reflecting at the borders without repeating the edge."""
    data = np.asarray(image, dtype=np.float32)
    result = ndimage.correlate(data.astype(np.float64), kernel.astype(np.float64), mode="mirror")
    return result.astype(np.float32)