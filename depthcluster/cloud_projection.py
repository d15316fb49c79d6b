"""Projection of 3D point clouds onto a range (depth) image."""

from __future__ import annotations

import abc
import copy
import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from depthcluster.projection_params import ProjectionParams

logger = logging.getLogger(__name__)

_MIN_DEPTH = np.float32(0.001)
_MIN_SENSOR_DIST = 0.01


@dataclass
class RichPoint:
    """A 3D point with the index of the laser ring that measured it."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    ring: int = 0
    intensity: float = 0.0

    def dist_to_sensor_2d(self) -> float:
        """Distance to the sensor in the xy plane."""
        return math.hypot(self.x, self.y)

    def dist_to_sensor_3d(self) -> float:
        """Euclidean distance to the sensor."""
        return math.sqrt(self.x * self.x + self.y * self.y + self.z * self.z)


class CloudProjection(abc.ABC):
    """Depth image of a cloud plus, per pixel, the indices of the points that fell there."""

    def __init__(self, params: ProjectionParams):
        if not params.valid():
            raise ValueError("params not valid for projection.")
        self._params = params
        self._data: list[list[list[int]]] = [
            [[] for _ in range(params.rows)] for _ in range(params.cols)
        ]
        self._depth_image = np.zeros((params.rows, params.cols), dtype=np.float32)
        self._corrections: list[float] = []

    @abc.abstractmethod
    def init_from_points(self, points: Sequence[RichPoint]) -> None:
        """Fill the projection from a sequence of points."""

    def clone(self) -> "CloudProjection":
        """An independent copy of this projection."""
        return copy.deepcopy(self)

    @property
    def depth_image(self) -> np.ndarray:
        return self._depth_image

    @depth_image.setter
    def depth_image(self, image: np.ndarray) -> None:
        self._depth_image = image

    def clone_depth_image(self, image: np.ndarray) -> None:
        self._depth_image = np.array(image, dtype=np.float32, copy=True)

    @property
    def rows(self) -> int:
        return self._params.rows

    @property
    def cols(self) -> int:
        return self._params.cols

    @property
    def size(self) -> int:
        return self._params.size

    @property
    def params(self) -> ProjectionParams:
        return self._params

    @property
    def matrix(self) -> list[list[list[int]]]:
        """Point indices stored column-major: ``matrix[col][row]``."""
        return self._data

    def at(self, row: int, col: int) -> list[int]:
        """Indices of the points projected to the given pixel."""
        return self._data[col][row]

    def check_image_and_storage(self, image: np.ndarray) -> None:
        if image.dtype != np.float32:
            raise TypeError("wrong image format")
        if not self._data:
            raise ValueError("storage is empty")
        if image.shape != (self.rows, self.cols):
            raise ValueError("storage dimensions do not correspond to image ones")

    def check_cloud_and_storage(self, points: Sequence[RichPoint]) -> None:
        if not self._data:
            raise ValueError("storage is empty")
        if not points:
            raise ValueError("cannot fill from cloud: no points")

    def unproject_point(self, image: np.ndarray, row: int, col: int) -> RichPoint:
        """The 3D point that the depth at ``(row, col)`` stands for."""
        depth = float(image[row, col])
        angle_z = self._params.angle_from_row(row)
        angle_xy = self._params.angle_from_col(col)
        return RichPoint(
            depth * math.cos(angle_z) * math.cos(angle_xy),
            depth * math.cos(angle_z) * math.sin(angle_xy),
            depth * math.sin(angle_z),
        )

    def set_corrections(self, corrections: Sequence[float]) -> None:
        """Per-beam depth corrections for a dataset's systematic error."""
        self._corrections = list(corrections)

    def fix_depth_systematic_error_if_needed(self) -> None:
        """Subtract the per-row correction from every valid depth, if corrections fit."""
        rows = self._depth_image.shape[0]
        if rows < 1:
            logger.info("image of wrong size, not correcting depth")
            return
        if len(self._corrections) != rows:
            logger.info("Not correcting depth data.")
            return
        corrections = np.asarray(self._corrections, dtype=np.float32)[:, np.newaxis]
        valid = self._depth_image >= _MIN_DEPTH
        self._depth_image -= np.where(valid, corrections, np.float32(0.0))

    def _store(self, index: int, row: int, col: int, dist: float) -> None:
        self._data[col][row].append(index)
        if self._depth_image[row, col] < dist:
            self._depth_image[row, col] = dist


class RingProjection(CloudProjection):
    """Projection that takes each point's row from its laser ring."""

    def init_from_points(self, points: Sequence[RichPoint]) -> None:
        logger.debug("Projecting cloud with %d points", len(points))
        self.check_cloud_and_storage(points)
        for index, point in enumerate(points):
            dist = point.dist_to_sensor_2d()
            if dist < _MIN_SENSOR_DIST:
                continue
            col = self._params.col_from_angle(math.atan2(point.y, point.x))
            self._store(index, point.ring, col, dist)

    def unproject_point(self, image: np.ndarray, row: int, col: int) -> RichPoint:
        point = super().unproject_point(image, row, col)
        point.ring = row
        return point


class SphericalProjection(CloudProjection):
    """Projection that takes each point's row from its elevation angle."""

    def init_from_points(self, points: Sequence[RichPoint]) -> None:
        self.check_cloud_and_storage(points)
        for index, point in enumerate(points):
            dist = point.dist_to_sensor_3d()
            if dist < _MIN_SENSOR_DIST:
                continue
            row = self._params.row_from_angle(math.asin(point.z / dist))
            col = self._params.col_from_angle(math.atan2(point.y, point.x))
            self._store(index, row, col, dist)
        self.fix_depth_systematic_error_if_needed()