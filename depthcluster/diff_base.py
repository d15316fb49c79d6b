"""Base interface for pixel difference measures and the plain depth difference."""

from __future__ import annotations

import abc

import numpy as np

from depthcluster.pixel import PixelCoord


class AbstractDiff(abc.ABC):
    """Measures how different two pixels of a float32 source image are."""

    def __init__(self, source_image: np.ndarray):
        self._source_image = source_image

    @abc.abstractmethod
    def diff_at(self, start: PixelCoord, end: PixelCoord) -> float:
        """Difference between the pixels ``start`` and ``end``."""

    @abc.abstractmethod
    def satisfies_threshold(self, value: float, threshold: float) -> bool:
        """Whether a difference value lets two pixels belong together."""

    def visualize(self) -> np.ndarray:
        """A colour image of the differences; empty unless a subclass provides one."""
        return np.zeros((0, 0, 3), dtype=np.uint8)


class SimpleDiff(AbstractDiff):
    """Absolute difference of the two pixel values."""

    def diff_at(self, start: PixelCoord, end: PixelCoord) -> float:
        image = self._source_image
        return abs(float(image[start.row, start.col]) - float(image[end.row, end.col]))

    def satisfies_threshold(self, value: float, threshold: float) -> bool:
        return value < threshold