import numpy as np
import pytest

from depthcluster.diff_base import AbstractDiff, SimpleDiff
from depthcluster.pixel import PixelCoord


@pytest.fixture
def image():
    return np.array([[1.0, 4.0], [2.5, 0.0]], dtype=np.float32)


def test_simple_diff_value(image):
    diff = SimpleDiff(image)
    assert diff.diff_at(PixelCoord(0, 0), PixelCoord(0, 1)) == pytest.approx(3.0)


def test_simple_diff_symmetric(image):
    diff = SimpleDiff(image)
    a, b = PixelCoord(1, 0), PixelCoord(0, 1)
    assert diff.diff_at(a, b) == pytest.approx(diff.diff_at(b, a))


def test_simple_diff_same_pixel_is_zero(image):
    diff = SimpleDiff(image)
    assert diff.diff_at(PixelCoord(1, 1), PixelCoord(1, 1)) == 0.0


def test_simple_threshold_is_strictly_below(image):
    diff = SimpleDiff(image)
    assert diff.satisfies_threshold(0.5, 1.0) is True
    assert diff.satisfies_threshold(1.0, 1.0) is False
    assert diff.satisfies_threshold(2.0, 1.0) is False


def test_default_visualize_is_empty(image):
    result = SimpleDiff(image).visualize()
    assert result.size == 0
    assert result.dtype == np.uint8


def test_abstract_diff_cannot_be_instantiated(image):
    with pytest.raises(TypeError):
        AbstractDiff(image)