import math

import numpy as np
import pytest

from depthcluster.angle_diff import AngleDiff, AngleDiffPrecomputed
from depthcluster.diff_base import SimpleDiff
from depthcluster.diff_factory import DiffType, build_diff
from depthcluster.line_dist_diff import LineDistDiff, LineDistDiffPrecomputed
from depthcluster.pixel import PixelCoord
from depthcluster.projection_params import Direction, ProjectionParams, SpanParams


@pytest.fixture
def params():
    p = ProjectionParams()
    p.set_span(SpanParams(-math.pi, math.pi, 8), Direction.HORIZONTAL)
    p.set_span(SpanParams(math.radians(10.0), math.radians(-10.0), 4), Direction.VERTICAL)
    return p


@pytest.fixture
def image():
    rng = np.random.default_rng(3)
    return rng.uniform(1.0, 10.0, size=(4, 8)).astype(np.float32)


def test_simple_diff_built(image, params):
    diff = build_diff(DiffType.SIMPLE, image, params)
    a, b = PixelCoord(0, 0), PixelCoord(0, 1)
    expected = abs(float(image[0, 0]) - float(image[0, 1]))
    assert diff.diff_at(a, b) == pytest.approx(expected)
    assert diff.satisfies_threshold(0.5, 1.0) is True
    assert diff.satisfies_threshold(1.5, 1.0) is False


def test_simple_diff_without_params(image):
    diff = build_diff(DiffType.SIMPLE, image)
    assert diff.diff_at(PixelCoord(1, 1), PixelCoord(1, 1)) == 0.0


@pytest.mark.parametrize(
    "diff_type, cls",
    [
        (DiffType.ANGLES, AngleDiff),
        (DiffType.ANGLES_PRECOMPUTED, AngleDiffPrecomputed),
        (DiffType.LINE_DIST, LineDistDiff),
        (DiffType.LINE_DIST_PRECOMPUTED, LineDistDiffPrecomputed),
    ],
)
def test_built_diff_matches_direct(diff_type, cls, image, params):
    built = build_diff(diff_type, image, params)
    direct = cls(image, params)
    pairs = [(PixelCoord(1, 2), PixelCoord(2, 2)), (PixelCoord(0, 3), PixelCoord(0, 4))]
    for start, end in pairs:
        assert built.diff_at(start, end) == pytest.approx(direct.diff_at(start, end))
    assert built.satisfies_threshold(0.3, 0.2) is True
    assert built.satisfies_threshold(0.1, 0.2) is False


def test_none_type_raises(image, params):
    with pytest.raises(ValueError):
        build_diff(DiffType.NONE, image, params)


@pytest.mark.parametrize(
    "diff_type",
    [DiffType.ANGLES, DiffType.ANGLES_PRECOMPUTED, DiffType.LINE_DIST, DiffType.LINE_DIST_PRECOMPUTED],
)
def test_missing_params_raises(diff_type, image):
    with pytest.raises(ValueError):
        build_diff(diff_type, image)


def test_simple_differs_from_angles_on_threshold_direction(image, params):
    simple = build_diff(DiffType.SIMPLE, image, params)
    angles = build_diff(DiffType.ANGLES, image, params)
    assert simple.satisfies_threshold(0.1, 0.2) != angles.satisfies_threshold(0.1, 0.2)