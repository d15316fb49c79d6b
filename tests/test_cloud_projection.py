import math

import numpy as np
import pytest

from depthcluster.cloud_projection import RichPoint, RingProjection, SphericalProjection
from depthcluster.projection_params import Direction, ProjectionParams, SpanParams


@pytest.fixture
def params():
    p = ProjectionParams()
    p.set_span(SpanParams(-math.pi, math.pi, 8), Direction.HORIZONTAL)
    p.set_span(SpanParams(math.radians(-20.0), math.radians(20.0), 4), Direction.VERTICAL)
    return p


def test_rich_point_distances():
    point = RichPoint(3.0, 4.0, 12.0)
    assert point.dist_to_sensor_2d() == pytest.approx(5.0)
    assert point.dist_to_sensor_3d() == pytest.approx(13.0)


def test_invalid_params_rejected():
    with pytest.raises(ValueError):
        SphericalProjection(ProjectionParams())


def test_depth_image_starts_empty(params):
    proj = SphericalProjection(params)
    assert proj.depth_image.shape == (params.rows, params.cols)
    assert proj.depth_image.dtype == np.float32
    assert not proj.depth_image.any()
    assert proj.size == params.rows * params.cols


def test_spherical_projects_point(params):
    proj = SphericalProjection(params)
    proj.init_from_points([RichPoint(2.0, 0.0, 0.0)])
    row = params.row_from_angle(0.0)
    col = params.col_from_angle(0.0)
    assert proj.depth_image[row, col] == pytest.approx(2.0)
    assert proj.at(row, col) == [0]
    assert np.count_nonzero(proj.depth_image) == 1


def test_spherical_keeps_larger_depth_and_all_indices(params):
    proj = SphericalProjection(params)
    proj.init_from_points([RichPoint(3.0, 0.0, 0.0), RichPoint(2.0, 0.0, 0.0)])
    row = params.row_from_angle(0.0)
    col = params.col_from_angle(0.0)
    assert proj.depth_image[row, col] == pytest.approx(3.0)
    assert proj.at(row, col) == [0, 1]


def test_points_at_sensor_are_skipped(params):
    proj = SphericalProjection(params)
    proj.init_from_points([RichPoint(0.001, 0.0, 0.0)])
    assert not proj.depth_image.any()
    assert all(not cell for column in proj.matrix for cell in column)


def test_empty_cloud_rejected(params):
    proj = SphericalProjection(params)
    with pytest.raises(ValueError):
        proj.init_from_points([])


def test_unproject_round_trip(params):
    proj = SphericalProjection(params)
    proj.init_from_points([RichPoint(2.0, 0.0, 0.0)])
    row = params.row_from_angle(0.0)
    col = params.col_from_angle(0.0)
    point = proj.unproject_point(proj.depth_image, row, col)
    assert point.x == pytest.approx(2.0, abs=1e-5)
    assert point.y == pytest.approx(0.0, abs=1e-5)
    assert point.z == pytest.approx(0.0, abs=1e-5)


def test_corrections_applied(params):
    proj = SphericalProjection(params)
    proj.set_corrections([0.5] * params.rows)
    proj.init_from_points([RichPoint(2.0, 0.0, 0.0)])
    row = params.row_from_angle(0.0)
    col = params.col_from_angle(0.0)
    assert proj.depth_image[row, col] == pytest.approx(2.0 - 0.5)
    assert np.count_nonzero(proj.depth_image) == 1


def test_corrections_of_wrong_length_ignored(params):
    proj = SphericalProjection(params)
    proj.set_corrections([0.5])
    proj.init_from_points([RichPoint(2.0, 0.0, 0.0)])
    assert proj.depth_image.max() == pytest.approx(2.0)


def test_ring_projection_uses_ring(params):
    proj = RingProjection(params)
    proj.init_from_points([RichPoint(0.0, 2.0, 9.0, ring=1)])
    col = params.col_from_angle(math.pi / 2)
    assert proj.depth_image[1, col] == pytest.approx(2.0)
    assert proj.at(1, col) == [0]


def test_ring_unproject_sets_ring(params):
    proj = RingProjection(params)
    proj.init_from_points([RichPoint(0.0, 2.0, 0.0, ring=3)])
    col = params.col_from_angle(math.pi / 2)
    point = proj.unproject_point(proj.depth_image, 3, col)
    assert point.ring == 3


def test_clone_is_independent(params):
    proj = SphericalProjection(params)
    proj.init_from_points([RichPoint(2.0, 0.0, 0.0)])
    copy = proj.clone()
    copy.depth_image[:] = 0.0
    copy.at(0, 0).append(7)
    assert isinstance(copy, SphericalProjection)
    assert proj.depth_image.max() == pytest.approx(2.0)
    assert proj.at(0, 0) == []


def test_check_image_wrong_type(params):
    proj = SphericalProjection(params)
    with pytest.raises(TypeError):
        proj.check_image_and_storage(np.zeros((params.rows, params.cols), dtype=np.float64))


def test_check_image_wrong_shape(params):
    proj = SphericalProjection(params)
    with pytest.raises(ValueError):
        proj.check_image_and_storage(np.zeros((params.rows + 1, params.cols), dtype=np.float32))