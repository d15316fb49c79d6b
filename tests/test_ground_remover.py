import math

import numpy as np
import pytest

from depthcluster.cloud_projection import SphericalProjection
from depthcluster.ground_remover import DepthGroundRemover
from depthcluster.projection_params import Direction, ProjectionParams, SpanParams

ROWS = 8
COLS = 12
HEIGHT = 1.7
WALL = 4.0


def make_params():
    params = ProjectionParams()
    params.set_span(
        SpanParams(math.radians(-180.0), math.radians(180.0), COLS), Direction.HORIZONTAL
    )
    params.set_span(SpanParams(math.radians(-5.0), math.radians(-25.0), ROWS), Direction.VERTICAL)
    return params


def ground_image(params):
    depths = [HEIGHT / abs(math.sin(angle)) for angle in params.row_angles]
    return np.tile(np.array(depths, dtype=np.float32)[:, None], (1, COLS))


def wall_image(params):
    depths = [WALL / math.cos(angle) for angle in params.row_angles]
    return np.tile(np.array(depths, dtype=np.float32)[:, None], (1, COLS))


@pytest.fixture
def remover():
    return DepthGroundRemover(make_params(), math.radians(5.0), 5)


class Recorder:
    def __init__(self):
        self.received = []

    def on_new_object_received(self, projection, sender_id):
        self.received.append((projection, sender_id))


def test_savitsky_golay_kernel_five(remover):
    kernel = remover.savitsky_golay_kernel(5)
    assert kernel.shape == (5, 1)
    expected = np.array([-3, 12, 17, 12, -3], dtype=np.float32) / 35.0
    np.testing.assert_allclose(kernel[:, 0], expected, rtol=1e-6)


@pytest.mark.parametrize("size", [5, 7, 9, 11])
def test_savitsky_golay_kernels_sum_to_one_and_are_symmetric(remover, size):
    kernel = remover.savitsky_golay_kernel(size)[:, 0]
    assert kernel.sum() == pytest.approx(1.0, abs=1e-5)
    np.testing.assert_array_equal(kernel, kernel[::-1])


@pytest.mark.parametrize("size", [4, 6])
def test_savitsky_golay_even_window_rejected(remover, size):
    with pytest.raises(ValueError, match="odd"):
        remover.savitsky_golay_kernel(size)


@pytest.mark.parametrize("size", [3, 13])
def test_savitsky_golay_unsupported_window_rejected(remover, size):
    with pytest.raises(ValueError, match="bad window size"):
        remover.savitsky_golay_kernel(size)


def test_uniform_kernel(remover):
    kernel = remover.uniform_kernel(5)[:, 0]
    np.testing.assert_array_equal(kernel, np.array([0.5, 0, 0, 0, 0.5], dtype=np.float32))
    with pytest.raises(ValueError):
        remover.uniform_kernel(4)


def test_smoothing_keeps_constant_image(remover):
    image = np.full((ROWS, COLS), 0.25, dtype=np.float32)
    smoothed = remover.apply_savitsky_golay_smoothing(image, 7)
    assert smoothed.shape == image.shape
    np.testing.assert_allclose(smoothed, image, atol=1e-6)


def test_zero_out_ground_keeps_steep_pixels(remover):
    image = np.arange(1, 7, dtype=np.float32).reshape(2, 3)
    angles = np.array([[0.1, 0.9, 0.2], [1.0, 0.0, 0.6]], dtype=np.float32)
    result = remover.zero_out_ground(image, angles, 0.5)
    np.testing.assert_array_equal(result[angles > 0.5], image[angles > 0.5])
    assert np.all(result[angles <= 0.5] == 0)


def test_angle_image_of_flat_ground_is_flat(remover):
    params = remover.params
    angles = remover.create_angle_image(ground_image(params))
    assert np.all(angles[0] == 0)
    np.testing.assert_allclose(angles, 0.0, atol=1e-4)


def test_angle_image_of_wall_is_vertical(remover):
    angles = remover.create_angle_image(wall_image(remover.params))
    assert np.all(angles[0] == 0)
    np.testing.assert_allclose(angles[1:], math.pi / 2, atol=1e-4)


def test_angle_image_rejects_wrong_row_count(remover):
    with pytest.raises(ValueError):
        remover.create_angle_image(np.ones((ROWS + 1, COLS), dtype=np.float32))


def test_line_angle(remover):
    wall = wall_image(remover.params)
    assert remover.line_angle(wall, 3, 4, 5) == pytest.approx(math.pi / 2, abs=1e-4)
    ground = ground_image(remover.params)
    assert remover.line_angle(ground, 0, 2, 3) == pytest.approx(0.0, abs=1e-4)
    ground[3, 0] = 0.0
    assert remover.line_angle(ground, 0, 2, 3) == 0.0


def test_repair_depth_fills_gap_between_close_readings(remover):
    image = np.array([[2.0], [0.0], [2.0]], dtype=np.float32)
    repaired = remover.repair_depth(image, 5, 1.0)
    assert repaired[1, 0] == pytest.approx(2.0)
    assert image[1, 0] == 0.0


def test_repair_depth_leaves_gap_between_far_readings(remover):
    image = np.array([[2.0], [0.0], [10.0]], dtype=np.float32)
    repaired = remover.repair_depth(image, 5, 1.0)
    np.testing.assert_array_equal(repaired, image)


def test_repair_depth_filtered(remover):
    column = np.array([3.0, 3.0, 0.0, 3.0, 3.0], dtype=np.float32)
    image = np.tile(column[:, None], (1, 4))
    repaired = remover.repair_depth_filtered(image)
    np.testing.assert_allclose(repaired[2], 3.0)
    np.testing.assert_array_equal(repaired[image > 0], image[image > 0])


def test_remove_ground_on_flat_ground_removes_everything(remover):
    result = remover.remove_ground(ground_image(remover.params))
    assert result.shape == (ROWS, COLS)
    assert np.all(result == 0)


def test_remove_ground_keeps_wall(remover):
    wall = wall_image(remover.params)
    result = remover.remove_ground(wall)
    np.testing.assert_array_equal(result, wall)


def test_remove_ground_rejects_even_window():
    remover = DepthGroundRemover(make_params(), math.radians(5.0), 6)
    with pytest.raises(ValueError):
        remover.remove_ground(ground_image(make_params()))


def test_on_new_object_received_shares_ground_free_copy(remover):
    projection = SphericalProjection(remover.params)
    original = ground_image(remover.params)
    projection.depth_image = original.copy()
    recorder = Recorder()
    remover.add_client(recorder)
    remover.on_new_object_received(projection, 0)
    assert len(recorder.received) == 1
    received, sender_id = recorder.received[0]
    assert sender_id == remover.sender_id
    assert np.all(received.depth_image == 0)
    np.testing.assert_array_equal(projection.depth_image, original)
    assert remover.processed == 1


def test_on_new_object_received_without_projection(remover):
    recorder = Recorder()
    remover.add_client(recorder)
    remover.on_new_object_received(None, 0)
    assert recorder.received == []
    assert remover.processed == 0