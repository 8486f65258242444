import numpy as np
import pytest

from point_pillars.point_cloud_encoding import bin_points, order_pillars, validate_points

GRID = dict(
    x_step=1.0, y_step=1.0,
    x_min=0.0, x_max=10.0,
    y_min=0.0, y_max=10.0,
    z_min=-2.0, z_max=2.0,
)


def test_groups_points_by_cell_in_first_seen_order():
    points = np.array([
        [2.5, 3.5, 0.0, 0.1],
        [0.5, 0.5, 0.0, 0.2],
        [2.1, 3.9, 0.0, 0.3],
    ], dtype=np.float32)

    pillars = bin_points(points, **GRID)

    assert list(pillars) == [(2, 3), (0, 0)]
    np.testing.assert_allclose(pillars[(2, 3)].points[:, 3], [0.1, 0.3], rtol=1e-6)
    assert pillars[(2, 3)].num_points == 2
    assert pillars[(0, 0)].first_seen == 1


def test_half_open_bounds():
    points = np.array([
        [0.0, 0.0, -2.0, 0.5],   # on the lower bounds: kept
        [10.0, 5.0, 0.0, 0.5],   # x == x_max
        [5.0, 10.0, 0.0, 0.5],   # y == y_max
        [5.0, 5.0, 2.0, 0.5],    # z == z_max
        [-0.1, 5.0, 0.0, 0.5],
        [5.0, 5.0, -2.5, 0.5],
    ], dtype=np.float32)

    pillars = bin_points(points, **GRID)

    assert list(pillars) == [(0, 0)]
    assert pillars[(0, 0)].num_points == 1


def test_min_distance_filter():
    points = np.array([
        [0.5, 0.5, 0.0, 0.5],
        [5.5, 5.5, 0.0, 0.5],
    ], dtype=np.float32)

    assert len(bin_points(points, **GRID)) == 2
    assert list(bin_points(points, min_distance=2.0, **GRID)) == [(5, 5)]


def test_intensity_is_clamped():
    points = np.array([
        [1.5, 1.5, 0.0, 2.5],
        [1.5, 1.5, 0.0, -1.0],
    ], dtype=np.float32)

    pillar = bin_points(points, **GRID)[(1, 1)]
    np.testing.assert_array_equal(pillar.points[:, 3], [1.0, 0.0])


def test_color_columns_are_kept():
    points = np.array([[1.5, 1.5, 0.0, 0.5, 10.0, 20.0, 30.0]], dtype=np.float32)
    pillar = bin_points(points, **GRID)[(1, 1)]
    np.testing.assert_array_equal(pillar.points[0, 4:], [10.0, 20.0, 30.0])


def test_empty_input():
    assert bin_points(np.zeros((0, 4), dtype=np.float32), **GRID) == {}


def test_centroid_offsets_sum_to_zero():
    points = np.array([
        [1.1, 1.2, 0.1, 0.5],
        [1.9, 1.3, -0.3, 0.5],
        [1.5, 1.8, 0.7, 0.5],
    ], dtype=np.float32)

    pillar = bin_points(points, **GRID)[(1, 1)]

    np.testing.assert_allclose(pillar.centroid(), [1.5, 1.4333333, 0.1666667], atol=1e-5)
    np.testing.assert_allclose(pillar.centroid_offsets().sum(axis=0), 0.0, atol=1e-5)


@pytest.mark.parametrize("shape", [(5,), (5, 3), (5, 5), (2, 4, 1)])
def test_validate_points_rejects_bad_shapes(shape):
    with pytest.raises(ValueError):
        validate_points(np.zeros(shape, dtype=np.float32))


class TestOrderPillars:

    def setup_method(self):
        points = np.array([
            [5.5, 5.5, 0.0, 0.5],
            [1.5, 1.5, 0.0, 0.5],
            [1.5, 1.6, 0.0, 0.5],
            [3.5, 0.5, 0.0, 0.5],
        ], dtype=np.float32)
        self.pillars = bin_points(points, **GRID)

    def test_first_seen(self):
        assert [p.key for p in order_pillars(self.pillars, "first_seen")] == [(5, 5), (1, 1), (3, 0)]

    def test_index(self):
        assert [p.key for p in order_pillars(self.pillars, "index")] == [(1, 1), (3, 0), (5, 5)]

    def test_occupancy(self):
        assert [p.key for p in order_pillars(self.pillars, "occupancy")] == [(1, 1), (5, 5), (3, 0)]

    def test_unknown_policy(self):
        with pytest.raises(ValueError):
            order_pillars(self.pillars, "random")
