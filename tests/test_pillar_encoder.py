import numpy as np
import pytest
import torch

from point_pillars import PillarEncoder, create_pillar_encoder, create_pillars
from point_pillars.util import load_config


class TestPillarEncoder:

    def setup_method(self):
        self.encoder = PillarEncoder(
            x_step=0.5, y_step=0.5,
            x_min=0.0, x_max=20.0,
            y_min=-10.0, y_max=10.0,
            z_min=-3.0, z_max=1.0,
            max_points_per_pillar=16,
            max_pillars=200,
        )
        generator = torch.Generator().manual_seed(0)
        self.points = torch.rand(1000, 4, generator=generator)
        self.points[:, 0] *= 20.0
        self.points[:, 1] = self.points[:, 1] * 20.0 - 10.0
        self.points[:, 2] = self.points[:, 2] * 4.0 - 3.0

    def test_forward_shapes(self):
        pillars, indices = self.encoder(self.points)

        assert pillars.shape == (1, 200, 16, 9)
        assert pillars.dtype == torch.float32
        assert indices.shape == (1, 200, 3)
        assert indices.dtype == torch.int32
        assert self.encoder.output_shape() == tuple(pillars.shape)

    def test_matches_numpy_encoder(self):
        pillars, indices = self.encoder(self.points)
        expected_pillars, expected_indices = create_pillars(
            self.points.numpy(), 16, 200,
            x_step=0.5, y_step=0.5,
            x_min=0.0, x_max=20.0,
            y_min=-10.0, y_max=10.0,
            z_min=-3.0, z_max=1.0,
        )
        np.testing.assert_array_equal(pillars.numpy(), expected_pillars)
        np.testing.assert_array_equal(indices.numpy(), expected_indices)

    def test_grid_size(self):
        assert self.encoder.grid_size == [40, 40]

    def test_has_no_parameters(self):
        assert len(list(self.encoder.parameters())) == 0

    def test_rejects_bad_points(self):
        with pytest.raises(ValueError):
            self.encoder(torch.zeros(10, 3))

    def test_unknown_pillar_order(self):
        with pytest.raises(ValueError):
            PillarEncoder(0.5, 0.5, 0.0, 1.0, 0.0, 1.0, 0.0, 1.0, pillar_order="largest")


def test_create_pillar_encoder_from_default_config():
    config = load_config()
    encoder = create_pillar_encoder(config)

    assert encoder.max_pillars == config["pillars"]["max_pillars"]
    assert encoder.max_points_per_pillar == config["pillars"]["max_points_per_pillar"]
    assert encoder.x_step == pytest.approx(config["grid"]["x_step"])
    assert encoder.point_cloud_range[0] == pytest.approx(config["grid"]["x_min"])


def test_colored_points():
    encoder = create_pillar_encoder()
    points = torch.tensor([[10.0, 0.0, 0.0, 0.5, 0.2, 0.4, 0.6]])
    pillars, indices = encoder(points)

    assert pillars.shape[-1] == 12
    assert torch.allclose(pillars[0, 0, 0, 9:], torch.tensor([0.2, 0.4, 0.6]))
    assert indices[0, 0, 0] == 0
