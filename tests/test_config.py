import numpy as np
import pytest
import yaml

from point_pillars import TargetEncoder
from point_pillars.target_encoding import anchor_arrays_from_config
from point_pillars.util import DEFAULT_CONFIG_PATH, get_section, grid_kwargs, load_config


def write_config(tmp_path, config):
    path = tmp_path / "config.yaml"
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(config, f)
    return path


def test_default_config_loads():
    config = load_config()
    assert DEFAULT_CONFIG_PATH.exists()
    for section in ("grid", "pillars", "targets", "anchors"):
        assert section in config


def test_grid_kwargs():
    kwargs = grid_kwargs(load_config())
    assert set(kwargs) == {"x_min", "x_max", "y_min", "y_max", "z_min", "z_max", "x_step", "y_step"}
    assert all(isinstance(value, float) for value in kwargs.values())


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.yaml")


def test_missing_section(tmp_path):
    config = load_config()
    del config["anchors"]
    with pytest.raises(KeyError):
        load_config(write_config(tmp_path, config))


def test_missing_grid_key(tmp_path):
    config = load_config()
    del config["grid"]["x_step"]
    with pytest.raises(KeyError):
        load_config(write_config(tmp_path, config))


def test_invalid_grid(tmp_path):
    config = load_config()
    config["grid"]["x_max"] = config["grid"]["x_min"]
    with pytest.raises(ValueError):
        load_config(write_config(tmp_path, config))


def test_get_section():
    with pytest.raises(KeyError):
        get_section({}, "grid")


def test_anchor_arrays_from_config():
    dimensions, z_heights, yaws = anchor_arrays_from_config(load_config())
    assert dimensions.shape == (6, 3)
    assert z_heights.shape == (6,)
    assert yaws.shape == (6,)
    assert dimensions.dtype == np.float32


class TestTargetEncoder:

    def setup_method(self):
        self.encoder = TargetEncoder(load_config())

    def test_output_shape(self):
        assert self.encoder.nb_anchors == 6
        x_size, y_size = self.encoder.grid_size
        assert self.encoder.output_shape(2) == (2, x_size, y_size, 6, 10)

    def test_encode_car(self):
        positions = np.array([[20.0, 0.0, -1.0]], dtype=np.float32)
        dimensions = np.array([[3.9, 1.6, 1.56]], dtype=np.float32)
        yaws = np.array([0.0], dtype=np.float32)
        class_ids = np.array([1], dtype=np.int32)

        result = self.encoder.encode(positions, dimensions, yaws, class_ids)

        assert result.tensor.shape == self.encoder.output_shape(1)
        assert result.object_count == 1
        positives = result.tensor[0, ..., 0] == 1
        assert positives.any()
        # Car anchors only
        assert not positives[..., 2:].any()
        assert (result.tensor[0, ..., 9][positives] == 1).all()

    def test_call_returns_tensor(self):
        tensor = self.encoder(
            np.array([[20.0, 0.0, -1.0]], dtype=np.float32),
            np.array([[3.9, 1.6, 1.56]], dtype=np.float32),
            np.array([0.0], dtype=np.float32),
            np.array([1], dtype=np.int32),
        )
        assert isinstance(tensor, np.ndarray)

    def test_rejects_inverted_thresholds(self):
        config = load_config()
        config["targets"]["negative_threshold"] = 0.9
        with pytest.raises(ValueError):
            TargetEncoder(config)
