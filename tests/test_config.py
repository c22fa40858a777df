from __future__ import annotations

import json

import numpy as np
import pytest

from snfclust.config import PAMConfig, PipelineConfig, SNFConfig, load_config, save_config
from snfclust.exceptions import ConfigurationError


def test_defaults():
    config = PipelineConfig(pam=PAMConfig(n_clusters=3))

    assert config.snf == SNFConfig(n_neighbors=20, mu=0.5, n_iter=20)
    assert config.snf.tol is None
    assert config.pam.max_swaps == 100
    assert config.standardize


@pytest.mark.parametrize(
    "kwargs",
    [
        {"n_neighbors": 0},
        {"n_neighbors": 2.5},
        {"mu": 0.0},
        {"mu": -0.3},
        {"n_iter": 0},
        {"tol": -1.0},
    ],
)
def test_invalid_snf_parameters(kwargs):
    with pytest.raises(ConfigurationError):
        SNFConfig(**kwargs)


def test_invalid_pam_parameters():
    with pytest.raises(ConfigurationError):
        PAMConfig(n_clusters=0)
    with pytest.raises(ConfigurationError):
        PAMConfig(n_clusters=True)
    with pytest.raises(ConfigurationError):
        PAMConfig(n_clusters=2, max_swaps=-1)
    assert PAMConfig(n_clusters=2, max_swaps=0).max_swaps == 0


def test_configuration_errors_are_value_errors():
    with pytest.raises(ValueError):
        SNFConfig(mu=-1.0)


def test_save_and_load(tmp_path):
    config = PipelineConfig(
        pam=PAMConfig(n_clusters=4, max_swaps=50),
        snf=SNFConfig(n_neighbors=12, mu=0.4, n_iter=15, tol=1e-6),
        standardize=False,
    )
    path = save_config(config, tmp_path / "run" / "config.json")

    assert json.loads(path.read_text())["pam"]["n_clusters"] == 4
    assert load_config(path) == config


def test_from_dict_requires_pam_section():
    with pytest.raises(ConfigurationError):
        PipelineConfig.from_dict({"snf": {"n_neighbors": 10}})


def test_from_dict_rejects_unknown_keys():
    with pytest.raises(ConfigurationError):
        PipelineConfig.from_dict({"pam": {"n_clusters": 2, "metric": "l1"}})


def test_load_config_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.json")

    broken = tmp_path / "broken.json"
    broken.write_text("{not json")
    with pytest.raises(ConfigurationError):
        load_config(broken)


@pytest.mark.parametrize("value", ["false", 0, None])
def test_standardize_must_be_boolean(value):
    with pytest.raises(ConfigurationError):
        PipelineConfig.from_dict({"pam": {"n_clusters": 2}, "standardize": value})


def test_standardize_false_round_trips(tmp_path):
    config = PipelineConfig.from_dict({"pam": {"n_clusters": 2}, "standardize": False})
    assert config.standardize is False
    assert load_config(save_config(config, tmp_path / "config.json")).standardize is False


def test_numpy_integers_are_accepted(tmp_path):
    config = PipelineConfig(
        pam=PAMConfig(n_clusters=np.int64(3), max_swaps=np.int32(10)),
        snf=SNFConfig(n_neighbors=np.int64(8), mu=np.float32(0.5), n_iter=np.int64(4)),
    )

    assert config.pam.n_clusters == 3
    assert type(config.snf.n_neighbors) is int
    assert load_config(save_config(config, tmp_path / "config.json")) == config
