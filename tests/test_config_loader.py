"""
Unit Tests for Cluster Options and Profiles (geocluster/clustering/config.py, geocluster/tools)
"""

import pytest

from geocluster.clustering import ClusterOptions, FieldReducer, MAX_SUPPORTED_ZOOM
from geocluster.clustering.reducers import CompositeReducer
from geocluster.tools import ConfigLoader, get_config, load_cluster_options


# ==============================================================================
# ClusterOptions
# ==============================================================================

class TestClusterOptions:

    def test_defaults(self):
        options = ClusterOptions()

        assert options.min_zoom == 0
        assert options.max_zoom == 16
        assert options.min_points == 2
        assert options.radius == 40
        assert options.extent == 512
        assert options.node_size == 64
        assert options.generate_id is False
        assert options.reduce is None
        assert options.stride == 6

    def test_stride_with_reduce(self):
        assert ClusterOptions(reduce=lambda a, b: None).stride == 7

    def test_map_defaults_to_identity(self):
        props = {"a": 1}
        assert ClusterOptions().map(props) is props

    @pytest.mark.parametrize("kwargs", [
        {"min_zoom": -1},
        {"max_zoom": MAX_SUPPORTED_ZOOM + 1},
        {"min_zoom": 5, "max_zoom": 4},
        {"min_points": 0},
        {"radius": 0},
        {"extent": -512},
    ])
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            ClusterOptions(**kwargs)

    def test_from_dict_bare_section(self):
        options = ClusterOptions.from_dict({"radius": 80, "max_zoom": 12})

        assert options.radius == 80
        assert options.max_zoom == 12
        assert options.reduce is None

    def test_from_dict_with_reducer(self):
        options = ClusterOptions.from_dict({
            "cluster": {"radius": 60},
            "reducer": {"sum": ["population"]},
        })

        assert options.radius == 60
        assert options.stride == 7
        assert options.map({"population": 3}) == {"population_sum": 3}

    def test_from_dict_rejects_unknown_keys(self):
        with pytest.raises(ValueError, match="radiuss"):
            ClusterOptions.from_dict({"cluster": {"radiuss": 10}})

    def test_from_dict_empty(self):
        assert ClusterOptions.from_dict(None) == ClusterOptions()

    def test_to_dict(self):
        data = ClusterOptions(radius=60).to_dict()

        assert data["radius"] == 60
        assert data["reduces"] is False
        assert "map" not in data


# ==============================================================================
# YAML Profiles
# ==============================================================================

class TestConfigLoader:

    def test_default_profile(self):
        profile = ConfigLoader.load_profile("default")

        assert profile["cluster"]["radius"] == 40
        assert profile["cluster"]["max_zoom"] == 16

    def test_missing_profile_lists_available(self):
        with pytest.raises(FileNotFoundError) as excinfo:
            ConfigLoader.load_profile("does-not-exist")

        message = str(excinfo.value)
        assert "does-not-exist" in message
        assert "default" in message
        assert "population" in message

    def test_env_profile(self, monkeypatch):
        monkeypatch.setenv("CLUSTER_PROFILE", "dense-markers")

        assert ConfigLoader.get_profile_from_env() == "dense-markers"
        assert get_config()["cluster"]["radius"] == 80

    def test_default_when_env_unset(self, monkeypatch):
        monkeypatch.delenv("CLUSTER_PROFILE", raising=False)

        assert get_config() == ConfigLoader.load_profile("default")

    def test_dense_markers_options(self):
        options = load_cluster_options("dense-markers")

        assert options.max_zoom == 14
        assert options.min_points == 3
        assert options.generate_id is True

    def test_population_options(self):
        options = load_cluster_options("population")

        assert options.radius == 60
        assert options.reduce is not None
        assert options.map({"population": 10}) == {"population_sum": 10, "population_max": 10}

    def test_population_profile_reducer_types(self):
        options = load_cluster_options("population")

        reducer = options.reduce.__self__
        assert isinstance(reducer, CompositeReducer)
        assert all(isinstance(r, FieldReducer) for r in reducer.reducers)

    def test_env_selects_options(self, monkeypatch):
        monkeypatch.setenv("CLUSTER_PROFILE", "population")

        assert load_cluster_options().radius == 60

    def test_custom_config_dir(self, monkeypatch, tmp_path):
        (tmp_path / "tiny.yaml").write_text("cluster:\n  radius: 5\n  max_zoom: 3\n")
        monkeypatch.setattr(ConfigLoader, "CONFIG_DIR", tmp_path)

        options = load_cluster_options("tiny")

        assert options.radius == 5
        assert options.max_zoom == 3
