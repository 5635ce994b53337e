"""
Unit Tests for Property Reducers (geocluster/clustering/reducers.py)
"""

import pytest

from geocluster.clustering import (
    ClusterIndex,
    ClusterOptions,
    CompositeReducer,
    FieldReducer,
    build_reducer,
)


WORLD = [-180, -90, 180, 90]


class TestFieldReducer:

    def test_default_output_name(self):
        reducer = FieldReducer("sum", ["population"])

        assert reducer.map({"population": 10, "name": "x"}) == {"population_sum": 10}

    def test_custom_output_name(self):
        reducer = FieldReducer("max", ["rating"], output_names={"rating": "best"})

        assert reducer.map({"rating": 4.5}) == {"best": 4.5}

    @pytest.mark.parametrize("operation,expected", [("sum", 6), ("min", 1), ("max", 3)])
    def test_operations(self, operation, expected):
        reducer = FieldReducer(operation, ["v"])
        key = f"v_{operation}"

        accumulated = reducer.map({"v": 1})
        for value in (3, 2):
            reducer.reduce(accumulated, reducer.map({"v": value}))

        assert accumulated[key] == expected

    def test_count_counts_present_values(self):
        reducer = FieldReducer("count", ["phone"])

        accumulated = reducer.map({"phone": "123"})
        reducer.reduce(accumulated, reducer.map({}))
        reducer.reduce(accumulated, reducer.map({"phone": "456"}))

        assert accumulated == {"phone_count": 2}

    def test_missing_values_are_skipped(self):
        reducer = FieldReducer("sum", ["population"])

        accumulated = reducer.map({})
        reducer.reduce(accumulated, reducer.map({"population": 5}))
        reducer.reduce(accumulated, reducer.map({"population": None}))

        assert accumulated == {"population_sum": 5}

    def test_unknown_operation(self):
        with pytest.raises(ValueError, match="Unknown reducer operation"):
            FieldReducer("median", ["v"])


class TestBuildReducer:

    def test_empty_config(self):
        assert build_reducer(None) is None
        assert build_reducer({}) is None

    def test_single_operation(self):
        reducer = build_reducer({"sum": ["population"]})

        assert isinstance(reducer, FieldReducer)
        assert reducer.output_names == {"population": "population_sum"}

    def test_string_field(self):
        assert build_reducer({"max": "rating"}).output_names == {"rating": "rating_max"}

    def test_mapping_of_output_names(self):
        reducer = build_reducer({"sum": {"population": "total"}, "max": ["population"]})

        assert isinstance(reducer, CompositeReducer)
        assert reducer.map({"population": 7}) == {"total": 7, "population_max": 7}


class TestReducerInIndex:

    def test_cluster_aggregates(self, city_points):
        reducer = build_reducer({"sum": ["population"], "max": ["population"]})
        index = ClusterIndex(ClusterOptions.from_reducer(reducer, radius=200)).load(city_points)

        (top,) = index.get_clusters(WORLD, 0)

        assert top["properties"]["population_sum"] == 883305 + 50000 + 8336817 + 120000
        assert top["properties"]["population_max"] == 8336817

    def test_intermediate_clusters_keep_their_aggregates(self, city_points):
        reducer = build_reducer({"sum": ["population"]})
        index = ClusterIndex(ClusterOptions.from_reducer(reducer, radius=200)).load(city_points)

        sums = sorted(f["properties"]["population_sum"] for f in index.get_clusters(WORLD, 2))

        assert sums == [933305, 8456817]

    def test_points_keep_original_properties(self, city_points):
        reducer = build_reducer({"sum": ["population"]})
        index = ClusterIndex(ClusterOptions.from_reducer(reducer)).load(city_points)

        points = index.get_clusters(WORLD, 17)

        assert all("population_sum" not in p["properties"] for p in points)

    def test_cluster_tile_tags_include_aggregates(self, city_points):
        reducer = build_reducer({"sum": ["population"]})
        index = ClusterIndex(ClusterOptions.from_reducer(reducer, radius=40)).load(city_points)

        (feature,) = index.get_tile(2, 0, 1).features

        assert feature.tags["population_sum"] == 933305
