"""Test package for geocluster.

This package contains:
- Unit tests (test_spatial.py, test_clustering.py, test_tiles.py, test_reducers.py,
  test_features.py, test_config_loader.py)
- HTTP tests for the tile server (test_actions.py)
- Test configuration (conftest.py)
"""
