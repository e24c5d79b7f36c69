"""Shared fixtures for the analysis tests."""

import pytest

from py_hexdom.core.hex_grid import GridConfig, GridShape, build_hex_grid


@pytest.fixture
def rect_grid():
    return build_hex_grid(GridConfig(d=1.0, shape=GridShape.RECTANGLE, rows=10, cols=10))


@pytest.fixture
def hex_grid():
    return build_hex_grid(GridConfig(d=1.0, shape=GridShape.HEXAGON, rings=6))


@pytest.fixture
def island_grid():
    return build_hex_grid(GridConfig(d=1.0, shape=GridShape.RECTANGLE, rows=12, cols=25))


@pytest.fixture
def island_centres(island_grid):
    # Row 5, six columns apart, at least three cells from every edge
    return [5 * 25 + col for col in (3, 9, 15, 21)]
