"""Tests for threshold contours and winner-take-all labelling."""

import numpy as np
import pytest

from py_hexdom.core.hex_grid import NO_NEIGHBOUR
from py_hexdom.core.shape_analysis import dirichlet_regions, get_contours


def brute_force_contour(grid, fields, i, threshold):
    arr = np.asarray(fields, dtype=float)
    lo, hi = arr.min(), arr.max()
    norm = (arr - lo) / (hi - lo) if hi > lo else np.zeros_like(arr)
    members = []
    for cell in grid:
        if norm[i, cell.vi] <= threshold:
            continue
        if cell.boundary_hex:
            members.append(cell.vi)
            continue
        if any(n != NO_NEIGHBOUR and norm[i, n] <= threshold for n in cell.neighbours):
            members.append(cell.vi)
    return members


class TestContours:
    """Test contour membership."""

    @pytest.mark.parametrize("threshold", [0.0, 0.3, 0.5, 0.8, 1.0])
    def test_matches_brute_force(self, rect_grid, threshold):
        """Test that contours agree with a direct neighbour scan."""
        rng = np.random.default_rng(42)
        fields = rng.normal(size=(3, rect_grid.num()))
        contours = get_contours(rect_grid, fields, threshold)

        assert len(contours) == 3
        for i, contour in enumerate(contours):
            assert [c.vi for c in contour] == brute_force_contour(rect_grid, fields, i, threshold)

    def test_disc_contour_is_ring(self, hex_grid):
        """Test that a radial bump gives a contour one cell thick just inside the cut-off."""
        r = np.hypot(hex_grid.d_x, hex_grid.d_y)
        field = np.maximum(0.0, 3.5 - r)
        contour = get_contours(hex_grid, [field], 0.0)[0]

        ids = {c.vi for c in contour}
        assert ids
        for vi in ids:
            assert r[vi] < 3.5
            assert any(n != NO_NEIGHBOUR and r[n] >= 3.5 for n in hex_grid[vi].neighbours)

    def test_global_normalisation(self, rect_grid):
        """Test that a field everywhere lower than another never reaches a high threshold."""
        low = np.linspace(0.0, 1.0, rect_grid.num())
        high = low + 10.0
        contours = get_contours(rect_grid, [low, high], 0.5)
        assert contours[0] == []
        assert len(contours[1]) > 0

    def test_constant_fields(self, rect_grid):
        """Test that constant fields have empty contours."""
        fields = np.full((2, rect_grid.num()), 3.0)
        assert get_contours(rect_grid, fields, 0.0) == [[], []]

    @pytest.mark.parametrize("threshold", [-0.01, 1.01])
    def test_threshold_out_of_range(self, rect_grid, threshold):
        """Test that thresholds outside [0, 1] are rejected."""
        with pytest.raises(ValueError):
            get_contours(rect_grid, [np.zeros(rect_grid.num())], threshold)

    def test_wrong_length(self, rect_grid):
        """Test that a field of the wrong length is rejected."""
        with pytest.raises(ValueError):
            get_contours(rect_grid, [np.zeros(rect_grid.num() - 1)], 0.5)


class TestRegions:
    """Test winner-take-all labelling."""

    def test_labels(self, rect_grid):
        """Test that each cell is labelled with the index of its strongest field."""
        n = rect_grid.num()
        fields = np.zeros((4, n))
        winners = np.arange(n) % 4
        fields[winners, np.arange(n)] = 1.0

        f = dirichlet_regions(rect_grid, fields)
        np.testing.assert_allclose(f, winners / 4.0)

    def test_labels_in_unit_interval(self, hex_grid):
        """Test that labels are multiples of 1/N in [0, 1)."""
        rng = np.random.default_rng(7)
        f = dirichlet_regions(hex_grid, rng.random((5, hex_grid.num())))
        assert f.shape == (hex_grid.num(),)
        assert np.all(f >= 0.0) and np.all(f < 1.0)
        assert set(np.unique(f)) <= {k / 5.0 for k in range(5)}

    def test_ties_go_to_first_field(self, rect_grid):
        """Test that ties are won by the lowest field index."""
        fields = np.ones((3, rect_grid.num()))
        fields[2, :10] = 2.0
        f = dirichlet_regions(rect_grid, fields)
        assert np.all(f[:10] == 2.0 / 3.0)
        assert np.all(f[10:] == 0.0)

    def test_single_field(self, rect_grid):
        """Test that a single field labels every cell 0."""
        f = dirichlet_regions(rect_grid, [np.arange(rect_grid.num())])
        assert np.all(f == 0.0)

    def test_empty_fields(self, rect_grid):
        """Test that an empty field list is rejected."""
        with pytest.raises(ValueError):
            dirichlet_regions(rect_grid, [])
