"""Tests for HDF5 domain persistence."""

import h5py
import numpy as np
import pytest

from py_hexdom.core.shape_analysis import dirichlet_save_vertex_set, dirichlet_vertices
from py_hexdom.export.hdf5 import Hdf5DomainStore

from scenarios import P, cluster_field, island_field


@pytest.fixture
def cluster_domain(hex_grid):
    return dirichlet_vertices(hex_grid, cluster_field(hex_grid)).domains[0]


class TestHdf5DomainStore:
    """Test writing and reading domains."""

    def test_write_and_read(self, tmp_path, cluster_domain):
        """Test that a domain written to the store reads back unchanged."""
        path = tmp_path / "domains.h5"
        with Hdf5DomainStore(path) as store:
            store.write_domain("cluster", cluster_domain)

        with Hdf5DomainStore(path, mode="r") as store:
            record = store.read_domain("cluster")

        assert record["identity"] == P
        np.testing.assert_allclose(record["v"], cluster_domain.vertex_coords())
        np.testing.assert_allclose(record["path"], cluster_domain.polygon())
        assert record["v"].shape == (6, 2)
        assert record["neighb"].shape == (6, 2)
        np.testing.assert_array_equal(record["f"], np.full(6, P))

    def test_file_layout(self, tmp_path, cluster_domain):
        """Test that each domain is a group of datasets with an identity attribute."""
        path = tmp_path / "domains.h5"
        with Hdf5DomainStore(path) as store:
            store.write_domain("run1/cluster", cluster_domain)

        with h5py.File(path, "r") as f:
            group = f["run1/cluster"]
            assert set(group.keys()) == {"v", "f", "neighb", "path"}
            assert group.attrs["identity"] == P

    def test_rewrite_replaces(self, tmp_path, hex_grid, cluster_domain):
        """Test that writing an existing name replaces the group."""
        island = dirichlet_vertices(hex_grid, island_field(hex_grid, [hex_grid.index_of(0, 0)]))
        small = next(d for d in island.domains if d.identity == P)

        path = tmp_path / "domains.h5"
        with Hdf5DomainStore(path) as store:
            store.write_domain("d", cluster_domain)
            store.write_domain("d", small)
            record = store.read_domain("d")

        assert record["path"].shape == (6, 2)

    def test_save_domains(self, tmp_path, island_grid, island_centres):
        """Test that a set of domains is saved under numbered names."""
        result = dirichlet_vertices(island_grid, island_field(island_grid, island_centres))
        path = tmp_path / "islands.h5"
        with Hdf5DomainStore(path) as store:
            names = store.save_domains("islands", result.domains)

        assert names == [f"islands/domain_{k}" for k in range(len(result.domains))]
        with h5py.File(path, "r") as f:
            assert len(f["islands"]) == len(result.domains)

    def test_save_vertex_set(self, tmp_path, cluster_domain):
        """Test saving a domain through dirichlet_save_vertex_set."""
        path = tmp_path / "domains.h5"
        with Hdf5DomainStore(path) as store:
            dirichlet_save_vertex_set(store, "saved", cluster_domain)
            assert "saved" in store.file

    def test_missing_domain(self, tmp_path):
        """Test that reading an unknown name raises KeyError."""
        with Hdf5DomainStore(tmp_path / "empty.h5") as store:
            with pytest.raises(KeyError):
                store.read_domain("nothing")

    def test_closed_store(self, tmp_path, cluster_domain):
        """Test that writing outside a context raises RuntimeError."""
        store = Hdf5DomainStore(tmp_path / "closed.h5")
        with pytest.raises(RuntimeError):
            store.write_domain("d", cluster_domain)


class RecordingSink:
    def __init__(self):
        self.written = {}

    def write_domain(self, name, domain):
        self.written[name] = domain


def test_save_vertex_set_any_sink(cluster_domain):
    """Test that any object with write_domain can receive a domain."""
    sink = RecordingSink()
    dirichlet_save_vertex_set(sink, "first", cluster_domain)
    assert sink.written == {"first": cluster_domain}
