"""
HDF5 persistence for Dirichlet domains.

Each domain is written as a group holding its identity as an attribute
and one dataset per vertex property:

    <name>/v        (n, 2) vertex coordinates
    <name>/f        (n,)   domain identity per vertex
    <name>/neighb   (n, 2) neighbour identity pairs
    <name>/path     (m, 2) perimeter corners in order
"""

from pathlib import Path
from typing import Dict, List, Protocol, Union

import h5py
import numpy as np
import structlog

from ..core.shape_analysis import DirichDomain

logger = structlog.get_logger()


class VertexRecordSink(Protocol):
    """Anything that can store a named domain."""

    def write_domain(self, name: str, domain: DirichDomain) -> None:
        ...


class Hdf5DomainStore:
    """
    Write and read domains in an HDF5 file.

    Use as a context manager so the file is closed once writing is done.
    """

    def __init__(self, path: Union[str, Path], mode: str = "a"):
        self.path = Path(path)
        self.mode = mode
        self._file = None

    def __enter__(self) -> "Hdf5DomainStore":
        self._file = h5py.File(self.path, self.mode)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None

    @property
    def file(self) -> h5py.File:
        if self._file is None:
            raise RuntimeError(f"{self.path} is not open")
        return self._file

    def write_domain(self, name: str, domain: DirichDomain) -> None:
        """Write one domain under name, replacing anything already there."""
        if name in self.file:
            del self.file[name]
        group = self.file.create_group(name)
        group.attrs["identity"] = domain.identity

        n = len(domain.vertices)
        group.create_dataset("v", data=domain.vertex_coords().reshape(n, 2))
        group.create_dataset("f", data=np.array([vtx.f for vtx in domain.vertices], dtype=float))
        group.create_dataset("neighb", data=np.array([vtx.neighb for vtx in domain.vertices],
                                                     dtype=float).reshape(n, 2))
        group.create_dataset("path", data=domain.polygon().reshape(-1, 2))
        logger.debug("Domain written", path=str(self.path), name=name, vertices=n)

    def save_domains(self, prefix: str, domains: List[DirichDomain]) -> List[str]:
        """Write every domain as <prefix>/domain_<k>. Returns the names used."""
        names = []
        for k, domain in enumerate(domains):
            name = f"{prefix}/domain_{k}"
            self.write_domain(name, domain)
            names.append(name)
        logger.info("Domains saved", path=str(self.path), prefix=prefix, count=len(names))
        return names

    def read_domain(self, name: str) -> Dict[str, np.ndarray]:
        """Read back a domain written by write_domain."""
        if name not in self.file:
            raise KeyError(f"No domain named {name} in {self.path}")
        group = self.file[name]
        record = {key: group[key][:] for key in ("v", "f", "neighb", "path")}
        record["identity"] = float(group.attrs["identity"])
        return record
