"""
Persistence of extracted domains.
"""

from .hdf5 import Hdf5DomainStore, VertexRecordSink

__all__ = ['Hdf5DomainStore', 'VertexRecordSink']
