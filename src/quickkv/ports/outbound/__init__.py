"""Outbound ports - interfaces for storage the store depends on."""

from quickkv.ports.outbound.record_log import RecordLog, SyncMode
from quickkv.ports.outbound.write_path import WritePath

__all__ = [
    "RecordLog",
    "SyncMode",
    "WritePath",
]
