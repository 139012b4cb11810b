"""Outbound adapters - record log and write path implementations."""

from quickkv.adapters.outbound.direct_write_path import DirectWritePath
from quickkv.adapters.outbound.file_record_log import FileRecordLog
from quickkv.adapters.outbound.memory_record_log import MemoryRecordLog

__all__ = [
    "FileRecordLog",
    "MemoryRecordLog",
    "DirectWritePath",
]
