"""File-based Record Log implementation.

This adapter implements the RecordLog protocol with a single append-only
file. Records are never rewritten in place; a key written twice occupies
two frames and the later one wins on replay.

File Format:
    - File Header (12 bytes): magic (8) + version (4)
    - Record Frames: [length(4) + record_bytes + CRC32(4)] ...

Replay Policy:
    - Clean end of file: replay ends.
    - Torn tail (the last frame is cut short, or a zero length marks a
      zero-filled tail): replay ends, a warning is logged and the file is
      truncated back to the end of the last complete frame, so new
      appends stay aligned. A zero length followed by non-zero bytes is
      logged at error level since valid frames may be lost with it.
    - A complete frame with a CRC mismatch or an undecodable body: the
      open fails with CodecError. Nothing after it is trusted.

Thread Safety:
    None. The storage engine serializes all access.

References:
    - record.py for the record body layout
"""

from __future__ import annotations

import os
import struct
import zlib
from pathlib import Path
from typing import Any, BinaryIO, Iterator

from quickkv.domain.entities import Record
from quickkv.domain.exceptions import CodecError, StorageIOError
from quickkv.infrastructure.logging import build_logger
from quickkv.infrastructure.metrics import MetricsRegistry
from quickkv.ports.outbound.record_log import SyncMode


# File header format
FILE_MAGIC = b"QUICKKV\x00"
FILE_VERSION = 1
FILE_HEADER_FORMAT = ">8sI"  # magic, version
FILE_HEADER_SIZE = struct.calcsize(FILE_HEADER_FORMAT)

# Record wrapper format: length(4) + data + crc32(4)
RECORD_LENGTH_FORMAT = ">I"
RECORD_CRC_FORMAT = ">I"
RECORD_OVERHEAD = 8  # 4 bytes length + 4 bytes CRC


def frame_record(record: Record) -> bytes:
    """Wrap a record body in its length prefix and CRC32 suffix."""
    record_bytes = record.to_bytes()
    crc = zlib.crc32(record_bytes) & 0xFFFFFFFF
    return (
        struct.pack(RECORD_LENGTH_FORMAT, len(record_bytes))
        + record_bytes
        + struct.pack(RECORD_CRC_FORMAT, crc)
    )


class FileRecordLog:
    """File-based implementation of the RecordLog protocol.

    Opening the log creates the file (and its parent directories) when it
    is missing and validates the header when it exists. Records are read
    back with replay().

    Attributes:
        file_path: Path to the log file.
        sync_mode: How sync() pushes data to disk.
    """

    def __init__(
        self,
        file_path: str | Path,
        sync_mode: SyncMode = SyncMode.FSYNC,
        logger: Any | None = None,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        """Open or create the log file.

        Args:
            file_path: Path to the log file.
            sync_mode: Sync mode for durability.
            logger: Bound structlog logger (silent if omitted).
            metrics: Metrics registry for torn-tail accounting.

        Raises:
            StorageIOError: If the file cannot be opened or created.
            CodecError: If the file exists but is not a record log.
        """
        self._file_path = Path(file_path)
        self._sync_mode = sync_mode
        self._logger = logger if logger is not None else build_logger(enabled=False)
        self._metrics = metrics
        self._file: BinaryIO | None = None
        self._size = 0
        self._record_count = 0

        try:
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            # O_APPEND: every write lands at the current end of file
            self._file = open(self._file_path, "a+b")
            self._size = os.fstat(self._file.fileno()).st_size
        except OSError as exc:
            raise StorageIOError(f"Cannot open log file {self._file_path}: {exc}") from exc

        try:
            self._init_header()
        except BaseException:
            self._file.close()
            self._file = None
            raise

        self._logger.debug(
            "record_log_opened", path=str(self._file_path), size_bytes=self._size
        )

    @property
    def file_path(self) -> Path:
        return self._file_path

    @property
    def sync_mode(self) -> SyncMode:
        return self._sync_mode

    @property
    def record_count(self) -> int:
        """Return the number of frames seen by replay() plus those appended since."""
        return self._record_count

    @property
    def size_bytes(self) -> int:
        return self._size

    @property
    def closed(self) -> bool:
        return self._file is None

    def _init_header(self) -> None:
        """Write a header into an empty file or validate an existing one."""
        header = struct.pack(FILE_HEADER_FORMAT, FILE_MAGIC, FILE_VERSION)

        if self._size < FILE_HEADER_SIZE:
            existing = self._read_at(0, self._size)
            if not header.startswith(existing):
                raise CodecError(f"Not a quickkv file: {self._file_path}", offset=0)
            if self._size:
                # Crash while the header itself was being written
                self._truncate(0)
            self._write(header)
            self.sync()
            return

        magic, version = struct.unpack(FILE_HEADER_FORMAT, self._read_at(0, FILE_HEADER_SIZE))
        if magic != FILE_MAGIC:
            raise CodecError(f"Invalid file magic: {magic!r}", offset=0)
        if version != FILE_VERSION:
            raise CodecError(f"Unsupported file version: {version}", offset=8)

    def _read_at(self, offset: int, size: int) -> bytes:
        try:
            with open(self._file_path, "rb") as f:
                f.seek(offset)
                return f.read(size)
        except OSError as exc:
            raise StorageIOError(f"Cannot read log file {self._file_path}: {exc}") from exc

    def replay(self) -> Iterator[Record]:
        """Yield every record in file order.

        A torn tail is truncated when replay reaches it (see module docs).

        Raises:
            CodecError: If a complete frame is corrupt.
            StorageIOError: If the file cannot be read.
        """
        self._ensure_open()
        self._record_count = 0

        try:
            reader = open(self._file_path, "rb")
        except OSError as exc:
            raise StorageIOError(f"Cannot read log file {self._file_path}: {exc}") from exc

        with reader:
            reader.seek(FILE_HEADER_SIZE)
            offset = FILE_HEADER_SIZE

            while True:
                try:
                    length_data = reader.read(4)
                    if not length_data:
                        break
                    if len(length_data) < 4:
                        self._truncate_torn_tail(offset, "short length prefix")
                        break

                    (length,) = struct.unpack(RECORD_LENGTH_FORMAT, length_data)
                    if length == 0:
                        # Anything but zeros past this point is data being dropped
                        discards_data = bool(reader.read().strip(b"\x00"))
                        self._truncate_torn_tail(offset, "zero length", discards_data)
                        break

                    record_data = reader.read(length)
                    if len(record_data) < length:
                        self._truncate_torn_tail(offset, "short record body")
                        break

                    crc_data = reader.read(4)
                    if len(crc_data) < 4:
                        self._truncate_torn_tail(offset, "short checksum")
                        break
                except OSError as exc:
                    raise StorageIOError(
                        f"Cannot read log file {self._file_path}: {exc}"
                    ) from exc

                (stored_crc,) = struct.unpack(RECORD_CRC_FORMAT, crc_data)
                computed_crc = zlib.crc32(record_data) & 0xFFFFFFFF
                if stored_crc != computed_crc:
                    raise CodecError(
                        f"CRC mismatch: stored={stored_crc}, computed={computed_crc}",
                        offset=offset,
                    )

                record = Record.from_bytes(record_data, base_offset=offset + 4)
                offset += RECORD_OVERHEAD + length
                self._record_count += 1
                yield record

    def _truncate_torn_tail(self, offset: int, reason: str, discards_data: bool = False) -> None:
        dropped = self._size - offset
        log = self._logger.error if discards_data else self._logger.warning
        log(
            "torn_tail_truncated",
            path=str(self._file_path),
            offset=offset,
            dropped_bytes=dropped,
            reason=reason,
        )
        if self._metrics is not None:
            self._metrics.torn_tails_total.inc()
        self._truncate(offset)
        self.sync()

    def _truncate(self, size: int) -> None:
        assert self._file is not None
        try:
            self._file.flush()
            self._file.truncate(size)
        except OSError as exc:
            raise StorageIOError(f"Cannot truncate log file {self._file_path}: {exc}") from exc
        self._size = size

    def _write(self, data: bytes) -> None:
        assert self._file is not None
        self._file.write(data)
        self._file.flush()
        self._size += len(data)

    def append(self, record: Record) -> int:
        """Append a record frame at the end of the file.

        The frame reaches the operating system before this returns; it is
        forced to the storage medium by sync().

        Args:
            record: The record to append.

        Returns:
            Number of bytes written, framing included.

        Raises:
            StorageIOError: If the log is closed or the write fails. A
                partially written frame is cut off again before raising.
        """
        self._ensure_open()
        wrapped = frame_record(record)
        good_size = self._size

        try:
            self._write(wrapped)
        except OSError as exc:
            self._rollback(good_size)
            raise StorageIOError(
                f"Cannot append to log file {self._file_path}: {exc}"
            ) from exc

        self._record_count += 1
        return len(wrapped)

    def _rollback(self, good_size: int) -> None:
        """Cut the file back to its last known-good size after a failed write."""
        try:
            self._truncate(good_size)
        except StorageIOError as exc:
            self._logger.error(
                "append_rollback_failed", path=str(self._file_path), error=str(exc)
            )

    def sync(self) -> None:
        """Flush buffers and sync to disk according to the sync mode.

        Raises:
            StorageIOError: If the flush fails or the log is closed.
        """
        self._ensure_open()
        assert self._file is not None
        try:
            self._file.flush()
            if self._sync_mode == SyncMode.FSYNC:
                os.fsync(self._file.fileno())
            elif self._sync_mode == SyncMode.FDATASYNC:
                # fdatasync not available on macOS/Windows, fall back to fsync
                _sync_data = getattr(os, "fdatasync", os.fsync)
                _sync_data(self._file.fileno())
            # SyncMode.NONE - no sync
        except OSError as exc:
            raise StorageIOError(f"Cannot sync log file {self._file_path}: {exc}") from exc

    def close(self) -> None:
        """Sync and close the file. Closing twice is a no-op."""
        if self._file is None:
            return
        try:
            self.sync()
        finally:
            self._file.close()
            self._file = None
            self._logger.debug("record_log_closed", path=str(self._file_path))

    def _ensure_open(self) -> None:
        if self._file is None:
            raise StorageIOError(f"Log file {self._file_path} is closed")

    def __enter__(self) -> FileRecordLog:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
