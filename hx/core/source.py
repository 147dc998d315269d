# Author: Futhark1393
# Description: Sequential byte sources and the chunked reader that walks them.

import os

from hx.core.errors import IoFailure, ReaderExhausted

DEFAULT_CHUNK_SIZE = 512 * 1024  # 512 KB


class ByteSource:
    """
    Read-only input: a known total length plus range reads.

    Implementations must return exactly *length* bytes for any range
    inside [0, total_length) or raise.
    """

    name: str = "<source>"

    @property
    def total_length(self) -> int:
        raise NotImplementedError

    def read_range(self, offset: int, length: int) -> bytes:
        raise NotImplementedError

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class BytesByteSource(ByteSource):
    """In-memory source, mainly for tests and piped input."""

    def __init__(self, data: bytes, name: str = "<bytes>"):
        self._data = bytes(data)
        self.name = name

    @property
    def total_length(self) -> int:
        return len(self._data)

    def read_range(self, offset: int, length: int) -> bytes:
        return self._data[offset:offset + length]


class FileByteSource(ByteSource):
    """Regular file on disk. The handle is opened lazily on first read."""

    def __init__(self, path: str, name: str | None = None):
        self.path = path
        self.name = name or os.path.basename(path) or path
        self._size = os.path.getsize(path)
        self._fh = None

    @property
    def total_length(self) -> int:
        return self._size

    def read_range(self, offset: int, length: int) -> bytes:
        if self._fh is None:
            self._fh = open(self.path, "rb")
        if self._fh.tell() != offset:
            self._fh.seek(offset)
        return self._fh.read(length)

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None


class ChunkedReader:
    """
    Lazy, finite, single-use iterator over a ByteSource.

    Yields contiguous chunks of *chunk_size* bytes (the last one may be
    shorter) covering [0, total_length) in order. A failed or short read
    raises IoFailure and ends the traversal.
    """

    def __init__(self, source: ByteSource, chunk_size: int = DEFAULT_CHUNK_SIZE):
        if not isinstance(chunk_size, int) or chunk_size <= 0:
            raise ValueError(f"chunk_size must be a positive integer, got {chunk_size!r}")
        self.source = source
        self.chunk_size = chunk_size
        self.bytes_read = 0
        self._started = False

    def __iter__(self):
        if self._started:
            raise ReaderExhausted(
                "ChunkedReader cannot be replayed; create a new reader over the source."
            )
        self._started = True
        return self._chunks()

    def _chunks(self):
        total = self.source.total_length
        offset = 0
        while offset < total:
            length = min(self.chunk_size, total - offset)
            try:
                chunk = self.source.read_range(offset, length)
            except IoFailure:
                raise
            except Exception as e:
                raise IoFailure(f"Read failed at offset {offset}: {e}", offset) from e

            if chunk is None or len(chunk) != length:
                got = 0 if chunk is None else len(chunk)
                raise IoFailure(
                    f"Short read at offset {offset}: expected {length} bytes, got {got}",
                    offset,
                )

            offset += length
            self.bytes_read = offset
            yield chunk
