"""Chunked sequence reader.

Tick data often arrives split across several physically separate buffers
(file reads, network frames, slices of a larger array).  ChunkedSequence
stitches them into a single logical, read-only sequence without copying
the underlying memory, and hands out forward cursors for algorithms that
walk two sequences side by side.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from numbers import Real
from typing import Any

import numpy as np

from tickbars.errors import MalformedArgumentError

FLOAT64 = np.dtype(np.float64)
INT64 = np.dtype(np.int64)

_BYTES_LIKE = (bytes, bytearray, memoryview)
_ITER_BLOCK = 65536  # elements converted to Python scalars at a time


def _as_chunk(chunk: Any, dtype: np.dtype) -> np.ndarray:
    """View one region as a 1-D array of ``dtype``."""
    if isinstance(chunk, _BYTES_LIKE):
        nbytes = memoryview(chunk).nbytes
        if nbytes % dtype.itemsize:
            raise MalformedArgumentError(
                f"Buffer of {nbytes} bytes is not a multiple of the "
                f"{dtype.itemsize}-byte element width"
            )
        try:
            return np.frombuffer(chunk, dtype=dtype)
        except ValueError as exc:
            raise MalformedArgumentError(f"Unreadable buffer: {exc}") from exc

    if isinstance(chunk, np.ndarray):
        array = chunk
    else:
        try:
            array = np.asarray(chunk)
        except (TypeError, ValueError) as exc:
            raise MalformedArgumentError(f"Chunk is not a sequence of numbers: {exc}") from exc
        if array.size == 0:
            return np.empty(0, dtype=dtype)

    if array.ndim != 1:
        raise MalformedArgumentError(f"Expected a 1-D chunk, got {array.ndim} dimensions")
    if not np.can_cast(array.dtype, dtype, casting="same_kind"):
        raise MalformedArgumentError(f"Cannot read {array.dtype} values as {dtype}")
    return array.astype(dtype, copy=False)


def _is_scalar(value: Any) -> bool:
    return isinstance(value, (Real, np.number))


class ChunkedSequence:
    """An ordered list of contiguous regions read as one sequence.

    Regions are read in list order, then in order within each region.
    The sequence is finite and immutable; iterating it or creating a
    cursor never consumes it.
    """

    __slots__ = ("_chunks", "_dtype", "_length")

    def __init__(self, chunks: Iterable[Any], dtype: np.dtype | type = FLOAT64) -> None:
        self._dtype = np.dtype(dtype)
        self._chunks = tuple(_as_chunk(chunk, self._dtype) for chunk in chunks)
        self._length = sum(len(chunk) for chunk in self._chunks)

    @classmethod
    def coerce(cls, data: Any, dtype: np.dtype | type = FLOAT64) -> ChunkedSequence:
        """Build a sequence from whatever container the caller holds.

        Accepts a bytes-like buffer, a 1-D numpy array, a flat list/tuple
        of numbers (one chunk each), or a list/tuple of such chunks.
        """
        dtype = np.dtype(dtype)
        if isinstance(data, ChunkedSequence):
            if data.dtype != dtype:
                raise MalformedArgumentError(f"Expected a {dtype} sequence, got {data.dtype}")
            return data
        if isinstance(data, (*_BYTES_LIKE, np.ndarray)):
            return cls([data], dtype)
        if not isinstance(data, (list, tuple)):
            raise MalformedArgumentError(
                f"Unsupported tick container: {type(data).__name__}"
            )

        scalars = [_is_scalar(item) for item in data]
        if all(scalars):
            return cls([data], dtype)
        if any(scalars):
            raise MalformedArgumentError("Cannot mix scalars and chunks in one sequence")
        return cls(data, dtype)

    @property
    def dtype(self) -> np.dtype:
        return self._dtype

    @property
    def chunks(self) -> tuple[np.ndarray, ...]:
        return self._chunks

    def __len__(self) -> int:
        return self._length

    def __iter__(self) -> Iterator[Any]:
        for chunk in self._chunks:
            for start in range(0, len(chunk), _ITER_BLOCK):
                yield from chunk[start : start + _ITER_BLOCK].tolist()

    def cursor(self) -> Cursor:
        """A fresh forward cursor positioned at the first element."""
        return Cursor(self)

    def to_array(self) -> np.ndarray:
        """Concatenate all regions into one contiguous array (copies)."""
        if not self._chunks:
            return np.empty(0, dtype=self._dtype)
        return np.concatenate(self._chunks)

    def __repr__(self) -> str:
        return (
            f"ChunkedSequence(dtype={self._dtype}, chunks={len(self._chunks)}, "
            f"length={self._length})"
        )


class Cursor:
    """Forward-only read position over a ChunkedSequence.

    Tracks the current region, the offset within it and the global
    position.  Cursors are independent of each other, so two of them can
    walk the same sequence at different speeds.
    """

    __slots__ = ("_chunks", "_chunk_index", "_offset", "_position")

    def __init__(self, sequence: ChunkedSequence) -> None:
        self._chunks = sequence.chunks
        self._chunk_index = 0
        self._offset = 0
        self._position = 0
        self._skip_exhausted_chunks()

    def _skip_exhausted_chunks(self) -> None:
        while (
            self._chunk_index < len(self._chunks)
            and self._offset >= len(self._chunks[self._chunk_index])
        ):
            self._chunk_index += 1
            self._offset = 0

    @property
    def position(self) -> int:
        """Global index of the element under the cursor."""
        return self._position

    @property
    def exhausted(self) -> bool:
        return self._chunk_index >= len(self._chunks)

    def peek(self) -> Any:
        """Value under the cursor, without moving."""
        if self.exhausted:
            raise IndexError("cursor is exhausted")
        return self._chunks[self._chunk_index][self._offset].item()

    def advance(self) -> None:
        if self.exhausted:
            raise IndexError("cursor is exhausted")
        self._offset += 1
        self._position += 1
        self._skip_exhausted_chunks()

    def __iter__(self) -> Cursor:
        return self

    def __next__(self) -> Any:
        if self.exhausted:
            raise StopIteration
        value = self.peek()
        self.advance()
        return value
