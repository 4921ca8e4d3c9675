"""Tests for the chunked sequence reader."""

import struct

import numpy as np
import pytest

from tickbars.chunks import FLOAT64, INT64, ChunkedSequence
from tickbars.errors import MalformedArgumentError


def _f64(*values: float) -> bytes:
    return struct.pack(f"={len(values)}d", *values)


def _i64(*values: int) -> bytes:
    return struct.pack(f"={len(values)}q", *values)


class TestChunkedSequence:
    def test_reads_chunks_in_order(self):
        seq = ChunkedSequence([_f64(1.0, 2.0), _f64(3.0), _f64(4.0, 5.0)])
        assert len(seq) == 5
        assert list(seq) == [1.0, 2.0, 3.0, 4.0, 5.0]

    def test_empty_chunks_are_skipped(self):
        seq = ChunkedSequence([b"", _f64(1.0), b"", b"", _f64(2.0), b""])
        assert list(seq) == [1.0, 2.0]

    def test_no_chunks(self):
        seq = ChunkedSequence([])
        assert len(seq) == 0
        assert list(seq) == []
        assert seq.to_array().dtype == np.float64

    def test_iteration_is_repeatable(self):
        seq = ChunkedSequence([_f64(1.0, 2.0)])
        assert list(seq) == list(seq)

    def test_yields_python_scalars(self):
        seq = ChunkedSequence([_i64(7)], INT64)
        (value,) = list(seq)
        assert type(value) is int

    def test_rejects_partial_element(self):
        with pytest.raises(MalformedArgumentError, match="not a multiple"):
            ChunkedSequence([_f64(1.0), b"\x00\x01\x02"])

    def test_rejects_2d_array(self):
        with pytest.raises(MalformedArgumentError, match="1-D"):
            ChunkedSequence([np.zeros((2, 2))])

    def test_rejects_float_array_as_int(self):
        with pytest.raises(MalformedArgumentError, match="Cannot read"):
            ChunkedSequence([np.array([1.5, 2.5])], INT64)

    def test_int_array_widens_to_float(self):
        seq = ChunkedSequence([np.array([1, 2, 3], dtype=np.int32)], FLOAT64)
        assert list(seq) == [1.0, 2.0, 3.0]

    def test_to_array_concatenates(self):
        seq = ChunkedSequence([np.array([1.0]), _f64(2.0, 3.0)])
        np.testing.assert_array_equal(seq.to_array(), [1.0, 2.0, 3.0])

    def test_buffer_is_not_copied(self):
        data = bytearray(_f64(1.0, 2.0))
        seq = ChunkedSequence([data])
        data[:8] = _f64(9.0)
        assert list(seq)[0] == 9.0

    def test_repr(self):
        r = repr(ChunkedSequence([_f64(1.0), _f64(2.0)]))
        assert "chunks=2" in r
        assert "length=2" in r


class TestCoerce:
    def test_flat_list_is_one_chunk(self):
        seq = ChunkedSequence.coerce([1.0, 2.0, 3])
        assert len(seq.chunks) == 1
        assert list(seq) == [1.0, 2.0, 3.0]

    def test_list_of_chunks(self):
        seq = ChunkedSequence.coerce([[1.0, 2.0], np.array([3.0]), _f64(4.0)])
        assert len(seq.chunks) == 3
        assert list(seq) == [1.0, 2.0, 3.0, 4.0]

    def test_empty_list(self):
        assert len(ChunkedSequence.coerce([], INT64)) == 0

    def test_bytes(self):
        assert list(ChunkedSequence.coerce(_f64(0.5))) == [0.5]

    def test_passes_through_existing_sequence(self):
        seq = ChunkedSequence([_f64(1.0)])
        assert ChunkedSequence.coerce(seq) is seq

    def test_rejects_dtype_mismatch_of_existing_sequence(self):
        seq = ChunkedSequence([_f64(1.0)])
        with pytest.raises(MalformedArgumentError):
            ChunkedSequence.coerce(seq, INT64)

    def test_rejects_mixed_scalars_and_chunks(self):
        with pytest.raises(MalformedArgumentError, match="mix"):
            ChunkedSequence.coerce([1.0, [2.0]])

    def test_rejects_strings(self):
        with pytest.raises(MalformedArgumentError):
            ChunkedSequence.coerce("1,2,3")

    def test_rejects_non_numeric_chunk(self):
        with pytest.raises(MalformedArgumentError):
            ChunkedSequence.coerce([["a", "b"]])

    def test_rejects_unsupported_container(self):
        with pytest.raises(MalformedArgumentError, match="Unsupported"):
            ChunkedSequence.coerce({1.0, 2.0})


class TestCursor:
    def test_walks_across_chunks(self):
        seq = ChunkedSequence([_i64(1, 2), b"", _i64(3)], INT64)
        cursor = seq.cursor()
        seen = []
        while not cursor.exhausted:
            seen.append((cursor.position, cursor.peek()))
            cursor.advance()
        assert seen == [(0, 1), (1, 2), (2, 3)]
        assert cursor.position == 3

    def test_cursors_are_independent(self):
        seq = ChunkedSequence([_i64(1, 2, 3)], INT64)
        a = seq.cursor()
        b = seq.cursor()
        a.advance()
        a.advance()
        assert a.peek() == 3
        assert b.peek() == 1

    def test_iterator_protocol(self):
        seq = ChunkedSequence([_i64(4), _i64(5)], INT64)
        assert list(seq.cursor()) == [4, 5]

    def test_exhausted_cursor_raises(self):
        cursor = ChunkedSequence([], INT64).cursor()
        assert cursor.exhausted
        assert cursor.position == 0
        with pytest.raises(IndexError):
            cursor.peek()
        with pytest.raises(IndexError):
            cursor.advance()
