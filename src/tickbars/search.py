"""Offset-aware sorted-sequence search.

Aligns two ascending integer series (typically nanosecond timestamps),
e.g. to find, for every event time t, the first bar that opens at or
after t + horizon.  Both inputs may be chunked.
"""

from __future__ import annotations

import logging
from typing import Any

import numpy as np

from tickbars.chunks import INT64, ChunkedSequence
from tickbars.errors import MalformedArgumentError

logger = logging.getLogger(__name__)

INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1


def searchsorted(needles: Any, offset: int = 0, haystack: Any = None) -> np.ndarray:
    """Left insertion points of ``needle + offset`` in ``haystack``.

    For every needle returns the smallest index j with
    haystack[j] >= needle + offset, or len(haystack) when there is none,
    i.e. numpy.searchsorted(haystack, needles + offset, side="left").
    Without a haystack the needles are searched against themselves.

    Both sequences must be sorted ascending; this is not checked.  The
    search walks one cursor over each sequence and never moves either
    backwards, so it runs in O(len(needles) + len(haystack)).
    """
    if isinstance(offset, bool) or not isinstance(offset, (int, np.integer)):
        raise MalformedArgumentError(f"offset must be an integer, got {type(offset).__name__}")
    if not INT32_MIN <= offset <= INT32_MAX:
        raise MalformedArgumentError(f"offset {offset} is outside the 32-bit integer range")

    needle_seq = ChunkedSequence.coerce(needles, INT64)
    haystack_seq = needle_seq if haystack is None else ChunkedSequence.coerce(haystack, INT64)
    offset = int(offset)

    out = np.empty(len(needle_seq), dtype=np.int64)
    hay = haystack_seq.cursor()
    for i, needle in enumerate(needle_seq):
        target = needle + offset
        while not hay.exhausted and hay.peek() < target:
            hay.advance()
        out[i] = hay.position

    logger.debug(
        "searchsorted: %d needles against %d haystack values (offset=%d)",
        len(needle_seq),
        len(haystack_seq),
        offset,
    )
    return out
