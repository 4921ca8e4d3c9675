"""Exception types raised by tickbars."""


class TickbarsError(Exception):
    """Base class for all tickbars errors."""


class MalformedArgumentError(TickbarsError, ValueError):
    """An argument has the wrong type, shape or value.

    Raised before any output buffer is allocated, so a failed call never
    returns partial results.
    """
