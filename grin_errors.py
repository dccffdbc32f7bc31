"""Exceptions raised by the GRIN codec."""


class GrinError(Exception):
    """Base class for every encode/decode failure of a .grin container."""


class FormatMismatchError(GrinError):
    """The input does not start with the GRIN magic number."""


class MalformedBitstreamError(GrinError):
    """The tree header or the payload ended before a complete structure was read."""
