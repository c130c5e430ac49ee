"""Exceptions raised by the compression core."""


class CompressionError(Exception):
    """Base class for failures of a single compression item."""


class DecodeFailure(CompressionError):
    """The source bytes could not be decoded or rendered."""


class EncodeFailure(CompressionError):
    """An encode attempt failed and no earlier result could stand in for it."""


class InvalidPreset(CompressionError, ValueError):
    """The preset (or page selection) is unusable; raised before any work starts."""
