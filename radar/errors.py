"""
Radar error taxonomy

Metadata problems are not exceptions: the resolver reports them through
MetadataStatus so callers can treat them as "nothing to record".
"""


class RadarError(Exception):
    """Base class for radar failures."""


class ChainReadError(RadarError):
    """Chain RPC unavailable or timed out. Fatal to the current scan cycle."""


class StoreError(RadarError):
    """Token store unavailable or rejected an operation."""


class RecordValidationError(RadarError):
    """A token record has malformed fields and must not be persisted."""
