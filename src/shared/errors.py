"""Exception taxonomy for the spatial layout engine.

Empty bounds are a recognised condition, not an error: offset and scale
computations return neutral values instead of raising.
"""


class SpatialEngineError(Exception):
    """Base class for every error raised by the engine."""


class InvalidMetricError(SpatialEngineError, ValueError):
    """A metric function returned a non-numeric or NaN value."""


class NotACameraError(SpatialEngineError, TypeError):
    """A camera-only query was made against a regular scene node."""


class CyclicParentError(SpatialEngineError, ValueError):
    """A node was asked to become a child of itself or of its own descendant."""


class ConfigurationError(SpatialEngineError, ValueError):
    """Malformed construction-time configuration (e.g. a bad zone list)."""
