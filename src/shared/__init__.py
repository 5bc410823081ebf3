"""
#WHERE
    Imported by every engine module and by tests.

#WHAT
    Shared geometry primitives, scratch pools, error taxonomy and constants.

#INPUT
    None (pure helpers and constants).

#OUTPUT
    Bounds, PartialVector3, transform helpers; ScratchPool + default
    ``vectors`` / ``matrices`` pools; SpatialEngineError hierarchy.
"""

from .errors import (
    SpatialEngineError,
    InvalidMetricError,
    NotACameraError,
    CyclicParentError,
    ConfigurationError,
)
from .geometry import (
    Bounds,
    PartialVector3,
    IDENTITY_QUATERNION,
    compose,
    decompose,
    transform_point,
    transform_points,
    slerp,
)
from .pools import ScratchPool, vectors, matrices

__all__ = [
    "SpatialEngineError",
    "InvalidMetricError",
    "NotACameraError",
    "CyclicParentError",
    "ConfigurationError",
    "Bounds",
    "PartialVector3",
    "IDENTITY_QUATERNION",
    "compose",
    "decompose",
    "transform_point",
    "transform_points",
    "slerp",
    "ScratchPool",
    "vectors",
    "matrices",
]
