"""Principal relationship activity and engagement analytics."""

from principal_activity.errors import (
    ActivityEngineError,
    Cancelled,
    PartialRollupFailure,
    PrincipalNotFound,
    SourceUnavailable,
)
from principal_activity.service import ActivityService

__all__ = [
    "ActivityEngineError",
    "ActivityService",
    "Cancelled",
    "PartialRollupFailure",
    "PrincipalNotFound",
    "SourceUnavailable",
]
