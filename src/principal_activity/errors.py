"""Errors raised at the aggregation boundary and by population rollups."""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from principal_activity.models.rollup import PopulationRollup


class ActivityEngineError(Exception):
    """Base class for errors that mean a summary could not be computed."""


class PrincipalNotFound(ActivityEngineError):
    """Raised when a principal id does not resolve in the record store. Never retried."""

    def __init__(self, principal_id: str):
        self.principal_id = principal_id
        super().__init__(f"Principal not found: {principal_id}")


class SourceUnavailable(ActivityEngineError):
    """
    Raised when a source read failed, including its one retry.
    principal_id is None for population-wide reads such as the id listing.
    """

    def __init__(self, source: str, principal_id: Optional[str], cause: Optional[BaseException] = None):
        self.source = source
        self.principal_id = principal_id
        self.cause = cause
        target = f" for principal {principal_id}" if principal_id is not None else ""
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Source '{source}' unavailable{target}{detail}")


class Cancelled(ActivityEngineError):
    """Raised when a deadline expires or the caller's cancel signal fires."""

    def __init__(self, principal_id: Optional[str], reason: str = "cancelled"):
        self.principal_id = principal_id
        self.reason = reason
        if principal_id is None:
            super().__init__(f"Principal listing {reason}")
        else:
            super().__init__(f"Aggregation for principal {principal_id} {reason}")


class PartialRollupFailure(ActivityEngineError):
    """
    Raised by a failure-tolerant rollup when some principals could not be aggregated.
    Carries the rollup over the principals that succeeded.
    """

    def __init__(
        self,
        rollup: "PopulationRollup",
        failed_principal_ids: list[str],
        errors: Optional[dict[str, ActivityEngineError]] = None,
    ):
        self.rollup = rollup
        self.failed_principal_ids = failed_principal_ids
        self.errors = errors or {}
        super().__init__(
            f"Rollup excluded {len(failed_principal_ids)} principal(s): "
            + ", ".join(failed_principal_ids)
        )
