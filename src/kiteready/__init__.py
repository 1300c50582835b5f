"""Readiness workflow for the Kite autocomplete daemon."""

from .readiness import (
    Credentials,
    LifecycleState,
    OracleError,
    ReadinessController,
    RemediationKind,
    RemediationOutcome,
    RemediationRequest,
    StatusOracle,
)
from .ui.notifications import NotificationCenter

__version__ = "0.3.0"

__all__ = [
    "Credentials",
    "LifecycleState",
    "NotificationCenter",
    "OracleError",
    "ReadinessController",
    "RemediationKind",
    "RemediationOutcome",
    "RemediationRequest",
    "StatusOracle",
    "__version__",
]
