"""Lifecycle states, remediation requests and the controller that ties them together."""

from .controller import CredentialsProvider, ReadinessController
from .oracle import OracleError, StatusOracle
from .remediation import (
    Credentials,
    RemediationKind,
    RemediationOutcome,
    RemediationRequest,
    describe_error,
)
from .states import LifecycleState

__all__ = [
    "Credentials",
    "CredentialsProvider",
    "LifecycleState",
    "OracleError",
    "ReadinessController",
    "RemediationKind",
    "RemediationOutcome",
    "RemediationRequest",
    "StatusOracle",
    "describe_error",
]
