"""Error taxonomy for record creation and patching."""

from enum import Enum
from typing import Optional

from .models import HostPatchOutcome


class ErrorKind(str, Enum):
    """Kind of provisioning failure."""

    CREATION = "creation"
    PATCH = "patch"
    PARTIAL_RESERVATION = "partial_reservation"


class ProvisioningError(Exception):
    """
    Base error for failed record operations.

    Carries the failing record kind and operation. ``str()`` of the error is
    the message shown to the user.
    """

    kind: ErrorKind = ErrorKind.PATCH

    def __init__(
        self,
        record_kind: str,
        operation: str,
        reason: str,
        record_name: Optional[str] = None,
    ):
        self.record_kind = record_kind
        self.operation = operation
        self.reason = reason
        self.record_name = record_name
        super().__init__(self.message)

    @property
    def message(self) -> str:
        return f"Failed to {self.operation} the {self.record_kind} resource: {self.reason}"


class CreationFailure(ProvisioningError):
    """A create call was rejected."""

    kind = ErrorKind.CREATION

    def __init__(self, record_kind: str, reason: str, record_name: Optional[str] = None):
        super().__init__(record_kind, "create", reason, record_name)


class PatchFailure(ProvisioningError):
    """A patch call was rejected."""

    kind = ErrorKind.PATCH

    def __init__(self, record_kind: str, reason: str, record_name: Optional[str] = None):
        super().__init__(record_kind, "patch", reason, record_name)


class PartialReservationFailure(ProvisioningError):
    """One or more per-host reservation patches failed."""

    kind = ErrorKind.PARTIAL_RESERVATION

    def __init__(self, record_kind: str, outcomes: list[HostPatchOutcome]):
        self.outcomes = outcomes
        failed = self.failed
        details = ", ".join(
            f"{o.host_name} ({o.action.value}: {o.error})" for o in failed
        )
        super().__init__(
            record_kind,
            "reserve or release",
            f"{len(failed)} of {len(outcomes)} hosts failed: {details}",
        )

    @property
    def failed(self) -> list[HostPatchOutcome]:
        return [o for o in self.outcomes if not o.succeeded]

    @property
    def message(self) -> str:
        return f"Failed to reserve or release {self.record_kind} hosts: {self.reason}"


class WizardStepError(Exception):
    """Flattened error returned to the wizard. Carries the message only."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)
