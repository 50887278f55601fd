"""CIM Wizard - Linked record provisioning for agent-based cluster deployments."""

from .config import Settings, get_settings, setup_logging
from .context import RecordKinds, WizardContext
from .controller import WorkflowController, WorkflowState
from .errors import (
    CreationFailure,
    ErrorKind,
    PartialReservationFailure,
    PatchFailure,
    ProvisioningError,
    WizardStepError,
)
from .inventory import WizardInventory
from .linker import RecordLinker
from .models import (
    ClusterDetailsValues,
    ClusterNetworkingValues,
    ClusterRef,
    HighAvailabilityMode,
    HostPatchOutcome,
    HostsSelectionValues,
    PatchOp,
    PatchOperation,
    ReservationAction,
    ReservationPlan,
    VersionOption,
)
from .patches import append_patch
from .reservation import ReservationLedger, reserved_value
from .store import (
    AGENT_CLUSTER_INSTALL_KIND,
    AGENT_KIND,
    CLUSTER_DEPLOYMENT_KIND,
    CLUSTER_IMAGE_SET_KIND,
    SECRET_KIND,
    ClusterConnection,
    KubernetesResourceStore,
    RecordKind,
    ResourceStore,
    StoreError,
)

__version__ = "0.1.0"

__all__ = [
    # Workflow
    "WorkflowController",
    "WorkflowState",
    "RecordLinker",
    "ReservationLedger",
    "WizardInventory",
    "WizardContext",
    "RecordKinds",
    # Patching
    "append_patch",
    "reserved_value",
    # Store
    "ResourceStore",
    "KubernetesResourceStore",
    "ClusterConnection",
    "StoreError",
    "RecordKind",
    "SECRET_KIND",
    "CLUSTER_DEPLOYMENT_KIND",
    "AGENT_CLUSTER_INSTALL_KIND",
    "AGENT_KIND",
    "CLUSTER_IMAGE_SET_KIND",
    # Errors
    "ErrorKind",
    "ProvisioningError",
    "CreationFailure",
    "PatchFailure",
    "PartialReservationFailure",
    "WizardStepError",
    # Models
    "ClusterRef",
    "ClusterDetailsValues",
    "ClusterNetworkingValues",
    "HostsSelectionValues",
    "HighAvailabilityMode",
    "PatchOp",
    "PatchOperation",
    "ReservationAction",
    "ReservationPlan",
    "HostPatchOutcome",
    "VersionOption",
    # Config
    "Settings",
    "get_settings",
    "setup_logging",
]
