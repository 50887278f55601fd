"""Data models for the cluster deployment wizard."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class PatchOp(str, Enum):
    """JSON patch operation kind."""

    ADD = "add"
    REPLACE = "replace"
    REMOVE = "remove"


class PatchOperation(BaseModel):
    """Single JSON patch operation scoped to one record."""

    op: PatchOp
    path: str
    value: Any = None

    def to_json_patch(self) -> dict[str, Any]:
        """Serialize to the RFC 6902 wire form."""
        if self.op == PatchOp.REMOVE:
            return {"op": self.op.value, "path": self.path}
        return {"op": self.op.value, "path": self.path, "value": self.value}


class ClusterRef(BaseModel):
    """Identity of a ClusterDeployment."""

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


class HighAvailabilityMode(str, Enum):
    """Control plane topology."""

    FULL = "Full"
    NONE = "None"


class ClusterDetailsValues(BaseModel):
    """Values of the cluster details wizard step."""

    name: str = Field(..., min_length=1, max_length=54)
    base_dns_domain: str
    openshift_version: str = Field(..., description="ClusterImageSet name")
    pull_secret: str
    high_availability_mode: HighAvailabilityMode = HighAvailabilityMode.FULL


class ClusterNetworkingValues(BaseModel):
    """Values of the networking wizard step."""

    ssh_public_key: Optional[str] = None
    cluster_network_cidr: str = "10.128.0.0/14"
    cluster_network_host_prefix: int = 23
    service_network_cidr: str = "172.30.0.0/16"
    vip_dhcp_allocation: bool = False
    host_subnet: Optional[str] = Field(
        default=None,
        description="Selected subnet, e.g. '192.168.122.0/24 (192.168.122.0 - 192.168.122.255)'",
    )
    api_vip: Optional[str] = None
    ingress_vip: Optional[str] = None

    @property
    def machine_network_cidr(self) -> Optional[str]:
        """CIDR part of the selected host subnet."""
        if not self.host_subnet:
            return None
        parts = self.host_subnet.split()
        return parts[0] if parts else None


class HostsSelectionValues(BaseModel):
    """Values of the hosts selection wizard step."""

    auto_select_hosts: bool = True
    auto_selected_host_ids: list[str] = Field(default_factory=list)
    selected_host_ids: list[str] = Field(default_factory=list)
    agent_labels: list[str] = Field(
        default_factory=list, description="Label requirements in key=value form"
    )
    locations: list[str] = Field(default_factory=list)

    @property
    def host_ids(self) -> list[str]:
        """Host uids the user ended up with."""
        if self.auto_select_hosts:
            return self.auto_selected_host_ids
        return self.selected_host_ids


class ReservationAction(str, Enum):
    """Per-host reservation change."""

    RELEASE = "release"
    RESERVE = "reserve"


class HostPatchOutcome(BaseModel):
    """Result of patching a single Agent."""

    host_id: str
    host_name: str
    action: ReservationAction
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


class ReservationPlan(BaseModel):
    """Hosts to release and reserve for one cluster, with their patches."""

    reserved_value: str
    to_release: list[dict[str, Any]] = Field(default_factory=list)
    to_reserve: list[dict[str, Any]] = Field(default_factory=list)
    patches: dict[str, list[PatchOperation]] = Field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.to_release and not self.to_reserve


class VersionOption(BaseModel):
    """OpenShift version offered by the wizard."""

    label: str
    value: str
    default: bool = False
    support_level: str = "beta"
