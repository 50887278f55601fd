"""Identifiers and record kinds shared by the linker and the controller."""

from dataclasses import dataclass, field
from typing import Optional

from .config import Settings
from .store import (
    AGENT_CLUSTER_INSTALL_KIND,
    AGENT_KIND,
    CLUSTER_DEPLOYMENT_KIND,
    SECRET_KIND,
    RecordKind,
)


@dataclass(frozen=True)
class RecordKinds:
    """Record kinds the wizard works with."""

    secret: RecordKind = SECRET_KIND
    cluster_deployment: RecordKind = CLUSTER_DEPLOYMENT_KIND
    agent_cluster_install: RecordKind = AGENT_CLUSTER_INSTALL_KIND
    agent: RecordKind = AGENT_KIND


@dataclass(frozen=True)
class WizardContext:
    """Everything a wizard instance needs besides the store."""

    namespace: str
    kinds: RecordKinds = field(default_factory=RecordKinds)
    reserved_agent_label_key: str = "agentclusterinstalls.agent-install.openshift.io/reserved-by"
    agent_selector_annotation_key: str = "agent-install.openshift.io/agent-selector"
    agent_location_label_key: str = "agent-install.openshift.io/location"
    pull_secret_name_prefix: str = "pullsecret-"

    @classmethod
    def from_settings(cls, settings: Settings, namespace: Optional[str] = None) -> "WizardContext":
        return cls(
            namespace=namespace or settings.default_namespace,
            reserved_agent_label_key=settings.reserved_agent_label_key,
            agent_selector_annotation_key=settings.agent_selector_annotation_key,
            agent_location_label_key=settings.agent_location_label_key,
            pull_secret_name_prefix=settings.pull_secret_name_prefix,
        )
