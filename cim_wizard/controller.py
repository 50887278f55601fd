"""Per-step save entry points consumed by the cluster deployment wizard."""

import logging
from enum import Enum
from typing import Callable, Optional

from .config import Settings
from .context import WizardContext
from .errors import ProvisioningError, WizardStepError
from .linker import RecordLinker
from .models import (
    ClusterDetailsValues,
    ClusterNetworkingValues,
    ClusterRef,
    HostsSelectionValues,
)
from .store import ResourceStore

logger = logging.getLogger(__name__)


class WorkflowState(str, Enum):
    """Link state of a wizard instance."""

    UNINITIALIZED = "uninitialized"
    LINKED = "linked"


class WorkflowController:
    """
    Wizard-facing controller for one cluster deployment workflow.

    The only state is whether a ClusterDeployment is linked. It becomes
    linked once, when the ClusterDeployment is created (or when the wizard is
    opened on an existing one), and never goes back.

    Errors leave this class as ``WizardStepError`` carrying only a message.
    """

    def __init__(
        self,
        store: ResourceStore,
        context: WizardContext,
        cluster: Optional[ClusterRef] = None,
        navigate: Optional[Callable[[str], None]] = None,
        console_base_path: str = "/k8s",
    ):
        """
        Initialize workflow controller.

        Args:
            store: Record store
            context: Namespace, record kinds and label keys
            cluster: Existing ClusterDeployment for the edit flow
            navigate: Called with the target path on close
            console_base_path: Prefix of console resource paths
        """
        self.context = context
        self.linker = RecordLinker(store, context)
        self.navigate = navigate
        self.console_base_path = console_base_path
        self._cluster: Optional[ClusterRef] = cluster

    @classmethod
    def from_settings(
        cls,
        store: ResourceStore,
        settings: Settings,
        namespace: Optional[str] = None,
        cluster: Optional[ClusterRef] = None,
        navigate: Optional[Callable[[str], None]] = None,
    ) -> "WorkflowController":
        """Build a controller whose context and console paths come from settings."""
        return cls(
            store,
            WizardContext.from_settings(settings, namespace=namespace),
            cluster=cluster,
            navigate=navigate,
            console_base_path=settings.console_base_path,
        )

    @property
    def cluster(self) -> Optional[ClusterRef]:
        return self._cluster

    @property
    def state(self) -> WorkflowState:
        return WorkflowState.LINKED if self._cluster else WorkflowState.UNINITIALIZED

    def _link(self, cluster: ClusterRef) -> None:
        if self._cluster is None:
            logger.info(f"Wizard linked to ClusterDeployment {cluster}")
            self._cluster = cluster

    def _require_cluster(self, step: str) -> ClusterRef:
        if self._cluster is None:
            raise WizardStepError(
                f"Cannot save {step}: the cluster details have not been saved yet"
            )
        return self._cluster

    async def save_details(self, values: ClusterDetailsValues) -> ClusterRef:
        """Create the cluster records, or update them when already linked."""
        try:
            if self._cluster is None:
                return await self.linker.create_cluster(values, on_cluster_created=self._link)
            await self.linker.update_details(self._cluster, values)
            return self._cluster
        except ProvisioningError as e:
            raise self._step_error("details", e) from None

    async def save_networking(self, values: ClusterNetworkingValues) -> None:
        cluster = self._require_cluster("networking")
        try:
            await self.linker.update_networking(cluster, values)
        except ProvisioningError as e:
            raise self._step_error("networking", e) from None

    async def save_hosts_selection(self, values: HostsSelectionValues) -> None:
        cluster = self._require_cluster("hosts selection")
        try:
            await self.linker.update_hosts_selection(cluster, values)
        except ProvisioningError as e:
            raise self._step_error("hosts selection", e) from None

    def close(self) -> str:
        """
        Leave the wizard.

        Returns:
            Console path of the cluster details page, or of the list page when
            no cluster was created
        """
        ns = f"ns/{self.context.namespace}" if self.context.namespace else "all-namespaces"
        path = f"{self.console_base_path}/{ns}/{self.context.kinds.cluster_deployment.reference}"
        if self._cluster is not None:
            path = f"{path}/{self._cluster.name}"
        if self.navigate:
            self.navigate(path)
        return path

    def _step_error(self, step: str, error: ProvisioningError) -> WizardStepError:
        logger.error(
            f"Saving {step} failed ({error.kind.value}, {error.record_kind} {error.operation}): "
            f"{error.message}",
            exc_info=error,
        )
        return WizardStepError(error.message)
