"""Ordered creation and differential patching of the linked wizard records."""

import logging
from typing import Any, Callable, Optional

from .context import WizardContext
from .errors import CreationFailure, PartialReservationFailure, PatchFailure
from .models import (
    ClusterDetailsValues,
    ClusterNetworkingValues,
    ClusterRef,
    HostPatchOutcome,
    HostsSelectionValues,
    PatchOperation,
)
from .patches import append_patch, get_path
from .reservation import ReservationLedger
from .resources import (
    annotations_from_agent_selector,
    build_agent_cluster_install,
    build_cluster_deployment,
    build_pull_secret,
)
from .store import RecordKind, ResourceStore, StoreError

logger = logging.getLogger(__name__)


class RecordLinker:
    """
    Creates and updates the Secret, ClusterDeployment, AgentClusterInstall and Agents.

    Create order is Secret -> ClusterDeployment -> AgentClusterInstall, each
    step using the name returned by the previous one. Nothing is rolled back:
    records created before a failure stay and are picked up by later saves.

    Update sub-protocols re-read the records they diff against, so patches
    are computed from the latest observed state rather than a cached copy.
    """

    def __init__(self, store: ResourceStore, context: WizardContext):
        """
        Initialize record linker.

        Args:
            store: Record store
            context: Namespace, record kinds and label keys
        """
        self.store = store
        self.context = context
        self.kinds = context.kinds
        self.ledger = ReservationLedger(
            store, context.kinds.agent, context.reserved_agent_label_key
        )

    # Create protocol

    async def create_cluster(
        self,
        values: ClusterDetailsValues,
        on_cluster_created: Optional[Callable[[ClusterRef], None]] = None,
    ) -> ClusterRef:
        """
        Create the pull secret, the ClusterDeployment and its AgentClusterInstall.

        Args:
            values: Details step values
            on_cluster_created: Called as soon as the ClusterDeployment exists

        Returns:
            Identity of the created ClusterDeployment

        Raises:
            CreationFailure: On the first rejected create; later steps are skipped
        """
        namespace = self.context.namespace
        logger.info(f"Creating cluster {namespace}/{values.name}")

        secret = await self._create(
            self.kinds.secret,
            build_pull_secret(
                namespace,
                values.name,
                values.pull_secret,
                prefix=self.context.pull_secret_name_prefix,
            ),
        )
        secret_name = get_path(secret, "metadata", "name")

        cluster_deployment = await self._create(
            self.kinds.cluster_deployment,
            build_cluster_deployment(namespace, values, secret_name),
        )
        cluster = ClusterRef(
            namespace=get_path(cluster_deployment, "metadata", "namespace") or namespace,
            name=get_path(cluster_deployment, "metadata", "name"),
        )
        if on_cluster_created:
            on_cluster_created(cluster)

        await self._create(
            self.kinds.agent_cluster_install,
            build_agent_cluster_install(
                namespace,
                values.name,
                cluster.name,
                values.openshift_version,
                values.high_availability_mode,
            ),
        )

        logger.info(f"Created cluster {cluster} with pull secret {secret_name}")
        return cluster

    async def _create(self, kind: RecordKind, body: dict[str, Any]) -> dict[str, Any]:
        name = get_path(body, "metadata", "name")
        try:
            return await self.store.create(kind, body)
        except StoreError as e:
            logger.error(f"Failed to create {kind.kind} {name}: {e.message}")
            raise CreationFailure(kind.kind, e.message, record_name=name) from e

    # Update protocols

    async def update_details(
        self, cluster: ClusterRef, values: ClusterDetailsValues
    ) -> list[PatchOperation]:
        """
        Patch the image set of the AgentClusterInstall.

        Name, base domain, pull secret and topology are immutable after
        creation and are never patched. A missing AgentClusterInstall (left
        by an interrupted create) is created instead.

        Returns:
            The operations that were applied
        """
        agent_cluster_install = await self._get(self.kinds.agent_cluster_install, cluster)
        if agent_cluster_install is None:
            logger.info(f"AgentClusterInstall for {cluster} missing, creating it")
            await self._create(
                self.kinds.agent_cluster_install,
                build_agent_cluster_install(
                    cluster.namespace,
                    cluster.name,
                    cluster.name,
                    values.openshift_version,
                    values.high_availability_mode,
                ),
            )
            return []

        ops: list[PatchOperation] = []
        append_patch(
            ops,
            "/spec/imageSetRef/name",
            values.openshift_version,
            get_path(agent_cluster_install, "spec", "imageSetRef", "name"),
        )
        await self._patch(self.kinds.agent_cluster_install, agent_cluster_install, ops)
        return ops

    async def update_networking(
        self, cluster: ClusterRef, values: ClusterNetworkingValues
    ) -> list[PatchOperation]:
        """
        Patch the networking fields of the AgentClusterInstall.

        The machine network is only sent in VIP DHCP allocation mode; the
        backend rejects it otherwise.

        Returns:
            The operations that were applied
        """
        agent_cluster_install = await self._require(self.kinds.agent_cluster_install, cluster)
        spec = agent_cluster_install.get("spec") or {}
        networking = spec.get("networking") or {}

        ops: list[PatchOperation] = []
        append_patch(ops, "/spec/sshPublicKey", values.ssh_public_key, spec.get("sshPublicKey"))
        append_patch(
            ops,
            "/spec/networking/clusterNetwork",
            [
                {
                    "cidr": values.cluster_network_cidr,
                    "hostPrefix": values.cluster_network_host_prefix,
                }
            ],
            networking.get("clusterNetwork"),
        )
        append_patch(
            ops,
            "/spec/networking/serviceNetwork",
            [values.service_network_cidr],
            networking.get("serviceNetwork"),
        )
        if values.vip_dhcp_allocation:
            machine_cidr = values.machine_network_cidr
            append_patch(
                ops,
                "/spec/networking/machineNetwork",
                [{"cidr": machine_cidr}] if machine_cidr else [],
                networking.get("machineNetwork"),
            )
        append_patch(ops, "/spec/apiVIP", values.api_vip, spec.get("apiVIP"))
        append_patch(ops, "/spec/ingressVIP", values.ingress_vip, spec.get("ingressVIP"))

        await self._patch(self.kinds.agent_cluster_install, agent_cluster_install, ops)
        return ops

    async def update_hosts_selection(
        self, cluster: ClusterRef, values: HostsSelectionValues
    ) -> list[HostPatchOutcome]:
        """
        Reserve the selected Agents, release deselected ones, store the selector.

        Raises:
            PartialReservationFailure: If any Agent patch failed; the
                selector annotation is then left untouched
            PatchFailure: If the ClusterDeployment annotation patch fails

        Returns:
            Per-Agent outcomes
        """
        cluster_deployment = await self._require(self.kinds.cluster_deployment, cluster)
        agents = await self._list_agents(cluster)

        plan = self.ledger.plan(values.host_ids, agents, cluster)
        outcomes = await self.ledger.apply(plan)
        if any(not o.succeeded for o in outcomes):
            raise PartialReservationFailure(self.kinds.agent.kind, outcomes)

        ops: list[PatchOperation] = []
        append_patch(
            ops,
            "/metadata/annotations",
            annotations_from_agent_selector(
                cluster_deployment,
                values,
                self.context.agent_selector_annotation_key,
                self.context.agent_location_label_key,
            ),
            get_path(cluster_deployment, "metadata", "annotations"),
        )
        await self._patch(self.kinds.cluster_deployment, cluster_deployment, ops)
        return outcomes

    async def _list_agents(self, cluster: ClusterRef) -> list[dict[str, Any]]:
        try:
            return await self.store.list(self.kinds.agent, namespace=cluster.namespace)
        except StoreError as e:
            raise PatchFailure(self.kinds.agent.kind, f"unable to list hosts: {e.message}") from e

    async def _get(self, kind: RecordKind, cluster: ClusterRef) -> Optional[dict[str, Any]]:
        try:
            return await self.store.get(kind, cluster.name, cluster.namespace)
        except StoreError as e:
            raise PatchFailure(kind.kind, e.message, record_name=cluster.name) from e

    async def _require(self, kind: RecordKind, cluster: ClusterRef) -> dict[str, Any]:
        record = await self._get(kind, cluster)
        if record is None:
            raise PatchFailure(kind.kind, f"{cluster} not found", record_name=cluster.name)
        return record

    async def _patch(
        self, kind: RecordKind, record: dict[str, Any], ops: list[PatchOperation]
    ) -> Optional[dict[str, Any]]:
        name = get_path(record, "metadata", "name")
        if not ops:
            logger.debug(f"{kind.kind} {name} unchanged, skipping patch")
            return None
        try:
            patched = await self.store.patch(kind, record, ops)
        except StoreError as e:
            logger.error(f"Failed to patch {kind.kind} {name}: {e.message}")
            raise PatchFailure(kind.kind, e.message, record_name=name) from e
        logger.info(f"Patched {kind.kind} {name}: {[op.path for op in ops]}")
        return patched
