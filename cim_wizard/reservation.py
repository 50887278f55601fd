"""Agent reservation bookkeeping through a label on each Agent."""

import asyncio
import hashlib
import logging
from typing import Any, Iterable

from .models import ClusterRef, HostPatchOutcome, PatchOperation, ReservationAction, ReservationPlan
from .patches import append_patch, get_path
from .store import RecordKind, ResourceStore, StoreError

logger = logging.getLogger(__name__)

MAX_LABEL_VALUE_LENGTH = 63

LABELS_PATH = "/metadata/labels"
CLUSTER_REF_PATH = "/spec/clusterDeploymentName"


def reserved_value(namespace: str, name: str) -> str:
    """
    Label value marking an Agent as reserved by the cluster ``namespace/name``.

    Namespaces cannot contain dots, so ``<namespace>.<name>`` is unambiguous.
    Identities too long for a label value are hashed instead; the hashed form
    has no dot and therefore never equals a literal one.
    """
    value = f"{namespace}.{name}"
    if len(value) <= MAX_LABEL_VALUE_LENGTH:
        return value
    digest = hashlib.sha256(f"{namespace}/{name}".encode("utf-8")).hexdigest()
    return f"h-{digest[: MAX_LABEL_VALUE_LENGTH - 2]}"


def host_id(agent: dict[str, Any]) -> str:
    return get_path(agent, "metadata", "uid") or ""


def host_name(agent: dict[str, Any]) -> str:
    hostname = get_path(agent, "spec", "hostname")
    return hostname or get_path(agent, "metadata", "name") or host_id(agent)


class ReservationLedger:
    """
    Computes and applies the reservation diff between selected and reserved Agents.

    An Agent is reserved by a cluster when its reservation label carries the
    cluster's reserved value. One owner at a time is a policy kept by always
    releasing before reserving; the store does not enforce it.
    """

    def __init__(self, store: ResourceStore, agent_kind: RecordKind, label_key: str):
        """
        Initialize reservation ledger.

        Args:
            store: Record store
            agent_kind: Kind of the host records
            label_key: Reservation label key
        """
        self.store = store
        self.agent_kind = agent_kind
        self.label_key = label_key

    def labels(self, agent: dict[str, Any]) -> dict[str, str]:
        return get_path(agent, "metadata", "labels") or {}

    def is_reserved_by(self, agent: dict[str, Any], value: str) -> bool:
        return self.labels(agent).get(self.label_key) == value

    def plan(
        self,
        host_ids: Iterable[str],
        agents: list[dict[str, Any]],
        cluster: ClusterRef,
    ) -> ReservationPlan:
        """
        Plan which Agents to release and which to reserve.

        Agents reserved by another cluster are still reserved when selected:
        the last selection wins.

        Args:
            host_ids: Uids of the Agents the user selected
            agents: Current Agent records
            cluster: Owning cluster

        Returns:
            ReservationPlan with per-Agent patch operations
        """
        desired = set(host_ids)
        value = reserved_value(cluster.namespace, cluster.name)
        plan = ReservationPlan(reserved_value=value)

        for agent in agents:
            uid = host_id(agent)
            if uid not in desired and self.is_reserved_by(agent, value):
                plan.to_release.append(agent)
                plan.patches[uid] = self._release_patch(agent)

        for agent in agents:
            uid = host_id(agent)
            if uid in desired and not self.is_reserved_by(agent, value):
                plan.to_reserve.append(agent)
                plan.patches[uid] = self._reserve_patch(agent, cluster, value)

        logger.debug(
            f"Reservation plan for {cluster}: release "
            f"{[host_name(a) for a in plan.to_release]}, reserve "
            f"{[host_name(a) for a in plan.to_reserve]}"
        )
        return plan

    def _release_patch(self, agent: dict[str, Any]) -> list[PatchOperation]:
        labels = get_path(agent, "metadata", "labels")
        remaining = {k: v for k, v in (labels or {}).items() if k != self.label_key}
        ops: list[PatchOperation] = []
        append_patch(ops, LABELS_PATH, remaining, labels)
        # An empty reference unassigns the Agent
        append_patch(ops, CLUSTER_REF_PATH, {}, get_path(agent, "spec", "clusterDeploymentName"))
        return ops

    def _reserve_patch(
        self, agent: dict[str, Any], cluster: ClusterRef, value: str
    ) -> list[PatchOperation]:
        labels = get_path(agent, "metadata", "labels")
        ops: list[PatchOperation] = []
        append_patch(ops, LABELS_PATH, {**(labels or {}), self.label_key: value}, labels)
        append_patch(
            ops,
            CLUSTER_REF_PATH,
            {"name": cluster.name, "namespace": cluster.namespace},
            get_path(agent, "spec", "clusterDeploymentName"),
        )
        return ops

    async def apply(self, plan: ReservationPlan) -> list[HostPatchOutcome]:
        """
        Apply a plan: all releases first, then all reservations.

        Patches within a phase run concurrently. A failed Agent does not stop
        the others; every outcome is returned.

        Args:
            plan: Plan from ``plan()``

        Returns:
            One outcome per patched Agent
        """
        released = await asyncio.gather(
            *[
                self._patch_agent(agent, plan.patches[host_id(agent)], ReservationAction.RELEASE)
                for agent in plan.to_release
            ]
        )
        reserved = await asyncio.gather(
            *[
                self._patch_agent(agent, plan.patches[host_id(agent)], ReservationAction.RESERVE)
                for agent in plan.to_reserve
            ]
        )
        outcomes = list(released) + list(reserved)

        failed = [o for o in outcomes if not o.succeeded]
        if failed:
            logger.warning(
                f"{len(failed)} of {len(outcomes)} Agent reservation patches failed"
            )
        return outcomes

    async def _patch_agent(
        self,
        agent: dict[str, Any],
        ops: list[PatchOperation],
        action: ReservationAction,
    ) -> HostPatchOutcome:
        outcome = HostPatchOutcome(host_id=host_id(agent), host_name=host_name(agent), action=action)
        if not ops:
            return outcome
        try:
            await self.store.patch(self.agent_kind, agent, ops)
            logger.info(f"Agent {outcome.host_name}: {action.value} succeeded")
        except StoreError as e:
            logger.error(f"Agent {outcome.host_name}: {action.value} failed: {e.message}")
            outcome.error = e.message
        except Exception as e:
            # Client timeouts count as a failed host too
            logger.error(
                f"Agent {outcome.host_name}: {action.value} failed: {e!r}", exc_info=True
            )
            outcome.error = str(e) or type(e).__name__
        return outcome
