"""Pytest configuration and fixtures for the wizard tests."""

import copy
import itertools
from typing import Any, Optional

import pytest

from cim_wizard import (
    ClusterDetailsValues,
    ClusterNetworkingValues,
    ClusterRef,
    HostsSelectionValues,
    PatchOp,
    PatchOperation,
    RecordKind,
    StoreError,
    WizardContext,
)

RESERVATION_KEY = "agentclusterinstalls.agent-install.openshift.io/reserved-by"


class InMemoryStore:
    """
    Record store keeping records in a dict and applying JSON patches.

    ``fail`` maps ``(verb, kind, name)`` to the exception that call raises.
    Every call is appended to ``calls`` as ``(verb, kind, name)``.
    """

    def __init__(self):
        self.records: dict[tuple[str, Optional[str], str], dict[str, Any]] = {}
        self.calls: list[tuple[str, str, str]] = []
        self.patches: list[tuple[str, str, list[dict[str, Any]]]] = []
        self.fail: dict[tuple[str, str, str], Exception] = {}
        self._uids = itertools.count(1)

    def _check(self, verb: str, kind: RecordKind, name: str) -> None:
        self.calls.append((verb, kind.kind, name))
        error = self.fail.get((verb, kind.kind, name))
        if error:
            raise error

    def _key(self, kind: RecordKind, namespace: Optional[str], name: str):
        return (kind.plural, namespace if kind.namespaced else None, name)

    def add(self, kind: RecordKind, record: dict[str, Any]) -> dict[str, Any]:
        metadata = record.setdefault("metadata", {})
        metadata.setdefault("uid", f"uid-{next(self._uids)}")
        self.records[self._key(kind, metadata.get("namespace"), metadata["name"])] = record
        return record

    def find(self, kind: RecordKind, name: str, namespace: Optional[str] = None):
        return self.records.get(self._key(kind, namespace, name))

    async def create(self, kind: RecordKind, body: dict[str, Any]) -> dict[str, Any]:
        metadata = body["metadata"]
        self._check("create", kind, metadata["name"])
        key = self._key(kind, metadata.get("namespace"), metadata["name"])
        if key in self.records:
            raise StoreError(f"{kind.plural} \"{metadata['name']}\" already exists", status=409)
        return copy.deepcopy(self.add(kind, copy.deepcopy(body)))

    async def patch(
        self, kind: RecordKind, record: dict[str, Any], ops: list[PatchOperation]
    ) -> dict[str, Any]:
        metadata = record["metadata"]
        self._check("patch", kind, metadata["name"])
        stored = self.records[self._key(kind, metadata.get("namespace"), metadata["name"])]
        body = [op.to_json_patch() for op in ops]
        self.patches.append((kind.kind, metadata["name"], body))
        for op in ops:
            apply_op(stored, op)
        return copy.deepcopy(stored)

    async def get(self, kind: RecordKind, name: str, namespace: Optional[str] = None):
        self._check("get", kind, name)
        record = self.find(kind, name, namespace)
        return copy.deepcopy(record) if record is not None else None

    async def list(
        self,
        kind: RecordKind,
        namespace: Optional[str] = None,
        label_selector: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        self._check("list", kind, namespace or "")
        return [
            copy.deepcopy(record)
            for (plural, ns, _), record in self.records.items()
            if plural == kind.plural and (namespace is None or ns == namespace)
        ]


def apply_op(record: dict[str, Any], op: PatchOperation) -> None:
    """Apply one add/replace/remove operation the way the API server does."""
    keys = op.path.strip("/").split("/")
    parent = record
    for key in keys[:-1]:
        if key not in parent:
            if op.op == PatchOp.REPLACE:
                raise StoreError(f"replace on missing path {op.path}", status=422)
            parent[key] = {}
        parent = parent[key]
    last = keys[-1]
    if op.op == PatchOp.REPLACE and last not in parent:
        raise StoreError(f"replace on missing path {op.path}", status=422)
    if op.op == PatchOp.REMOVE:
        parent.pop(last)
    else:
        parent[last] = copy.deepcopy(op.value)


def make_agent(
    uid: str,
    hostname: Optional[str] = None,
    labels: Optional[dict[str, str]] = None,
    cluster: Optional[ClusterRef] = None,
    namespace: str = "clusters",
) -> dict[str, Any]:
    """Agent record as returned by the API."""
    metadata: dict[str, Any] = {"name": f"agent-{uid}", "namespace": namespace, "uid": uid}
    if labels is not None:
        metadata["labels"] = labels
    spec: dict[str, Any] = {"hostname": hostname or f"host-{uid}"}
    if cluster is not None:
        spec["clusterDeploymentName"] = {"name": cluster.name, "namespace": cluster.namespace}
    return {
        "apiVersion": "agent-install.openshift.io/v1beta1",
        "kind": "Agent",
        "metadata": metadata,
        "spec": spec,
    }


@pytest.fixture
def store():
    """Empty in-memory record store."""
    return InMemoryStore()


@pytest.fixture
def wizard_context():
    """Wizard context for the 'clusters' namespace."""
    return WizardContext(namespace="clusters")


@pytest.fixture
def cluster_ref():
    """Identity of the cluster under test."""
    return ClusterRef(namespace="clusters", name="edge-01")


@pytest.fixture
def details_values():
    """Sample details step values."""
    return ClusterDetailsValues(
        name="edge-01",
        base_dns_domain="example.com",
        openshift_version="openshift-v4.9.0",
        pull_secret='{"auths":{"quay.io":{"auth":"Zm9vOmJhcg=="}}}',
    )


@pytest.fixture
def networking_values():
    """Sample networking step values."""
    return ClusterNetworkingValues(
        ssh_public_key="ssh-rsa AAAAB3NzaC1yc2E admin@example.com",
        cluster_network_cidr="10.128.0.0/14",
        cluster_network_host_prefix=23,
        service_network_cidr="172.30.0.0/16",
        vip_dhcp_allocation=False,
        host_subnet="192.168.122.0/24 (192.168.122.0 - 192.168.122.255)",
        api_vip="192.168.122.10",
        ingress_vip="192.168.122.11",
    )


@pytest.fixture
def hosts_values():
    """Sample hosts selection step values."""
    return HostsSelectionValues(
        auto_select_hosts=False,
        selected_host_ids=["a", "b"],
        agent_labels=["rack=r1"],
        locations=["brno"],
    )
