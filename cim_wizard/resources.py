"""Builders for the records created and patched by the wizard."""

import base64
import json
from typing import Any, Optional

from .models import ClusterDetailsValues, HighAvailabilityMode, HostsSelectionValues
from .store import AGENT_CLUSTER_INSTALL_KIND, CLUSTER_DEPLOYMENT_KIND, SECRET_KIND

DEFAULT_CLUSTER_NETWORK_CIDR = "10.128.0.0/14"
DEFAULT_CLUSTER_NETWORK_HOST_PREFIX = 23
DEFAULT_SERVICE_NETWORK_CIDR = "172.30.0.0/16"


def pull_secret_name(cluster_name: str, prefix: str = "pullsecret-") -> str:
    """Name of the pull secret derived from the cluster name."""
    return f"{prefix}{cluster_name}"


def build_pull_secret(
    namespace: str, cluster_name: str, pull_secret: str, prefix: str = "pullsecret-"
) -> dict[str, Any]:
    """
    Build the pull secret for a cluster.

    Args:
        namespace: Namespace of the cluster
        cluster_name: Cluster name the secret name is derived from
        pull_secret: Docker config JSON as entered by the user
        prefix: Secret name prefix

    Returns:
        Secret body
    """
    encoded = base64.b64encode(pull_secret.encode("utf-8")).decode("ascii")
    return {
        "apiVersion": SECRET_KIND.api_version,
        "kind": SECRET_KIND.kind,
        "metadata": {
            "name": pull_secret_name(cluster_name, prefix),
            "namespace": namespace,
        },
        "data": {".dockerconfigjson": encoded},
        "type": "kubernetes.io/dockerconfigjson",
    }


def build_cluster_deployment(
    namespace: str,
    values: ClusterDetailsValues,
    secret_name: str,
    annotations: Optional[dict[str, str]] = None,
    agent_selector: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    """
    Build a ClusterDeployment referencing its pull secret and install config.

    Name, base domain and topology cannot change once the record exists.
    """
    metadata: dict[str, Any] = {"name": values.name, "namespace": namespace}
    if annotations:
        metadata["annotations"] = annotations

    return {
        "apiVersion": CLUSTER_DEPLOYMENT_KIND.api_version,
        "kind": CLUSTER_DEPLOYMENT_KIND.kind,
        "metadata": metadata,
        "spec": {
            "baseDomain": values.base_dns_domain,
            "clusterName": values.name,
            "clusterInstallRef": {
                "group": AGENT_CLUSTER_INSTALL_KIND.group,
                "kind": AGENT_CLUSTER_INSTALL_KIND.kind,
                "name": values.name,
                "version": AGENT_CLUSTER_INSTALL_KIND.version,
            },
            "platform": {
                "agentBareMetal": {"agentSelector": agent_selector or {}},
            },
            "pullSecretRef": {"name": secret_name},
        },
    }


def build_agent_cluster_install(
    namespace: str,
    name: str,
    cluster_deployment_name: str,
    image_set_name: str,
    high_availability_mode: HighAvailabilityMode = HighAvailabilityMode.FULL,
) -> dict[str, Any]:
    """Build the AgentClusterInstall owned by a ClusterDeployment."""
    control_plane_agents = 1 if high_availability_mode == HighAvailabilityMode.NONE else 3
    return {
        "apiVersion": AGENT_CLUSTER_INSTALL_KIND.api_version,
        "kind": AGENT_CLUSTER_INSTALL_KIND.kind,
        "metadata": {"name": name, "namespace": namespace},
        "spec": {
            "clusterDeploymentRef": {"name": cluster_deployment_name},
            "imageSetRef": {"name": image_set_name},
            "networking": {
                "clusterNetwork": [
                    {
                        "cidr": DEFAULT_CLUSTER_NETWORK_CIDR,
                        "hostPrefix": DEFAULT_CLUSTER_NETWORK_HOST_PREFIX,
                    }
                ],
                "serviceNetwork": [DEFAULT_SERVICE_NETWORK_CIDR],
            },
            "provisionRequirements": {"controlPlaneAgents": control_plane_agents},
        },
    }


def parse_labels(labels: list[str]) -> dict[str, str]:
    """Parse ``key=value`` strings into a label map. A bare key maps to ''."""
    parsed: dict[str, str] = {}
    for label in labels:
        key, _, value = label.partition("=")
        key = key.strip()
        if key:
            parsed[key] = value.strip()
    return parsed


def build_agent_selector(
    values: HostsSelectionValues, location_label_key: str
) -> dict[str, Any]:
    """
    Build a label selector from the hosts selection step.

    Locations become a set-based ``In`` requirement on the location label.
    """
    selector: dict[str, Any] = {}
    match_labels = parse_labels(values.agent_labels)
    if match_labels:
        selector["matchLabels"] = match_labels
    if values.locations:
        selector["matchExpressions"] = [
            {
                "key": location_label_key,
                "operator": "In",
                "values": sorted(values.locations),
            }
        ]
    return selector


def annotations_from_agent_selector(
    cluster_deployment: dict[str, Any],
    values: HostsSelectionValues,
    annotation_key: str,
    location_label_key: str,
) -> dict[str, str]:
    """
    Annotations of the ClusterDeployment carrying the serialized host selection.

    Unrelated annotations are kept. Keys are sorted so an unchanged selection
    serializes identically.
    """
    annotations = dict(cluster_deployment.get("metadata", {}).get("annotations") or {})
    selector = build_agent_selector(values, location_label_key)
    annotations[annotation_key] = json.dumps(selector, sort_keys=True, separators=(",", ":"))
    return annotations


def selector_to_label_selector(selector: Optional[dict[str, Any]]) -> Optional[str]:
    """Render a label selector dict as a ``label_selector`` query string."""
    if not selector:
        return None
    terms = [f"{k}={v}" for k, v in (selector.get("matchLabels") or {}).items()]
    for expr in selector.get("matchExpressions") or []:
        operator = expr.get("operator")
        key = expr.get("key")
        if operator in ("In", "NotIn"):
            values = ",".join(expr.get("values") or [])
            terms.append(f"{key} {operator.lower()} ({values})")
        elif operator == "Exists":
            terms.append(key)
        elif operator == "DoesNotExist":
            terms.append(f"!{key}")
    return ",".join(terms) or None
