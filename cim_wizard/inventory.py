"""Read-side data the wizard needs to render its steps."""

import logging
from typing import Any, Optional

from .models import ClusterRef, VersionOption
from .patches import get_path
from .resources import selector_to_label_selector
from .store import (
    AGENT_KIND,
    CLUSTER_DEPLOYMENT_KIND,
    CLUSTER_IMAGE_SET_KIND,
    ResourceStore,
)

logger = logging.getLogger(__name__)

CHANNEL_LABEL_KEY = "channel"


class WizardInventory:
    """Lists the records backing the wizard's choices."""

    def __init__(self, store: ResourceStore):
        self.store = store

    async def version_options(self) -> list[VersionOption]:
        """
        OpenShift versions from the ClusterImageSets. The first one is the default.
        """
        image_sets = await self.store.list(CLUSTER_IMAGE_SET_KIND)
        options = []
        for index, image_set in enumerate(image_sets):
            name = get_path(image_set, "metadata", "name")
            labels = get_path(image_set, "metadata", "labels") or {}
            options.append(
                VersionOption(
                    label=name,
                    value=name,
                    default=index == 0,
                    support_level=labels.get(CHANNEL_LABEL_KEY) or "beta",
                )
            )
        return options

    async def used_cluster_names(
        self, namespace: str, current: Optional[ClusterRef] = None
    ) -> list[str]:
        """
        ``<name>.<baseDomain>`` of the ClusterDeployments in a namespace.

        The cluster being edited is left out so keeping its name passes the
        uniqueness check.
        """
        cluster_deployments = await self.store.list(CLUSTER_DEPLOYMENT_KIND, namespace=namespace)
        names = []
        for cd in cluster_deployments:
            name = get_path(cd, "metadata", "name")
            if current is not None and name == current.name and namespace == current.namespace:
                continue
            names.append(f"{name}.{get_path(cd, 'spec', 'baseDomain')}")
        return names

    async def agents_for_cluster(self, cluster_deployment: dict[str, Any]) -> list[dict[str, Any]]:
        """Agents matching the agent selector of a ClusterDeployment."""
        selector = get_path(cluster_deployment, "spec", "platform", "agentBareMetal", "agentSelector")
        label_selector = selector_to_label_selector(selector)
        namespace = get_path(cluster_deployment, "metadata", "namespace")
        logger.debug(f"Listing agents in {namespace} with selector {label_selector!r}")
        return await self.store.list(AGENT_KIND, namespace=namespace, label_selector=label_selector)
