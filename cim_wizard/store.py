"""Kubernetes record store used by the wizard."""

import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Protocol

from kubernetes import config
from kubernetes.client import ApiClient, CoreV1Api, CustomObjectsApi
from kubernetes.client.exceptions import ApiException
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)
from urllib3.exceptions import HTTPError

from .config import Settings
from .models import PatchOperation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecordKind:
    """API coordinates of a record kind."""

    kind: str
    version: str
    plural: str
    group: str = ""
    namespaced: bool = True

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}" if self.group else self.version

    @property
    def reference(self) -> str:
        """Console kind reference, e.g. ``hive.openshift.io~v1~ClusterDeployment``."""
        if not self.group:
            return self.kind
        return f"{self.group}~{self.version}~{self.kind}"


SECRET_KIND = RecordKind(kind="Secret", version="v1", plural="secrets")
CLUSTER_DEPLOYMENT_KIND = RecordKind(
    kind="ClusterDeployment",
    group="hive.openshift.io",
    version="v1",
    plural="clusterdeployments",
)
AGENT_CLUSTER_INSTALL_KIND = RecordKind(
    kind="AgentClusterInstall",
    group="extensions.hive.openshift.io",
    version="v1beta1",
    plural="agentclusterinstalls",
)
AGENT_KIND = RecordKind(
    kind="Agent",
    group="agent-install.openshift.io",
    version="v1beta1",
    plural="agents",
)
CLUSTER_IMAGE_SET_KIND = RecordKind(
    kind="ClusterImageSet",
    group="hive.openshift.io",
    version="v1",
    plural="clusterimagesets",
    namespaced=False,
)


class StoreError(Exception):
    """A store call was rejected or failed."""

    def __init__(self, message: str, status: Optional[int] = None, reason: Optional[str] = None):
        self.message = message
        self.status = status
        self.reason = reason
        super().__init__(message)

    @classmethod
    def from_api_exception(cls, e: ApiException) -> "StoreError":
        """Build from a Kubernetes API exception, preferring the Status message."""
        message = e.reason or str(e)
        if e.body:
            try:
                status = json.loads(e.body)
                message = status.get("message") or message
            except (TypeError, ValueError):
                pass
        return cls(message, status=e.status, reason=e.reason)

    @classmethod
    def from_transport_error(cls, e: HTTPError) -> "StoreError":
        """Build from a connection level failure such as a timeout."""
        return cls(f"Unable to reach the API server: {e}")


class ResourceStore(Protocol):
    """Record store interface the wizard core depends on."""

    async def create(self, kind: RecordKind, body: dict[str, Any]) -> dict[str, Any]:
        ...

    async def patch(
        self, kind: RecordKind, record: dict[str, Any], ops: list[PatchOperation]
    ) -> dict[str, Any]:
        ...

    async def get(
        self, kind: RecordKind, name: str, namespace: Optional[str] = None
    ) -> Optional[dict[str, Any]]:
        ...

    async def list(
        self,
        kind: RecordKind,
        namespace: Optional[str] = None,
        label_selector: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        ...


class ClusterConnection:
    """Connection to the hub cluster holding the wizard records."""

    def __init__(
        self,
        kubeconfig_path: Optional[str] = None,
        context: Optional[str] = None,
    ):
        """
        Initialize cluster connection.

        Args:
            kubeconfig_path: Path to a kubeconfig file
            context: Specific context to use

        Raises:
            ValueError: If kubeconfig is invalid
        """
        self.kubeconfig_path = kubeconfig_path
        self.context = context
        self._api_client: Optional[ApiClient] = None
        self._core_v1: Optional[CoreV1Api] = None
        self._custom_objects: Optional[CustomObjectsApi] = None

        self._initialize_client()

    @classmethod
    def from_settings(cls, settings: Settings) -> "ClusterConnection":
        """Connect using the kubeconfig settings."""
        return cls(kubeconfig_path=settings.kubeconfig_path, context=settings.kube_context)

    def _initialize_client(self):
        """Initialize Kubernetes API client."""
        try:
            if self.kubeconfig_path:
                config.load_kube_config(
                    config_file=str(Path(self.kubeconfig_path).expanduser()),
                    context=self.context,
                )
            else:
                # Running inside the hub cluster
                config.load_incluster_config()

            self._api_client = ApiClient()
            self._core_v1 = CoreV1Api(self._api_client)
            self._custom_objects = CustomObjectsApi(self._api_client)

        except Exception as e:
            raise ValueError(f"Failed to initialize cluster connection: {e}") from e

    @property
    def core_v1(self) -> CoreV1Api:
        """Get CoreV1Api instance."""
        if not self._core_v1:
            raise RuntimeError("Cluster connection not initialized")
        return self._core_v1

    @property
    def custom_objects(self) -> CustomObjectsApi:
        """Get CustomObjectsApi instance."""
        if not self._custom_objects:
            raise RuntimeError("Cluster connection not initialized")
        return self._custom_objects

    @property
    def api_client(self) -> ApiClient:
        """Get ApiClient instance."""
        if not self._api_client:
            raise RuntimeError("Cluster connection not initialized")
        return self._api_client

    def close(self):
        """Close the cluster connection and clean up resources."""
        if self._api_client:
            self._api_client.close()
            self._api_client = None

        self._core_v1 = None
        self._custom_objects = None

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()


def _is_transient(e: BaseException) -> bool:
    """Server-side or throttling failures worth another read attempt."""
    return isinstance(e, ApiException) and (e.status == 429 or (e.status or 0) >= 500)


_read_retry = retry(
    retry=retry_if_exception(_is_transient),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=5),
    reraise=True,
)


class KubernetesResourceStore:
    """
    ResourceStore backed by the Kubernetes API.

    Reads are retried on transient errors. Creates and patches are issued
    exactly once; callers decide what to do with a failure.
    """

    def __init__(self, cluster: ClusterConnection, request_timeout: Optional[float] = None):
        """
        Initialize the store.

        Args:
            cluster: Cluster connection
            request_timeout: Per-request timeout forwarded to the client
        """
        self.cluster = cluster
        self.core_v1 = cluster.core_v1
        self.custom_objects = cluster.custom_objects
        self.request_timeout = request_timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "KubernetesResourceStore":
        return cls(
            ClusterConnection.from_settings(settings),
            request_timeout=settings.request_timeout_seconds,
        )

    def _kwargs(self) -> dict[str, Any]:
        if self.request_timeout is None:
            return {}
        return {"_request_timeout": self.request_timeout}

    def _to_dict(self, obj: Any) -> dict[str, Any]:
        if isinstance(obj, dict):
            return obj
        return self.cluster.api_client.sanitize_for_serialization(obj)

    async def create(self, kind: RecordKind, body: dict[str, Any]) -> dict[str, Any]:
        """
        Create a record.

        Raises:
            StoreError: If the API rejects the record
        """
        namespace = body.get("metadata", {}).get("namespace")
        logger.debug(f"Creating {kind.kind} {namespace}/{body.get('metadata', {}).get('name')}")
        try:
            result = await asyncio.to_thread(self._create, kind, namespace, body)
        except ApiException as e:
            raise StoreError.from_api_exception(e) from e
        except HTTPError as e:
            raise StoreError.from_transport_error(e) from e
        return self._to_dict(result)

    def _create(self, kind: RecordKind, namespace: Optional[str], body: dict[str, Any]) -> Any:
        if kind == SECRET_KIND:
            return self.core_v1.create_namespaced_secret(
                namespace=namespace, body=body, **self._kwargs()
            )
        if kind.namespaced:
            return self.custom_objects.create_namespaced_custom_object(
                group=kind.group,
                version=kind.version,
                namespace=namespace,
                plural=kind.plural,
                body=body,
                **self._kwargs(),
            )
        return self.custom_objects.create_cluster_custom_object(
            group=kind.group,
            version=kind.version,
            plural=kind.plural,
            body=body,
            **self._kwargs(),
        )

    async def patch(
        self, kind: RecordKind, record: dict[str, Any], ops: list[PatchOperation]
    ) -> dict[str, Any]:
        """
        Apply a JSON patch to a record.

        Raises:
            StoreError: If the API rejects the patch
        """
        metadata = record.get("metadata", {})
        body = [op.to_json_patch() for op in ops]
        logger.debug(
            f"Patching {kind.kind} {metadata.get('namespace')}/{metadata.get('name')}: {body}"
        )
        try:
            result = await asyncio.to_thread(
                self._patch, kind, metadata.get("name"), metadata.get("namespace"), body
            )
        except ApiException as e:
            raise StoreError.from_api_exception(e) from e
        except HTTPError as e:
            raise StoreError.from_transport_error(e) from e
        return self._to_dict(result)

    def _patch(
        self, kind: RecordKind, name: str, namespace: Optional[str], body: list[dict[str, Any]]
    ) -> Any:
        # A list body is sent as application/json-patch+json
        if kind == SECRET_KIND:
            return self.core_v1.patch_namespaced_secret(
                name=name, namespace=namespace, body=body, **self._kwargs()
            )
        if kind.namespaced:
            return self.custom_objects.patch_namespaced_custom_object(
                group=kind.group,
                version=kind.version,
                namespace=namespace,
                plural=kind.plural,
                name=name,
                body=body,
                **self._kwargs(),
            )
        return self.custom_objects.patch_cluster_custom_object(
            group=kind.group,
            version=kind.version,
            plural=kind.plural,
            name=name,
            body=body,
            **self._kwargs(),
        )

    async def get(
        self, kind: RecordKind, name: str, namespace: Optional[str] = None
    ) -> Optional[dict[str, Any]]:
        """
        Get a record.

        Returns:
            The record or None if not found

        Raises:
            StoreError: On any other API failure
        """
        try:
            result = await asyncio.to_thread(self._get, kind, name, namespace)
        except ApiException as e:
            if e.status == 404:
                return None
            raise StoreError.from_api_exception(e) from e
        except HTTPError as e:
            raise StoreError.from_transport_error(e) from e
        return self._to_dict(result)

    @_read_retry
    def _get(self, kind: RecordKind, name: str, namespace: Optional[str]) -> Any:
        if kind == SECRET_KIND:
            return self.core_v1.read_namespaced_secret(name, namespace, **self._kwargs())
        if kind.namespaced:
            return self.custom_objects.get_namespaced_custom_object(
                kind.group, kind.version, namespace, kind.plural, name, **self._kwargs()
            )
        return self.custom_objects.get_cluster_custom_object(
            kind.group, kind.version, kind.plural, name, **self._kwargs()
        )

    async def list(
        self,
        kind: RecordKind,
        namespace: Optional[str] = None,
        label_selector: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        """
        List records, optionally filtered by namespace and label selector.

        Raises:
            StoreError: If listing fails
        """
        try:
            result = await asyncio.to_thread(self._list, kind, namespace, label_selector)
        except ApiException as e:
            raise StoreError.from_api_exception(e) from e
        except HTTPError as e:
            raise StoreError.from_transport_error(e) from e
        return [self._to_dict(item) for item in self._to_dict(result).get("items", [])]

    @_read_retry
    def _list(self, kind: RecordKind, namespace: Optional[str], label_selector: Optional[str]) -> Any:
        if kind == SECRET_KIND:
            return self.core_v1.list_namespaced_secret(
                namespace=namespace, label_selector=label_selector, **self._kwargs()
            )
        if kind.namespaced and namespace:
            return self.custom_objects.list_namespaced_custom_object(
                group=kind.group,
                version=kind.version,
                namespace=namespace,
                plural=kind.plural,
                label_selector=label_selector,
                **self._kwargs(),
            )
        return self.custom_objects.list_cluster_custom_object(
            group=kind.group,
            version=kind.version,
            plural=kind.plural,
            label_selector=label_selector,
            **self._kwargs(),
        )
