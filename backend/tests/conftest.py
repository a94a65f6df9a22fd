"""
Shared fixtures for the test suite.
"""

from __future__ import annotations

import threading
import uuid
from collections.abc import Iterator
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any

import pytest
from fastapi.testclient import TestClient
from kubernetes import client
from kubernetes.client.rest import ApiException

from kubedeck.config import Settings
from kubedeck.dependencies import (
    get_client_provider,
    get_pod_replacer,
    get_resource_gateway,
    reset_cached_dependencies,
)
from kubedeck.main import create_app
from kubedeck.services.cluster_client import ClusterHandle
from kubedeck.services.pod_replacer import PodReplacer
from kubedeck.services.resource_gateway import ResourceGateway


# ---------------------------------------------------------------------------
# In-memory cluster
# ---------------------------------------------------------------------------

_MODELS = {"Pod": "V1Pod", "Deployment": "V1Deployment"}


class FakeCluster:
    """
    Minimal control plane keyed by (kind, namespace, name).

    ``lingering`` is how many reads a deleted pod stays visible for, mimicking
    graceful termination. ``fail(method, status)`` makes the next call to that
    client method raise an ApiException.
    """

    def __init__(self, lingering: int = 0) -> None:
        self.lingering = lingering
        self.objects: dict[tuple[str, str, str], Any] = {}
        self.terminating: dict[tuple[str, str, str], int] = {}
        self.nodes: list[client.V1Node] = []
        self.namespaces: list[str] = ["default"]
        self.logs: dict[tuple[str, str], str] = {}
        self.calls: list[str] = []
        self._failures: dict[str, ApiException] = {}
        self._lock = threading.Lock()
        self._api = client.ApiClient()

    # -- test helpers -------------------------------------------------------

    def fail(self, method: str, status: int, reason: str = "Injected") -> None:
        self._failures[method] = ApiException(status=status, reason=reason)

    def add_node(self, name: str, ready: bool = True, cpu: str = "4", memory: str = "16Gi") -> None:
        condition_type = "Ready" if ready else "MemoryPressure"
        conditions = [client.V1NodeCondition(type=condition_type, status="True")]
        self.nodes.append(
            client.V1Node(
                metadata=client.V1ObjectMeta(name=name),
                status=client.V1NodeStatus(capacity={"cpu": cpu, "memory": memory}, conditions=conditions),
            )
        )

    def seed(self, kind: str, namespace: str, body: Any) -> Any:
        return self._store(kind, namespace, body)

    def find(self, kind: str, namespace: str, name: str) -> Any | None:
        return self.objects.get((kind, namespace, name))

    # -- internals ----------------------------------------------------------

    def _enter(self, method: str) -> None:
        self.calls.append(method)
        failure = self._failures.pop(method, None)
        if failure is not None:
            raise failure

    def _store(self, kind: str, namespace: str, body: Any) -> Any:
        # Round-trip through the serializer so callers never share instances
        obj = self._api._ApiClient__deserialize(self._api.sanitize_for_serialization(body), _MODELS[kind])
        obj.metadata.namespace = namespace
        obj.metadata.uid = str(uuid.uuid4())
        obj.metadata.resource_version = "1"
        obj.metadata.creation_timestamp = datetime.now(timezone.utc)
        obj.metadata.managed_fields = [client.V1ManagedFieldsEntry(manager="kubectl", operation="Update")]
        if kind == "Pod":
            obj.status = client.V1PodStatus(phase="Pending")
        self.objects[(kind, namespace, obj.metadata.name)] = obj
        return obj

    def _create(self, kind: str, namespace: str, body: Any) -> Any:
        key = (kind, namespace, body.metadata.name)
        with self._lock:
            if key in self.objects:
                raise ApiException(status=409, reason="AlreadyExists")
            return self._store(kind, namespace, body)

    def _read(self, kind: str, namespace: str, name: str) -> Any:
        key = (kind, namespace, name)
        with self._lock:
            if key not in self.objects:
                raise ApiException(status=404, reason="NotFound")
            if key in self.terminating:
                self.terminating[key] -= 1
                obj = self.objects[key]
                if self.terminating[key] < 0:
                    del self.terminating[key]
                    del self.objects[key]
                    raise ApiException(status=404, reason="NotFound")
                return obj
            return self.objects[key]

    def _delete(self, kind: str, namespace: str, name: str) -> None:
        key = (kind, namespace, name)
        with self._lock:
            if key not in self.objects or key in self.terminating:
                raise ApiException(status=404, reason="NotFound")
            if kind == "Pod" and self.lingering:
                self.terminating[key] = self.lingering
            else:
                del self.objects[key]

    def _list(self, kind: str, namespace: str | None) -> SimpleNamespace:
        items = [
            obj
            for (k, ns, _), obj in sorted(self.objects.items(), key=lambda item: item[0])
            if k == kind and (namespace is None or ns == namespace)
        ]
        return SimpleNamespace(items=items)


class FakeCoreV1Api:
    def __init__(self, cluster: FakeCluster) -> None:
        self.cluster = cluster

    def list_node(self):
        self.cluster._enter("list_node")
        return SimpleNamespace(items=list(self.cluster.nodes))

    def list_namespace(self):
        self.cluster._enter("list_namespace")
        items = [client.V1Namespace(metadata=client.V1ObjectMeta(name=ns)) for ns in self.cluster.namespaces]
        return SimpleNamespace(items=items)

    def list_namespaced_pod(self, namespace):
        self.cluster._enter("list_namespaced_pod")
        return self.cluster._list("Pod", namespace)

    def list_pod_for_all_namespaces(self):
        self.cluster._enter("list_pod_for_all_namespaces")
        return self.cluster._list("Pod", None)

    def read_namespaced_pod(self, name, namespace):
        self.cluster._enter("read_namespaced_pod")
        return self.cluster._read("Pod", namespace, name)

    def create_namespaced_pod(self, namespace, body):
        self.cluster._enter("create_namespaced_pod")
        return self.cluster._create("Pod", namespace, body)

    def delete_namespaced_pod(self, name, namespace, body=None):
        self.cluster._enter("delete_namespaced_pod")
        self.cluster._delete("Pod", namespace, name)
        return client.V1Status(status="Success")

    def read_namespaced_pod_log(self, name, namespace):
        self.cluster._enter("read_namespaced_pod_log")
        if ("Pod", namespace, name) not in self.cluster.objects:
            raise ApiException(status=404, reason="NotFound")
        return self.cluster.logs.get((namespace, name), "")


class FakeAppsV1Api:
    def __init__(self, cluster: FakeCluster) -> None:
        self.cluster = cluster

    def list_namespaced_deployment(self, namespace):
        self.cluster._enter("list_namespaced_deployment")
        return self.cluster._list("Deployment", namespace)

    def list_deployment_for_all_namespaces(self):
        self.cluster._enter("list_deployment_for_all_namespaces")
        return self.cluster._list("Deployment", None)

    def read_namespaced_deployment(self, name, namespace):
        self.cluster._enter("read_namespaced_deployment")
        return self.cluster._read("Deployment", namespace, name)

    def create_namespaced_deployment(self, namespace, body):
        self.cluster._enter("create_namespaced_deployment")
        return self.cluster._create("Deployment", namespace, body)

    def delete_namespaced_deployment(self, name, namespace, body=None):
        self.cluster._enter("delete_namespaced_deployment")
        self.cluster._delete("Deployment", namespace, name)
        return client.V1Status(status="Success")


class FakeProvider:
    def __init__(self, cluster: FakeCluster, cluster_name: str = "kind-dev") -> None:
        self.handle = ClusterHandle(
            context_name="dev",
            cluster_name=cluster_name,
            api_client=client.ApiClient(),
            core_v1=FakeCoreV1Api(cluster),
            apps_v1=FakeAppsV1Api(cluster),
        )

    def resolve(self) -> ClusterHandle:
        return self.handle

    def invalidate(self) -> None:
        pass


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        app_env="test",
        kube_config_path=str(tmp_path / "kubeconfig"),
        settle_timeout_seconds=1.0,
        settle_poll_interval_seconds=0.01,
    )


@pytest.fixture
def cluster() -> FakeCluster:
    return FakeCluster(lingering=2)


@pytest.fixture
def provider(cluster: FakeCluster) -> FakeProvider:
    return FakeProvider(cluster)


@pytest.fixture
def gateway(provider: FakeProvider) -> ResourceGateway:
    return ResourceGateway(provider)  # type: ignore[arg-type]


@pytest.fixture
def replacer(gateway: ResourceGateway, settings: Settings) -> PodReplacer:
    return PodReplacer(gateway, settings)


@pytest.fixture
def app_client(provider: FakeProvider, gateway: ResourceGateway, replacer: PodReplacer) -> Iterator[TestClient]:
    reset_cached_dependencies()
    app = create_app()
    app.dependency_overrides[get_client_provider] = lambda: provider
    app.dependency_overrides[get_resource_gateway] = lambda: gateway
    app.dependency_overrides[get_pod_replacer] = lambda: replacer
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    reset_cached_dependencies()
