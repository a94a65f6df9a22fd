from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest
import yaml
from kubernetes import client

from kubedeck.exceptions import ValidationError
from kubedeck.services import manifest_codec

from tests.samples import deployment_yaml, pod_yaml


def test_decode_pod_yaml():
    pod = manifest_codec.decode("Pod", pod_yaml())

    assert isinstance(pod, client.V1Pod)
    assert pod.metadata.name == "web-1"
    assert pod.spec.containers[0].image == "nginx:1.25"
    assert pod.spec.containers[0].ports[0].container_port == 80


def test_decode_accepts_json_and_bytes():
    body = json.dumps(
        {"metadata": {"name": "json-pod"}, "spec": {"containers": [{"name": "c", "image": "busybox"}]}}
    ).encode()

    pod = manifest_codec.decode("Pod", body)

    # Missing apiVersion and kind are filled in for the target kind
    assert pod.api_version == "v1"
    assert pod.kind == "Pod"


def test_decode_deployment():
    deployment = manifest_codec.decode("Deployment", deployment_yaml(replicas=3))

    assert isinstance(deployment, client.V1Deployment)
    assert deployment.spec.replicas == 3
    assert deployment.spec.selector.match_labels == {"app": "api"}


def test_unknown_field_is_rejected():
    text = pod_yaml().replace("    image: nginx:1.25", "    imagee: nginx:1.25")

    with pytest.raises(ValidationError) as excinfo:
        manifest_codec.decode("Pod", text)

    assert 'Pod.spec.containers[0]: unknown field "imagee"' in excinfo.value.details["errors"]
    assert excinfo.value.status_code == 400


def test_type_mismatch_is_rejected():
    text = pod_yaml().replace("containerPort: 80", "containerPort: eighty")

    with pytest.raises(ValidationError, match="expected int"):
        manifest_codec.decode("Pod", text)


def test_numeric_quantities_are_accepted():
    # `extra` lands after the ports list, inside the container
    text = pod_yaml(extra="    resources:\n      limits:\n        cpu: 1\n        memory: 128Mi\n")
    pod = manifest_codec.decode("Pod", text)

    assert pod.spec.containers[0].resources.limits == {"cpu": "1", "memory": "128Mi"}


@pytest.mark.parametrize(
    "text, message",
    [
        ("", "empty"),
        ("   \n", "empty"),
        ("metadata: [oops", "Error unmarshalling YAML"),
        ("- a\n- b\n", "must be a mapping"),
        ("kind: Pod\n---\nkind: Pod\n", "exactly one"),
    ],
)
def test_malformed_documents(text, message):
    with pytest.raises(ValidationError, match=message):
        manifest_codec.decode("Pod", text)


def test_kind_mismatch():
    with pytest.raises(ValidationError, match="kind must be Pod, got Deployment"):
        manifest_codec.decode("Pod", deployment_yaml())


def test_api_version_mismatch():
    with pytest.raises(ValidationError, match="apiVersion must be apps/v1"):
        manifest_codec.decode("Deployment", deployment_yaml().replace("apps/v1", "apps/v1beta1"))


def test_name_is_required():
    with pytest.raises(ValidationError, match="metadata.name"):
        manifest_codec.decode("Pod", "apiVersion: v1\nkind: Pod\nspec:\n  containers: []\n")


def test_missing_required_model_field():
    # V1Container.name is required by the client models
    with pytest.raises(ValidationError, match="Invalid Pod manifest"):
        manifest_codec.decode("Pod", "metadata:\n  name: x\nspec:\n  containers:\n  - image: busybox\n")


def test_unsupported_kind():
    with pytest.raises(ValidationError, match="Unsupported resource kind"):
        manifest_codec.decode("Secret", pod_yaml())


def test_encode_is_resubmittable():
    pod = manifest_codec.decode("Pod", pod_yaml())
    pod.metadata.managed_fields = [client.V1ManagedFieldsEntry(manager="kubectl")]
    pod.metadata.creation_timestamp = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    text = manifest_codec.encode(pod)
    data = yaml.safe_load(text)

    assert text.startswith("apiVersion: v1\nkind: Pod\n")
    assert "managedFields" not in data["metadata"]
    assert manifest_codec.decode("Pod", text).spec == pod.spec


def test_strip_server_fields():
    pod = manifest_codec.decode("Pod", pod_yaml())
    pod.metadata.uid = "abc"
    pod.metadata.resource_version = "42"
    pod.status = client.V1PodStatus(phase="Running")

    stripped = manifest_codec.strip_server_fields(pod)

    assert stripped.metadata.uid is None
    assert stripped.metadata.resource_version is None
    assert stripped.status is None
    assert stripped.metadata.labels == {"app": "web"}


def test_deployment_from_server_is_resubmittable():
    deployment = manifest_codec.decode("Deployment", deployment_yaml())
    deployment.metadata.labels = {"app": "api", "tier": "backend"}
    deployment.metadata.uid = "3f1c9a"
    deployment.metadata.creation_timestamp = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    deployment.metadata.managed_fields = [client.V1ManagedFieldsEntry(manager="kube-controller-manager")]
    deployment.status = client.V1DeploymentStatus(replicas=2, ready_replicas=2, observed_generation=1)

    text = manifest_codec.encode(deployment)
    again = manifest_codec.decode("Deployment", text)

    assert text.startswith("apiVersion: apps/v1\nkind: Deployment\n")
    assert "managedFields" not in yaml.safe_load(text)["metadata"]
    assert again.spec == deployment.spec
    assert again.metadata.labels == {"app": "api", "tier": "backend"}
    assert again.status.ready_replicas == 2
