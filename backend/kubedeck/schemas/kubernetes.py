from typing import Literal

from pydantic import BaseModel, Field


class ClusterName(BaseModel):
    clusterName: str


class NodeSummary(BaseModel):
    name: str
    cpu: str | None = None
    memory: str | None = None
    status: Literal["Ready", "Unready"]


class NodeList(BaseModel):
    nodes: list[NodeSummary]


class NamespaceList(BaseModel):
    namespaces: list[str]


class DeploymentList(BaseModel):
    deployments: list[str]


class PodSummary(BaseModel):
    name: str
    status: str


class PodList(BaseModel):
    pods: list[PodSummary]


class DeploymentResult(BaseModel):
    status: Literal["success"] = "success"
    deploymentName: str


class PodResult(BaseModel):
    status: Literal["success"] = "success"
    podName: str


class ReplaceStep(BaseModel):
    phase: str
    podName: str
    namespace: str
    message: str
    step: str | None = None
    deleted: bool | None = None
    code: str | None = None


class PodReplaceResult(PodResult):
    steps: list[ReplaceStep] = Field(default_factory=list)


class PodDeleteResult(BaseModel):
    status: Literal["success"] = "success"
    deletedPod: str


class PodLogs(BaseModel):
    logs: str


class ManifestDraftRequest(BaseModel):
    yamlType: str = Field(min_length=1, description="Resource kind to draft, e.g. Pod")
    query: str = Field(min_length=1, description="What the manifest should describe")
