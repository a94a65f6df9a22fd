"""Resource kinds served by the gateway and the client calls backing each one."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from kubedeck.exceptions import ValidationError


class Operation(str, Enum):
    LIST = "list"
    GET = "get"
    CREATE = "create"
    DELETE = "delete"
    LOGS = "logs"
    MANIFEST = "manifest"


@dataclass(frozen=True)
class KindSpec:
    kind: str
    api_version: str
    model: str
    api: str  # attribute of ClusterHandle: "core_v1" or "apps_v1"
    namespaced: bool
    operations: frozenset[Operation] = field(default_factory=frozenset)

    def method(self, verb: str) -> str:
        """Name of the client method for ``verb`` (list/read/create/delete)."""
        singular = self.kind.lower()
        if verb == "list":
            return f"list_namespaced_{singular}" if self.namespaced else f"list_{singular}"
        if verb == "list_all":
            return f"list_{singular}_for_all_namespaces"
        scope = "namespaced_" if self.namespaced else ""
        return f"{verb}_{scope}{singular}"

    def require(self, operation: Operation) -> None:
        if operation not in self.operations:
            raise ValidationError(f"{self.kind} does not support {operation.value}")


NODE = KindSpec(
    kind="Node",
    api_version="v1",
    model="V1Node",
    api="core_v1",
    namespaced=False,
    operations=frozenset({Operation.LIST, Operation.GET}),
)
NAMESPACE = KindSpec(
    kind="Namespace",
    api_version="v1",
    model="V1Namespace",
    api="core_v1",
    namespaced=False,
    operations=frozenset({Operation.LIST, Operation.GET}),
)
DEPLOYMENT = KindSpec(
    kind="Deployment",
    api_version="apps/v1",
    model="V1Deployment",
    api="apps_v1",
    namespaced=True,
    operations=frozenset({Operation.LIST, Operation.GET, Operation.CREATE, Operation.DELETE}),
)
POD = KindSpec(
    kind="Pod",
    api_version="v1",
    model="V1Pod",
    api="core_v1",
    namespaced=True,
    operations=frozenset(Operation),
)

KINDS: dict[str, KindSpec] = {spec.kind: spec for spec in (NODE, NAMESPACE, DEPLOYMENT, POD)}


def get_kind(kind: str) -> KindSpec:
    try:
        return KINDS[kind]
    except KeyError:
        raise ValidationError(f"Unsupported resource kind: {kind}") from None
