"""
Cluster client provider.

Turns the kubeconfig on local disk into a ready-to-use client handle bound to
the active context. No network I/O happens here; the handle is cached until
``invalidate()`` is called.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog
import yaml
from kubernetes import client, config
from kubernetes.config.config_exception import ConfigException

from kubedeck.config import Settings, get_settings
from kubedeck.exceptions import ConfigNotFound, ConfigParseError, NoActiveContext

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ClusterHandle:
    """Client objects bound to one kubeconfig context. Holds no per-request state."""

    context_name: str
    cluster_name: str
    api_client: client.ApiClient
    core_v1: client.CoreV1Api
    apps_v1: client.AppsV1Api


def load_kubeconfig(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigNotFound(f"kubeconfig file not found at: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigParseError(f"Failed to parse kubeconfig {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigParseError(f"kubeconfig {path} is not a mapping")
    return data


def select_context(data: dict[str, Any], override: str | None = None) -> tuple[str, dict[str, Any]]:
    """Return the active context name and its body.

    ``override`` (KUBE_CONTEXT) wins over the file's ``current-context``.
    """
    current = override or data.get("current-context")
    if not current:
        raise NoActiveContext("no current context set in kubeconfig")
    contexts = {}
    for entry in data.get("contexts") or []:
        if isinstance(entry, dict) and entry.get("name"):
            contexts[entry["name"]] = entry.get("context") or {}
    if current not in contexts:
        raise NoActiveContext(f"context '{current}' is not defined in kubeconfig")
    return current, contexts[current]


def build_handle(path: Path, context_name: str, context_body: dict[str, Any]) -> ClusterHandle:
    # Loading from the file resolves relative certificate and key paths against its directory
    try:
        api_client = config.new_client_from_config(config_file=str(path), context=context_name)
    except (ConfigException, ValueError, TypeError) as exc:
        raise ConfigParseError(f"Invalid kubeconfig for context '{context_name}': {exc}") from exc
    return ClusterHandle(
        context_name=context_name,
        cluster_name=str(context_body.get("cluster") or context_name),
        api_client=api_client,
        core_v1=client.CoreV1Api(api_client),
        apps_v1=client.AppsV1Api(api_client),
    )


class KubeClientProvider:
    """Resolve and cache the cluster client handle."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self._lock = threading.Lock()
        self._handle: ClusterHandle | None = None

    def resolve(self) -> ClusterHandle:
        if self._handle is not None:
            return self._handle

        with self._lock:
            if self._handle is not None:
                return self._handle

            path = self.settings.kubeconfig_file
            data = load_kubeconfig(path)
            context_name, context_body = select_context(data, self.settings.kube_context)
            handle = build_handle(path, context_name, context_body)
            logger.info(
                "kubernetes.client_resolved",
                kubeconfig=str(path),
                context=context_name,
                cluster=handle.cluster_name,
            )
            self._handle = handle
            return handle

    def invalidate(self) -> None:
        with self._lock:
            handle, self._handle = self._handle, None
        if handle is not None:
            handle.api_client.close()
