"""
Manifest codec.

Strict YAML/JSON decoding into ``kubernetes.client`` models and deterministic
YAML encoding of live objects. Decoding rejects any field the target model does
not know, so a typo in an edited manifest fails loudly instead of being dropped.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from functools import lru_cache
from typing import Any

import yaml
from kubernetes import client
from kubernetes.client import ApiClient

from kubedeck.exceptions import ValidationError
from kubedeck.services.kinds import KindSpec, get_kind

_LIST_TYPE = re.compile(r"^list\[(.+)\]$")
_DICT_TYPE = re.compile(r"^dict\(([^,]+), (.+)\)$")

# Populated by the API server; never part of a manifest sent to create.
SERVER_METADATA_FIELDS = (
    "uid",
    "resource_version",
    "creation_timestamp",
    "deletion_timestamp",
    "deletion_grace_period_seconds",
    "generation",
    "self_link",
    "managed_fields",
)


@lru_cache(maxsize=1)
def _api_client() -> ApiClient:
    # Only used for (de)serialization; never sends requests.
    return ApiClient()


def _check_scalar(value: Any, type_name: str, path: str, errors: list[str]) -> None:
    if type_name == "str":
        # YAML turns `cpu: 1` into an int; the API accepts it as a quantity string
        ok = isinstance(value, (str, int, float)) and not isinstance(value, bool)
    elif type_name == "int":
        ok = isinstance(value, int) and not isinstance(value, bool)
    elif type_name == "float":
        ok = isinstance(value, (int, float)) and not isinstance(value, bool)
    elif type_name == "bool":
        ok = isinstance(value, bool)
    elif type_name in ("datetime", "date"):
        ok = isinstance(value, (str, datetime, date))
    else:
        ok = True
    if not ok:
        errors.append(f"{path}: expected {type_name}, got {type(value).__name__}")


def check_fields(data: Any, type_name: str, path: str, errors: list[str]) -> None:
    """Walk ``data`` against the openapi type ``type_name`` collecting errors."""
    if data is None:
        return

    match = _LIST_TYPE.match(type_name)
    if match:
        if not isinstance(data, list):
            errors.append(f"{path}: expected a list")
            return
        for index, item in enumerate(data):
            check_fields(item, match.group(1), f"{path}[{index}]", errors)
        return

    match = _DICT_TYPE.match(type_name)
    if match:
        if not isinstance(data, dict):
            errors.append(f"{path}: expected a mapping")
            return
        for key, value in data.items():
            check_fields(value, match.group(2), f"{path}.{key}", errors)
        return

    model = getattr(client, type_name, None)
    if model is None or not hasattr(model, "attribute_map"):
        _check_scalar(data, type_name, path, errors)
        return

    if not isinstance(data, dict):
        errors.append(f"{path}: expected a mapping")
        return

    known = {json_key: attr for attr, json_key in model.attribute_map.items()}
    for key, value in data.items():
        attr = known.get(key)
        if attr is None:
            errors.append(f'{path}: unknown field "{key}"')
            continue
        check_fields(value, model.openapi_types[attr], f"{path}.{key}", errors)


def _load_document(text: str | bytes) -> dict[str, Any]:
    if isinstance(text, bytes):
        try:
            text = text.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ValidationError("Manifest is not valid UTF-8") from exc
    if not text or not text.strip():
        raise ValidationError("Manifest body is empty")
    try:
        documents = [doc for doc in yaml.safe_load_all(text) if doc is not None]
    except yaml.YAMLError as exc:
        raise ValidationError(f"Error unmarshalling YAML: {exc}") from exc
    if len(documents) != 1:
        raise ValidationError(f"Expected exactly one manifest document, got {len(documents)}")
    document = documents[0]
    if not isinstance(document, dict):
        raise ValidationError("Manifest must be a mapping")
    return document


def decode(kind: str | KindSpec, text: str | bytes) -> Any:
    """Strictly decode a manifest of ``kind`` into its typed model."""
    spec = kind if isinstance(kind, KindSpec) else get_kind(kind)
    document = _load_document(text)

    declared_kind = document.get("kind")
    if declared_kind is not None and declared_kind != spec.kind:
        raise ValidationError(f"Manifest kind must be {spec.kind}, got {declared_kind}")
    declared_version = document.get("apiVersion")
    if declared_version is not None and declared_version != spec.api_version:
        raise ValidationError(f"Manifest apiVersion must be {spec.api_version}, got {declared_version}")

    errors: list[str] = []
    check_fields(document, spec.model, spec.kind, errors)
    if errors:
        raise ValidationError(
            f"Manifest does not match the {spec.kind} schema: {errors[0]}",
            details={"errors": errors},
        )

    metadata = document.get("metadata") or {}
    if not metadata.get("name"):
        raise ValidationError("Manifest metadata.name is required")

    document.setdefault("apiVersion", spec.api_version)
    document.setdefault("kind", spec.kind)

    try:
        return _api_client()._ApiClient__deserialize(document, spec.model)
    except (ValueError, TypeError) as exc:
        raise ValidationError(f"Invalid {spec.kind} manifest: {exc}") from exc


def to_dict(obj: Any) -> dict[str, Any]:
    data = _api_client().sanitize_for_serialization(obj)
    metadata = data.get("metadata") if isinstance(data, dict) else None
    if isinstance(metadata, dict):
        metadata.pop("managedFields", None)
    return data


def encode(obj: Any) -> str:
    """Serialize a model (or plain dict) to YAML for display and resubmission."""
    return yaml.safe_dump(to_dict(obj), sort_keys=False)


def strip_server_fields(obj: Any) -> Any:
    """Clear fields the API server owns so the object can be created again."""
    metadata = getattr(obj, "metadata", None)
    if metadata is not None:
        for field in SERVER_METADATA_FIELDS:
            setattr(metadata, field, None)
    if hasattr(obj, "status"):
        obj.status = None
    return obj
