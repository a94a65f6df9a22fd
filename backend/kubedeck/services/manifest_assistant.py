"""Draft example manifests through an OpenAI-compatible chat completions API."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from kubedeck.config import Settings, get_settings
from kubedeck.exceptions import AssistantNotConfigured, UpstreamError

logger = structlog.get_logger(__name__)


def build_prompt(yaml_type: str, query: str) -> str:
    return (
        "only provide the yaml, and no extra text / formatting (i.e. ```) for the following - "
        f"create a {yaml_type} yaml for: {query}. if you are unsure, just provide a basic sample yaml."
    )


def build_payload(model: str, yaml_type: str, query: str) -> dict[str, Any]:
    return {
        "model": model,
        "messages": [{"role": "user", "content": build_prompt(yaml_type, query)}],
    }


class ManifestAssistant:
    def __init__(self, settings: Settings | None = None, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.settings = settings or get_settings()
        self._transport = transport

    async def draft(self, yaml_type: str, query: str) -> dict[str, Any]:
        """Send one user-role prompt and return the upstream JSON reply unchanged."""
        api_key = self.settings.groq_api_key
        if not api_key:
            raise AssistantNotConfigured("could not find value for 'GROQ_API_KEY'")

        payload = build_payload(self.settings.assistant_model, yaml_type, query)
        headers = {"Authorization": f"Bearer {api_key}"}
        async with httpx.AsyncClient(
            timeout=self.settings.assistant_timeout_seconds, transport=self._transport
        ) as http:
            try:
                resp = await http.post(self.settings.assistant_url, json=payload, headers=headers)
            except httpx.HTTPError as exc:
                logger.warning("assistant.request_error", error=str(exc))
                raise UpstreamError(f"could not make request to assistant API: {exc}") from exc

        try:
            body = resp.json()
        except ValueError as exc:
            raise UpstreamError(
                f"assistant API returned a non-JSON response (status {resp.status_code})"
            ) from exc
        if resp.status_code >= 400:
            logger.warning("assistant.upstream_error", status=resp.status_code)
            raise UpstreamError(
                f"assistant API responded with status {resp.status_code}",
                details={"status": resp.status_code, "response": body},
            )
        return body
