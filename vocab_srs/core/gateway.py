"""
Credential gateway: forwards a JSON body to the upstream AI provider so the
API key never reaches the client.

Requests look like {"endpoint": "https://api.openai.com/v1/...", "body": {...}}.
Only https endpoints on an allowed host are forwarded.
"""
import logging
import os
from typing import Any, Dict, Iterable, Optional, Tuple

import httpx

from ..errors import GatewayError
from .env import env_float

logger = logging.getLogger(__name__)

DEFAULT_UPSTREAM_HOST = "api.openai.com"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


class CredentialGateway:
    def __init__(self, api_key: Optional[str] = None,
                 allowed_hosts: Optional[Iterable[str]] = None,
                 client: Optional[httpx.Client] = None):
        self.api_key = api_key if api_key is not None else os.getenv("OPENAI_API_KEY")
        self.allowed_hosts = frozenset(allowed_hosts or (os.getenv("GATEWAY_UPSTREAM_HOST", DEFAULT_UPSTREAM_HOST),))
        # an injected client belongs to the caller and is not closed here
        self._owns_client = client is None
        self.client = client if client is not None else httpx.Client(timeout=env_float("GATEWAY_TIMEOUT", 60.0))

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def __enter__(self) -> "CredentialGateway":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def is_allowed(self, endpoint: str) -> bool:
        try:
            url = httpx.URL(endpoint)
        except httpx.InvalidURL:
            return False
        return url.scheme == "https" and url.host in self.allowed_hosts

    def forward(self, endpoint: Any, body: Any) -> Tuple[int, Dict[str, Any]]:
        if not self.api_key:
            raise GatewayError(500, "API key not configured on the gateway.")
        if not endpoint or not isinstance(endpoint, str):
            raise GatewayError(400, "Invalid endpoint")
        if not self.is_allowed(endpoint):
            logger.warning("Rejected gateway request for %s", endpoint)
            raise GatewayError(400, "Invalid API endpoint")

        try:
            resp = self.client.post(
                endpoint,
                json=body,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Gateway upstream error: %s", e)
            raise GatewayError(500, str(e) or "Internal server error") from e
        # upstream errors pass through with their own status
        return resp.status_code, data

    def handle(self, method: str, payload: Any) -> Tuple[int, Dict[str, str], Optional[Dict[str, Any]]]:
        """(status, headers, json body) for one incoming request."""
        method = (method or "").upper()
        if method == "OPTIONS":
            return 200, dict(CORS_HEADERS), None
        if method != "POST":
            return 405, dict(CORS_HEADERS), {"error": "Method not allowed"}
        if not isinstance(payload, dict):
            return 400, dict(CORS_HEADERS), {"error": "Invalid request body"}
        try:
            status, data = self.forward(payload.get("endpoint"), payload.get("body"))
        except GatewayError as e:
            return e.status_code, dict(CORS_HEADERS), {"error": e.message}
        return status, dict(CORS_HEADERS), data
