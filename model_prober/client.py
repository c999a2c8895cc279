"""Provider HTTP client for OpenAI-compatible APIs."""

from typing import Any

import httpx
from loguru import logger

from model_prober.config import OPENAI_API_URL
from model_prober.errors import ProviderError, TransportError

__all__ = ["ProviderClient", "create_provider_client"]


class ProviderClient:
    """Thin async client for the listing, chat and legacy completion endpoints.

    Non-2xx responses raise ProviderError, transport failures raise
    TransportError. Requests are never retried.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = OPENAI_API_URL,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize provider client.

        Args:
            api_key: Credential sent as a bearer token on every call
            base_url: API base URL (default: https://api.openai.com)
            timeout: Request timeout in seconds (default: httpx default)
            transport: Optional httpx transport, mainly for tests
        """
        self.base_url = base_url
        self._api_key = api_key  # Keep private, don't log

        client_kwargs: dict[str, Any] = {}
        if timeout is not None:
            client_kwargs["timeout"] = httpx.Timeout(timeout)
        if transport is not None:
            client_kwargs["transport"] = transport

        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=self._build_headers(),
            **client_kwargs,
        )

        logger.debug(f"Initialized provider client for {base_url}")

    def _build_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    async def list_models(self) -> dict[str, Any]:
        """GET /v1/models."""
        return await self._request("GET", "/v1/models")

    async def chat_completion(
        self,
        model: str,
        messages: list[dict[str, Any]],
        max_tokens: int,
        temperature: float,
    ) -> dict[str, Any]:
        """POST /v1/chat/completions (non-streaming)."""
        return await self._request(
            "POST",
            "/v1/chat/completions",
            {
                "model": model,
                "messages": messages,
                "max_tokens": max_tokens,
                "temperature": temperature,
            },
        )

    async def legacy_completion(
        self,
        model: str,
        prompt: str,
        max_tokens: int,
        temperature: float,
    ) -> dict[str, Any]:
        """POST /v1/completions, the pre-chat completion endpoint."""
        return await self._request(
            "POST",
            "/v1/completions",
            {
                "model": model,
                "prompt": prompt,
                "max_tokens": max_tokens,
                "temperature": temperature,
            },
        )

    async def _request(
        self,
        method: str,
        endpoint: str,
        json_data: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        try:
            if method == "GET":
                response = await self._client.get(endpoint)
            else:
                response = await self._client.post(endpoint, json=json_data)
        except httpx.RequestError as e:
            logger.warning(f"Request failed to {self.base_url}{endpoint}: {e!r}")
            raise TransportError(str(e)) from e

        if not response.is_success:
            raise ProviderError(response.status_code, _error_message(response))

        try:
            return response.json()
        except ValueError as e:
            raise ProviderError(response.status_code, "Invalid JSON in response body") from e

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "ProviderClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()


def _error_message(response: httpx.Response) -> str | None:
    """Extract ``error.message`` from a provider error body, if present."""
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    error = body.get("error")
    if isinstance(error, dict):
        message = error.get("message")
        if isinstance(message, str) and message:
            return message
    return None


def create_provider_client(
    api_key: str,
    base_url: str | None = None,
    **kwargs: Any,
) -> ProviderClient:
    """Create a provider client, defaulting to configured settings.

    Args:
        api_key: Provider credential
        base_url: Optional override for the API URL
        **kwargs: Additional configuration passed to ProviderClient

    Returns:
        Configured ProviderClient instance
    """
    from model_prober.config import settings

    kwargs.setdefault("timeout", settings.timeout)
    return ProviderClient(
        api_key=api_key,
        base_url=base_url or settings.base_url,
        **kwargs,
    )
