"""Sequential model prober.

Looks up the models a credential can see, then sends each model a short
prompt, one model at a time, and reports per-model status, latency and
response or error text.

Usage:
    from model_prober.prober import probe_all_models

    async for snapshot in probe_all_models(api_key):
        print(snapshot.model_id, snapshot.state)
"""

from __future__ import annotations

import time
from collections.abc import AsyncGenerator, AsyncIterator, Sequence
from contextlib import asynccontextmanager
from typing import Any

from loguru import logger
from pydantic import ValidationError

from .catalog import (
    FALLBACK_MODEL_IDS,
    FALLBACK_OWNER,
    MAX_TOKENS,
    NO_RESPONSE_CONTENT,
    PROBE_PROMPT,
    TEMPERATURE,
)
from .client import ProviderClient, create_provider_client
from .errors import UNKNOWN_ERROR, ListLookupError, ProberError, ProviderError, require_credential
from .models import ModelDescriptor, ModelListing, ProbeResult, ProbeRun, RunOutcome, run_outcome

ModelSpec = ModelDescriptor | str

__all__ = [
    "ModelProber",
    "extract_response_text",
    "fallback_models",
    "fetch_models",
    "list_models",
    "probe_all_models",
    "probe_model",
    "run_outcome",
]


def fallback_models() -> list[ModelDescriptor]:
    """The fixed catalog used when the caller has no model list."""
    return [ModelDescriptor(id=model_id, owner=FALLBACK_OWNER) for model_id in FALLBACK_MODEL_IDS]


@asynccontextmanager
async def _client_scope(
    api_key: str, client: ProviderClient | None
) -> AsyncIterator[ProviderClient]:
    """Use the caller's client, or create one and close it afterwards."""
    if client is not None:
        yield client
        return
    owned = create_provider_client(api_key)
    try:
        yield owned
    finally:
        await owned.close()


# ---------------------------------------------------------------------------
# Model listing
# ---------------------------------------------------------------------------


async def fetch_models(
    api_key: str, *, client: ProviderClient | None = None
) -> list[ModelDescriptor]:
    """Fetch the provider's model list, in the order the provider returns it.

    Raises:
        PreconditionError: If the credential is blank
        ListLookupError: If the lookup failed for any reason
    """
    require_credential(api_key)

    async with _client_scope(api_key, client) as provider:
        try:
            body = await provider.list_models()
        except ProberError as e:
            raise ListLookupError(e.message) from e

    data = body.get("data") if isinstance(body, dict) else None
    if not isinstance(data, list):
        return []
    return [d for d in (_parse_descriptor(entry) for entry in data) if d is not None]


def _parse_descriptor(entry: Any) -> ModelDescriptor | None:
    """Parse one listing entry, or None when it does not describe a model."""
    if not isinstance(entry, dict) or "id" not in entry:
        return None
    try:
        return ModelDescriptor.model_validate(entry)
    except ValidationError as e:
        logger.debug(f"Skipping malformed model entry {entry.get('id')!r}: {e.error_count()} errors")
        return None


async def list_models(api_key: str, *, client: ProviderClient | None = None) -> ModelListing:
    """Look up available models without raising on provider failures.

    A failed lookup yields an empty listing with ``error`` set, so the
    caller can fall back to the fixed catalog.

    Raises:
        PreconditionError: If the credential is blank
    """
    try:
        models = await fetch_models(api_key, client=client)
    except ListLookupError as e:
        logger.warning(f"Failed to fetch models: {e.message}")
        return ModelListing(error=e.message)

    logger.info(f"Provider reported {len(models)} models")
    return ModelListing(models=models)


# ---------------------------------------------------------------------------
# Probing
# ---------------------------------------------------------------------------


def extract_response_text(data: Any) -> str:
    """Pull the reply out of a chat or legacy completion body.

    Prefers ``choices[0].message.content``, then ``choices[0].text``.
    """
    choices = data.get("choices") if isinstance(data, dict) else None
    first = choices[0] if isinstance(choices, list) and choices else None
    if isinstance(first, dict):
        message = first.get("message")
        if isinstance(message, dict) and message.get("content"):
            return str(message["content"])
        if first.get("text"):
            return str(first["text"])
    return NO_RESPONSE_CONTENT


def _elapsed_ms(started: float) -> int:
    return round((time.perf_counter() - started) * 1000)


async def _complete(client: ProviderClient, model_id: str) -> dict[str, Any]:
    """Chat completion, falling back once to the legacy endpoint on 404."""
    try:
        return await client.chat_completion(
            model=model_id,
            messages=[{"role": "user", "content": PROBE_PROMPT}],
            max_tokens=MAX_TOKENS,
            temperature=TEMPERATURE,
        )
    except ProviderError as e:
        if not e.is_not_found:
            raise
        logger.debug(f"{model_id}: chat endpoint returned 404, trying legacy completions")

    return await client.legacy_completion(
        model=model_id,
        prompt=PROBE_PROMPT,
        max_tokens=MAX_TOKENS,
        temperature=TEMPERATURE,
    )


async def probe_model(
    client: ProviderClient, model_id: str, index: int = 0, owner: str | None = None
) -> ProbeResult:
    """Probe one model and return its terminal snapshot.

    Never raises for provider or transport failures; those become an
    ``error`` result.
    """
    pending = ProbeResult.testing(index, model_id, owner)
    started = time.perf_counter()
    try:
        data = await _complete(client, model_id)
    except ProberError as e:
        elapsed = _elapsed_ms(started)
        logger.warning(f"{model_id}: {e.message}")
        return pending.failed(e.message, elapsed)
    except Exception as e:
        elapsed = _elapsed_ms(started)
        logger.exception(f"Unexpected failure probing {model_id}")
        return pending.failed(str(e) or UNKNOWN_ERROR, elapsed)

    elapsed = _elapsed_ms(started)
    logger.info(f"{model_id}: ok in {elapsed} ms")
    return pending.succeeded(extract_response_text(data), elapsed)


def _to_descriptor(model: ModelSpec) -> ModelDescriptor:
    if isinstance(model, ModelDescriptor):
        return model
    return ModelDescriptor(id=model)


def probe_all_models(
    api_key: str,
    models: Sequence[ModelSpec] | None = None,
    *,
    client: ProviderClient | None = None,
) -> AsyncIterator[ProbeResult]:
    """Probe every model in order, one at a time.

    For each model a ``testing`` snapshot is yielded before its request is
    sent, then the terminal snapshot with the same index. The next model is
    not contacted until the previous one has finished. When ``models`` is
    empty the fixed fallback catalog is probed.

    Raises:
        PreconditionError: Immediately, if the credential is blank
    """
    require_credential(api_key)
    descriptors = [_to_descriptor(m) for m in models] if models else fallback_models()
    return _probe_sequence(api_key, descriptors, client)


async def _probe_sequence(
    api_key: str,
    descriptors: list[ModelDescriptor],
    client: ProviderClient | None,
) -> AsyncGenerator[ProbeResult, None]:
    logger.info(f"Probing {len(descriptors)} models")
    async with _client_scope(api_key, client) as provider:
        for index, descriptor in enumerate(descriptors):
            yield ProbeResult.testing(index, descriptor.id, descriptor.owner)
            yield await probe_model(provider, descriptor.id, index, descriptor.owner)


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


class ModelProber:
    """Probe session bound to one credential.

    Owns a provider client and caches the model listing. A non-empty
    listing is reused across runs unless a refresh is requested.
    """

    def __init__(self, api_key: str, *, client: ProviderClient | None = None):
        self._api_key = require_credential(api_key)
        self._owns_client = client is None
        self._client = client if client is not None else create_provider_client(api_key)
        self._listing: ModelListing | None = None

    @property
    def cached_models(self) -> list[ModelDescriptor]:
        return list(self._listing.models) if self._listing else []

    async def list_models(self, refresh: bool = False) -> ModelListing:
        """Return the cached listing, or look it up when empty or refreshing."""
        if self._listing is not None and self._listing.models and not refresh:
            return self._listing
        listing = await list_models(self._api_key, client=self._client)
        if listing.models:
            self._listing = listing
        return listing

    async def resolve_models(
        self,
        models: Sequence[ModelSpec] | None = None,
        *,
        refresh_models: bool = False,
    ) -> list[ModelDescriptor]:
        """Explicit models, else the provider listing, else the fallback catalog."""
        if models:
            return [_to_descriptor(m) for m in models]
        listing = await self.list_models(refresh=refresh_models)
        if listing.models:
            return listing.models
        logger.info("No models listed, using fallback catalog")
        return fallback_models()

    async def run(
        self,
        models: Sequence[ModelSpec] | None = None,
        *,
        refresh_models: bool = False,
    ) -> AsyncGenerator[ProbeRun, None]:
        """Run a fresh probe and yield the run after every snapshot."""
        descriptors = await self.resolve_models(models, refresh_models=refresh_models)
        run = ProbeRun(models=[d.id for d in descriptors])
        async for snapshot in probe_all_models(self._api_key, descriptors, client=self._client):
            run.apply(snapshot)
            yield run

        outcome = run.outcome or RunOutcome.FAILURE
        logger.info(
            f"Run finished: {outcome.value} "
            f"({run.success_count}/{run.total} models responded)"
        )

    async def close(self) -> None:
        if self._owns_client:
            await self._client.close()

    async def __aenter__(self) -> ModelProber:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
