"""HTTP client for the REST key-value store.

Every store command travels as a JSON array of string tokens POSTed to the
configured endpoint with a bearer token. Batches go to ``{endpoint}/pipeline``
as an array of such arrays and come back as one result object per command, in
submission order. A pipeline is ordered and contiguous but is not a
transaction: commands that ran before a failing one are not rolled back.

This is the only module that performs network I/O.
"""

import time
from typing import Any, List, Optional, Sequence

import httpx

from ephemera.core.config import Settings
from ephemera.core.exceptions import ConfigurationError, StoreError, TransportError
from ephemera.core.logging import get_logger, log_store_command

logger = get_logger(__name__)

Command = Sequence[Any]


def encode_command(command: Command) -> List[str]:
    """Render a command as the string tokens the REST protocol expects."""
    if not command:
        raise ValueError("Store command must contain at least one token")
    return [token if isinstance(token, str) else str(token) for token in command]


class StoreClient:
    """Async executor for single and pipelined store commands."""

    def __init__(self, settings: Settings,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        """Initialize the executor.

        Args:
            settings: Provides endpoint URL, token and HTTP timeout
            transport: Optional httpx transport (tests swap in a MockTransport)
        """
        self.settings = settings
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._warned_unconfigured = False

    @property
    def configured(self) -> bool:
        return self.settings.store_configured

    async def startup(self):
        """Open the pooled HTTP client if the store is configured."""
        if not self.configured:
            self._warn_unconfigured()
            return
        self._get_client()
        logger.info("Store client initialized", url=self.settings.upstash_redis_rest_url)

    async def shutdown(self):
        """Close pooled HTTP connections."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("Store client connections closed")

    def _warn_unconfigured(self):
        if not self._warned_unconfigured:
            logger.warning("Store not configured, store-backed features disabled",
                           url_set=bool(self.settings.upstash_redis_rest_url),
                           token_set=bool(self.settings.upstash_redis_rest_token))
            self._warned_unconfigured = True

    def _get_client(self) -> httpx.AsyncClient:
        if not self.configured:
            self._warn_unconfigured()
            raise ConfigurationError("Store not configured: UPSTASH_REDIS_REST_URL "
                                     "and UPSTASH_REDIS_REST_TOKEN are required")
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.settings.store_timeout,
                transport=self._transport,
                headers={
                    "Authorization": f"Bearer {self.settings.upstash_redis_rest_token}",
                    "Content-Type": "application/json",
                },
            )
        return self._client

    async def _post(self, url: str, payload: Any, label: str) -> Any:
        client = self._get_client()
        start = time.perf_counter()
        try:
            response = await client.post(url, json=payload)
        except httpx.HTTPError as e:
            logger.error("Store request failed", command=label, error=str(e))
            raise TransportError(f"Store request failed: {e}", command=label) from e

        if response.status_code >= 400:
            logger.error("Store returned error status", command=label,
                         status_code=response.status_code, body=response.text[:200])
            raise TransportError(f"Store error: {response.status_code}",
                                 status_code=response.status_code, command=label)

        try:
            data = response.json()
        except ValueError as e:
            raise StoreError(f"Store returned invalid JSON: {e}", command=label) from e

        log_store_command(logger, label, time.perf_counter() - start)
        return data

    async def execute(self, command: Command) -> Any:
        """Run one command and return its ``result`` field.

        Raises:
            ConfigurationError: endpoint or token missing (no network attempt)
            TransportError: network failure or non-success HTTP status
            StoreError: the store reported an error for the command
        """
        tokens = encode_command(command)
        label = tokens[0].upper()
        data = await self._post(self.settings.upstash_redis_rest_url, tokens, label)

        if not isinstance(data, dict):
            raise StoreError("Unexpected store response shape", command=label)
        if data.get("error"):
            raise StoreError(data["error"], command=label)
        return data.get("result")

    async def pipeline(self, commands: Sequence[Command]) -> List[Any]:
        """Run a batch in one round trip; results align with ``commands``.

        Raises the same errors as :meth:`execute`. A per-command error raises
        StoreError after the whole batch has run on the store side.
        """
        if not commands:
            return []
        batch = [encode_command(c) for c in commands]
        label = "PIPELINE[" + ",".join(c[0].upper() for c in batch) + "]"
        data = await self._post(f"{self.settings.upstash_redis_rest_url}/pipeline", batch, label)

        if not isinstance(data, list) or len(data) != len(batch):
            raise StoreError("Pipeline response does not match batch size", command=label)

        results = []
        for index, item in enumerate(data):
            if isinstance(item, dict) and item.get("error"):
                raise StoreError(f"{batch[index][0].upper()} failed at position {index}: "
                                 f"{item['error']}", command=label)
            results.append(item.get("result") if isinstance(item, dict) else item)
        return results
