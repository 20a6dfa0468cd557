"""
chains/providers.py - JSON-RPC network collaborator.

Provides the three capabilities the verification core needs:
- live chain identity of an endpoint (eth_chainId)
- account code at an address (eth_getCode)
- read-only contract calls (eth_call)

plus raw method requests for capability surveys. Every failure is raised
as an InfraError subclass; classification into outcomes happens in
chains/prober.py.
"""

import os
import re
import time
from dataclasses import dataclass
from typing import Any, Protocol

import httpx
from dotenv import load_dotenv

from core.constants import DEFAULT_PROBE_TIMEOUT_SECONDS, ErrorCode
from core.exceptions import InfraError, RPCError, RPCTimeoutError
from core.logging import get_logger

logger = get_logger(__name__)

# Load environment variables (API keys referenced from RPC URLs)
load_dotenv()

_PLACEHOLDER = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


def resolve_url(url: str) -> str:
    """
    Substitute ${VAR} placeholders in an endpoint URL from the environment.

    Raises:
        InfraError: If a referenced variable is unset or empty
    """
    missing = [name for name in _PLACEHOLDER.findall(url) if not os.getenv(name)]
    if missing:
        raise InfraError(
            f"Unresolved placeholder(s) in URL: {', '.join(missing)}",
            code=ErrorCode.INFRA_UNRESOLVED_URL,
            details={"url": url, "missing": missing},
        )
    return _PLACEHOLDER.sub(lambda m: os.environ[m.group(1)], url)


class NetworkClient(Protocol):
    """Capabilities consumed by the Endpoint Prober."""

    async def get_chain_id(self, url: str) -> int: ...

    async def get_code(self, url: str, address: str) -> str: ...

    async def call(self, url: str, to: str, data: str) -> str: ...

    async def request(self, url: str, method: str, params: list | None = None) -> Any: ...


@dataclass
class RPCStats:
    """Statistics for an RPC endpoint."""
    url: str
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    total_latency_ms: int = 0
    last_error: str | None = None

    @property
    def avg_latency_ms(self) -> int:
        if self.successful_requests == 0:
            return 0
        return self.total_latency_ms // self.successful_requests

    @property
    def success_rate(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.successful_requests / self.total_requests


class JsonRpcClient:
    """
    JSON-RPC over HTTP client addressed per call by endpoint URL.

    Unlike a failover provider, it never moves on to another endpoint:
    endpoint order is a decision of the liveness evaluator.
    """

    def __init__(
        self,
        timeout_seconds: float = DEFAULT_PROBE_TIMEOUT_SECONDS,
        max_connections: int = 10,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout_seconds = timeout_seconds
        self.max_connections = max_connections
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._request_id = 0
        self.stats: dict[str, RPCStats] = {}

    async def __aenter__(self) -> "JsonRpcClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_seconds),
                limits=httpx.Limits(max_connections=self.max_connections),
                headers={"content-type": "application/json"},
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _next_request_id(self) -> int:
        self._request_id += 1
        return self._request_id

    def _stats_for(self, url: str) -> RPCStats:
        if url not in self.stats:
            self.stats[url] = RPCStats(url=url)
        return self.stats[url]

    async def request(self, url: str, method: str, params: list | None = None) -> Any:
        """
        Make a single JSON-RPC call against one endpoint.

        Returns:
            The "result" member of the response

        Raises:
            RPCError: Node returned a JSON-RPC error object
            RPCTimeoutError: Request timed out
            InfraError: HTTP, transport or response-shape failure
        """
        resolved = resolve_url(url)
        client = await self._get_client()
        stats = self._stats_for(url)
        stats.total_requests += 1

        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params or [],
            "id": self._next_request_id(),
        }

        start_ms = int(time.time() * 1000)
        try:
            resp = await client.post(resolved, json=payload)
        except httpx.TimeoutException as e:
            latency_ms = int(time.time() * 1000) - start_ms
            self._record_failure(stats, f"Timeout after {latency_ms}ms")
            raise RPCTimeoutError(
                f"Request timed out after {latency_ms}ms",
                details={"url": url, "method": method},
            ) from e
        except httpx.HTTPError as e:
            self._record_failure(stats, str(e))
            raise InfraError(
                f"Transport error: {e}",
                code=ErrorCode.INFRA_HTTP_ERROR,
                details={"url": url, "method": method},
            ) from e

        latency_ms = int(time.time() * 1000) - start_ms

        if resp.status_code >= 400:
            message = f"HTTP {resp.status_code} {resp.reason_phrase}"
            self._record_failure(stats, message)
            raise InfraError(
                message,
                code=ErrorCode.INFRA_HTTP_ERROR,
                details={"url": url, "method": method, "status": resp.status_code},
            )

        try:
            body = resp.json()
        except ValueError as e:
            self._record_failure(stats, "Invalid JSON response")
            raise InfraError(
                "Invalid JSON response",
                code=ErrorCode.INFRA_BAD_RESPONSE,
                details={"url": url, "method": method},
            ) from e

        if not isinstance(body, dict):
            self._record_failure(stats, "Unexpected response structure")
            raise InfraError(
                "Unexpected response structure",
                code=ErrorCode.INFRA_BAD_RESPONSE,
                details={"url": url, "method": method},
            )

        if body.get("error") is not None:
            error = body["error"]
            if isinstance(error, dict):
                message = str(error.get("message", error))
                rpc_code = error.get("code")
            else:
                message, rpc_code = str(error), None
            self._record_failure(stats, message)
            logger.debug(f"RPC error from {url}: {message}")
            raise RPCError(
                f"RPC error: {message}",
                rpc_code=rpc_code if isinstance(rpc_code, int) else None,
                details={"url": url, "method": method},
            )

        if "result" not in body:
            self._record_failure(stats, "Response has no result")
            raise InfraError(
                "Response has no result",
                code=ErrorCode.INFRA_BAD_RESPONSE,
                details={"url": url, "method": method},
            )

        stats.successful_requests += 1
        stats.total_latency_ms += latency_ms
        return body["result"]

    @staticmethod
    def _record_failure(stats: RPCStats, message: str) -> None:
        stats.failed_requests += 1
        stats.last_error = message

    async def get_chain_id(self, url: str) -> int:
        """Get chain ID reported by an endpoint."""
        result = await self.request(url, "eth_chainId")
        return _parse_quantity(result, url, "eth_chainId")

    async def get_code(self, url: str, address: str) -> str:
        """Get deployed bytecode at address ("0x" when none)."""
        result = await self.request(url, "eth_getCode", [address, "latest"])
        if not isinstance(result, str):
            raise InfraError(
                "eth_getCode returned a non-string result",
                code=ErrorCode.INFRA_BAD_RESPONSE,
                details={"url": url, "address": address},
            )
        return result

    async def call(self, url: str, to: str, data: str) -> str:
        """Make eth_call against the latest block."""
        result = await self.request(url, "eth_call", [{"to": to, "data": data}, "latest"])
        if not isinstance(result, str):
            raise InfraError(
                "eth_call returned a non-string result",
                code=ErrorCode.INFRA_BAD_RESPONSE,
                details={"url": url, "to": to},
            )
        return result

    def get_stats_summary(self) -> dict:
        """Get statistics summary for all endpoints."""
        return {
            url: {
                "total_requests": s.total_requests,
                "success_rate": round(s.success_rate, 3),
                "avg_latency_ms": s.avg_latency_ms,
                "last_error": s.last_error,
            }
            for url, s in self.stats.items()
        }


def _parse_quantity(value: Any, url: str, method: str) -> int:
    """Decode a JSON-RPC hex quantity."""
    try:
        return int(value, 16)
    except (TypeError, ValueError) as e:
        raise InfraError(
            f"Malformed {method} result: {value!r}",
            code=ErrorCode.INFRA_BAD_RESPONSE,
            details={"url": url},
        ) from e
