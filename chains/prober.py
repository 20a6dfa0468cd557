"""
chains/prober.py - Single-endpoint, single-address probes.

Every probe:
- carries the prober's timeout; on expiry the in-flight call is cancelled
- is classified into an outcome; nothing raised by the network client
  escapes a probe
- is never retried
"""

import asyncio
import re
import time
from typing import Any

from eth_abi import encode
from eth_utils import function_signature_to_4byte_selector

from chains.providers import NetworkClient
from core.constants import (
    DEFAULT_PROBE_TIMEOUT_SECONDS,
    EMPTY_CODE_VALUES,
    METHOD_NOT_FOUND_CODES,
    ProbeStatus,
    ZERO_ADDRESS,
)
from core.exceptions import ChainCheckError, RPCError
from core.logging import get_logger
from core.models import ContractOutcome, MethodOutcome, ProbeMethod, RpcOutcome
from core.validators import normalize_address

logger = get_logger(__name__)

_METHOD_NOT_FOUND = re.compile(r"method .*not (found|supported|available)|does not exist", re.I)

# eth_callMany probe body: one empty call against the zero address
CALL_MANY_PARAMS: list = [[{"to": ZERO_ADDRESS, "data": "0x"}], "latest"]


# =============================================================================
# ABI ENCODING
# =============================================================================

def _coerce_arg(abi_type: str, value: Any) -> Any:
    """Convert a role-table literal into the value eth_abi expects."""
    if abi_type == "address":
        return normalize_address(value)
    if abi_type.startswith("bytes") and abi_type != "bytes" and isinstance(value, str):
        size = int(abi_type[5:])
        if value.startswith("0x"):
            return bytes.fromhex(value[2:]).rjust(size, b"\0")
        # Short strings, as ethers' formatBytes32String
        return value.encode("utf-8").ljust(size, b"\0")
    if abi_type.startswith(("uint", "int")):
        return int(value)
    return value


def encode_probe_call(method: ProbeMethod) -> str:
    """Encode a probe method as eth_call data."""
    selector = function_signature_to_4byte_selector(method.signature)
    arg_types = method.arg_types
    if len(arg_types) != len(method.args):
        raise ValueError(
            f"{method.signature} expects {len(arg_types)} args, got {len(method.args)}"
        )
    encoded_args = b""
    if arg_types:
        encoded_args = encode(
            arg_types,
            [_coerce_arg(t, v) for t, v in zip(arg_types, method.args)],
        )
    return "0x" + (selector + encoded_args).hex()


def _has_code(code: str) -> bool:
    return code.lower() not in EMPTY_CODE_VALUES


def _describe(error: BaseException) -> str:
    if isinstance(error, ChainCheckError):
        return error.message
    return str(error) or type(error).__name__


# =============================================================================
# PROBER
# =============================================================================

class EndpointProber:
    """Issues classified probes through an injected network client."""

    def __init__(
        self,
        client: NetworkClient,
        timeout_seconds: float = DEFAULT_PROBE_TIMEOUT_SECONDS,
    ):
        self.client = client
        self.timeout_seconds = timeout_seconds

    async def _bounded(self, awaitable):
        return await asyncio.wait_for(awaitable, timeout=self.timeout_seconds)

    def _timeout_message(self) -> str:
        return f"Request timed out after {int(self.timeout_seconds * 1000)}ms"

    async def probe_rpc(self, url: str) -> RpcOutcome:
        """
        RPC liveness probe.

        Returns:
            RpcOutcome LIVE(chain_id) or FAILED(message). A timeout is FAILED.
        """
        start_ms = int(time.time() * 1000)
        try:
            chain_id = await self._bounded(self.client.get_chain_id(url))
        except asyncio.TimeoutError:
            outcome = RpcOutcome.failed(url, self._timeout_message(), _elapsed(start_ms))
        except Exception as e:
            outcome = RpcOutcome.failed(url, _describe(e), _elapsed(start_ms))
        else:
            outcome = RpcOutcome.live(url, chain_id, _elapsed(start_ms))

        logger.debug(
            "RPC probe",
            extra={"context": {"url": url, "status": outcome.status.value, "chain_id": outcome.chain_id}},
        )
        return outcome

    async def probe_contract(
        self,
        url: str,
        address: str,
        probe: ProbeMethod | None = None,
    ) -> ContractOutcome:
        """
        Contract probe: bytecode presence, then the role's interface call.

        A transport failure while fetching code is FAILED, which is not
        evidence that the code is absent.
        """
        address = normalize_address(address)
        try:
            code = await self._bounded(self.client.get_code(url, address))
        except asyncio.TimeoutError:
            return ContractOutcome(address, ProbeStatus.FAILED, self._timeout_message())
        except Exception as e:
            return ContractOutcome(address, ProbeStatus.FAILED, _describe(e))

        if not _has_code(code):
            return ContractOutcome(address, ProbeStatus.NO_CODE, "No code at address")

        if probe is None:
            return ContractOutcome(address, ProbeStatus.VERIFIED, "Has code")

        try:
            data = encode_probe_call(probe)
            result = await self._bounded(self.client.call(url, address, data))
        except asyncio.TimeoutError:
            return ContractOutcome(
                address,
                ProbeStatus.HAS_CODE_UNVERIFIED_INTERFACE,
                f"{probe.signature}: {self._timeout_message()}",
            )
        except Exception as e:
            return ContractOutcome(
                address,
                ProbeStatus.HAS_CODE_UNVERIFIED_INTERFACE,
                f"{probe.signature} failed: {_describe(e)}",
            )

        if not _has_code(result):
            return ContractOutcome(
                address,
                ProbeStatus.HAS_CODE_UNVERIFIED_INTERFACE,
                f"{probe.signature} returned no data",
            )
        return ContractOutcome(address, ProbeStatus.VERIFIED, f"{probe.signature} OK")

    async def probe_method(
        self,
        url: str,
        method: str,
        params: list | None = None,
    ) -> MethodOutcome:
        """
        Method support probe.

        "Method not found" errors mean UNSUPPORTED; any other JSON-RPC
        error means the node knows the method but rejected the params.
        """
        try:
            await self._bounded(self.client.request(url, method, params))
        except asyncio.TimeoutError:
            return MethodOutcome(url, method, ProbeStatus.FAILED, self._timeout_message())
        except RPCError as e:
            if e.rpc_code in METHOD_NOT_FOUND_CODES or _METHOD_NOT_FOUND.search(e.message):
                return MethodOutcome(url, method, ProbeStatus.UNSUPPORTED, e.message)
            return MethodOutcome(
                url,
                method,
                ProbeStatus.SUPPORTED,
                f"Error response (likely due to params): {e.message}",
            )
        except Exception as e:
            return MethodOutcome(url, method, ProbeStatus.FAILED, _describe(e))
        return MethodOutcome(url, method, ProbeStatus.SUPPORTED, "Received result")


def _elapsed(start_ms: int) -> int:
    return int(time.time() * 1000) - start_ms
