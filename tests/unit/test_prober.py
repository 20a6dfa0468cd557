"""
tests/unit/test_prober.py - Endpoint prober classification and call encoding.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from chains.prober import CALL_MANY_PARAMS, EndpointProber, encode_probe_call
from core.constants import ErrorCode, ProbeStatus, ZERO_ADDRESS
from core.exceptions import InfraError, RPCError, RPCTimeoutError
from core.models import ProbeMethod

from conftest import BYTECODE, PERMIT2, TOKEN_MESSENGER


class TestEncodeProbeCall:
    """ABI encoding of role probe methods."""

    def test_no_args_is_selector_only(self):
        # keccak("symbol()")[:4]
        assert encode_probe_call(ProbeMethod("symbol()")) == "0x95d89b41"

    def test_get_block_number(self):
        assert encode_probe_call(ProbeMethod("getBlockNumber()")) == "0x42cbb15c"

    def test_address_and_uint_args(self):
        data = encode_probe_call(ProbeMethod("getNonce(address,uint192)", (ZERO_ADDRESS, 0)))
        # selector + two 32-byte words
        assert len(data) == 2 + 8 + 2 * 64
        assert data[10:] == "00" * 64

    def test_bytes32_short_string_padded_right(self):
        data = encode_probe_call(ProbeMethod("computeAddress(bytes32,bytes32)", ("test", "salt")))
        assert data[10:18] == b"test".hex()
        assert data[18:74] == "00" * 28
        assert data[74:82] == b"salt".hex()

    def test_arg_count_mismatch(self):
        with pytest.raises(ValueError):
            encode_probe_call(ProbeMethod("getNonce(address)"))


@pytest.fixture
def client():
    client = MagicMock()
    client.get_chain_id = AsyncMock(return_value=10)
    client.get_code = AsyncMock(return_value=BYTECODE)
    client.call = AsyncMock(return_value="0x" + "00" * 32)
    client.request = AsyncMock(return_value="0x1")
    return client


class TestProbeRpc:

    @pytest.mark.asyncio
    async def test_live(self, client):
        outcome = await EndpointProber(client).probe_rpc("https://a.example")
        assert outcome.status == ProbeStatus.LIVE
        assert outcome.chain_id == 10

    @pytest.mark.asyncio
    async def test_infra_error_is_failed(self, client):
        client.get_chain_id.side_effect = InfraError("HTTP 503 Service Unavailable", ErrorCode.INFRA_HTTP_ERROR)
        outcome = await EndpointProber(client).probe_rpc("https://a.example")
        assert outcome.status == ProbeStatus.FAILED
        assert outcome.message == "HTTP 503 Service Unavailable"

    @pytest.mark.asyncio
    async def test_unexpected_error_is_failed(self, client):
        client.get_chain_id.side_effect = RuntimeError("boom")
        outcome = await EndpointProber(client).probe_rpc("https://a.example")
        assert outcome.status == ProbeStatus.FAILED
        assert outcome.message == "boom"

    @pytest.mark.asyncio
    async def test_timeout_is_failed(self, client):
        async def hang(url):
            await asyncio.sleep(10)

        client.get_chain_id = hang
        prober = EndpointProber(client, timeout_seconds=0.01)
        outcome = await prober.probe_rpc("https://slow.example")
        assert outcome.status == ProbeStatus.FAILED
        assert "timed out" in outcome.message

    def test_timeout_is_caller_supplied(self, client):
        assert EndpointProber(client, timeout_seconds=0.25).timeout_seconds == 0.25


class TestProbeContract:

    @pytest.mark.asyncio
    async def test_no_code(self, client):
        client.get_code.return_value = "0x"
        outcome = await EndpointProber(client).probe_contract("u", PERMIT2, ProbeMethod("DOMAIN_SEPARATOR()"))
        assert outcome.status == ProbeStatus.NO_CODE
        client.call.assert_not_called()

    @pytest.mark.asyncio
    async def test_code_without_probe_is_verified(self, client):
        outcome = await EndpointProber(client).probe_contract("u", PERMIT2)
        assert outcome.status == ProbeStatus.VERIFIED
        assert outcome.has_code

    @pytest.mark.asyncio
    async def test_probe_call_success(self, client):
        outcome = await EndpointProber(client).probe_contract("u", PERMIT2, ProbeMethod("DOMAIN_SEPARATOR()"))
        assert outcome.status == ProbeStatus.VERIFIED
        assert outcome.message == "DOMAIN_SEPARATOR() OK"

    @pytest.mark.asyncio
    async def test_probe_call_revert_is_unverified_interface(self, client):
        client.call.side_effect = RPCError("RPC error: execution reverted", rpc_code=3)
        outcome = await EndpointProber(client).probe_contract("u", TOKEN_MESSENGER, ProbeMethod("implementation()"))
        assert outcome.status == ProbeStatus.HAS_CODE_UNVERIFIED_INTERFACE
        assert outcome.has_code

    @pytest.mark.asyncio
    async def test_probe_call_empty_result_is_unverified_interface(self, client):
        client.call.return_value = "0x"
        outcome = await EndpointProber(client).probe_contract("u", TOKEN_MESSENGER, ProbeMethod("implementation()"))
        assert outcome.status == ProbeStatus.HAS_CODE_UNVERIFIED_INTERFACE

    @pytest.mark.asyncio
    async def test_get_code_failure_is_failed_not_no_code(self, client):
        client.get_code.side_effect = RPCTimeoutError("Request timed out after 10000ms")
        outcome = await EndpointProber(client).probe_contract("u", PERMIT2)
        assert outcome.status == ProbeStatus.FAILED
        assert not outcome.no_code

    @pytest.mark.asyncio
    async def test_address_is_checksummed_before_use(self, client):
        await EndpointProber(client).probe_contract("u", TOKEN_MESSENGER.lower())
        client.get_code.assert_awaited_once_with("u", TOKEN_MESSENGER)


class TestProbeMethod:

    @pytest.mark.asyncio
    async def test_result_is_supported(self, client):
        outcome = await EndpointProber(client).probe_method("u", "eth_callMany", CALL_MANY_PARAMS)
        assert outcome.is_supported

    @pytest.mark.asyncio
    @pytest.mark.parametrize("code", [-32601, -32004])
    async def test_method_not_found_codes(self, client, code):
        client.request.side_effect = RPCError("RPC error: nope", rpc_code=code)
        outcome = await EndpointProber(client).probe_method("u", "eth_callMany")
        assert outcome.status == ProbeStatus.UNSUPPORTED

    @pytest.mark.asyncio
    async def test_method_not_found_message(self, client):
        client.request.side_effect = RPCError("RPC error: Method not found", rpc_code=-32000)
        outcome = await EndpointProber(client).probe_method("u", "eth_callMany")
        assert outcome.status == ProbeStatus.UNSUPPORTED

    @pytest.mark.asyncio
    async def test_other_rpc_error_is_supported(self, client):
        client.request.side_effect = RPCError("RPC error: invalid params", rpc_code=-32602)
        outcome = await EndpointProber(client).probe_method("u", "eth_callMany")
        assert outcome.status == ProbeStatus.SUPPORTED
        assert outcome.message.startswith("Error response (likely due to params)")

    @pytest.mark.asyncio
    async def test_transport_error_is_failed(self, client):
        client.request.side_effect = InfraError("Transport error: refused", ErrorCode.INFRA_HTTP_ERROR)
        outcome = await EndpointProber(client).probe_method("u", "eth_callMany")
        assert outcome.status == ProbeStatus.FAILED
