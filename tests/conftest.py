# PATH: tests/conftest.py
"""
Pytest configuration and fixtures for chaincheck tests.
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from chains.prober import EndpointProber  # noqa: E402
from config import load_role_table  # noqa: E402
from core.constants import ErrorCode, ZERO_ADDRESS  # noqa: E402
from core.exceptions import InfraError, RPCError  # noqa: E402
from core.models import ChainDescriptor  # noqa: E402

# Default deployments from config/roles.yaml
PERMIT2 = "0x000000000022D473030F116dDEE9F6B43aC78BA3"
TOKEN_MESSENGER = "0x28b5a0e9C621a5BadaA536219b3a228C8168cf5d"
MULTICALL3 = "0xcA11bde05977b3631167028862bE2a173976CA11"
WETH_ARB = "0x82aF49447D8a07e3bd95BD0d56f35241523fBab1"

BYTECODE = "0x6080604052348015600f57600080fd5b50"
ONE_WORD = "0x" + "00" * 31 + "01"


def pytest_configure(config):
    """Configure pytest."""
    # Add custom markers
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )


class FakeNetwork:
    """
    In-memory NetworkClient.

    chain_ids: url -> chain id, or an exception to raise. Unknown URLs
        are unreachable.
    code: address -> bytecode, or an exception. Unknown addresses have none.
    calls: address -> eth_call result, or an exception. Default: one word.
    methods: method -> result, or an exception.
    """

    def __init__(self, chain_ids=None, code=None, calls=None, methods=None):
        self.chain_ids = dict(chain_ids or {})
        self.code = {k.lower(): v for k, v in (code or {}).items()}
        self.calls = {k.lower(): v for k, v in (calls or {}).items()}
        self.methods = dict(methods or {})
        self.log: list[tuple[str, str]] = []

    async def get_chain_id(self, url: str) -> int:
        self.log.append(("eth_chainId", url))
        value = self.chain_ids.get(url)
        if value is None:
            raise InfraError(f"Transport error: connection refused ({url})", code=ErrorCode.INFRA_HTTP_ERROR)
        if isinstance(value, Exception):
            raise value
        return value

    async def get_code(self, url: str, address: str) -> str:
        self.log.append(("eth_getCode", address))
        value = self.code.get(address.lower(), "0x")
        if isinstance(value, Exception):
            raise value
        return value

    async def call(self, url: str, to: str, data: str) -> str:
        self.log.append(("eth_call", to))
        value = self.calls.get(to.lower(), ONE_WORD)
        if isinstance(value, Exception):
            raise value
        return value

    async def request(self, url: str, method: str, params=None):
        self.log.append((method, url))
        value = self.methods.get(method, RPCError("RPC error: the method does not exist", rpc_code=-32601))
        if isinstance(value, Exception):
            raise value
        return value

    def calls_to(self, method: str) -> list[str]:
        return [target for name, target in self.log if name == method]


def make_chain(key="foo", chain_id=10, rpc=("https://a.example",), addresses=None, **kwargs):
    """ChainDescriptor with test defaults."""
    return ChainDescriptor(
        key=key,
        chain_id=chain_id,
        rpc_endpoints=tuple(rpc),
        addresses=dict(addresses or {}),
        **kwargs,
    )


@pytest.fixture
def role_table():
    """Packaged role table."""
    return load_role_table()


@pytest.fixture
def network():
    return FakeNetwork()


@pytest.fixture
def prober(network):
    return EndpointProber(network, timeout_seconds=1.0)


@pytest.fixture
def zero_addresses(role_table):
    """Every table role set to the zero address."""
    return {name: ZERO_ADDRESS for name in role_table.names}
