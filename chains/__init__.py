"""
chains/ - Blockchain interaction layer.

Modules:
- providers: JSON-RPC network collaborator (httpx)
- prober: timeout-bounded, classified single-endpoint probes
"""

from chains.providers import (
    JsonRpcClient,
    NetworkClient,
    RPCStats,
    resolve_url,
)
from chains.prober import (
    EndpointProber,
    encode_probe_call,
)

__all__ = [
    # Providers
    "JsonRpcClient",
    "NetworkClient",
    "RPCStats",
    "resolve_url",
    # Prober
    "EndpointProber",
    "encode_probe_call",
]
