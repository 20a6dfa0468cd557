# PATH: core/constants.py
"""
Constants for chaincheck.

Contains enums, sentinels, and defaults shared by the prober,
the evaluators and the reconciler.
"""

from enum import Enum
from typing import Final

# =============================================================================
# ADDRESSES
# =============================================================================

ZERO_ADDRESS: Final[str] = "0x0000000000000000000000000000000000000000"

# Empty bytecode as returned by eth_getCode for EOAs and undeployed addresses
EMPTY_CODE_VALUES: Final[frozenset] = frozenset({"", "0x", "0x0", "0x00"})

# =============================================================================
# TIMING / CONCURRENCY DEFAULTS
# =============================================================================

DEFAULT_PROBE_TIMEOUT_SECONDS: Final[float] = 10.0
DEFAULT_MAX_WORKERS: Final[int] = 4

# JSON-RPC error codes meaning "method does not exist on this node"
METHOD_NOT_FOUND_CODES: Final[frozenset] = frozenset({-32601, -32004})

# Method surveyed by the capability probe unless told otherwise
DEFAULT_SURVEY_METHOD: Final[str] = "eth_callMany"

# REPORT SCHEMA (bump with any field addition/removal/rename)
REPORT_SCHEMA_VERSION: Final[str] = "1.0.0"


class ProbeStatus(str, Enum):
    """Classified outcome of a single network probe."""
    # RPC liveness
    LIVE = "LIVE"
    # Contract probe
    VERIFIED = "VERIFIED"
    HAS_CODE_UNVERIFIED_INTERFACE = "HAS_CODE_UNVERIFIED_INTERFACE"
    NO_CODE = "NO_CODE"
    # Method support probe
    SUPPORTED = "SUPPORTED"
    UNSUPPORTED = "UNSUPPORTED"
    # Any probe
    FAILED = "FAILED"


class VerdictKind(str, Enum):
    """Per-check classification emitted by the evaluators."""
    VERIFIED = "VERIFIED"
    NEEDS_CORRECTION = "NEEDS_CORRECTION"
    UNRESOLVABLE = "UNRESOLVABLE"


class RoleKind(str, Enum):
    """Role groups. Tokens serialize before protocol contracts."""
    TOKEN = "token"
    CONTRACT = "contract"


class ErrorCode(str, Enum):
    """Error codes carried by chaincheck exceptions."""
    # Setup failures
    REGISTRY_UNREADABLE = "REGISTRY_UNREADABLE"
    REGISTRY_MALFORMED = "REGISTRY_MALFORMED"
    ROLE_TABLE_MALFORMED = "ROLE_TABLE_MALFORMED"
    CONFIG_INVALID = "CONFIG_INVALID"

    # Infrastructure errors
    INFRA_RPC_ERROR = "INFRA_RPC_ERROR"
    INFRA_TIMEOUT = "INFRA_TIMEOUT"
    INFRA_HTTP_ERROR = "INFRA_HTTP_ERROR"
    INFRA_BAD_RESPONSE = "INFRA_BAD_RESPONSE"
    INFRA_UNRESOLVED_URL = "INFRA_UNRESOLVED_URL"

    # Data errors
    INVALID_ADDRESS = "INVALID_ADDRESS"

    # Other
    UNKNOWN = "UNKNOWN"
