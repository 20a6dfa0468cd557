"""
core - Core models and utilities for chaincheck.

This package contains:
- models.py: Registry model, role table, outcomes, verdicts, corrections
- constants.py: Enums, sentinels and defaults
- exceptions.py: Typed exceptions with error codes
- validators.py: Address checksum normalization
- logging.py: Structured JSON / console logging
"""

from core.constants import (
    ErrorCode,
    ProbeStatus,
    RoleKind,
    VerdictKind,
    ZERO_ADDRESS,
)
from core.exceptions import (
    ChainCheckError,
    InfraError,
    InvalidAddressError,
    RegistryLoadError,
    RoleTableError,
    RPCError,
    RPCTimeoutError,
    SetupError,
)
from core.logging import get_logger, setup_logging
from core.models import (
    AddressRoleSpec,
    ChainDescriptor,
    ContractOutcome,
    CorrectionSet,
    MethodOutcome,
    ProbeMethod,
    Registry,
    RoleTable,
    RpcOutcome,
    Verdict,
)

__all__ = [
    # Constants
    "ErrorCode",
    "ProbeStatus",
    "RoleKind",
    "VerdictKind",
    "ZERO_ADDRESS",
    # Exceptions
    "ChainCheckError",
    "InfraError",
    "InvalidAddressError",
    "RegistryLoadError",
    "RoleTableError",
    "RPCError",
    "RPCTimeoutError",
    "SetupError",
    # Models
    "AddressRoleSpec",
    "ChainDescriptor",
    "ContractOutcome",
    "CorrectionSet",
    "MethodOutcome",
    "ProbeMethod",
    "Registry",
    "RoleTable",
    "RpcOutcome",
    "Verdict",
    # Logging
    "get_logger",
    "setup_logging",
]
