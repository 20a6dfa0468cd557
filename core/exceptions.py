# PATH: core/exceptions.py
"""
Typed exceptions for chaincheck.

Setup errors abort a run. Infra errors are raised by the network client
and are always folded into probe outcomes by the prober.
"""

from typing import Optional

from core.constants import ErrorCode


class ChainCheckError(Exception):
    """Base exception for chaincheck."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.UNKNOWN,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def __str__(self):
        return f"[{self.code.value}] {self.message}"


class SetupError(ChainCheckError):
    """Unrecoverable setup failure (registry or role table unusable)."""
    pass


class RegistryLoadError(SetupError):
    """Registry source could not be read, parsed, or has the wrong shape."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.REGISTRY_UNREADABLE,
        details: Optional[dict] = None,
    ):
        super().__init__(message, code, details)


class RoleTableError(SetupError):
    """Role specification table is malformed."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, ErrorCode.ROLE_TABLE_MALFORMED, details)


class InfraError(ChainCheckError):
    """Infrastructure-related errors (RPC, HTTP, timeouts)."""
    pass


class RPCError(InfraError):
    """JSON-RPC level error returned by a node."""

    def __init__(
        self,
        message: str,
        rpc_code: Optional[int] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, ErrorCode.INFRA_RPC_ERROR, details)
        self.rpc_code = rpc_code


class RPCTimeoutError(InfraError):
    """Request did not complete within its timeout."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, ErrorCode.INFRA_TIMEOUT, details)


class InvalidAddressError(ChainCheckError):
    """Address literal is not a 20-byte hex address."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, ErrorCode.INVALID_ADDRESS, details)
