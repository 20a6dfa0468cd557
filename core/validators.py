# PATH: core/validators.py
"""
Address validators for chaincheck.

CONTRACTS:
- normalize_address(): checksummed canonical form, idempotent
- checksum_correction(): canonical form when the literal differs, else None
- is_zero_address(): True only for a well-formed all-zero address
"""

from typing import Any, Optional

from eth_utils import is_hex_address, to_checksum_address

from core.exceptions import InvalidAddressError


def is_valid_address(value: Any) -> bool:
    """Check that value is a 0x-prefixed 20-byte hex address (any casing)."""
    return isinstance(value, str) and value.startswith("0x") and is_hex_address(value)


def normalize_address(value: Any) -> str:
    """
    Convert an address literal to its checksummed canonical form.

    Raises:
        InvalidAddressError: If value is not a hex address
    """
    if not is_valid_address(value):
        raise InvalidAddressError(
            f"Invalid address literal: {value!r}",
            details={"value": value},
        )
    return to_checksum_address(value)


def is_zero_address(value: Any) -> bool:
    """Zero-address sentinel check ("not deployed / unknown")."""
    return is_valid_address(value) and int(value, 16) == 0


def is_unset_address(value: Any) -> bool:
    """Absent, empty, or the zero address."""
    return value is None or value == "" or is_zero_address(value)


def checksum_correction(value: str) -> Optional[str]:
    """Return the canonical form if the configured literal differs from it."""
    canonical = normalize_address(value)
    if canonical == value:
        return None
    return canonical
