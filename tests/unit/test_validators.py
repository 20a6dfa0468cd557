# PATH: tests/unit/test_validators.py
"""
Tests for address validation and checksum normalization.
"""

import unittest

from core.constants import ErrorCode, ZERO_ADDRESS
from core.exceptions import InvalidAddressError
from core.validators import (
    checksum_correction,
    is_unset_address,
    is_valid_address,
    is_zero_address,
    normalize_address,
)

TOKEN_MESSENGER = "0x28b5a0e9C621a5BadaA536219b3a228C8168cf5d"


class TestIsValidAddress(unittest.TestCase):
    """Tests for is_valid_address."""

    def test_valid_address(self):
        """Any casing of a 20-byte hex address is valid."""
        self.assertTrue(is_valid_address(TOKEN_MESSENGER))
        self.assertTrue(is_valid_address(TOKEN_MESSENGER.lower()))
        self.assertTrue(is_valid_address(ZERO_ADDRESS))

    def test_invalid_address_no_prefix(self):
        """Address without 0x prefix is invalid."""
        self.assertFalse(is_valid_address(TOKEN_MESSENGER[2:]))

    def test_invalid_address_wrong_length(self):
        self.assertFalse(is_valid_address("0x1234"))
        self.assertFalse(is_valid_address("0x" + "a" * 50))

    def test_invalid_address_non_hex(self):
        self.assertFalse(is_valid_address("0x" + "G" * 40))

    def test_non_string_input(self):
        """Non-string input returns False."""
        self.assertFalse(is_valid_address(None))
        self.assertFalse(is_valid_address(12345))


class TestNormalizeAddress(unittest.TestCase):
    """Tests for normalize_address."""

    def test_lowercase_is_checksummed(self):
        self.assertEqual(normalize_address(TOKEN_MESSENGER.lower()), TOKEN_MESSENGER)

    def test_idempotent(self):
        once = normalize_address(TOKEN_MESSENGER.upper().replace("0X", "0x"))
        self.assertEqual(normalize_address(once), once)

    def test_invalid_raises(self):
        with self.assertRaises(InvalidAddressError) as ctx:
            normalize_address("0xnot-an-address")
        self.assertEqual(ctx.exception.code, ErrorCode.INVALID_ADDRESS)


class TestZeroAddress(unittest.TestCase):
    """Tests for zero-address sentinel helpers."""

    def test_zero_address(self):
        self.assertTrue(is_zero_address(ZERO_ADDRESS))
        self.assertFalse(is_zero_address(TOKEN_MESSENGER))
        self.assertFalse(is_zero_address("0x0"))

    def test_unset(self):
        self.assertTrue(is_unset_address(None))
        self.assertTrue(is_unset_address(""))
        self.assertTrue(is_unset_address(ZERO_ADDRESS))
        self.assertFalse(is_unset_address(TOKEN_MESSENGER))


class TestChecksumCorrection(unittest.TestCase):
    """Tests for checksum_correction."""

    def test_canonical_needs_no_correction(self):
        self.assertIsNone(checksum_correction(TOKEN_MESSENGER))

    def test_lowercase_needs_correction(self):
        self.assertEqual(checksum_correction(TOKEN_MESSENGER.lower()), TOKEN_MESSENGER)


if __name__ == "__main__":
    unittest.main()
