# PATH: tests/unit/test_config.py
"""
Unit tests for configuration loading.
"""

import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from config import (
    CONFIG_DIR,
    get_settings,
    load_issuers,
    load_role_table,
    parse_role_table,
)
from core.constants import ErrorCode, RoleKind
from core.exceptions import RoleTableError, SetupError


class TestRoleTable(unittest.TestCase):
    """Packaged role table and its validation."""

    def test_config_dir_exists(self):
        self.assertTrue(CONFIG_DIR.exists())

    def test_packaged_table(self):
        table = load_role_table()

        self.assertEqual(table.token_names, ["gasToken", "wrappedGasToken", "usdc", "usdt"])
        self.assertEqual(table.contract_names[0], "permit2")
        self.assertEqual(table.names[-1], "multicall3")

        permit2 = table.get("permit2")
        self.assertEqual(permit2.default_address, "0x000000000022D473030F116dDEE9F6B43aC78BA3")
        self.assertEqual(permit2.probe.signature, "DOMAIN_SEPARATOR()")

        self.assertFalse(table.get("usdc").verify)
        self.assertIsNone(table.get("wrappedGasToken").default_address)
        self.assertIsNone(table.get("relayRouter").probe)

    def test_probe_shorthand_string(self):
        table = parse_role_table({"roles": [{"name": "x", "probe": "getBlockNumber()"}]})
        self.assertEqual(table.get("x").probe.signature, "getBlockNumber()")
        self.assertEqual(table.get("x").kind, RoleKind.CONTRACT)

    def test_tokens_sorted_first(self):
        table = parse_role_table({"roles": [
            {"name": "router", "kind": "contract"},
            {"name": "coin", "kind": "token"},
        ]})
        self.assertEqual(table.names, ["coin", "router"])

    def test_empty_table_rejected(self):
        with self.assertRaises(RoleTableError):
            parse_role_table({"roles": []})

    def test_unknown_kind_rejected(self):
        with self.assertRaises(RoleTableError):
            parse_role_table({"roles": [{"name": "x", "kind": "nft"}]})

    def test_invalid_default_rejected(self):
        with self.assertRaises(RoleTableError):
            parse_role_table({"roles": [{"name": "x", "default": "0x1234"}]})

    def test_probe_arg_count_checked(self):
        with self.assertRaises(RoleTableError) as ctx:
            parse_role_table({"roles": [{"name": "x", "probe": {"signature": "getNonce(address)"}}]})
        self.assertIn("expects 1 args, got 0", ctx.exception.message)

    def test_malformed_signature_rejected(self):
        with self.assertRaises(RoleTableError):
            parse_role_table({"roles": [{"name": "x", "probe": "getBlockNumber"}]})

    def test_duplicate_role_rejected(self):
        with self.assertRaises(RoleTableError):
            parse_role_table({"roles": [{"name": "x"}, {"name": "x"}]})

    def test_missing_file_is_role_table_error(self):
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(RoleTableError):
                load_role_table(Path(tmp) / "roles.yaml")


class TestIssuers(unittest.TestCase):

    def test_usdt_lists_combined(self):
        issuers = load_issuers()

        self.assertIn("usdc", issuers)
        self.assertEqual(
            issuers["usdc"]["ethereum"],
            ["0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"],
        )
        # Tether and USDT0 both publish usdt
        self.assertIn("ethereum", issuers["usdt"])
        self.assertIn("arbitrum_one", issuers["usdt"])

    def test_malformed_entries_skipped(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "issuers.yaml"
            path.write_text(
                "issuers:\n"
                "  - issuer: nobody\n"
                "  - role: usdc\n    deployments: [1, 2]\n"
                "  - role: usdc\n    deployments:\n      base: '0xabc'\n"
            )
            self.assertEqual(load_issuers(path), {"usdc": {"base": ["0xabc"]}})


class TestSettings(unittest.TestCase):

    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=False):
            for name in ("CHAINCHECK_REGISTRY_PATH", "CHAINCHECK_TIMEOUT_SECONDS", "CHAINCHECK_MAX_WORKERS"):
                os.environ.pop(name, None)
            with patch("config.load_dotenv"):
                settings = get_settings()

        self.assertEqual(settings.registry_path, CONFIG_DIR / "chains.yaml")
        self.assertEqual(settings.timeout_seconds, 10)
        self.assertEqual(settings.max_workers, 4)

    def test_environment_overrides(self):
        env = {
            "CHAINCHECK_REGISTRY_PATH": "/tmp/registry.yaml",
            "CHAINCHECK_TIMEOUT_SECONDS": "2.5",
            "CHAINCHECK_MAX_WORKERS": "8",
        }
        with patch.dict(os.environ, env), patch("config.load_dotenv"):
            settings = get_settings()

        self.assertEqual(settings.registry_path, Path("/tmp/registry.yaml"))
        self.assertEqual(settings.timeout_seconds, 2.5)
        self.assertEqual(settings.max_workers, 8)

    def test_invalid_number_is_setup_error(self):
        with patch.dict(os.environ, {"CHAINCHECK_MAX_WORKERS": "many"}), patch("config.load_dotenv"):
            with self.assertRaises(SetupError) as ctx:
                get_settings()
        self.assertEqual(ctx.exception.code, ErrorCode.CONFIG_INVALID)


if __name__ == "__main__":
    unittest.main()
