"""
tests/unit/test_registry.py - Registry loading, healing and serialization.
"""

from datetime import datetime, timezone

import pytest
import yaml

from core.constants import ErrorCode, ZERO_ADDRESS
from core.exceptions import RegistryLoadError
from registry import dump_registry, load_registry, ordered_addresses, parse_registry, save_registry

from conftest import PERMIT2, make_chain


@pytest.fixture
def sample_registry_content():
    return """# curated registry
chains:
  - key: ethereum
    display: Ethereum
    currency: ETH
    chain_id: 1
    lz_id: 30101
    rpc_urls:
      - https://eth.example
    preferred_rpc_index: 0
    addresses:
      permit2: "0x000000000022D473030F116dDEE9F6B43aC78BA3"
    notes: curated by hand
  - key: base
    chain_id: 8453
    rpc_urls: [https://base.example]
"""


class TestLoadRegistry:

    def test_load_from_file(self, tmp_path, sample_registry_content):
        path = tmp_path / "chains.yaml"
        path.write_text(sample_registry_content)

        registry = load_registry(path)

        assert registry.keys == ["ethereum", "base"]
        assert registry.source == str(path)
        ethereum = registry.get("ethereum")
        assert ethereum.chain_id == 1
        assert ethereum.rpc_endpoints == ("https://eth.example",)
        assert ethereum.addresses["permit2"] == PERMIT2
        assert ethereum.extra == {"notes": "curated by hand"}
        assert registry.load_notes == {}

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(RegistryLoadError) as exc_info:
            load_registry(tmp_path / "missing.yaml")
        assert exc_info.value.code == ErrorCode.REGISTRY_UNREADABLE

    def test_unparsable_file_raises(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("chains: [unclosed\n")
        with pytest.raises(RegistryLoadError):
            load_registry(path)

    def test_repository_sample_loads(self):
        from config import CONFIG_DIR

        registry = load_registry(CONFIG_DIR / "chains.yaml")
        assert len(registry) > 0
        assert registry.load_issues == ()


class TestParseRegistry:

    def test_bare_list(self):
        registry = parse_registry([{"key": "a", "chain_id": 1}])
        assert registry.keys == ["a"]

    def test_keyed_mapping(self):
        registry = parse_registry({"chains": {"a": {"chain_id": 1}, "b": {"chain_id": 2}}})
        assert registry.keys == ["a", "b"]
        assert registry.get("b").chain_id == 2

    def test_empty_document(self):
        assert len(parse_registry(None)) == 0
        assert len(parse_registry({"chains": None})) == 0

    def test_scalar_document_is_malformed(self):
        with pytest.raises(RegistryLoadError) as exc_info:
            parse_registry("just a string")
        assert exc_info.value.code == ErrorCode.REGISTRY_MALFORMED

    def test_entry_without_key_skipped(self):
        registry = parse_registry([{"chain_id": 1}, "junk", {"key": "ok", "chain_id": 2}])
        assert registry.keys == ["ok"]
        assert registry.load_issues == (
            "Entry #0 has no key; skipped",
            "Entry #1 is not a mapping; skipped",
        )


class TestHealing:

    def test_missing_chain_id(self):
        registry = parse_registry([{"key": "a"}])
        assert registry.get("a").chain_id == 0
        assert registry.load_notes["a"] == ("missing chain_id set to 0",)

    def test_numeric_string_coerced(self):
        registry = parse_registry([{"key": "a", "chain_id": "10", "lz_id": "0x10"}])
        chain = registry.get("a")
        assert chain.chain_id == 10
        assert chain.lz_id == 16
        assert "chain_id '10' coerced to 10" in registry.load_notes["a"]

    def test_garbage_int_set_to_zero(self):
        registry = parse_registry([{"key": "a", "chain_id": 1, "preferred_rpc_index": "first"}])
        assert registry.get("a").preferred_rpc_index == 0
        assert registry.load_notes["a"] == ("invalid preferred_rpc_index 'first' set to 0",)

    def test_bool_is_not_an_int(self):
        registry = parse_registry([{"key": "a", "chain_id": True}])
        assert registry.get("a").chain_id == 0

    def test_single_url_string_wrapped(self):
        registry = parse_registry([{"key": "a", "chain_id": 1, "rpc_urls": "https://one.example"}])
        assert registry.get("a").rpc_endpoints == ("https://one.example",)
        assert registry.load_notes["a"] == ("rpc_urls was a single string, wrapped in a list",)

    def test_invalid_url_entries_dropped(self):
        registry = parse_registry([{"key": "a", "chain_id": 1, "rpc_urls": ["https://ok", 7, None]}])
        assert registry.get("a").rpc_endpoints == ("https://ok",)
        assert registry.load_notes["a"] == ("dropped 2 invalid entries from rpc_urls",)

    def test_non_mapping_addresses(self):
        registry = parse_registry([{"key": "a", "chain_id": 1, "addresses": ["0x1"]}])
        assert registry.get("a").addresses == {}
        assert registry.load_notes["a"] == ("invalid addresses (list) set to {}",)

    def test_empty_address_becomes_zero(self):
        registry = parse_registry([{"key": "a", "chain_id": 1, "addresses": {"permit2": None}}])
        assert registry.get("a").addresses == {"permit2": ZERO_ADDRESS}

    def test_unquoted_hex_address_restored(self):
        # YAML 1.1 reads an unquoted 0x... literal as an integer
        raw = yaml.safe_load("- key: a\n  chain_id: 1\n  addresses:\n    multicall3: 0xcA11bde05977b3631167028862bE2a173976CA11\n")
        registry = parse_registry(raw)
        assert registry.get("a").addresses["multicall3"] == "0xca11bde05977b3631167028862be2a173976ca11"


class TestWriter:

    def test_canonical_address_order(self, role_table):
        addresses = {
            "multicall3": "m",
            "stableSwap": "s",
            "permit2": "p",
            "usdc": "u",
            "gasToken": "g",
        }
        assert list(ordered_addresses(addresses, role_table)) == [
            "gasToken",
            "usdc",
            "stableSwap",
            "permit2",
            "multicall3",
        ]

    def test_field_order_and_extras(self, role_table):
        chain = make_chain(
            key="foo",
            addresses={"permit2": PERMIT2},
            display="Foo",
            currency="FOO",
            explorer_endpoints=("https://scan.example",),
            extra={"notes": "kept"},
        )
        from core.models import Registry

        document = yaml.safe_load(dump_registry(Registry(chains=(chain,)), role_table))

        entry = document["chains"][0]
        assert list(entry) == [
            "key",
            "display",
            "currency",
            "chain_id",
            "lz_id",
            "explorer_urls",
            "preferred_explorer_index",
            "rpc_urls",
            "preferred_rpc_index",
            "addresses",
            "notes",
        ]

    def test_save_then_load_is_stable(self, tmp_path, role_table, sample_registry_content):
        source = tmp_path / "chains.yaml"
        source.write_text(sample_registry_content)
        registry = load_registry(source)

        out = save_registry(
            registry,
            tmp_path / "out" / "corrected.yaml",
            role_table,
            generated_at=datetime(2026, 1, 2, tzinfo=timezone.utc),
        )

        text = out.read_text()
        assert text.startswith("# Auto-generated corrected chain registry\n# Generated on 2026-01-02T00:00:00+00:00\n")
        reloaded = load_registry(out)
        assert reloaded.chains == registry.chains
