"""
registry/loader.py - Load the chain registry from YAML.

Accepted shapes:
    chains: [ {key: ..., chain_id: ...}, ... ]
    [ {key: ..., chain_id: ...}, ... ]
    chains: { <key>: {chain_id: ...}, ... }      (key taken from the mapping)

Schema violations are healed here, never rejected:
- wrong type / missing chain_id -> 0
- wrong type lz_id, preferred_*_index -> 0
- non-list URL fields -> [] (a single string becomes a one-element list)
- non-mapping addresses -> {}
- non-string address values -> str(value), empty values -> zero address
Every heal is recorded in Registry.load_notes[key]. Entries without a key
cannot be identified and are skipped into Registry.load_issues.

Out-of-range indices are left for the reconciler, which resets them.
"""

from pathlib import Path
from typing import Any, Optional, Union

import yaml

from core.constants import ErrorCode, ZERO_ADDRESS
from core.exceptions import RegistryLoadError
from core.logging import get_logger
from core.models import ChainDescriptor, Registry

logger = get_logger(__name__)

KNOWN_FIELDS = (
    "key",
    "display",
    "currency",
    "chain_id",
    "lz_id",
    "rpc_urls",
    "preferred_rpc_index",
    "explorer_urls",
    "preferred_explorer_index",
    "addresses",
)


def load_registry(path: Union[str, Path]) -> Registry:
    """
    Load a registry snapshot from a YAML (or JSON) file.

    Raises:
        RegistryLoadError: file unreadable, unparsable, or not a registry
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except OSError as e:
        raise RegistryLoadError(
            f"Cannot read registry {path}: {e}",
            details={"path": str(path)},
        ) from e
    except yaml.YAMLError as e:
        raise RegistryLoadError(
            f"Cannot parse registry {path}: {e}",
            details={"path": str(path)},
        ) from e

    registry = parse_registry(raw, source=str(path))
    logger.info(
        f"Loaded {len(registry)} chains from {path}",
        extra={
            "context": {
                "path": str(path),
                "chains": len(registry),
                "healed": sum(len(n) for n in registry.load_notes.values()),
                "skipped": len(registry.load_issues),
            }
        },
    )
    return registry


def parse_registry(raw: Any, source: Optional[str] = None) -> Registry:
    """Build a Registry from already-parsed data."""
    entries = _entries(raw)

    chains: list[ChainDescriptor] = []
    notes: dict[str, list[str]] = {}
    issues: list[str] = []

    for position, entry in enumerate(entries):
        if not isinstance(entry, dict):
            issues.append(f"Entry #{position} is not a mapping; skipped")
            continue
        key = entry.get("key")
        if key in (None, ""):
            issues.append(f"Entry #{position} has no key; skipped")
            continue

        chain, chain_notes = parse_chain(entry)
        chains.append(chain)
        if chain_notes:
            notes.setdefault(chain.key, []).extend(chain_notes)

    for issue in issues:
        logger.warning(issue, extra={"context": {"source": source}})

    return Registry(chains=tuple(chains), load_notes=notes, load_issues=tuple(issues), source=source)


def _entries(raw: Any) -> list:
    if raw is None:
        return []
    if isinstance(raw, list):
        return raw
    if isinstance(raw, dict) and "chains" in raw:
        chains = raw["chains"]
        if chains is None:
            return []
        if isinstance(chains, list):
            return chains
        if isinstance(chains, dict):
            return [
                {"key": key, **entry} if isinstance(entry, dict) else entry
                for key, entry in chains.items()
            ]
    raise RegistryLoadError(
        "Registry must be a list of chains or a mapping with a 'chains' field",
        code=ErrorCode.REGISTRY_MALFORMED,
        details={"type": type(raw).__name__},
    )


def parse_chain(entry: dict) -> tuple[ChainDescriptor, list[str]]:
    """Coerce one registry entry; returns the descriptor and its heal notes."""
    notes: list[str] = []

    key = str(entry["key"])
    if "chain_id" not in entry:
        notes.append("missing chain_id set to 0")
        chain_id = 0
    else:
        chain_id = _as_int(entry["chain_id"], "chain_id", notes)

    descriptor = ChainDescriptor(
        key=key,
        chain_id=chain_id,
        rpc_endpoints=_as_urls(entry.get("rpc_urls"), "rpc_urls", notes),
        preferred_rpc_index=_as_int(entry.get("preferred_rpc_index", 0), "preferred_rpc_index", notes),
        explorer_endpoints=_as_urls(entry.get("explorer_urls"), "explorer_urls", notes),
        preferred_explorer_index=_as_int(
            entry.get("preferred_explorer_index", 0), "preferred_explorer_index", notes
        ),
        lz_id=_as_int(entry.get("lz_id", 0), "lz_id", notes),
        addresses=_as_addresses(entry.get("addresses"), notes),
        display=_as_text(entry.get("display")),
        currency=_as_text(entry.get("currency")),
        extra={k: v for k, v in entry.items() if k not in KNOWN_FIELDS},
    )
    return descriptor, notes


def _as_int(value: Any, name: str, notes: list[str]) -> int:
    if value is None:
        return 0
    # bool is an int subclass; True is not a chain id
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        try:
            coerced = int(value.strip(), 0)
        except ValueError:
            pass
        else:
            notes.append(f"{name} {value!r} coerced to {coerced}")
            return coerced
    notes.append(f"invalid {name} {value!r} set to 0")
    return 0


def _as_urls(value: Any, name: str, notes: list[str]) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        notes.append(f"{name} was a single string, wrapped in a list")
        return (value,)
    if not isinstance(value, list):
        notes.append(f"invalid {name} ({type(value).__name__}) set to []")
        return ()
    urls = tuple(u for u in value if isinstance(u, str) and u)
    if len(urls) != len(value):
        notes.append(f"dropped {len(value) - len(urls)} invalid entries from {name}")
    return urls


def _as_addresses(value: Any, notes: list[str]) -> dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        notes.append(f"invalid addresses ({type(value).__name__}) set to {{}}")
        return {}
    addresses: dict[str, str] = {}
    for role, address in value.items():
        role = str(role)
        if address in (None, ""):
            notes.append(f"empty address {role} set to zero address")
            addresses[role] = ZERO_ADDRESS
        elif not isinstance(address, str):
            # YAML reads unquoted 0x... literals as integers
            addresses[role] = _int_address(address) if isinstance(address, int) else str(address)
            notes.append(f"address {role} coerced to string {addresses[role]}")
        else:
            addresses[role] = address
    return addresses


def _int_address(value: int) -> str:
    return "0x" + format(value, "040x")


def _as_text(value: Any) -> str:
    return "" if value is None else str(value)
