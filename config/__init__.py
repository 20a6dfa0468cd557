# PATH: config/__init__.py
"""
Configuration loading utilities for chaincheck.

Files (YAML, in this directory unless overridden):
- chains.yaml   default registry
- roles.yaml    role specification table
- issuers.yaml  issuer reference lists for token roles

Environment (read through python-dotenv, so a .env file works too):
- CHAINCHECK_REGISTRY_PATH
- CHAINCHECK_ROLES_PATH
- CHAINCHECK_ISSUERS_PATH
- CHAINCHECK_TIMEOUT_SECONDS
- CHAINCHECK_MAX_WORKERS
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from dotenv import load_dotenv

from core.constants import (
    DEFAULT_MAX_WORKERS,
    DEFAULT_PROBE_TIMEOUT_SECONDS,
    ErrorCode,
    RoleKind,
)
from core.exceptions import RoleTableError, SetupError
from core.models import AddressRoleSpec, ProbeMethod, RoleTable
from core.validators import is_valid_address, normalize_address


CONFIG_DIR = Path(__file__).parent


def load_yaml(filename: Union[str, Path]) -> Dict[str, Any]:
    """
    Load a YAML configuration file.

    Args:
        filename: Name of file in config directory, or a path

    Returns:
        Parsed YAML as dict
    """
    filepath = Path(filename)
    if not filepath.is_absolute() and not filepath.exists():
        filepath = CONFIG_DIR / filename
    if not filepath.exists():
        raise FileNotFoundError(f"Config file not found: {filepath}")

    with open(filepath, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


# =============================================================================
# SETTINGS
# =============================================================================

@dataclass(frozen=True)
class Settings:
    """Run settings; CLI options override these."""
    registry_path: Path
    roles_path: Path
    issuers_path: Path
    timeout_seconds: float = DEFAULT_PROBE_TIMEOUT_SECONDS
    max_workers: int = DEFAULT_MAX_WORKERS


def _env_number(name: str, default, cast):
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError as e:
        raise SetupError(
            f"Invalid value for {name}: {raw!r}",
            ErrorCode.CONFIG_INVALID,
            {"name": name, "value": raw},
        ) from e


def get_settings() -> Settings:
    """Settings from the environment (and .env), with packaged defaults."""
    load_dotenv()
    return Settings(
        registry_path=Path(os.environ.get("CHAINCHECK_REGISTRY_PATH") or CONFIG_DIR / "chains.yaml"),
        roles_path=Path(os.environ.get("CHAINCHECK_ROLES_PATH") or CONFIG_DIR / "roles.yaml"),
        issuers_path=Path(os.environ.get("CHAINCHECK_ISSUERS_PATH") or CONFIG_DIR / "issuers.yaml"),
        timeout_seconds=_env_number("CHAINCHECK_TIMEOUT_SECONDS", DEFAULT_PROBE_TIMEOUT_SECONDS, float),
        max_workers=_env_number("CHAINCHECK_MAX_WORKERS", DEFAULT_MAX_WORKERS, int),
    )


# =============================================================================
# ROLE TABLE
# =============================================================================

def load_role_table(path: Optional[Union[str, Path]] = None) -> RoleTable:
    """
    Load and validate the role specification table.

    Raises:
        RoleTableError: file unreadable or any role entry malformed
    """
    path = Path(path) if path else CONFIG_DIR / "roles.yaml"
    try:
        data = load_yaml(path)
    except (OSError, yaml.YAMLError) as e:
        raise RoleTableError(f"Cannot load role table {path}: {e}", {"path": str(path)}) from e
    return parse_role_table(data)


def parse_role_table(data: Any) -> RoleTable:
    """Build a RoleTable from parsed YAML."""
    roles = data.get("roles") if isinstance(data, dict) else None
    if not isinstance(roles, list) or not roles:
        raise RoleTableError("Role table must have a non-empty 'roles' list")
    return RoleTable(roles=tuple(_parse_role(i, entry) for i, entry in enumerate(roles)))


def _parse_role(index: int, entry: Any) -> AddressRoleSpec:
    if not isinstance(entry, dict) or not entry.get("name"):
        raise RoleTableError(f"Role #{index} must be a mapping with a name", {"index": index})
    name = str(entry["name"])

    try:
        kind = RoleKind(entry.get("kind", RoleKind.CONTRACT.value))
    except ValueError as e:
        raise RoleTableError(f"Role {name}: unknown kind {entry.get('kind')!r}", {"role": name}) from e

    default = entry.get("default")
    if default is not None:
        if not is_valid_address(default):
            raise RoleTableError(f"Role {name}: invalid default address {default!r}", {"role": name})
        default = normalize_address(default)

    return AddressRoleSpec(
        name=name,
        kind=kind,
        default_address=default,
        probe=_parse_probe(name, entry.get("probe")),
        verify=bool(entry.get("verify", True)),
    )


def _parse_probe(role: str, probe: Any) -> Optional[ProbeMethod]:
    if probe is None:
        return None
    if isinstance(probe, str):
        probe = {"signature": probe}
    if not isinstance(probe, dict) or not isinstance(probe.get("signature"), str):
        raise RoleTableError(f"Role {role}: probe needs a signature", {"role": role})

    signature = probe["signature"].replace(" ", "")
    if "(" not in signature or not signature.endswith(")"):
        raise RoleTableError(f"Role {role}: malformed probe signature {signature!r}", {"role": role})

    method = ProbeMethod(signature=signature, args=tuple(probe.get("args") or ()))
    if len(method.arg_types) != len(method.args):
        raise RoleTableError(
            f"Role {role}: {signature} expects {len(method.arg_types)} args, got {len(method.args)}",
            {"role": role},
        )
    return method


# =============================================================================
# ISSUER LISTS
# =============================================================================

def load_issuers(path: Optional[Union[str, Path]] = None) -> Dict[str, Dict[str, List[str]]]:
    """
    Issuer reference lists as role -> chain key -> addresses.

    Several issuers may publish the same role (Tether and USDT0 both
    publish usdt); their lists are combined.
    """
    data = load_yaml(Path(path) if path else CONFIG_DIR / "issuers.yaml")
    combined: Dict[str, Dict[str, List[str]]] = {}
    for issuer in data.get("issuers") or []:
        if not isinstance(issuer, dict) or not issuer.get("role"):
            continue
        role = str(issuer["role"])
        deployments = issuer.get("deployments")
        if not isinstance(deployments, dict):
            continue
        for chain_key, address in deployments.items():
            combined.setdefault(role, {}).setdefault(chain_key, []).append(str(address))
    return combined
