"""
registry/writer.py - Serialize a registry back to YAML.

Field order is fixed; address order is canonical:
token roles (role-table order), then roles outside the table (descriptor
order), then contract roles (role-table order). Curated fields the
loader does not interpret are written after the known ones, unchanged.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

import yaml

from core.logging import get_logger
from core.models import ChainDescriptor, Registry, RoleTable

logger = get_logger(__name__)

HEADER = (
    "# Auto-generated corrected chain registry\n"
    "# Generated on {generated_at}\n"
    "# Each chain has a stable key; rpc_urls is ordered, preferred_rpc_index\n"
    "# selects the preferred endpoint.\n"
)


def ordered_addresses(addresses: dict, role_table: RoleTable) -> dict[str, str]:
    """Addresses in canonical serialization order."""
    ordered: dict[str, str] = {}
    for role in role_table.token_names:
        if role in addresses:
            ordered[role] = addresses[role]
    for role, address in addresses.items():
        if role not in role_table:
            ordered[role] = address
    for role in role_table.contract_names:
        if role in addresses:
            ordered[role] = addresses[role]
    return ordered


def chain_to_dict(chain: ChainDescriptor, role_table: RoleTable) -> dict:
    data: dict = {"key": chain.key}
    if chain.display:
        data["display"] = chain.display
    data["currency"] = chain.currency
    data["chain_id"] = chain.chain_id
    data["lz_id"] = chain.lz_id
    if chain.explorer_endpoints:
        data["explorer_urls"] = list(chain.explorer_endpoints)
        data["preferred_explorer_index"] = chain.preferred_explorer_index
    data["rpc_urls"] = list(chain.rpc_endpoints)
    data["preferred_rpc_index"] = chain.preferred_rpc_index
    data["addresses"] = ordered_addresses(chain.addresses, role_table)
    for name, value in chain.extra.items():
        data.setdefault(name, value)
    return data


def dump_registry(registry: Registry, role_table: RoleTable) -> str:
    """Registry as a YAML document."""
    document = {"chains": [chain_to_dict(chain, role_table) for chain in registry]}
    return yaml.safe_dump(
        document,
        sort_keys=False,
        default_flow_style=False,
        allow_unicode=True,
        width=120,
    )


def save_registry(
    registry: Registry,
    path: Union[str, Path],
    role_table: RoleTable,
    generated_at: Optional[datetime] = None,
) -> Path:
    """Write the registry with a generated-on header."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    generated_at = generated_at or datetime.now(timezone.utc)

    content = HEADER.format(generated_at=generated_at.isoformat()) + "\n" + dump_registry(registry, role_table)
    with open(path, "w", encoding="utf-8") as f:
        f.write(content)

    logger.info(
        f"Corrected registry saved to {path}",
        extra={"context": {"path": str(path), "chains": len(registry)}},
    )
    return path
