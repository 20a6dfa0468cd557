"""Registry source and sink (YAML)."""

from registry.loader import load_registry, parse_chain, parse_registry
from registry.writer import chain_to_dict, dump_registry, ordered_addresses, save_registry

__all__ = [
    "load_registry",
    "parse_chain",
    "parse_registry",
    "chain_to_dict",
    "dump_registry",
    "ordered_addresses",
    "save_registry",
]
