"""
verification/integrity.py - Static integrity checks over a registry snapshot.

Pure functions: no I/O, never raise, report only.
"""

from typing import Mapping, Sequence

from core.models import Registry
from core.validators import is_unset_address, is_valid_address


def check_integrity(registry: Registry) -> list[str]:
    """
    Detect duplicate identifiers.

    Returns issue strings for duplicate keys, duplicate chain ids and
    duplicate non-zero lz ids. Duplicate chain ids are a soft invariant:
    some networks intentionally reuse sub-chain ids, so they are reported,
    never rejected.
    """
    issues: list[str] = []
    keys: set[str] = set()
    chain_ids: dict[int, str] = {}
    lz_ids: dict[int, str] = {}

    for chain in registry:
        if chain.key in keys:
            issues.append(f"Duplicate key: {chain.key}")
        keys.add(chain.key)

        if chain.chain_id in chain_ids:
            issues.append(
                f"Duplicate chainId {chain.chain_id} for key: {chain.key} "
                f"(first seen on {chain_ids[chain.chain_id]})"
            )
        else:
            chain_ids[chain.chain_id] = chain.key

        if chain.lz_id:
            if chain.lz_id in lz_ids:
                issues.append(
                    f"Duplicate lzId {chain.lz_id} for key: {chain.key} "
                    f"(first seen on {lz_ids[chain.lz_id]})"
                )
            else:
                lz_ids[chain.lz_id] = chain.key

    return issues


def check_issuer_addresses(
    registry: Registry,
    issuers: Mapping[str, Mapping[str, Sequence[str]]],
) -> list[str]:
    """
    Compare token roles against issuer-published deployment lists.

    Args:
        registry: Registry snapshot
        issuers: role -> chain key -> addresses published by the issuer
            (e.g. Circle for usdc, Tether for usdt/USDT0)

    Returns:
        Issue strings; comparison is case-insensitive.
    """
    issues: list[str] = []
    for role, by_chain in issuers.items():
        for chain_key, published in by_chain.items():
            chain = registry.get(chain_key)
            if chain is None:
                continue
            known = {a.lower() for a in published if is_valid_address(a)}
            if not known:
                continue
            configured = chain.addresses.get(role)
            listed = ", ".join(published)
            if is_unset_address(configured):
                issues.append(f"{role} on {chain_key} is unset; issuer lists {listed}")
            elif str(configured).lower() not in known:
                issues.append(f"{role} on {chain_key} is {configured} but issuer lists {listed}")
    return issues
