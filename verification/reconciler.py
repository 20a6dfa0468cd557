"""
verification/reconciler.py - Merge per-chain corrections and derive a
corrected registry.

CONTRACTS:
- The input Registry is never mutated; a new Registry is returned.
- Contract-verifier corrections win over liveness corrections on overlap.
- Every role of the role table is present in every output chain.
- A correction equal to the current value is not a change.
- A duplicated key receives evaluator corrections on its first entry only;
  later entries get schema heals and backfill.
- No changes anywhere => has_changes is False and no artifact is written.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Mapping

from core.constants import ZERO_ADDRESS
from core.logging import get_logger
from core.models import ChainDescriptor, CorrectionSet, Registry, RoleTable
from core.validators import is_unset_address, is_valid_address
from verification.contracts import REASON_INVALID

logger = get_logger(__name__)


@dataclass(frozen=True)
class ReconcileResult:
    """Corrected registry plus the per-chain change log."""
    registry: Registry
    changes: Mapping[str, list[str]] = field(default_factory=dict)
    applied: Mapping[str, CorrectionSet] = field(default_factory=dict)

    @property
    def has_changes(self) -> bool:
        return bool(self.changes)

    @property
    def total_changes(self) -> int:
        return sum(len(c) for c in self.changes.values())


class Reconciler:
    """Applies correction sets to a registry snapshot."""

    def __init__(self, role_table: RoleTable):
        self.role_table = role_table

    @staticmethod
    def merge(liveness: CorrectionSet, contracts: CorrectionSet) -> CorrectionSet:
        """Shallow scalar merge, deep address merge; contracts win."""
        return liveness.merge(contracts)

    @staticmethod
    def schema_corrections(chain: ChainDescriptor) -> CorrectionSet:
        """
        Heals that need no network: out-of-range preferred indices reset
        to 0, invalid address literals set to the zero address.
        """
        values: dict[str, Any] = {}
        reasons: dict[str, str] = {}
        for name, urls in (
            ("preferred_rpc_index", chain.rpc_endpoints),
            ("preferred_explorer_index", chain.explorer_endpoints),
        ):
            index = getattr(chain, name)
            if index != 0 and not 0 <= index < len(urls):
                values[name] = 0
                reasons[name] = f"index {index} out of range for {len(urls)} URL(s)"

        addresses: dict[str, str] = {}
        for role, address in chain.addresses.items():
            if not is_unset_address(address) and not is_valid_address(address):
                addresses[role] = ZERO_ADDRESS
                reasons[f"addresses.{role}"] = REASON_INVALID
        return CorrectionSet(addresses=addresses, reasons=reasons, **values)

    def reconcile(
        self,
        registry: Registry,
        corrections: Mapping[str, CorrectionSet],
    ) -> ReconcileResult:
        """
        Apply corrections (keyed by chain key) to the snapshot.

        Schema corrections are merged underneath the evaluator corrections,
        so a liveness choice of index overrides a reset to 0.
        """
        chains: list[ChainDescriptor] = []
        changes: dict[str, list[str]] = {}
        applied: dict[str, CorrectionSet] = {}
        seen: set[str] = set()

        for chain in registry:
            correction = self.schema_corrections(chain)
            notes: list[str] = []
            if chain.key in seen:
                logger.warning(
                    f"Duplicate key {chain.key}: evaluator corrections not applied to later entry",
                    extra={"context": {"chain": chain.key, "chain_id": chain.chain_id}},
                )
            else:
                seen.add(chain.key)
                correction = correction.merge(corrections.get(chain.key, CorrectionSet()))
                notes = [f"Healed {note}" for note in registry.load_notes.get(chain.key, ())]

            updated, chain_changes = self._apply(chain, correction)
            chain_changes = notes + chain_changes

            chains.append(updated)
            if chain_changes:
                changes.setdefault(chain.key, []).extend(chain_changes)
            if not correction.is_empty and chain.key not in applied:
                applied[chain.key] = correction

            for change in chain_changes:
                logger.debug(f"{chain.key}: {change}", extra={"context": {"chain": chain.key}})

        corrected = Registry(
            chains=tuple(chains),
            load_issues=registry.load_issues,
            source=registry.source,
        )
        return ReconcileResult(registry=corrected, changes=changes, applied=applied)

    def _apply(
        self,
        chain: ChainDescriptor,
        correction: CorrectionSet,
    ) -> tuple[ChainDescriptor, list[str]]:
        changes: list[str] = []
        updates: dict[str, Any] = {}

        for name in ("preferred_rpc_index", "preferred_explorer_index", "chain_id"):
            value = getattr(correction, name)
            if value is not None and value != getattr(chain, name):
                updates[name] = value
                changes.append(_describe(f"Updated {name} to {value}", correction.reason_for(name)))

        addresses = dict(chain.addresses)
        for role, address in correction.addresses.items():
            if addresses.get(role) != address:
                addresses[role] = address
                changes.append(
                    _describe(
                        f"Updated address {role} to {address}",
                        correction.reason_for(f"addresses.{role}"),
                    )
                )

        for role in self.role_table.names:
            if not addresses.get(role):
                addresses[role] = ZERO_ADDRESS
                changes.append(f"Added missing address {role} as zero address")

        if addresses != chain.addresses:
            updates["addresses"] = addresses

        if not updates:
            return chain, changes
        return replace(chain, **updates), changes


def _describe(change: str, reason: str) -> str:
    return f"{change} ({reason})" if reason else change
