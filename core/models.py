"""
Core data models for chaincheck.

REGISTRY CONTRACT
=================
- ChainDescriptor and Registry are snapshots: evaluators never mutate them,
  the reconciler derives a new Registry via dataclasses.replace.
- rpc_endpoints / explorer_endpoints are ordered; order is preference.
- addresses maps role name -> address literal exactly as configured.
  The zero address means "not deployed / unknown".

CORRECTION CONTRACT
===================
CorrectionSet.merge is associative and total over missing keys:
  - scalar fields: right operand wins when set
  - addresses: deep merge, right operand wins per role
  - reasons follow the field that won
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Mapping, Optional

from core.constants import ProbeStatus, RoleKind, VerdictKind
from core.exceptions import RoleTableError


# ============================================================================
# REGISTRY MODEL
# ============================================================================

@dataclass(frozen=True)
class ChainDescriptor:
    """One blockchain network."""
    key: str
    chain_id: int
    rpc_endpoints: tuple[str, ...] = ()
    preferred_rpc_index: int = 0
    explorer_endpoints: tuple[str, ...] = ()
    preferred_explorer_index: int = 0
    lz_id: int = 0
    addresses: Mapping[str, str] = field(default_factory=dict)
    display: str = ""
    currency: str = ""
    # Curated fields chaincheck does not interpret; written back unchanged
    extra: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "rpc_endpoints", tuple(self.rpc_endpoints))
        object.__setattr__(self, "explorer_endpoints", tuple(self.explorer_endpoints))
        object.__setattr__(self, "addresses", dict(self.addresses))
        object.__setattr__(self, "extra", dict(self.extra))

    @property
    def name(self) -> str:
        return self.display or self.key

    @property
    def rpc_url(self) -> Optional[str]:
        """Preferred RPC URL, falling back to the first one."""
        return _pick(self.rpc_endpoints, self.preferred_rpc_index)

    @property
    def explorer_url(self) -> Optional[str]:
        """Preferred explorer URL, falling back to the first one."""
        return _pick(self.explorer_endpoints, self.preferred_explorer_index)

    def explorer_link(self, address: str) -> str:
        """Explorer code page for an address, or "" without an explorer."""
        base = self.explorer_url
        if not base:
            return ""
        return f"{base.rstrip('/')}/address/{address}#code"


def _pick(urls: tuple[str, ...], index: int) -> Optional[str]:
    if not urls:
        return None
    if 0 <= index < len(urls):
        return urls[index]
    return urls[0]


@dataclass(frozen=True)
class Registry:
    """
    Immutable snapshot of all chain descriptors.

    load_notes holds schema violations healed while loading, keyed by chain.
    load_issues holds entries that could not be loaded at all.
    """
    chains: tuple[ChainDescriptor, ...] = ()
    load_notes: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    load_issues: tuple[str, ...] = ()
    source: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "chains", tuple(self.chains))
        object.__setattr__(
            self, "load_notes", {k: tuple(v) for k, v in self.load_notes.items()}
        )
        object.__setattr__(self, "load_issues", tuple(self.load_issues))

    def __iter__(self) -> Iterator[ChainDescriptor]:
        return iter(self.chains)

    def __len__(self) -> int:
        return len(self.chains)

    @property
    def keys(self) -> list[str]:
        return [c.key for c in self.chains]

    def get(self, key: str) -> Optional[ChainDescriptor]:
        """First descriptor with this key."""
        for chain in self.chains:
            if chain.key == key:
                return chain
        return None

    def select(self, keys: Iterable[str]) -> "Registry":
        """Subset of the registry, keeping registry order."""
        wanted = set(keys)
        return Registry(
            chains=tuple(c for c in self.chains if c.key in wanted),
            load_notes={k: v for k, v in self.load_notes.items() if k in wanted},
            load_issues=self.load_issues,
            source=self.source,
        )


# ============================================================================
# ROLE SPECIFICATION TABLE
# ============================================================================

@dataclass(frozen=True)
class ProbeMethod:
    """Read-only call used to confirm a role's contract type on-chain."""
    signature: str
    args: tuple[Any, ...] = ()

    @property
    def arg_types(self) -> list[str]:
        inner = self.signature[self.signature.index("(") + 1:self.signature.rindex(")")]
        return [t.strip() for t in inner.split(",") if t.strip()]


@dataclass(frozen=True)
class AddressRoleSpec:
    """A named well-known contract slot."""
    name: str
    kind: RoleKind = RoleKind.CONTRACT
    default_address: Optional[str] = None
    probe: Optional[ProbeMethod] = None
    # False: bytecode presence and casing only, never defaulted or zeroed
    verify: bool = True


@dataclass(frozen=True)
class RoleTable:
    """
    Ordered, immutable role table.

    Order is the canonical serialization order: tokens first, then
    protocol contracts.
    """
    roles: tuple[AddressRoleSpec, ...] = ()

    def __post_init__(self):
        roles = tuple(self.roles)
        seen: set[str] = set()
        for spec in roles:
            if spec.name in seen:
                raise RoleTableError(
                    f"Duplicate role in role table: {spec.name}",
                    details={"role": spec.name},
                )
            seen.add(spec.name)
        # Stable sort keeps declaration order within each group
        ordered = sorted(roles, key=lambda s: 0 if s.kind == RoleKind.TOKEN else 1)
        object.__setattr__(self, "roles", tuple(ordered))

    def __iter__(self) -> Iterator[AddressRoleSpec]:
        return iter(self.roles)

    def __len__(self) -> int:
        return len(self.roles)

    def __contains__(self, name: object) -> bool:
        return any(spec.name == name for spec in self.roles)

    @property
    def names(self) -> list[str]:
        return [spec.name for spec in self.roles]

    @property
    def token_names(self) -> list[str]:
        return [s.name for s in self.roles if s.kind == RoleKind.TOKEN]

    @property
    def contract_names(self) -> list[str]:
        return [s.name for s in self.roles if s.kind == RoleKind.CONTRACT]

    def get(self, name: str) -> Optional[AddressRoleSpec]:
        for spec in self.roles:
            if spec.name == name:
                return spec
        return None


# ============================================================================
# PROBE OUTCOMES
# ============================================================================

@dataclass(frozen=True)
class RpcOutcome:
    """Result of one RPC liveness probe."""
    url: str
    status: ProbeStatus
    chain_id: Optional[int] = None
    message: str = ""
    latency_ms: int = 0

    @classmethod
    def live(cls, url: str, chain_id: int, latency_ms: int = 0) -> "RpcOutcome":
        return cls(url=url, status=ProbeStatus.LIVE, chain_id=chain_id, latency_ms=latency_ms)

    @classmethod
    def failed(cls, url: str, message: str, latency_ms: int = 0) -> "RpcOutcome":
        return cls(url=url, status=ProbeStatus.FAILED, message=message, latency_ms=latency_ms)

    @property
    def is_live(self) -> bool:
        return self.status == ProbeStatus.LIVE

    def matches(self, chain_id: int) -> bool:
        return self.is_live and self.chain_id == chain_id

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "status": self.status.value,
            "chain_id": self.chain_id,
            "message": self.message,
            "latency_ms": self.latency_ms,
        }


@dataclass(frozen=True)
class ContractOutcome:
    """Result of one contract probe."""
    address: str
    status: ProbeStatus
    message: str = ""

    @property
    def has_code(self) -> bool:
        return self.status in (ProbeStatus.VERIFIED, ProbeStatus.HAS_CODE_UNVERIFIED_INTERFACE)

    @property
    def no_code(self) -> bool:
        return self.status == ProbeStatus.NO_CODE

    def to_dict(self) -> dict:
        return {"address": self.address, "status": self.status.value, "message": self.message}


@dataclass(frozen=True)
class MethodOutcome:
    """Result of one JSON-RPC method support probe."""
    url: str
    method: str
    status: ProbeStatus
    message: str = ""

    @property
    def is_supported(self) -> bool:
        return self.status == ProbeStatus.SUPPORTED

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "method": self.method,
            "status": self.status.value,
            "message": self.message,
        }


# ============================================================================
# VERDICTS
# ============================================================================

@dataclass(frozen=True)
class Verdict:
    """
    Per (chain, check) classification.

    check is "rpc" for liveness or the role name for contracts.
    """
    check: str
    kind: VerdictKind
    address: Optional[str] = None
    new_value: Any = None
    reason: str = ""

    @classmethod
    def verified(cls, check: str, address: Optional[str] = None, reason: str = "") -> "Verdict":
        return cls(check=check, kind=VerdictKind.VERIFIED, address=address, reason=reason)

    @classmethod
    def needs_correction(
        cls,
        check: str,
        new_value: Any,
        reason: str,
        address: Optional[str] = None,
    ) -> "Verdict":
        return cls(
            check=check,
            kind=VerdictKind.NEEDS_CORRECTION,
            address=address,
            new_value=new_value,
            reason=reason,
        )

    @classmethod
    def unresolvable(cls, check: str, reason: str, address: Optional[str] = None) -> "Verdict":
        return cls(check=check, kind=VerdictKind.UNRESOLVABLE, address=address, reason=reason)

    @property
    def is_verified(self) -> bool:
        return self.kind == VerdictKind.VERIFIED

    @property
    def needs_fix(self) -> bool:
        return self.kind == VerdictKind.NEEDS_CORRECTION

    @property
    def is_unresolvable(self) -> bool:
        return self.kind == VerdictKind.UNRESOLVABLE

    def to_dict(self) -> dict:
        return {
            "check": self.check,
            "kind": self.kind.value,
            "address": self.address,
            "new_value": self.new_value,
            "reason": self.reason,
        }


# ============================================================================
# CORRECTION SET
# ============================================================================

SCALAR_FIELDS = ("preferred_rpc_index", "preferred_explorer_index", "chain_id")


@dataclass(frozen=True)
class CorrectionSet:
    """
    Field-level overrides proposed for one chain.

    reasons is keyed by field name, or "addresses.<role>" for addresses.
    """
    preferred_rpc_index: Optional[int] = None
    preferred_explorer_index: Optional[int] = None
    chain_id: Optional[int] = None
    addresses: Mapping[str, str] = field(default_factory=dict)
    reasons: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "addresses", dict(self.addresses))
        object.__setattr__(self, "reasons", dict(self.reasons))

    @classmethod
    def for_address(cls, role: str, address: str, reason: str) -> "CorrectionSet":
        return cls(addresses={role: address}, reasons={f"addresses.{role}": reason})

    @property
    def is_empty(self) -> bool:
        return not self.addresses and all(getattr(self, f) is None for f in SCALAR_FIELDS)

    def reason_for(self, field_name: str) -> str:
        return self.reasons.get(field_name, "")

    def merge(self, other: "CorrectionSet") -> "CorrectionSet":
        """Combine two correction sets; other wins on overlapping fields."""
        values: dict[str, Any] = {}
        reasons = dict(self.reasons)
        for name in SCALAR_FIELDS:
            theirs = getattr(other, name)
            if theirs is not None:
                values[name] = theirs
                reasons.pop(name, None)
                if name in other.reasons:
                    reasons[name] = other.reasons[name]
            else:
                values[name] = getattr(self, name)

        addresses = dict(self.addresses)
        for role, address in other.addresses.items():
            addresses[role] = address
            key = f"addresses.{role}"
            reasons.pop(key, None)
            if key in other.reasons:
                reasons[key] = other.reasons[key]

        return CorrectionSet(addresses=addresses, reasons=reasons, **values)

    def to_dict(self) -> dict:
        """Only the fields that are set, for reports and suggestions."""
        data: dict[str, Any] = {
            name: getattr(self, name) for name in SCALAR_FIELDS if getattr(self, name) is not None
        }
        if self.addresses:
            data["addresses"] = dict(self.addresses)
        if self.reasons:
            data["reasons"] = dict(self.reasons)
        return data


def merge_all(corrections: Iterable[CorrectionSet]) -> CorrectionSet:
    """Left-to-right merge; later sets win."""
    merged = CorrectionSet()
    for correction in corrections:
        merged = merged.merge(correction)
    return merged
