"""
verification/contracts.py - Well-known contract verification for one chain.

Central invariant: corrections are only justified by a positive on-chain
observation.
- A configured address with bytecode is never overwritten with zero,
  whatever its interface probe says; only its casing may be fixed.
- A configured address without bytecode is replaced by the role default
  when the default has bytecode, otherwise downgraded to zero.
- A zero (or absent) address is upgraded to the default only when the
  default has bytecode.
- A probe that failed in transit proves nothing: no correction beyond
  checksum casing.
- Roles outside the role table, and table roles marked verify=False,
  are checked for bytecode only and are never defaulted.

Roles are processed sequentially in role-table order, then extra roles
in descriptor order.
"""

from dataclasses import dataclass, field
from typing import Optional

from chains.prober import EndpointProber
from core.constants import ProbeStatus, ZERO_ADDRESS
from core.logging import get_logger
from core.models import (
    AddressRoleSpec,
    ChainDescriptor,
    ContractOutcome,
    CorrectionSet,
    RoleTable,
    Verdict,
    merge_all,
)
from core.validators import (
    checksum_correction,
    is_unset_address,
    is_valid_address,
    is_zero_address,
    normalize_address,
)

logger = get_logger(__name__)

REASON_CHECKSUM = "checksum mismatch"
REASON_DEFAULT_FOUND = "found bytecode at default"
REASON_NO_CODE = "no bytecode at configured address"
REASON_INVALID = "invalid address literal"


@dataclass(frozen=True)
class RoleResult:
    """Outcome of checking one role on one chain."""
    role: str
    configured: Optional[str]
    verdict: Verdict
    outcome: Optional[ContractOutcome] = None
    used_default: bool = False
    in_table: bool = True

    @property
    def status(self) -> str:
        """Probe status of the address that decided the verdict."""
        if self.outcome is None:
            return "NOT_PROBED"
        return self.outcome.status.value

    def to_dict(self) -> dict:
        return {
            "role": self.role,
            "configured": self.configured,
            "status": self.status,
            "used_default": self.used_default,
            "in_table": self.in_table,
            "verdict": self.verdict.to_dict(),
            "outcome": self.outcome.to_dict() if self.outcome else None,
        }


@dataclass(frozen=True)
class ContractReport:
    """All role results and the merged address corrections for one chain."""
    chain_key: str
    endpoint: Optional[str]
    results: tuple[RoleResult, ...] = ()
    corrections: CorrectionSet = field(default_factory=CorrectionSet)
    skipped: bool = False

    def get(self, role: str) -> Optional[RoleResult]:
        return next((r for r in self.results if r.role == role), None)

    def to_dict(self) -> dict:
        return {
            "chain_key": self.chain_key,
            "endpoint": self.endpoint,
            "skipped": self.skipped,
            "results": [r.to_dict() for r in self.results],
            "corrections": self.corrections.to_dict(),
        }


class ContractVerifier:
    """
    Verifies a chain's address roles against live bytecode.

    Args:
        role_table: Immutable role specification table
        prober: Endpoint prober
        strict_interface: Treat "bytecode present, interface not confirmed"
            as Unresolvable instead of verified. Never causes a correction.
    """

    def __init__(
        self,
        role_table: RoleTable,
        prober: EndpointProber,
        strict_interface: bool = False,
    ):
        self.role_table = role_table
        self.prober = prober
        self.strict_interface = strict_interface

    async def verify(self, chain: ChainDescriptor, endpoint: Optional[str]) -> ContractReport:
        """Verify every role of one chain through a single endpoint."""
        if endpoint is None:
            logger.info(
                f"Skipping contracts for {chain.name} ({chain.key}): no working RPC",
                extra={"context": {"chain": chain.key}},
            )
            return ContractReport(chain_key=chain.key, endpoint=None, skipped=True)

        logger.info(
            f"Verifying contracts for {chain.name} ({chain.key})",
            extra={"context": {"chain": chain.key, "endpoint": endpoint}},
        )

        checked: list[tuple[RoleResult, CorrectionSet]] = []
        for spec in self.role_table:
            if spec.verify:
                result, correction = await self._verify_role(chain, spec, endpoint)
            else:
                value = chain.addresses.get(spec.name)
                if is_unset_address(value):
                    continue
                result, correction = await self._verify_extra(chain, spec.name, value, endpoint, in_table=True)
            _log_result(chain, result)
            checked.append((result, correction))

        for role, value in chain.addresses.items():
            if role in self.role_table or is_unset_address(value):
                continue
            result, correction = await self._verify_extra(chain, role, value, endpoint)
            _log_result(chain, result)
            checked.append((result, correction))

        return ContractReport(
            chain_key=chain.key,
            endpoint=endpoint,
            results=tuple(result for result, _ in checked),
            corrections=merge_all(cs for _, cs in checked),
        )

    async def _verify_role(
        self,
        chain: ChainDescriptor,
        spec: AddressRoleSpec,
        endpoint: str,
    ) -> tuple[RoleResult, CorrectionSet]:
        configured = chain.addresses.get(spec.name)

        if configured in (None, "") or is_zero_address(configured):
            return await self._upgrade_from_zero(spec, configured, endpoint, invalid=False)
        if not is_valid_address(configured):
            return await self._upgrade_from_zero(spec, configured, endpoint, invalid=True)

        canonical = normalize_address(configured)
        checksum_fix = (
            CorrectionSet.for_address(spec.name, canonical, REASON_CHECKSUM)
            if checksum_correction(configured)
            else CorrectionSet()
        )

        outcome = await self.prober.probe_contract(endpoint, canonical, spec.probe)

        if outcome.has_code:
            if self.strict_interface and outcome.status == ProbeStatus.HAS_CODE_UNVERIFIED_INTERFACE:
                verdict = Verdict.unresolvable(
                    spec.name, f"bytecode present but interface not confirmed: {outcome.message}", canonical
                )
            elif not checksum_fix.is_empty:
                verdict = Verdict.needs_correction(spec.name, canonical, REASON_CHECKSUM, canonical)
            else:
                verdict = Verdict.verified(spec.name, canonical, outcome.message)
            return RoleResult(spec.name, configured, verdict, outcome), checksum_fix

        if outcome.status == ProbeStatus.FAILED:
            verdict = Verdict.unresolvable(spec.name, f"probe failed: {outcome.message}", canonical)
            return RoleResult(spec.name, configured, verdict, outcome), checksum_fix

        # Confirmed: no bytecode at the configured address
        default = self._default_for(spec)
        if default is not None and default != canonical:
            default_outcome = await self.prober.probe_contract(endpoint, default, spec.probe)
            if default_outcome.has_code:
                return self._use_default(spec, configured, default, default_outcome)

        verdict = Verdict.needs_correction(spec.name, ZERO_ADDRESS, REASON_NO_CODE, canonical)
        return (
            RoleResult(spec.name, configured, verdict, outcome),
            CorrectionSet.for_address(spec.name, ZERO_ADDRESS, REASON_NO_CODE),
        )

    async def _upgrade_from_zero(
        self,
        spec: AddressRoleSpec,
        configured: Optional[str],
        endpoint: str,
        invalid: bool,
    ) -> tuple[RoleResult, CorrectionSet]:
        """Zero, absent or invalid literal: only the default can change it."""
        default = self._default_for(spec)
        outcome = None
        if default is not None:
            outcome = await self.prober.probe_contract(endpoint, default, spec.probe)
            if outcome.has_code:
                return self._use_default(spec, configured, default, outcome)

        if invalid:
            verdict = Verdict.needs_correction(spec.name, ZERO_ADDRESS, REASON_INVALID)
            return (
                RoleResult(spec.name, configured, verdict, outcome),
                CorrectionSet.for_address(spec.name, ZERO_ADDRESS, REASON_INVALID),
            )

        if outcome is None:
            verdict = Verdict.verified(spec.name, ZERO_ADDRESS, "zero address (no default to probe)")
        elif outcome.status == ProbeStatus.FAILED:
            verdict = Verdict.unresolvable(
                spec.name, f"could not probe default: {outcome.message}", ZERO_ADDRESS
            )
        else:
            verdict = Verdict.verified(spec.name, ZERO_ADDRESS, "zero address verified (default not deployed)")
        return RoleResult(spec.name, configured, verdict, outcome), CorrectionSet()

    async def _verify_extra(
        self,
        chain: ChainDescriptor,
        role: str,
        configured: str,
        endpoint: str,
        in_table: bool = False,
    ) -> tuple[RoleResult, CorrectionSet]:
        """Bytecode presence plus checksum casing; never defaulted."""
        if not is_valid_address(configured):
            verdict = Verdict.needs_correction(role, ZERO_ADDRESS, REASON_INVALID)
            return (
                RoleResult(role, configured, verdict, in_table=in_table),
                CorrectionSet.for_address(role, ZERO_ADDRESS, REASON_INVALID),
            )

        canonical = normalize_address(configured)
        fixed_case = checksum_correction(configured)
        correction = (
            CorrectionSet.for_address(role, fixed_case, REASON_CHECKSUM)
            if fixed_case
            else CorrectionSet()
        )

        outcome = await self.prober.probe_contract(endpoint, canonical)
        if outcome.has_code:
            if correction.is_empty:
                verdict = Verdict.verified(role, canonical, outcome.message)
            else:
                verdict = Verdict.needs_correction(role, canonical, REASON_CHECKSUM, canonical)
        elif outcome.no_code:
            verdict = Verdict.unresolvable(role, "no code at address", canonical)
        else:
            verdict = Verdict.unresolvable(role, f"probe failed: {outcome.message}", canonical)
        return RoleResult(role, configured, verdict, outcome, in_table=in_table), correction

    @staticmethod
    def _default_for(spec: AddressRoleSpec) -> Optional[str]:
        if spec.default_address is None or is_zero_address(spec.default_address):
            return None
        return normalize_address(spec.default_address)

    @staticmethod
    def _use_default(
        spec: AddressRoleSpec,
        configured: Optional[str],
        default: str,
        outcome: ContractOutcome,
    ) -> tuple[RoleResult, CorrectionSet]:
        verdict = Verdict.needs_correction(spec.name, default, REASON_DEFAULT_FOUND, default)
        return (
            RoleResult(spec.name, configured, verdict, outcome, used_default=True),
            CorrectionSet.for_address(spec.name, default, REASON_DEFAULT_FOUND),
        )


def _log_result(chain: ChainDescriptor, result: RoleResult) -> None:
    verdict = result.verdict
    label = f"  {result.role:<20}"
    context = {"chain": chain.key, "role": result.role, "status": result.status}
    address = verdict.address or ""
    if verdict.is_verified:
        link = chain.explorer_link(address) if address and address != ZERO_ADDRESS else ""
        logger.info(f"{label} OK {address[:10]}... {link}".rstrip(), extra={"context": context})
    elif verdict.needs_fix:
        logger.info(
            f"{label} FIX {result.configured} -> {verdict.new_value} ({verdict.reason})",
            extra={"context": context},
        )
    else:
        logger.warning(f"{label} UNRESOLVED {verdict.reason}", extra={"context": context})
