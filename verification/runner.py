"""
verification/runner.py - Per-chain verification pipeline and run driver.

Per chain (strictly sequential):
    liveness -> contracts (through the chosen endpoint) -> merged corrections

Across chains: bounded worker pool. Chains share no mutable state, and an
unexpected failure inside one chain becomes an Unresolvable verdict for
that chain only.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Optional

from chains.prober import EndpointProber
from core.constants import DEFAULT_MAX_WORKERS
from core.logging import get_logger
from core.models import ChainDescriptor, CorrectionSet, Registry, RoleTable, Verdict
from verification.contracts import ContractReport, ContractVerifier
from verification.liveness import LivenessEvaluator, LivenessResult
from verification.reconciler import ReconcileResult, Reconciler

logger = get_logger(__name__)


@dataclass(frozen=True)
class ChainEvaluation:
    """Everything learned about one chain during a run."""
    chain_key: str
    liveness: Optional[LivenessResult] = None
    contracts: Optional[ContractReport] = None
    corrections: CorrectionSet = field(default_factory=CorrectionSet)
    error: Optional[str] = None

    @property
    def verdicts(self) -> list[Verdict]:
        if self.error is not None:
            return [Verdict.unresolvable("chain", f"evaluation error: {self.error}")]
        verdicts = [self.liveness.verdict] if self.liveness else []
        if self.contracts:
            verdicts.extend(r.verdict for r in self.contracts.results)
        return verdicts

    def to_dict(self) -> dict:
        return {
            "chain_key": self.chain_key,
            "error": self.error,
            "liveness": self.liveness.to_dict() if self.liveness else None,
            "contracts": self.contracts.to_dict() if self.contracts else None,
            "corrections": self.corrections.to_dict(),
        }


@dataclass(frozen=True)
class RunResult:
    """Evaluations in registry order."""
    evaluations: tuple[ChainEvaluation, ...] = ()

    def get(self, chain_key: str) -> Optional[ChainEvaluation]:
        return next((e for e in self.evaluations if e.chain_key == chain_key), None)

    @property
    def corrections(self) -> dict[str, CorrectionSet]:
        """
        Non-empty correction sets keyed by chain.

        A duplicated key keeps the first evaluation's corrections only,
        matching Registry.get and the reconciler.
        """
        corrections: dict[str, CorrectionSet] = {}
        seen: set[str] = set()
        for e in self.evaluations:
            if e.chain_key in seen:
                continue
            seen.add(e.chain_key)
            if not e.corrections.is_empty:
                corrections[e.chain_key] = e.corrections
        return corrections

    @property
    def unresolvable(self) -> list[str]:
        return [
            e.chain_key
            for e in self.evaluations
            if e.error is not None or (e.liveness is not None and not e.liveness.is_resolvable)
        ]


class VerificationRunner:
    """
    Drives liveness and contract verification over a registry.

    Args:
        prober: Endpoint prober shared by all chains
        role_table: Role specification table
        max_workers: Chains evaluated concurrently
        verify_contracts: Run the contract verifier after liveness
        strict_interface: Passed to the contract verifier
        exhaustive_rpcs: Probe all endpoints for reporting
    """

    def __init__(
        self,
        prober: EndpointProber,
        role_table: RoleTable,
        max_workers: int = DEFAULT_MAX_WORKERS,
        verify_contracts: bool = True,
        strict_interface: bool = False,
        exhaustive_rpcs: bool = False,
    ):
        self.max_workers = max(1, max_workers)
        self.liveness = LivenessEvaluator(prober, exhaustive=exhaustive_rpcs)
        self.contracts = (
            ContractVerifier(role_table, prober, strict_interface=strict_interface)
            if verify_contracts
            else None
        )
        self.reconciler = Reconciler(role_table)

    async def evaluate_chain(self, chain: ChainDescriptor) -> ChainEvaluation:
        """Evaluate one chain; always returns an evaluation."""
        try:
            liveness = await self.liveness.evaluate(chain)
            contracts = None
            contract_corrections = CorrectionSet()
            if self.contracts is not None:
                contracts = await self.contracts.verify(chain, liveness.chosen_url)
                contract_corrections = contracts.corrections
        except Exception as e:
            logger.error(
                f"Evaluation failed for {chain.key}: {e}",
                extra={"context": {"chain": chain.key, "error": str(e)}},
                exc_info=True,
            )
            return ChainEvaluation(chain_key=chain.key, error=str(e) or type(e).__name__)

        corrections = self.reconciler.merge(liveness.corrections, contract_corrections)
        if not corrections.is_empty:
            logger.info(
                f"Suggested corrections for {chain.key}",
                extra={"context": {"chain": chain.key, **corrections.to_dict()}},
            )
        return ChainEvaluation(
            chain_key=chain.key,
            liveness=liveness,
            contracts=contracts,
            corrections=corrections,
        )

    async def run(self, registry: Registry) -> RunResult:
        """Evaluate every chain, at most max_workers at a time."""
        semaphore = asyncio.Semaphore(self.max_workers)

        async def bounded(chain: ChainDescriptor) -> ChainEvaluation:
            async with semaphore:
                return await self.evaluate_chain(chain)

        evaluations = await asyncio.gather(*(bounded(chain) for chain in registry))
        result = RunResult(evaluations=tuple(evaluations))
        logger.info(
            "Verification run complete",
            extra={
                "context": {
                    "chains": len(result.evaluations),
                    "with_corrections": len(result.corrections),
                    "unresolvable": len(result.unresolvable),
                }
            },
        )
        return result

    def reconcile(self, registry: Registry, run: RunResult) -> ReconcileResult:
        """Apply a run's corrections to the snapshot it was computed from."""
        return self.reconciler.reconcile(registry, run.corrections)
