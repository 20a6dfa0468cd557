"""
verification/liveness.py - RPC liveness evaluation for one chain.

Endpoint order is the preference ranking. Endpoints are probed one at a
time in that order and probing stops at the first endpoint reporting the
configured chain id, so "first matching endpoint wins" holds by
construction.

Tie-break policy:
1. first matching endpoint is chosen; propose it as preferred if it isn't
2. no match but something reachable: first reachable endpoint is chosen,
   its reported chain id is proposed (live data beats stale config), and
   its index is proposed as preferred so a re-run is a no-op
3. nothing reachable: Unresolvable, no endpoint for contract checks
"""

from contextlib import aclosing
from dataclasses import dataclass
from typing import AsyncIterator, Optional, Sequence

from chains.prober import EndpointProber
from core.logging import get_logger
from core.models import ChainDescriptor, CorrectionSet, RpcOutcome, Verdict

logger = get_logger(__name__)

RPC_CHECK = "rpc"


@dataclass(frozen=True)
class LivenessResult:
    """Verdict and proposed corrections for one chain's endpoints."""
    chain_key: str
    outcomes: tuple[RpcOutcome, ...]
    chosen_index: Optional[int]
    verdict: Verdict
    corrections: CorrectionSet

    @property
    def chosen_url(self) -> Optional[str]:
        if self.chosen_index is None:
            return None
        return self.outcomes[self.chosen_index].url

    @property
    def is_resolvable(self) -> bool:
        return self.chosen_index is not None

    def to_dict(self) -> dict:
        return {
            "chain_key": self.chain_key,
            "outcomes": [o.to_dict() for o in self.outcomes],
            "chosen_index": self.chosen_index,
            "chosen_url": self.chosen_url,
            "verdict": self.verdict.to_dict(),
            "corrections": self.corrections.to_dict(),
        }


def choose_endpoint(
    chain: ChainDescriptor,
    outcomes: Sequence[RpcOutcome],
) -> tuple[Optional[int], Verdict, CorrectionSet]:
    """
    Apply the tie-break policy to ordered probe outcomes.

    outcomes[i] must be the outcome for chain.rpc_endpoints[i].
    """
    match = next((i for i, o in enumerate(outcomes) if o.matches(chain.chain_id)), None)
    if match is not None:
        url = outcomes[match].url
        if match == chain.preferred_rpc_index:
            return match, Verdict.verified(RPC_CHECK, url, "preferred endpoint reports expected chainId"), CorrectionSet()
        reason = f"first endpoint reporting chainId {chain.chain_id} is index {match}"
        return (
            match,
            Verdict.needs_correction(RPC_CHECK, match, reason, address=url),
            CorrectionSet(preferred_rpc_index=match, reasons={"preferred_rpc_index": reason}),
        )

    reachable = next((i for i, o in enumerate(outcomes) if o.is_live), None)
    if reachable is not None:
        reported = outcomes[reachable].chain_id
        reason = (
            f"no endpoint reports chainId {chain.chain_id}; "
            f"first reachable endpoint (index {reachable}) reports {reported}"
        )
        reasons = {"chain_id": reason}
        preferred = None
        if reachable != chain.preferred_rpc_index:
            preferred = reachable
            reasons["preferred_rpc_index"] = f"first reachable endpoint is index {reachable}"
        return (
            reachable,
            Verdict.needs_correction(RPC_CHECK, reported, reason, address=outcomes[reachable].url),
            CorrectionSet(chain_id=reported, preferred_rpc_index=preferred, reasons=reasons),
        )

    reason = "no RPC endpoints configured" if not chain.rpc_endpoints else "no reachable RPC endpoint"
    return None, Verdict.unresolvable(RPC_CHECK, reason), CorrectionSet()


class LivenessEvaluator:
    """Probes a chain's endpoints in preference order and emits a verdict."""

    def __init__(self, prober: EndpointProber, exhaustive: bool = False):
        self.prober = prober
        # Probe every endpoint for reporting; the choice is unaffected
        self.exhaustive = exhaustive

    async def _probe_in_order(self, chain: ChainDescriptor) -> AsyncIterator[RpcOutcome]:
        total = len(chain.rpc_endpoints)
        for index, url in enumerate(chain.rpc_endpoints):
            outcome = await self.prober.probe_rpc(url)
            _log_outcome(chain, index, total, outcome)
            yield outcome

    async def evaluate(self, chain: ChainDescriptor) -> LivenessResult:
        """Evaluate one chain. Never raises for probe failures."""
        logger.info(
            f"Checking RPCs for {chain.name} ({chain.key})",
            extra={"context": {"chain": chain.key, "endpoints": len(chain.rpc_endpoints)}},
        )
        outcomes: list[RpcOutcome] = []
        async with aclosing(self._probe_in_order(chain)) as probes:
            async for outcome in probes:
                outcomes.append(outcome)
                if outcome.matches(chain.chain_id) and not self.exhaustive:
                    break

        chosen, verdict, corrections = choose_endpoint(chain, outcomes)
        _log_verdict(chain, verdict)
        return LivenessResult(
            chain_key=chain.key,
            outcomes=tuple(outcomes),
            chosen_index=chosen,
            verdict=verdict,
            corrections=corrections,
        )


def _log_outcome(chain: ChainDescriptor, index: int, total: int, outcome: RpcOutcome) -> None:
    prefix = f"  [{index + 1}/{total}] {outcome.url[:60]}"
    context = {"chain": chain.key, "index": index, "latency_ms": outcome.latency_ms}
    if not outcome.is_live:
        logger.info(f"{prefix} FAILED ({outcome.message[:80]})", extra={"context": context})
    elif outcome.chain_id != chain.chain_id:
        logger.info(
            f"{prefix} CHAINID MISMATCH (expected {chain.chain_id}, got {outcome.chain_id})",
            extra={"context": context},
        )
    else:
        logger.info(f"{prefix} OK", extra={"context": context})


def _log_verdict(chain: ChainDescriptor, verdict: Verdict) -> None:
    context = {"chain": chain.key, "verdict": verdict.kind.value}
    if verdict.needs_fix:
        logger.info(f"  Suggestion: {verdict.reason}", extra={"context": context})
    elif verdict.is_unresolvable:
        logger.warning(f"  Unresolvable: {verdict.reason}", extra={"context": context})
