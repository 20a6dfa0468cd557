"""
verification/capabilities.py - JSON-RPC method support survey.

Answers "which chains have an endpoint that supports method X?".
Per chain, endpoints are tried in preference order and the survey stops
at the first endpoint that supports the method. Read-only: never proposes
corrections.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from chains.prober import CALL_MANY_PARAMS, EndpointProber
from core.constants import DEFAULT_SURVEY_METHOD
from core.logging import get_logger
from core.models import ChainDescriptor, MethodOutcome, Registry

logger = get_logger(__name__)


def default_params(method: str) -> list:
    """Params that make a node parse the request rather than reject its shape."""
    if method == DEFAULT_SURVEY_METHOD:
        return CALL_MANY_PARAMS
    return []


@dataclass(frozen=True)
class CapabilityResult:
    chain_key: str
    method: str
    outcomes: tuple[MethodOutcome, ...] = ()

    @property
    def supporting_url(self) -> Optional[str]:
        return next((o.url for o in self.outcomes if o.is_supported), None)

    @property
    def supported(self) -> bool:
        return self.supporting_url is not None

    def to_dict(self) -> dict:
        return {
            "chain_key": self.chain_key,
            "method": self.method,
            "supported": self.supported,
            "supporting_url": self.supporting_url,
            "outcomes": [o.to_dict() for o in self.outcomes],
        }


class MethodSurvey:
    """Surveys method support across a registry's endpoints."""

    def __init__(
        self,
        prober: EndpointProber,
        method: str = DEFAULT_SURVEY_METHOD,
        params: Optional[list] = None,
    ):
        self.prober = prober
        self.method = method
        self.params = params if params is not None else default_params(method)

    async def survey_chain(self, chain: ChainDescriptor) -> CapabilityResult:
        outcomes: list[MethodOutcome] = []
        for url in chain.rpc_endpoints:
            outcome = await self.prober.probe_method(url, self.method, self.params)
            outcomes.append(outcome)
            logger.debug(
                f"{chain.key}: {self.method} on {url[:60]} -> {outcome.status.value}",
                extra={"context": {"chain": chain.key, "message": outcome.message[:80]}},
            )
            if outcome.is_supported:
                break

        result = CapabilityResult(chain.key, self.method, tuple(outcomes))
        if result.supported:
            logger.info(
                f"{chain.name} ({chain.key}): {self.method} supported",
                extra={"context": {"chain": chain.key, "url": result.supporting_url}},
            )
        else:
            logger.info(
                f"{chain.name} ({chain.key}): {self.method} not supported by any endpoint",
                extra={"context": {"chain": chain.key, "endpoints": len(chain.rpc_endpoints)}},
            )
        return result

    async def survey(self, registry: Registry) -> list[CapabilityResult]:
        """Sequential survey, registry order."""
        return [await self.survey_chain(chain) for chain in registry]

    async def survey_urls(self, urls: Sequence[str]) -> list[MethodOutcome]:
        """Probe every given URL; no early stop."""
        return [await self.prober.probe_method(url, self.method, self.params) for url in urls]


def summarize(results: Sequence[CapabilityResult]) -> dict:
    """Supported / unsupported chain keys."""
    return {
        "method": results[0].method if results else DEFAULT_SURVEY_METHOD,
        "supported": [r.chain_key for r in results if r.supported],
        "unsupported": [r.chain_key for r in results if not r.supported],
    }
