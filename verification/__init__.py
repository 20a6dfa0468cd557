"""Registry verification: integrity, liveness, contracts, reconciliation."""

from verification.capabilities import CapabilityResult, MethodSurvey
from verification.contracts import ContractReport, ContractVerifier, RoleResult
from verification.integrity import check_integrity, check_issuer_addresses
from verification.liveness import LivenessEvaluator, LivenessResult, choose_endpoint
from verification.reconciler import ReconcileResult, Reconciler
from verification.runner import ChainEvaluation, RunResult, VerificationRunner

__all__ = [
    "CapabilityResult",
    "MethodSurvey",
    "ContractReport",
    "ContractVerifier",
    "RoleResult",
    "check_integrity",
    "check_issuer_addresses",
    "LivenessEvaluator",
    "LivenessResult",
    "choose_endpoint",
    "ReconcileResult",
    "Reconciler",
    "ChainEvaluation",
    "RunResult",
    "VerificationRunner",
]
