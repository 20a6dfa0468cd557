# PATH: monitoring/verification_report.py
"""
Verification report module for chaincheck.

One report per CLI run, saved as JSON when --report is given and printed
as a console summary.

SCHEMA CONTRACT:
Schema version 1.0.0 fields:
- schema_version, timestamp, command, registry_source
- integrity: issues[], issuer_issues[], load_issues[], load_notes{}
- summary: chains_total, chains_verified, chains_with_corrections,
  chains_unresolvable, chains_skipped_contracts, total_changes
- health: per-endpoint request stats
- chains[]: per-chain evaluation (liveness, contracts, corrections)
- changes: chain key -> change log
- capabilities[]: method survey results

BUMP RULES: Any field addition/removal/rename requires a schema bump.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from core.constants import REPORT_SCHEMA_VERSION
from core.models import Registry

logger = logging.getLogger("chaincheck.monitoring.verification_report")


@dataclass
class VerificationReport:
    """Structured outcome of one chaincheck run."""
    command: str = ""
    timestamp: str = ""
    registry_source: Optional[str] = None
    integrity: Dict[str, Any] = field(default_factory=dict)
    summary: Dict[str, Any] = field(default_factory=dict)
    health: Dict[str, Any] = field(default_factory=dict)
    chains: List[Dict[str, Any]] = field(default_factory=list)
    changes: Dict[str, List[str]] = field(default_factory=dict)
    capabilities: List[Dict[str, Any]] = field(default_factory=list)

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = datetime.now(timezone.utc).isoformat()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "schema_version": REPORT_SCHEMA_VERSION,
            "timestamp": self.timestamp,
            "command": self.command,
            "registry_source": self.registry_source,
            "integrity": self.integrity,
            "summary": self.summary,
            "health": self.health,
            "chains": self.chains,
            "changes": self.changes,
            "capabilities": self.capabilities,
        }

    def to_json(self, indent: int = 2) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), indent=indent, default=str)

    def save(self, path: Path) -> None:
        """Save report to file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(self.to_json())
        logger.info(f"Verification report saved: {path}")


def build_summary(run=None, reconcile=None) -> Dict[str, Any]:
    """
    Count chains by verdict.

    A chain counts as verified only when every check on it is verified.
    """
    summary = {
        "chains_total": 0,
        "chains_verified": 0,
        "chains_with_corrections": 0,
        "chains_unresolvable": 0,
        "chains_skipped_contracts": 0,
        "total_changes": reconcile.total_changes if reconcile is not None else 0,
    }
    if run is None:
        return summary

    for evaluation in run.evaluations:
        verdicts = evaluation.verdicts
        summary["chains_total"] += 1
        if verdicts and all(v.is_verified for v in verdicts):
            summary["chains_verified"] += 1
        if not evaluation.corrections.is_empty:
            summary["chains_with_corrections"] += 1
        if any(v.is_unresolvable for v in verdicts):
            summary["chains_unresolvable"] += 1
        if evaluation.contracts is not None and evaluation.contracts.skipped:
            summary["chains_skipped_contracts"] += 1
    return summary


def build_verification_report(
    command: str,
    registry: Registry,
    integrity_issues: Sequence[str] = (),
    issuer_issues: Sequence[str] = (),
    run=None,
    reconcile=None,
    capabilities: Sequence = (),
    health: Optional[Dict[str, Any]] = None,
) -> VerificationReport:
    """
    Build a report from whatever stages ran.

    Args:
        run: verification.runner.RunResult, if liveness/contracts ran
        reconcile: verification.reconciler.ReconcileResult, if fix ran
        capabilities: verification.capabilities.CapabilityResult items
        health: JsonRpcClient.get_stats_summary()
    """
    return VerificationReport(
        command=command,
        registry_source=registry.source,
        integrity={
            "issues": list(integrity_issues),
            "issuer_issues": list(issuer_issues),
            "load_issues": list(registry.load_issues),
            "load_notes": {k: list(v) for k, v in registry.load_notes.items()},
        },
        summary=build_summary(run, reconcile),
        health=health or {},
        chains=[e.to_dict() for e in run.evaluations] if run is not None else [],
        changes={k: list(v) for k, v in reconcile.changes.items()} if reconcile is not None else {},
        capabilities=[c.to_dict() for c in capabilities],
    )


def print_verification_report(report: VerificationReport) -> None:
    """Print verification report to console in formatted style."""
    print("\n" + "=" * 60)
    print(f"VERIFICATION REPORT ({report.command})")
    print("=" * 60)
    print(f"Timestamp: {report.timestamp}")
    print(f"Registry: {report.registry_source}")

    integrity = report.integrity
    issues = integrity.get("issues", []) + integrity.get("load_issues", [])
    print("\n--- INTEGRITY ---")
    if issues:
        for issue in issues:
            print(f"  - {issue}")
    else:
        print("  No integrity issues found")
    for issue in integrity.get("issuer_issues", []):
        print(f"  ~ {issue}")
    for key, notes in integrity.get("load_notes", {}).items():
        for note in notes:
            print(f"  * {key}: healed {note}")

    if report.chains:
        s = report.summary
        print("\n--- SUMMARY ---")
        print(f"Chains: {s.get('chains_total', 0)} total, {s.get('chains_verified', 0)} verified")
        print(f"With corrections: {s.get('chains_with_corrections', 0)}")
        print(f"Unresolvable: {s.get('chains_unresolvable', 0)} "
              f"(contracts skipped: {s.get('chains_skipped_contracts', 0)})")

    if report.health:
        total = sum(h.get("total_requests", 0) for h in report.health.values())
        print(f"\nRPC requests: {total} across {len(report.health)} endpoints")

    if report.capabilities:
        print("\n--- METHOD SUPPORT ---")
        for cap in report.capabilities:
            mark = "yes" if cap.get("supported") else "no"
            url = cap.get("supporting_url") or ""
            print(f"  {cap.get('chain_key'):<20} {cap.get('method')}: {mark} {url}".rstrip())

    if report.changes:
        print("\n--- CHANGES ---")
        for key, changes in report.changes.items():
            print(f"  {key}:")
            for change in changes:
                print(f"    - {change}")
    print("=" * 60 + "\n")
