#!/usr/bin/env python3
"""
run_integrity.py - CLI entrypoint for chain registry verification.

Usage:
    python run_integrity.py check
    python run_integrity.py verify-rpcs --all-endpoints
    python run_integrity.py --chains base,ethereum verify-contracts
    python run_integrity.py fix --output config/chains-corrected.yaml
    python run_integrity.py probe-methods --method eth_callMany

Exit status is non-zero only when the run cannot start (registry or role
table unusable, invalid settings). Network failures are findings, not
errors.
"""

import asyncio
import json
import sys
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

import click
import yaml

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from chains import EndpointProber, JsonRpcClient
from config import get_settings, load_issuers, load_role_table
from core.constants import ErrorCode
from core.exceptions import SetupError
from core.logging import get_logger, setup_logging
from core.models import Registry, RoleTable
from monitoring import VerificationReport, build_verification_report, print_verification_report
from registry import load_registry, save_registry
from verification import (
    MethodSurvey,
    VerificationRunner,
    check_integrity,
    check_issuer_addresses,
)
from verification.capabilities import summarize

logger = get_logger("chaincheck.cli")


@dataclass
class RunOptions:
    """Options shared by every command."""
    registry_path: Path
    roles_path: Path
    issuers_path: Path
    timeout: float
    workers: int
    chains: Optional[list[str]] = None
    report_path: Optional[Path] = None
    strict_interface: bool = False

    def load_registry(self) -> Registry:
        return load_registry(self.registry_path)

    def load_role_table(self) -> RoleTable:
        return load_role_table(self.roles_path)

    def selected(self, registry: Registry) -> Registry:
        """Registry restricted to --chains, if given."""
        if not self.chains:
            return registry
        unknown = [key for key in self.chains if registry.get(key) is None]
        if unknown:
            logger.warning(
                f"Unknown chain keys ignored: {', '.join(unknown)}",
                extra={"context": {"unknown": unknown}},
            )
        return registry.select(self.chains)


@contextmanager
def setup_guard() -> Iterator[None]:
    """Abort with exit status 1 on setup failure."""
    try:
        yield
    except SetupError as e:
        logger.error(
            f"Setup failed: {e.message}",
            extra={"context": {"code": e.code.value, **e.details}},
        )
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(1)


def _issuer_issues(registry: Registry, path: Path) -> list[str]:
    try:
        issuers = load_issuers(path)
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Issuer lists unavailable: {e}", extra={"context": {"path": str(path)}})
        return []
    return check_issuer_addresses(registry, issuers)


def _finish(options: RunOptions, report: VerificationReport) -> None:
    print_verification_report(report)
    if options.report_path:
        report.save(options.report_path)


def _echo_corrections(corrections: dict) -> None:
    click.echo("\n=== Suggested Corrections ===")
    if not corrections:
        click.echo("None")
        return
    click.echo(json.dumps({key: cs.to_dict() for key, cs in corrections.items()}, indent=2))


async def _verify(
    options: RunOptions,
    registry: Registry,
    role_table: RoleTable,
    with_contracts: bool,
    exhaustive: bool = False,
):
    async with JsonRpcClient(timeout_seconds=options.timeout) as client:
        prober = EndpointProber(client, timeout_seconds=options.timeout)
        runner = VerificationRunner(
            prober,
            role_table,
            max_workers=options.workers,
            verify_contracts=with_contracts,
            strict_interface=options.strict_interface,
            exhaustive_rpcs=exhaustive,
        )
        run = await runner.run(registry)
        return runner, run, client.get_stats_summary()


async def _survey(registry: Registry, method: str, timeout: float, urls: tuple[str, ...]):
    async with JsonRpcClient(timeout_seconds=timeout) as client:
        survey = MethodSurvey(EndpointProber(client, timeout_seconds=timeout), method=method)
        if urls:
            return [], await survey.survey_urls(urls), client.get_stats_summary()
        return await survey.survey(registry), [], client.get_stats_summary()


# =============================================================================
# COMMANDS
# =============================================================================

@click.group()
@click.option("--registry", "registry_path", type=click.Path(path_type=Path), default=None,
              help="Registry YAML (default: CHAINCHECK_REGISTRY_PATH or config/chains.yaml)")
@click.option("--roles", "roles_path", type=click.Path(path_type=Path), default=None,
              help="Role table YAML (default: CHAINCHECK_ROLES_PATH or config/roles.yaml)")
@click.option("--timeout", type=float, default=None, help="Per-probe timeout in seconds")
@click.option("--workers", type=int, default=None, help="Chains verified concurrently")
@click.option("--chains", default=None, help="Comma-separated chain keys to verify")
@click.option(
    "--log-level",
    "-l",
    default="INFO",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Log level",
)
@click.option("--json-logs/--no-json-logs", default=False, help="Use JSON log format")
@click.option("--report", "report_path", type=click.Path(path_type=Path), default=None,
              help="Write a JSON verification report here")
@click.option("--strict-interface/--no-strict-interface", default=False,
              help="Bytecode without a confirmed interface is unresolvable")
@click.pass_context
def cli(
    ctx: click.Context,
    registry_path: Optional[Path],
    roles_path: Optional[Path],
    timeout: Optional[float],
    workers: Optional[int],
    chains: Optional[str],
    log_level: str,
    json_logs: bool,
    report_path: Optional[Path],
    strict_interface: bool,
) -> None:
    """
    chaincheck - chain registry verification.

    Probes RPC endpoints and on-chain bytecode, and proposes the minimal
    safe corrections to the registry.
    """
    setup_logging(level=log_level, json_format=json_logs)
    with setup_guard():
        settings = get_settings()
        timeout = timeout if timeout is not None else settings.timeout_seconds
        workers = workers if workers is not None else settings.max_workers
        if timeout <= 0 or workers < 1:
            raise SetupError(
                f"Timeout must be positive and workers at least 1 (got {timeout}, {workers})",
                ErrorCode.CONFIG_INVALID,
                {"timeout": timeout, "workers": workers},
            )

    ctx.obj = RunOptions(
        registry_path=registry_path or settings.registry_path,
        roles_path=roles_path or settings.roles_path,
        issuers_path=settings.issuers_path,
        timeout=timeout,
        workers=workers,
        chains=[c.strip() for c in chains.split(",") if c.strip()] if chains else None,
        report_path=report_path,
        strict_interface=strict_interface,
    )


@cli.command()
@click.pass_obj
def check(options: RunOptions) -> None:
    """Static integrity checks: duplicate keys, chain ids and lz ids."""
    with setup_guard():
        registry = options.load_registry()

    issues = check_integrity(registry)
    issuer_issues = _issuer_issues(registry, options.issuers_path)
    for issue in issues:
        logger.warning(issue, extra={"context": {"check": "integrity"}})
    _finish(options, build_verification_report("check", registry, issues, issuer_issues))


@cli.command("verify-rpcs")
@click.option("--all-endpoints", is_flag=True, help="Probe every endpoint, not just up to the first match")
@click.pass_obj
def verify_rpcs(options: RunOptions, all_endpoints: bool) -> None:
    """Probe RPC endpoints and suggest preferred index / chain id fixes."""
    with setup_guard():
        registry = options.load_registry()
        role_table = options.load_role_table()

    selected = options.selected(registry)
    _, run, health = asyncio.run(
        _verify(options, selected, role_table, with_contracts=False, exhaustive=all_endpoints)
    )
    _echo_corrections(run.corrections)
    _finish(options, build_verification_report("verify-rpcs", selected, run=run, health=health))


@cli.command("verify-contracts")
@click.pass_obj
def verify_contracts(options: RunOptions) -> None:
    """Verify well-known contract addresses against live bytecode."""
    with setup_guard():
        registry = options.load_registry()
        role_table = options.load_role_table()

    selected = options.selected(registry)
    _, run, health = asyncio.run(_verify(options, selected, role_table, with_contracts=True))
    _echo_corrections(run.corrections)
    _finish(options, build_verification_report("verify-contracts", selected, run=run, health=health))


@cli.command()
@click.option("--output", "-o", type=click.Path(path_type=Path), default=None,
              help="Corrected registry path (default: <registry>-corrected.yaml)")
@click.pass_obj
def fix(options: RunOptions, output: Optional[Path]) -> None:
    """Run every check and write a corrected registry if anything changed."""
    with setup_guard():
        registry = options.load_registry()
        role_table = options.load_role_table()

    issues = check_integrity(registry)
    issuer_issues = _issuer_issues(registry, options.issuers_path)
    runner, run, health = asyncio.run(
        _verify(options, options.selected(registry), role_table, with_contracts=True)
    )

    # Unselected chains are kept as they are, apart from schema heals
    result = runner.reconcile(registry, run)
    report = build_verification_report(
        "fix", registry, issues, issuer_issues, run=run, reconcile=result, health=health
    )
    _finish(options, report)

    if not result.has_changes:
        click.echo("No changes needed - registry is correct")
        return

    output = output or options.registry_path.with_name(f"{options.registry_path.stem}-corrected.yaml")
    save_registry(result.registry, output, role_table)

    click.echo("\n" + "=" * 60)
    click.echo("CHANGES SUMMARY")
    click.echo("=" * 60)
    for key, changes in result.changes.items():
        click.echo(f"{key}:")
        for change in changes:
            click.echo(f"  - {change}")
    click.echo(f"\nTotal: {result.total_changes} changes across {len(result.changes)} chains")
    click.echo(f"Corrected registry saved to {output}")
    click.echo("=" * 60)


@cli.command("probe-methods")
@click.option("--method", "-m", default="eth_callMany", help="JSON-RPC method to survey")
@click.option("--url", "urls", multiple=True, help="Probe these URLs instead of the registry")
@click.pass_obj
def probe_methods(options: RunOptions, method: str, urls: tuple[str, ...]) -> None:
    """Survey which chains have an endpoint supporting a JSON-RPC method."""
    registry = Registry()
    if not urls:
        with setup_guard():
            registry = options.selected(options.load_registry())

    results, url_outcomes, health = asyncio.run(_survey(registry, method, options.timeout, urls))

    for outcome in url_outcomes:
        click.echo(f"{outcome.url}: {outcome.status.value} ({outcome.message[:80]})")
    if results:
        summary = summarize(results)
        click.echo(f"\nChains supporting {method}: {', '.join(summary['supported']) or 'none'}")

    _finish(
        options,
        build_verification_report("probe-methods", registry, capabilities=results, health=health),
    )


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
