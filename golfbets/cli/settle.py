"""
golfbets settle — settle a match snapshot from YAML.

Usage:
    golfbets settle <snapshot.yaml>                           Human output
    golfbets settle <snapshot.yaml> --format json             Machine-readable JSON
    golfbets settle <snapshot.yaml> --scope match-wide        One netted entry per pair
    golfbets settle <snapshot.yaml> --audit-log audit.jsonl   Append a signed audit record

Exit codes:
    0  Settled (individual bets may still be pending)
    2  Error  (file missing, malformed snapshot, invalid configuration)
"""

import json
import sys
from pathlib import Path
from typing import Optional

import click

from golfbets.cli.style import (
    BAR_LIGHT,
    Color,
    banner,
    emit_error,
    row_info,
    row_ok,
)
from golfbets.config import MatchSnapshot
from golfbets.core.crypto import AuditKey
from golfbets.core.exceptions import GolfBetsError
from golfbets.core.models import LedgerScope
from golfbets.ledger.audit import AuditLog, AuditRecord
from golfbets.settlement.engine import Settlement, SettlementEngine


_STATUS_COLOR = {
    "settled": Color.green,
    "partial": Color.yellow,
    "pending": Color.dim,
}


@click.command(name="settle")
@click.argument("snapshot", type=click.Path(exists=False))
@click.option(
    "--scope",
    type=click.Choice(["per-bet", "match-wide"], case_sensitive=False),
    default=None,
    help="Ledger scope. Overrides settlement.scope in the snapshot.",
)
@click.option(
    "--format", "fmt",
    type=click.Choice(["human", "json"], case_sensitive=False),
    default="human",
    show_default=True,
    help="Output format.",
)
@click.option(
    "--audit-log",
    type=click.Path(),
    default=None,
    metavar="PATH",
    help="Append the run's audit entry to this JSONL log.",
)
@click.option(
    "--key",
    "key_path",
    type=click.Path(),
    default=None,
    metavar="PATH",
    help="Ed25519 PEM key for signing audit records. Created if missing. "
         "Defaults to the audit log path with a .key suffix.",
)
@click.option("--no-color", is_flag=True, default=False, help="Disable ANSI color output.")
def settle_command(
    snapshot:  str,
    scope:     Optional[str],
    fmt:       str,
    audit_log: Optional[str],
    key_path:  Optional[str],
    no_color:  bool,
) -> None:
    """
    Settle every bet in a match snapshot and print the ledger.

    SNAPSHOT is a YAML file holding the match, participants, bets,
    scores and (optionally) the previously stored ledger.

    \b
    Examples:
      golfbets settle saturday.yaml
      golfbets settle saturday.yaml --scope match-wide --format json
      golfbets settle saturday.yaml --audit-log audit.jsonl --key audit.key
    """
    Color.configure(not no_color)

    snapshot_path = Path(snapshot)
    if not snapshot_path.exists():
        emit_error("golfbets_settle", f"Snapshot not found: {snapshot}", fmt)
        sys.exit(2)

    record: Optional[AuditRecord] = None
    try:
        loaded = MatchSnapshot.from_yaml(snapshot_path)
        engine = SettlementEngine(
            scope=LedgerScope(scope.replace("-", "_")) if scope else loaded.scope
        )
        settlement = engine.settle(
            loaded.match,
            loaded.participants,
            loaded.bets,
            loaded.scores,
            previous_ledger=loaded.previous_ledger,
        )
        if audit_log:
            key = AuditKey.load_or_create(
                Path(key_path) if key_path else Path(audit_log).with_suffix(".key")
            )
            record = AuditLog(audit_log, key).append(settlement.audit)
    except GolfBetsError as e:
        emit_error("golfbets_settle", str(e), fmt)
        sys.exit(2)
    except (ValueError, RuntimeError, OSError) as e:
        emit_error("golfbets_settle", f"Unexpected error: {e}", fmt)
        sys.exit(2)

    if fmt == "json":
        _output_json(loaded, settlement, record)
    else:
        _output_human(loaded, settlement, record, audit_log)
    sys.exit(0)


# ── Human output ──────────────────────────────────────────────────────────────

def _output_human(
    loaded:     MatchSnapshot,
    settlement: Settlement,
    record:     Optional[AuditRecord],
    audit_log:  Optional[str],
) -> None:
    names = {p.participant_id: p.display_name for p in loaded.participants}
    audit = settlement.audit
    match = loaded.match

    banner("Settlement")
    click.echo(row_info("Match", f"{match.match_id}  ({match.course_name}, {match.holes} holes)"))
    click.echo(row_info("Scope", audit.scope.value))
    click.echo(row_info("Snapshot", f"v{audit.snapshot_version}  ·  {len(loaded.scores)} score(s)"))
    click.echo()

    for bet_id, lines in sorted(audit.explanations.items()):
        status = audit.statuses[bet_id]
        paint = _STATUS_COLOR.get(status, Color.dim)
        click.echo(f"  {Color.bold(bet_id)}  {paint(status)}")
        for line in lines:
            click.echo(f"      {line}")
        click.echo()

    click.echo(f"  {BAR_LIGHT}")
    if not settlement.ledger:
        click.echo("  No money changes hands.")
    for entry in settlement.ledger:
        scope = entry.bet_id if entry.bet_id is not None else "match"
        click.echo(
            f"  {names.get(entry.debtor, entry.debtor):<16} owes "
            f"{names.get(entry.creditor, entry.creditor):<16} "
            f"{Color.cyan(str(entry.amount)):>8}  {Color.dim(f'[{scope}]')}"
        )
    click.echo(f"  {BAR_LIGHT}")
    click.echo()

    diff = settlement.diff
    if diff.is_empty:
        click.echo(row_ok("Diff", "stored ledger already current"))
    else:
        click.echo(row_info("Diff", f"{len(diff.upserts)} upsert(s), {len(diff.removals)} removal(s)"))
    if record is not None:
        click.echo(row_ok("Audit", f"record {record.sequence} appended to {audit_log}"))
    click.echo()


# ── JSON output ───────────────────────────────────────────────────────────────

def _output_json(
    loaded:     MatchSnapshot,
    settlement: Settlement,
    record:     Optional[AuditRecord],
) -> None:
    out = {
        "golfbets_settle": {
            "match_id":         loaded.match.match_id,
            "scope":            settlement.audit.scope.value,
            "snapshot_version": settlement.audit.snapshot_version,
            "statuses":         settlement.audit.statuses,
            "explanations":     settlement.audit.explanations,
            "unallocated": {
                bet_id: result.unallocated
                for bet_id, result in sorted(settlement.results.items())
                if result.unallocated
            },
            "ledger":           [entry.to_dict() for entry in settlement.ledger],
            "diff":             settlement.diff.to_dict(),
            "audit_id":         settlement.audit.audit_id,
            "audit_sequence":   record.sequence if record is not None else None,
        }
    }
    click.echo(json.dumps(out, indent=2))
