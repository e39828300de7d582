"""
golfbets verify — audit log verification.

Usage:
    golfbets verify <audit.jsonl>                  Human output (default)
    golfbets verify <audit.jsonl> --format json    Machine-readable JSON

Exit codes:
    0  Log fully valid  (sequence + chain + signatures)
    1  Log has violations
    2  Error  (file missing, malformed JSON line)
"""

import json
import sys
from pathlib import Path
from typing import List

import click

from golfbets.cli.style import (
    BAR_LIGHT,
    Color,
    banner,
    emit_error,
    row_fail,
    row_info,
    row_ok,
)
from golfbets.core.exceptions import AuditLogError
from golfbets.ledger.audit import AuditRecord, AuditVerification, read_records, verify_records


@click.command(name="verify")
@click.argument("audit_log", type=click.Path(exists=False))
@click.option(
    "--format", "fmt",
    type=click.Choice(["human", "json"], case_sensitive=False),
    default="human",
    show_default=True,
    help="Output format: human (default) or json (CI/automation).",
)
@click.option("--no-color", is_flag=True, default=False, help="Disable ANSI color output.")
def verify_command(audit_log: str, fmt: str, no_color: bool) -> None:
    """
    Verify an audit log: sequence continuity, hash chain, signatures.

    AUDIT_LOG is the path to a .jsonl log written by `golfbets settle
    --audit-log` or AuditLog.append().

    \b
    Examples:
      golfbets verify audit.jsonl
      golfbets verify audit.jsonl --format json
    """
    Color.configure(not no_color)

    log_path = Path(audit_log)
    if not log_path.exists():
        emit_error("golfbets_verify", f"Audit log not found: {audit_log}", fmt)
        sys.exit(2)

    try:
        records = read_records(log_path)
    except AuditLogError as e:
        emit_error("golfbets_verify", str(e), fmt)
        sys.exit(2)

    result = verify_records(records)

    if fmt == "json":
        click.echo(json.dumps({"golfbets_verify": {"audit_log": str(log_path), **result.to_dict()}}, indent=2))
    else:
        _output_human(log_path, records, result)

    sys.exit(0 if result.valid else 1)


def _output_human(log_path: Path, records: List[AuditRecord], result: AuditVerification) -> None:
    by_type = {}
    for v in result.violations:
        by_type.setdefault(v.violation_type, []).append(v)

    banner("Audit Log Verification")
    click.echo(row_info("Audit log", str(log_path)))
    click.echo(row_info("Records", f"{result.total_records:,}"))
    matches = sorted({r.entry.get("match_id", "?") for r in records if isinstance(r.entry, dict)})
    click.echo(row_info("Matches", ", ".join(matches) if matches else "—"))
    click.echo()

    checks = [
        ("Sequence", "sequence_gap", "no gaps"),
        ("Chain", "chain_break", "intact, every prev_hash matches"),
        ("Signatures", "invalid_signature", f"{result.total_records:,} / {result.total_records:,} valid"),
        ("Entries", "malformed", "every payload readable"),
    ]
    for label, violation_type, ok_text in checks:
        found = by_type.get(violation_type, [])
        if found:
            click.echo(row_fail(label, Color.red(f"{len(found)} violation(s)")))
        else:
            click.echo(row_ok(label, ok_text))

    head = result.head_hash
    click.echo(row_info("Chain head", Color.cyan(head[:16] + "..." + head[-8:])))
    click.echo()

    if result.violations:
        click.echo(f"  {BAR_LIGHT}")
        for v in result.violations:
            click.echo(f"  {Color.red(str(v.sequence)):>6}  {Color.yellow(f'{v.violation_type:<18}')}  {v.detail}")
        click.echo(f"  {BAR_LIGHT}")
        click.echo()

    click.echo(f"  {BAR_LIGHT}")
    if result.valid:
        click.echo(Color.green(Color.bold("  ✅  VALID  ·  0 violations  ·  audit history intact")))
    else:
        n = len(result.violations)
        click.echo(Color.red(Color.bold(f"  ❌  INVALID  ·  {n} violation(s)  ·  audit history compromised")))
    click.echo(f"  {BAR_LIGHT}")
    click.echo()

