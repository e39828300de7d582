"""
golfbets/ledger/audit.py

Append-only audit log of settlement runs.

append() MUST, in this exact order:
  1. Acquire lock
  2. Build the record: sequence, prev_hash, signer key, entry payload
  3. Sign canonical bytes of the record
  4. Append one JSON line to the file
  5. Advance internal state, only after the write succeeded

Chain rule:
    prev_hash = SHA-256(JCS(previous.to_signing_dict())), first = GENESIS_HASH

Records are never rewritten or deleted. Folding every recorded diff in
order reproduces the current ledger (replay_ledger).
"""

import json
import logging
import threading
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from golfbets.core.canonical import canonical_hash, canonicalize
from golfbets.core.crypto import AuditKey
from golfbets.core.exceptions import AuditLogError
from golfbets.core.models import AuditEntry, LedgerEntry
from golfbets.ledger.store import apply_diff


logger = logging.getLogger(__name__)


GENESIS_HASH = "0" * 64


@dataclass
class AuditRecord:
    """One signed, chained line of the audit log."""
    sequence:          int
    prev_hash:         str
    signer_public_key: str
    entry:             Dict[str, Any]
    signature:         Optional[str] = None

    def to_signing_dict(self) -> Dict[str, Any]:
        return {
            "entry":             self.entry,
            "prev_hash":         self.prev_hash,
            "sequence":          self.sequence,
            "signer_public_key": self.signer_public_key,
        }

    def to_dict(self) -> Dict[str, Any]:
        d = self.to_signing_dict().copy()
        d["signature"] = self.signature
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuditRecord":
        return cls(
            sequence=          data["sequence"],
            prev_hash=         data["prev_hash"],
            signer_public_key= data["signer_public_key"],
            entry=             data["entry"],
            signature=         data.get("signature"),
        )

    def chain_hash(self) -> str:
        """The prev_hash the next record must carry."""
        return canonical_hash(self.to_signing_dict())

    def sign(self, key: AuditKey) -> "AuditRecord":
        self.signature = key.sign(canonicalize(self.to_signing_dict()))
        return self

    def verify_signature(self) -> bool:
        if not self.signature:
            return False
        return AuditKey.verify_detached(
            canonicalize(self.to_signing_dict()),
            self.signature,
            self.signer_public_key,
        )

    def audit_entry(self) -> AuditEntry:
        return AuditEntry.from_dict(self.entry)


@dataclass
class AuditViolation:
    sequence:       int
    violation_type: str   # "sequence_gap" | "chain_break" | "invalid_signature" | "malformed"
    detail:         str


@dataclass
class AuditVerification:
    total_records: int = 0
    violations:    List[AuditViolation] = field(default_factory=list)
    head_hash:     str = GENESIS_HASH

    @property
    def valid(self) -> bool:
        return not self.violations

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "total_records": self.total_records,
            "head_hash": self.head_hash,
            "violations": [
                {"sequence": v.sequence, "type": v.violation_type, "detail": v.detail}
                for v in self.violations
            ],
        }


class AuditLog:
    """
    JSONL audit sink. Thread-safe within one process.

    State (sequence, head hash) is restored from the file on construction.
    """

    def __init__(self, path, key: AuditKey) -> None:
        self.key   = key
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)

        self._lock:      threading.Lock = threading.Lock()
        self._sequence:  int = 0
        self._head_hash: str = GENESIS_HASH

        self._restore_state()

    @property
    def path(self) -> Path:
        return self._path

    # ── Public API ────────────────────────────────────────────

    def append(self, entry: AuditEntry) -> AuditRecord:
        """
        Append one settlement run. Raises AuditLogError on write failure;
        state does not advance in that case.
        """
        with self._lock:
            record = AuditRecord(
                sequence=          self._sequence,
                prev_hash=         self._head_hash,
                signer_public_key= self.key.public_key_hex,
                entry=             entry.to_dict(),
            ).sign(self.key)

            try:
                with open(self._path, "a", encoding="utf-8") as f:
                    f.write(json.dumps(record.to_dict()) + "\n")
            except OSError as exc:
                raise AuditLogError(
                    f"audit log write failed: {exc}", {"path": str(self._path)}
                ) from exc

            self._sequence  += 1
            self._head_hash  = record.chain_hash()

        logger.debug(
            "Audit record %d appended for match %s", record.sequence, entry.match_id
        )
        return record

    def records(self) -> List[AuditRecord]:
        return read_records(self._path)

    def entries(self, match_id: Optional[str] = None) -> List[AuditEntry]:
        return [
            entry for entry in (r.audit_entry() for r in self.records())
            if match_id is None or entry.match_id == match_id
        ]

    def replay_ledger(self, match_id: str) -> List[LedgerEntry]:
        """Rebuild a match's ledger by applying every recorded diff in order."""
        ledger = {}
        for entry in self.entries(match_id):
            ledger = apply_diff(ledger, entry.diff)
        return sorted(ledger.values(), key=lambda e: (e.bet_id is not None, e.bet_id or "", e.key.pair))

    def verify_chain(self) -> AuditVerification:
        return verify_records(self.records())

    # ── Internal ──────────────────────────────────────────────

    def _restore_state(self) -> None:
        """
        Pick up sequence and head hash from the last line of an existing log.
        A corrupted last line leaves state at genesis and warns.
        """
        if not self._path.exists():
            return

        last_line = None
        with open(self._path, "r", encoding="utf-8") as f:
            for line in f:
                stripped = line.strip()
                if stripped:
                    last_line = stripped

        if not last_line:
            return

        try:
            record = AuditRecord.from_dict(json.loads(last_line))
            self._sequence  = record.sequence + 1
            self._head_hash = record.chain_hash()
        except (json.JSONDecodeError, KeyError, TypeError) as exc:
            warnings.warn(
                f"AuditLog: could not restore state from {self._path}: {exc}. "
                "Last line may be corrupted. Call verify_chain() before appending.",
                RuntimeWarning,
                stacklevel=3,
            )


def verify_records(records: List[AuditRecord]) -> AuditVerification:
    """Check sequence continuity, hash chaining and every signature."""
    result = AuditVerification(total_records=len(records))
    prev_hash = GENESIS_HASH

    for i, record in enumerate(records):
        if record.sequence != i:
            result.violations.append(AuditViolation(
                i, "sequence_gap", f"expected sequence {i}, got {record.sequence}"
            ))
        if record.prev_hash != prev_hash:
            result.violations.append(AuditViolation(
                record.sequence, "chain_break",
                f"expected prev_hash ...{prev_hash[-12:]}, got ...{str(record.prev_hash)[-12:]}",
            ))
        if not record.verify_signature():
            result.violations.append(AuditViolation(
                record.sequence, "invalid_signature", "signature does not verify"
            ))
        try:
            record.audit_entry()
        except (KeyError, TypeError, ValueError) as exc:
            result.violations.append(AuditViolation(
                record.sequence, "malformed", f"entry payload unreadable: {exc}"
            ))
        prev_hash = record.chain_hash()

    result.head_hash = prev_hash
    return result


def read_records(path) -> List[AuditRecord]:
    """Every record in file order. Raises AuditLogError on malformed lines."""
    path = Path(path)
    if not path.exists():
        return []
    records = []
    with open(path, "r", encoding="utf-8") as f:
        for line_num, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                records.append(AuditRecord.from_dict(json.loads(line)))
            except (json.JSONDecodeError, KeyError, TypeError) as exc:
                raise AuditLogError(
                    f"Malformed audit record at line {line_num}: {exc}", {"path": str(path)}
                ) from exc
    return records
