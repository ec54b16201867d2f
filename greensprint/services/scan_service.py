"""
Scan Service for Green Sprint
Resolves scanned QR text to a tree and records the scan
"""

from dataclasses import asdict, dataclass, field
import logging
from typing import Any, Dict, List, Optional

from greensprint.services.qr_resolver import classify, find_record, resolve
from greensprint.utils.error_handler import DatabaseError

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = (
    "Tree not found. This QR code may not be registered yet or the tree was deleted."
)


@dataclass
class ScanOutcome:
    """Outcome of one scan, success or failure."""
    success: bool
    record: Optional[Dict[str, Any]] = None
    matched_field: Optional[str] = None
    qr_code_id: Optional[str] = None
    message: Optional[str] = None
    reason: Optional[str] = None
    error_code: Optional[str] = None
    kind: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ScanService:
    def __init__(self, store):
        self.store = store

    def handle_scan(self, raw, actor_id=None, location=None):
        """
        Resolve raw scanner text to a tree record.

        Malformed input, an unknown code and an unreachable store each give a
        different error_code. Recording the scan is best effort and only
        reported through warnings.
        """
        parsed = classify(raw)
        if not parsed.valid:
            logger.info(f"Rejected unrecognized QR data: {parsed.raw!r}")
            return ScanOutcome(
                success=False,
                reason=f"Invalid QR code format. {parsed.error}",
                error_code='MALFORMED_INPUT',
                kind=parsed.kind.value
            )

        candidates = resolve(parsed)
        try:
            match = find_record(self.store, candidates)
        except DatabaseError as e:
            logger.error(f"Store unavailable while resolving {parsed.primary_id}: {e.message}")
            return ScanOutcome(
                success=False,
                reason="Could not reach the tree registry. Please try again.",
                error_code='STORE_UNAVAILABLE',
                kind=parsed.kind.value
            )

        if match is None:
            logger.info(f"No tree for {parsed.primary_id} after {len(candidates)} lookups")
            return ScanOutcome(
                success=False,
                reason=NOT_FOUND_MESSAGE,
                error_code='NOT_FOUND',
                kind=parsed.kind.value
            )

        tree = match.record
        qr_code_id = tree.get('qr_code_id') or parsed.primary_id
        outcome = ScanOutcome(
            success=True,
            record=tree,
            matched_field=match.candidate.field,
            qr_code_id=qr_code_id,
            message='Tree found successfully!',
            kind=parsed.kind.value
        )

        if actor_id:
            try:
                self.store.record_event(qr_code_id, actor_id, location)
            except Exception as e:
                logger.warning(f"Could not record scan of {qr_code_id}: {str(e)}")
                outcome.warnings.append(f"Scan was not recorded: {str(e)}")

        return outcome
