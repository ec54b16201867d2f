"""
QR identifier resolution for Green Sprint trees.

Classifies raw scanner text into one of the identifier formats printed on
tree tags and turns the result into an ordered list of store lookups.

Supported formats, in priority order:
    {"id": ..., "qr_code_id": ...}                        structured payload
    GS-1718000000000-AB12CD34                               native code
    https://host/tree-details.html?id=<tree>&qr=<code>     locator URL
    0f8fad5b-d9cb-469f-a165-70867728950e                    raw tree UUID
"""

import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs, urlparse

from greensprint import config

logger = logging.getLogger(__name__)

RECORD_ID_FIELD = 'id'
CODE_ID_FIELD = 'qr_code_id'

# Auxiliary keys are the names used inside QR payloads and tree documents
AUX_RECORD_ID = 'tree_id'
AUX_CODE_ID = 'qr_code_id'

URL_RECORD_PARAM = 'id'
URL_CODE_PARAM = 'qr'
URL_PATH_MARKER = 'tree-details'

UUID_PATTERN = re.compile(
    r'^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$',
    re.IGNORECASE
)


class IdentifierKind(Enum):
    """Formats a scanned identifier can take."""
    STRUCTURED_PAYLOAD = "structured_payload"
    NATIVE_CODE = "native_code"
    LOCATOR_URL = "locator_url"
    RAW_UUID = "raw_uuid"
    UNRECOGNIZED = "unrecognized"


@dataclass
class ParsedIdentifier:
    """Result of classifying raw scanner text."""
    raw: str
    kind: IdentifierKind
    primary_id: Optional[str] = None
    auxiliary: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def valid(self) -> bool:
        return self.kind is not IdentifierKind.UNRECOGNIZED

    @property
    def record_id(self) -> Optional[str]:
        return _as_identifier(self.auxiliary.get(AUX_RECORD_ID))

    @property
    def code_id(self) -> Optional[str]:
        return _as_identifier(self.auxiliary.get(AUX_CODE_ID))


@dataclass(frozen=True)
class LookupCandidate:
    """A single (field, value) pair to try against the record store."""
    field: str
    value: str


@dataclass
class LookupMatch:
    """First record found while walking the candidate list."""
    record: Dict[str, Any]
    candidate: LookupCandidate
    attempts: int


def _as_identifier(value) -> Optional[str]:
    if value is None or isinstance(value, (dict, list, bool)):
        return None
    value = str(value).strip()
    return value or None


def _unrecognized(raw: str, reason: str) -> ParsedIdentifier:
    return ParsedIdentifier(raw=raw, kind=IdentifierKind.UNRECOGNIZED, error=reason)


def _parse_structured_payload(text: str) -> Optional[ParsedIdentifier]:
    try:
        payload = json.loads(text)
    except (ValueError, RecursionError):
        # Deeply nested input exhausts the decoder's stack
        return None
    if not isinstance(payload, dict):
        return None

    primary_id = _as_identifier(payload.get('id')) or _as_identifier(payload.get(AUX_CODE_ID))
    if not primary_id:
        return _unrecognized(text, "QR payload carries neither 'id' nor 'qr_code_id'.")

    return ParsedIdentifier(
        raw=text,
        kind=IdentifierKind.STRUCTURED_PAYLOAD,
        primary_id=primary_id,
        auxiliary=payload
    )


def _parse_locator_url(text: str) -> Optional[ParsedIdentifier]:
    try:
        url = urlparse(text)
    except ValueError:
        return None
    # Relative paths and bare words are not locator URLs
    if not url.scheme or not url.netloc:
        return None

    params = parse_qs(url.query)
    tree_id = _as_identifier(params.get(URL_RECORD_PARAM, [None])[0])
    qr_code_id = _as_identifier(params.get(URL_CODE_PARAM, [None])[0])
    last_segment = _as_identifier(url.path.rstrip('/').split('/')[-1])

    primary_id = qr_code_id or tree_id or last_segment
    if not primary_id:
        return None

    auxiliary = {}
    if tree_id:
        auxiliary[AUX_RECORD_ID] = tree_id
    if qr_code_id:
        auxiliary[AUX_CODE_ID] = qr_code_id

    return ParsedIdentifier(
        raw=text,
        kind=IdentifierKind.LOCATOR_URL,
        primary_id=primary_id,
        auxiliary=auxiliary
    )


def classify(raw: str, native_prefix: Optional[str] = None) -> ParsedIdentifier:
    """
    Classify raw scanner text.

    Pure function: no I/O, never raises for string input.

    Args:
        raw: Text decoded by a camera scanner or typed by a user
        native_prefix: Prefix of native tree codes (defaults to configuration)

    Returns:
        ParsedIdentifier; kind is UNRECOGNIZED when no format matches
    """
    prefix = native_prefix or config.QR_CODE_PREFIX
    if not isinstance(raw, str):
        return _unrecognized(str(raw), "QR data must be text.")

    text = raw.strip()
    if not text:
        return _unrecognized(text, "QR data is empty.")

    if text.startswith('{'):
        parsed = _parse_structured_payload(text)
        if parsed is not None:
            return parsed

    if text.startswith(prefix):
        return ParsedIdentifier(raw=text, kind=IdentifierKind.NATIVE_CODE, primary_id=text)

    if 'http' in text or URL_PATH_MARKER in text:
        parsed = _parse_locator_url(text)
        if parsed is not None:
            return parsed

    if UUID_PATTERN.match(text):
        return ParsedIdentifier(
            raw=text,
            kind=IdentifierKind.RAW_UUID,
            primary_id=text,
            auxiliary={AUX_RECORD_ID: text}
        )

    return _unrecognized(text, "Unknown QR code format. Expected a Green Sprint QR code.")


def resolve(parsed: ParsedIdentifier,
            record_field: str = RECORD_ID_FIELD,
            code_field: str = CODE_ID_FIELD,
            native_prefix: Optional[str] = None) -> List[LookupCandidate]:
    """
    Build the ordered lookup candidates for a parsed identifier.

    A native-looking primary id is tried as a code first, then ids carried
    alongside it, then the format-specific guess, then the primary id under
    both fields. Pairs already queued are not repeated.
    """
    if not parsed.valid:
        return []

    prefix = native_prefix or config.QR_CODE_PREFIX
    primary_id = parsed.primary_id
    ordered = []

    if primary_id.startswith(prefix):
        ordered.append((code_field, primary_id))
    if parsed.record_id:
        ordered.append((record_field, parsed.record_id))
    if parsed.code_id:
        ordered.append((code_field, parsed.code_id))
    if parsed.kind is IdentifierKind.NATIVE_CODE:
        ordered.append((code_field, primary_id))
    if parsed.kind is IdentifierKind.RAW_UUID:
        ordered.append((record_field, primary_id))
    ordered.append((code_field, primary_id))
    ordered.append((record_field, primary_id))

    candidates = []
    seen = set()
    for pair in ordered:
        if pair in seen:
            continue
        seen.add(pair)
        candidates.append(LookupCandidate(field=pair[0], value=pair[1]))
    return candidates


def find_record(store, candidates: List[LookupCandidate]) -> Optional[LookupMatch]:
    """
    Query the store once per candidate, in order, stopping at the first hit.

    Store errors are not caught here; an empty result is not an error.
    """
    for attempt, candidate in enumerate(candidates, 1):
        record = store.find(candidate.field, candidate.value)
        if record:
            logger.info(f"Resolved {candidate.field}={candidate.value} on attempt {attempt}")
            return LookupMatch(record=record, candidate=candidate, attempts=attempt)
    return None
