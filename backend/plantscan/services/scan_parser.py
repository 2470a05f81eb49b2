"""
PlantScan Backend - Scan Payload Parser
=========================================

What:  Turns a scan submission into a (group_id, plant_id) pair.
How:   One entry point accepts both wire encodings used by scanner clients:

       Structured   {"groupID": "7", "plant": "99"} (field names configurable)
       Raw string   {"qrCodeData": "*A7*RANDOM*V99*"}

       Structured fields are tried first, by a configurable list of name
       pairs. The raw string is only consulted when no structured field
       name appears in the payload at all; a half-filled structured pair is
       reported as invalid rather than retried as a raw string.

Outcome is a tagged variant:
    StructuredScan  identifiers + which field pair matched
    RawStringScan   identifiers + the original string
    InvalidScan     reason (+ field), mapped to InvalidPayload by parse()

Raw-string tokens:
    *A<digits>*   group id
    *V<digits>*   plant id
    Either order, anywhere in the string, ASCII digits only. Structured
    values are only checked for non-emptiness after trimming; callers send
    identifiers their own UI already parsed.
"""

import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Tuple, Union

from plantscan.exceptions import InvalidPayload

GROUP_TOKEN = re.compile(r"\*A(\d+)\*", re.ASCII)
PLANT_TOKEN = re.compile(r"\*V(\d+)\*", re.ASCII)

DEFAULT_ID_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("groupID", "plant"),
    ("groupID", "plantID"),
    ("groupId", "plantId"),
)
DEFAULT_RAW_FIELD = "qrCodeData"


@dataclass(frozen=True)
class ParsedIdentifiers:
    """Lookup key for one PlantList record. Never persisted on its own."""

    group_id: str
    plant_id: str


@dataclass(frozen=True)
class StructuredScan:
    identifiers: ParsedIdentifiers
    fields: Tuple[str, str]


@dataclass(frozen=True)
class RawStringScan:
    identifiers: ParsedIdentifiers
    raw: str


@dataclass(frozen=True)
class InvalidScan:
    reason: str
    field: Optional[str] = None


ScanOutcome = Union[StructuredScan, RawStringScan, InvalidScan]


def _as_text(value: Any) -> str:
    """
    Normalize a structured field value to trimmed text.

    JSON numbers are accepted ({"groupId": 7}); booleans and containers are
    not identifiers and normalize to "" so they fail the non-empty check.
    """
    if isinstance(value, bool):
        return ""
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return value.strip()
    return ""


class ScanParser:
    """
    Classifies scan submissions.

    Args:
        id_fields: Ordered (group_field, plant_field) name pairs.
        raw_field: Name of the raw QR string field.
    """

    def __init__(
        self,
        id_fields: Sequence[Tuple[str, str]] = DEFAULT_ID_FIELDS,
        raw_field: str = DEFAULT_RAW_FIELD,
    ):
        if not id_fields:
            raise ValueError("ScanParser needs at least one identifier field pair")
        self.id_fields = tuple((group, plant) for group, plant in id_fields)
        self.raw_field = raw_field
        self._structured_names = {name for pair in self.id_fields for name in pair}

    # ── Raw string form ───────────────────────────────────────────────────

    def classify_raw(self, raw: Any) -> ScanOutcome:
        """Extract identifiers from a raw QR string."""
        if not isinstance(raw, str) or not raw:
            return InvalidScan(reason="Invalid QR code format", field=self.raw_field)

        group_match = GROUP_TOKEN.search(raw)
        plant_match = PLANT_TOKEN.search(raw)
        if group_match is None or plant_match is None:
            return InvalidScan(reason="Invalid QR code format", field=self.raw_field)

        return RawStringScan(
            identifiers=ParsedIdentifiers(
                group_id=group_match.group(1),
                plant_id=plant_match.group(1),
            ),
            raw=raw,
        )

    def parse_raw(self, raw: Any) -> ParsedIdentifiers:
        return self._unwrap(self.classify_raw(raw))

    # ── Structured form ───────────────────────────────────────────────────

    def _classify_structured(self, payload: Mapping[str, Any]) -> Optional[ScanOutcome]:
        """
        None when the payload names no structured field at all.

        The first pair with both fields present wins. Any other combination
        of structured names (one half of a pair, or a complete pair with a
        blank value) is invalid.
        """
        for group_field, plant_field in self.id_fields:
            group_value = payload.get(group_field)
            plant_value = payload.get(plant_field)
            if group_value is None or plant_value is None:
                continue

            group_id = _as_text(group_value)
            plant_id = _as_text(plant_value)
            if not group_id or not plant_id:
                blank = group_field if not group_id else plant_field
                return InvalidScan(
                    reason=f"'{blank}' must not be empty",
                    field=blank,
                )
            return StructuredScan(
                identifiers=ParsedIdentifiers(group_id=group_id, plant_id=plant_id),
                fields=(group_field, plant_field),
            )

        present = sorted(
            name for name in self._structured_names if payload.get(name) is not None
        )
        if present:
            return InvalidScan(
                reason="Group ID and Plant ID are required",
                field=present[0],
            )
        return None

    # ── Entry points ──────────────────────────────────────────────────────

    def classify(self, payload: Any, allow_raw: bool = True) -> ScanOutcome:
        """
        Classify a submission without raising.

        Args:
            payload:   Decoded JSON object or multipart form fields.
            allow_raw: False for endpoints that only take structured ids
                       (upload, delete-image).
        """
        if not isinstance(payload, Mapping):
            return InvalidScan(reason="Request body must be a JSON object")

        structured = self._classify_structured(payload)
        if structured is not None:
            return structured

        if allow_raw and payload.get(self.raw_field) is not None:
            return self.classify_raw(payload.get(self.raw_field))

        if allow_raw:
            return InvalidScan(reason="Invalid QR code format", field=self.raw_field)
        return InvalidScan(reason="Group ID and Plant ID are required")

    def parse(self, payload: Any, allow_raw: bool = True) -> ParsedIdentifiers:
        """Classify and return identifiers; InvalidPayload on an InvalidScan."""
        return self._unwrap(self.classify(payload, allow_raw=allow_raw))

    @staticmethod
    def _unwrap(outcome: ScanOutcome) -> ParsedIdentifiers:
        if isinstance(outcome, InvalidScan):
            raise InvalidPayload(message=outcome.reason, field=outcome.field)
        return outcome.identifiers
