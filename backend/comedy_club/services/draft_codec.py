"""
Serialization of a BookingDraft for the payment redirect.

The draft leaves the service inside the processor's return URL and comes back
as a query parameter. Depending on the processor it arrives either still
percent-encoded or already decoded, so decoding accepts both.

Wire format (version 1), before percent-encoding:

    {"version": 1, "draft": {"event_id": 7, "user_name": "...", ...}}

A bare draft object without the envelope is the format older clients put in
the redirect. Its total_amount is in major units (12.5 meaning 12.50) and is
converted to cents on the way in.
"""

import json
from urllib.parse import quote, unquote

from pydantic import ValidationError

from comedy_club.schemas.booking import BookingDraft
from comedy_club.services.pricing import parse_amount
from comedy_club.core.exceptions import BookingValidationError

DRAFT_FORMAT_VERSION = 1


class DraftDecodeError(ValueError):
    pass


def draft_envelope(draft: BookingDraft) -> dict:
    return {"version": DRAFT_FORMAT_VERSION, "draft": draft.model_dump(mode="json")}


def encode_draft(draft: BookingDraft) -> str:
    text = json.dumps(draft_envelope(draft), separators=(",", ":"), sort_keys=True)
    return quote(text, safe="")


def _load_json(raw: str) -> object:
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        pass
    try:
        return json.loads(unquote(raw))
    except json.JSONDecodeError as exc:
        raise DraftDecodeError("bookingData is not valid JSON") from exc


def _legacy_draft(payload: dict) -> dict:
    draft = dict(payload)
    amount = draft.get("total_amount")
    if amount is not None:
        try:
            draft["total_amount"] = parse_amount(str(amount))
        except BookingValidationError as exc:
            raise DraftDecodeError("bookingData has an invalid total_amount") from exc
    return draft


def decode_draft(raw: str) -> BookingDraft:
    if not raw or not raw.strip():
        raise DraftDecodeError("bookingData is empty")

    payload = _load_json(raw.strip())
    if not isinstance(payload, dict):
        raise DraftDecodeError("bookingData must be an object")

    if "version" in payload:
        if payload["version"] != DRAFT_FORMAT_VERSION:
            raise DraftDecodeError(f"Unsupported bookingData version: {payload['version']!r}")
        draft = payload.get("draft")
        if not isinstance(draft, dict):
            raise DraftDecodeError("bookingData envelope has no draft")
    else:
        draft = _legacy_draft(payload)

    try:
        return BookingDraft.model_validate(draft)
    except ValidationError as exc:
        raise DraftDecodeError(f"bookingData failed validation: {exc.error_count()} error(s)") from exc
