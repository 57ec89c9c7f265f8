"""
Backup Codec

Turns AppState (+ settings + metadata) into a portable document and back.

ENCODE always emits the current full envelope (format version 1.1).

DECODE classifies the document before extracting anything, in order:
1. has "appState" AND "metadata"         -> full envelope
2. has "transactions" AND "categories"   -> legacy envelope (bare state)
3. anything else                         -> unrecognized, decode fails

The candidate is then validated against the schema for its shape. If
validation fails the whole decode fails; a partial state is never
returned.

IMPORTANT: decode() never raises for JSON-like input. It returns a
DecodeSuccess or a DecodeFailure so callers can tell "garbage input"
apart from "nothing to restore" and show the right message.
"""

import json
from collections.abc import Mapping
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationError

from smartfinance.models.backup import (
    FORMAT_VERSION,
    BackupData,
    BackupMetadata,
    BackupSettings,
    FullEnvelope,
    LegacyEnvelope,
)
from smartfinance.models.state import AppState


class EnvelopeKind(str, Enum):
    """Which document shape a backup was recognized as."""
    FULL = "full"
    LEGACY = "legacy"


class DecodeFailureKind(str, Enum):
    """Why a document could not be decoded."""
    UNRECOGNIZED = "unrecognized"  # neither envelope shape
    STRUCTURAL = "structural"      # right shape, invalid contents
    INVALID_JSON = "invalid_json"  # text is not JSON at all
    UNREADABLE = "unreadable"      # file could not be read


class DecodeSuccess(BaseModel):
    """A decoded backup. settings is None when the envelope carried none."""
    model_config = ConfigDict(frozen=True)

    ok: Literal[True] = True
    kind: EnvelopeKind
    state: AppState
    settings: Optional[BackupSettings] = None
    metadata: dict[str, Any] = {}


class DecodeFailure(BaseModel):
    """A rejected document. Nothing was extracted from it."""
    model_config = ConfigDict(frozen=True)

    ok: Literal[False] = False
    kind: DecodeFailureKind
    reason: str


DecodeResult = Union[DecodeSuccess, DecodeFailure]


# =============================================================================
# ENCODE
# =============================================================================

def describe(state: AppState) -> str:
    """Human-readable summary stamped into backup metadata."""
    return (
        f"Backup with {len(state.transactions)} transactions "
        f"and {len(state.categories)} categories."
    )


def encode(
    state: AppState,
    settings: BackupSettings,
    now: Optional[datetime] = None,
) -> BackupData:
    """
    Wrap a state snapshot in the current full envelope.

    Args:
        state: The snapshot to export
        settings: Language/theme preferences to carry along
        now: Encode time (defaults to the current UTC time)

    Returns:
        BackupData stamped with FORMAT_VERSION and the encode time
    """
    return BackupData(
        app_state=state,
        settings=settings,
        metadata=BackupMetadata(
            version=FORMAT_VERSION,
            timestamp=now or datetime.now(timezone.utc),
            description=describe(state),
        ),
    )


# =============================================================================
# DECODE
# =============================================================================

def _present(document: Mapping, key: str) -> bool:
    return document.get(key) is not None


def _summarize(error: ValidationError, limit: int = 3) -> str:
    parts = []
    for item in error.errors()[:limit]:
        location = ".".join(str(part) for part in item["loc"]) or "document"
        parts.append(f"{location}: {item['msg']}")
    more = error.error_count() - limit
    if more > 0:
        parts.append(f"... and {more} more")
    return "; ".join(parts)


def _extract_settings(raw: Any) -> Optional[BackupSettings]:
    """
    Keep whichever preferences in `raw` are individually valid.

    Malformed settings never fail a decode; they are treated as absent.
    """
    if not isinstance(raw, Mapping):
        return None

    accepted: dict[str, Any] = {}
    for key in ("lang", "isDark"):
        if key not in raw:
            continue
        try:
            BackupSettings.model_validate({key: raw[key]})
        except ValidationError:
            continue
        accepted[key] = raw[key]

    settings = BackupSettings.model_validate(accepted)
    return None if settings.is_empty else settings


def _decode_full(document: Mapping) -> DecodeResult:
    try:
        envelope = FullEnvelope.model_validate(dict(document))
        state = envelope.app_state.to_state()
    except ValidationError as e:
        return DecodeFailure(
            kind=DecodeFailureKind.STRUCTURAL,
            reason=f"Invalid backup contents: {_summarize(e)}",
        )
    return DecodeSuccess(
        kind=EnvelopeKind.FULL,
        state=state,
        settings=_extract_settings(envelope.settings),
        metadata=envelope.metadata,
    )


def _decode_legacy(document: Mapping) -> DecodeResult:
    try:
        state = LegacyEnvelope.model_validate(dict(document)).to_state()
    except ValidationError as e:
        return DecodeFailure(
            kind=DecodeFailureKind.STRUCTURAL,
            reason=f"Invalid legacy backup contents: {_summarize(e)}",
        )
    return DecodeSuccess(kind=EnvelopeKind.LEGACY, state=state)


def decode(document: Any) -> DecodeResult:
    """
    Classify and validate a backup document.

    Args:
        document: A parsed JSON value (normally a dict), or a BackupData
            as returned by encode()

    Returns:
        DecodeSuccess with the state (and settings for full envelopes),
        or DecodeFailure explaining why nothing could be restored
    """
    if isinstance(document, BackupData):
        document = document.to_document()

    if not isinstance(document, Mapping):
        return DecodeFailure(
            kind=DecodeFailureKind.UNRECOGNIZED,
            reason=f"Expected a JSON object, got {type(document).__name__}",
        )

    if _present(document, "appState") and _present(document, "metadata"):
        return _decode_full(document)

    if _present(document, "transactions") and _present(document, "categories"):
        return _decode_legacy(document)

    return DecodeFailure(
        kind=DecodeFailureKind.UNRECOGNIZED,
        reason="Not a Smart Finance backup: no appState/metadata or transactions/categories",
    )


def decode_json(text: Union[str, bytes]) -> DecodeResult:
    """Parse raw JSON text, then decode()."""
    try:
        document = json.loads(text)
    except (ValueError, TypeError) as e:
        return DecodeFailure(
            kind=DecodeFailureKind.INVALID_JSON,
            reason=f"Backup is not valid JSON: {e}",
        )
    return decode(document)
