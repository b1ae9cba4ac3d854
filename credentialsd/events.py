"""D-Bus forms of the background events pushed from the service to the UI.

A state travels as a dictionary ``{"type": <TAG>, "value": <payload>}``; a
background event travels as a pair ``(<event name>, <state dictionary>)``.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from credentialsd.model import (
    BackgroundEvent,
    HybridQrStateChanged,
    HybridState,
    HybridStateKind,
    UsbState,
    UsbStateChanged,
    UsbStateKind,
)
from credentialsd.server import (
    ServiceError,
    VariantError,
    credential_from_wire,
    credential_to_wire,
)

_I32_MIN = -(2**31)
_I32_MAX = 2**31 - 1

USB_STATE_CHANGED = "UsbStateChanged"
HYBRID_STATE_CHANGED = "HybridStateChanged"

_HYBRID_TAGS = {
    HybridStateKind.IDLE: "IDLE",
    HybridStateKind.STARTED: "STARTED",
    HybridStateKind.CONNECTING: "CONNECTING",
    HybridStateKind.CONNECTED: "CONNECTED",
    HybridStateKind.COMPLETED: "COMPLETED",
    HybridStateKind.USER_CANCELLED: "USER_CANCELLED",
    HybridStateKind.FAILED: "FAILED",
}

# A user cancellation is never sent by the service; it is read as completion.
_HYBRID_KINDS = {tag: kind for kind, tag in _HYBRID_TAGS.items()}
_HYBRID_KINDS["USER_CANCELLED"] = HybridStateKind.COMPLETED

_USB_TAGS = {
    UsbStateKind.IDLE: "IDLE",
    UsbStateKind.WAITING: "WAITING",
    UsbStateKind.SELECTING_DEVICE: "SELECTING_DEVICE",
    UsbStateKind.CONNECTED: "CONNECTED",
    UsbStateKind.NEEDS_PIN: "NEEDS_PIN",
    # Verification requests are announced to the UI as PIN requests.
    UsbStateKind.NEEDS_USER_VERIFICATION: "NEEDS_PIN",
    UsbStateKind.NEEDS_USER_PRESENCE: "NEEDS_USER_PRESENCE",
    UsbStateKind.SELECT_CREDENTIAL: "SELECT_CREDENTIAL",
    UsbStateKind.COMPLETED: "COMPLETED",
    UsbStateKind.FAILED: "FAILED",
}

_USB_KINDS = {
    "IDLE": UsbStateKind.IDLE,
    "WAITING": UsbStateKind.WAITING,
    "SELECTING_DEVICE": UsbStateKind.SELECTING_DEVICE,
    # A connected device is shown while the user picks one of several.
    "CONNECTED": UsbStateKind.SELECTING_DEVICE,
    "NEEDS_PIN": UsbStateKind.NEEDS_PIN,
    "NEEDS_USER_VERIFICATION": UsbStateKind.NEEDS_USER_VERIFICATION,
    "NEEDS_USER_PRESENCE": UsbStateKind.NEEDS_USER_PRESENCE,
    "SELECT_CREDENTIAL": UsbStateKind.SELECT_CREDENTIAL,
    "COMPLETED": UsbStateKind.COMPLETED,
    "FAILED": UsbStateKind.FAILED,
}


def _split_variant(value: Any) -> tuple[str, Any]:
    if not isinstance(value, Mapping):
        raise VariantError(f"expected a dictionary, got {type(value).__name__}")
    if "type" not in value:
        raise VariantError("Expected a dictionary with `type` key")
    tag = value["type"]
    if not isinstance(tag, str):
        raise VariantError(f"`type` must be a string, got {type(tag).__name__}")
    if "value" not in value:
        raise VariantError("Expected a dictionary with `value` key")
    return tag, value["value"]


def hybrid_state_to_variant(state: HybridState) -> dict[str, Any]:
    """Return the tagged dictionary for a hybrid state."""
    payload: Any = state.qr_code if state.kind is HybridStateKind.STARTED else False
    return {"type": _HYBRID_TAGS[state.kind], "value": payload}


def hybrid_state_from_variant(value: Any) -> HybridState:
    """Read a hybrid state from its tagged dictionary; raise VariantError if malformed."""
    tag, payload = _split_variant(value)
    try:
        kind = _HYBRID_KINDS[tag]
    except KeyError:
        raise VariantError(f"Invalid HybridState type passed: {tag}") from None
    if kind is HybridStateKind.STARTED:
        if not isinstance(payload, str):
            raise VariantError("a started hybrid state needs a string QR code")
        return HybridState(kind, payload)
    return HybridState(kind)


def _attempts_payload(attempts_left: int | None) -> int:
    if attempts_left is None:
        return -1
    if attempts_left > _I32_MAX:
        raise ValueError(f"attempt count too large: {attempts_left}")
    return attempts_left


def usb_state_to_variant(state: UsbState) -> dict[str, Any]:
    """Return the tagged dictionary for a USB state."""
    kind = state.kind
    payload: Any
    if kind in (UsbStateKind.NEEDS_PIN, UsbStateKind.NEEDS_USER_VERIFICATION):
        payload = _attempts_payload(state.attempts_left)
    elif kind is UsbStateKind.SELECT_CREDENTIAL:
        payload = [credential_to_wire(cred) for cred in state.creds]
    elif kind is UsbStateKind.FAILED:
        payload = str(state.error)
    else:
        payload = False
    return {"type": _USB_TAGS[kind], "value": payload}


def _attempts_from_payload(payload: Any) -> int | None:
    if isinstance(payload, bool) or not isinstance(payload, int):
        raise VariantError(f"expected an attempt count, got {type(payload).__name__}")
    if not _I32_MIN <= payload <= _I32_MAX:
        raise VariantError(f"attempt count out of range: {payload}")
    return None if payload < 0 else payload


def usb_state_from_variant(value: Any) -> UsbState:
    """Read a USB state from its tagged dictionary; raise VariantError if malformed."""
    tag, payload = _split_variant(value)
    try:
        kind = _USB_KINDS[tag]
    except KeyError:
        raise VariantError(f"Invalid UsbState type passed: {tag}") from None
    if kind in (UsbStateKind.NEEDS_PIN, UsbStateKind.NEEDS_USER_VERIFICATION):
        return UsbState(kind, attempts_left=_attempts_from_payload(payload))
    if kind is UsbStateKind.SELECT_CREDENTIAL:
        if isinstance(payload, (str, bytes)) or not isinstance(payload, Sequence):
            raise VariantError("expected a list of credentials")
        creds = tuple(credential_from_wire(item) for item in payload)
        return UsbState(kind, creds=creds)
    if kind is UsbStateKind.FAILED:
        if not isinstance(payload, str):
            raise VariantError("expected an error code string")
        return UsbState(kind, error=ServiceError.parse(payload).to_error())
    return UsbState(kind)


def background_event_to_wire(event: BackgroundEvent) -> tuple[str, dict[str, Any]]:
    """Return the ``(name, state dictionary)`` pair for a background event."""
    if isinstance(event, UsbStateChanged):
        return USB_STATE_CHANGED, usb_state_to_variant(event.state)
    if isinstance(event, HybridQrStateChanged):
        return HYBRID_STATE_CHANGED, hybrid_state_to_variant(event.state)
    raise TypeError(f"not a background event: {event!r}")


def background_event_from_wire(wire: Any) -> BackgroundEvent:
    """Read a background event from its wire pair; raise VariantError if malformed."""
    try:
        name, value = wire
    except (TypeError, ValueError):
        raise VariantError("expected an (event name, value) pair") from None
    if name == USB_STATE_CHANGED:
        return UsbStateChanged(usb_state_from_variant(value))
    if name == HYBRID_STATE_CHANGED:
        return HybridQrStateChanged(hybrid_state_from_variant(value))
    raise VariantError(f"Invalid BackgroundEvent type passed: {name}")