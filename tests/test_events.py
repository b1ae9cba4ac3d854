import pytest

from credentialsd.events import (
    background_event_from_wire,
    background_event_to_wire,
    hybrid_state_from_variant,
    hybrid_state_to_variant,
    usb_state_from_variant,
    usb_state_to_variant,
)
from credentialsd.model import (
    Credential,
    CredentialError,
    ErrorKind,
    HybridQrStateChanged,
    HybridState,
    HybridStateKind,
    UsbState,
    UsbStateChanged,
    UsbStateKind,
)
from credentialsd.server import VariantError


def test_hybrid_idle_variant():
    assert hybrid_state_to_variant(HybridState()) == {"type": "IDLE", "value": False}


def test_hybrid_started_carries_qr_code():
    variant = hybrid_state_to_variant(HybridState(HybridStateKind.STARTED, "FIDO:/1234"))
    assert variant == {"type": "STARTED", "value": "FIDO:/1234"}


@pytest.mark.parametrize(
    "kind",
    [
        HybridStateKind.IDLE,
        HybridStateKind.CONNECTING,
        HybridStateKind.CONNECTED,
        HybridStateKind.COMPLETED,
        HybridStateKind.FAILED,
    ],
)
def test_hybrid_round_trip(kind):
    state = HybridState(kind)
    assert hybrid_state_from_variant(hybrid_state_to_variant(state)) == state


def test_hybrid_started_round_trip():
    state = HybridState(HybridStateKind.STARTED, "FIDO:/9876")
    assert hybrid_state_from_variant(hybrid_state_to_variant(state)) == state


def test_hybrid_user_cancelled_is_read_as_completed():
    variant = hybrid_state_to_variant(HybridState(HybridStateKind.USER_CANCELLED))
    assert variant["type"] == "USER_CANCELLED"
    assert hybrid_state_from_variant(variant).kind is HybridStateKind.COMPLETED


def test_hybrid_started_needs_string_value():
    with pytest.raises(VariantError):
        hybrid_state_from_variant({"type": "STARTED", "value": False})


@pytest.mark.parametrize(
    "value",
    [
        {"type": "BOGUS", "value": False},
        {"value": False},
        {"type": "IDLE"},
        {"type": 3, "value": False},
        "IDLE",
    ],
)
def test_hybrid_malformed_variants(value):
    with pytest.raises(VariantError):
        hybrid_state_from_variant(value)


def test_usb_idle_variant():
    assert usb_state_to_variant(UsbState()) == {"type": "IDLE", "value": False}


def test_usb_needs_pin_without_count_is_negative():
    variant = usb_state_to_variant(UsbState(UsbStateKind.NEEDS_PIN))
    assert variant == {"type": "NEEDS_PIN", "value": -1}
    assert usb_state_from_variant(variant) == UsbState(UsbStateKind.NEEDS_PIN)


def test_usb_needs_pin_round_trip():
    state = UsbState(UsbStateKind.NEEDS_PIN, attempts_left=3)
    variant = usb_state_to_variant(state)
    assert variant["value"] == 3
    assert usb_state_from_variant(variant) == state


def test_usb_user_verification_sent_as_pin_request():
    state = UsbState(UsbStateKind.NEEDS_USER_VERIFICATION, attempts_left=2)
    variant = usb_state_to_variant(state)
    assert variant["type"] == "NEEDS_PIN"
    assert usb_state_from_variant(variant) == UsbState(UsbStateKind.NEEDS_PIN, attempts_left=2)


def test_usb_user_verification_read():
    state = usb_state_from_variant({"type": "NEEDS_USER_VERIFICATION", "value": -1})
    assert state == UsbState(UsbStateKind.NEEDS_USER_VERIFICATION)


def test_usb_connected_is_read_as_selecting_device():
    variant = usb_state_to_variant(UsbState(UsbStateKind.CONNECTED))
    assert variant["type"] == "CONNECTED"
    assert usb_state_from_variant(variant).kind is UsbStateKind.SELECTING_DEVICE


@pytest.mark.parametrize(
    "kind",
    [
        UsbStateKind.IDLE,
        UsbStateKind.WAITING,
        UsbStateKind.SELECTING_DEVICE,
        UsbStateKind.NEEDS_USER_PRESENCE,
        UsbStateKind.COMPLETED,
    ],
)
def test_usb_simple_round_trip(kind):
    state = UsbState(kind)
    assert usb_state_from_variant(usb_state_to_variant(state)) == state


def test_usb_select_credential_round_trip():
    creds = (
        Credential("cred-1", "Example", "alice@example.com"),
        Credential("cred-2", "Other", None),
    )
    state = UsbState(UsbStateKind.SELECT_CREDENTIAL, creds=creds)
    variant = usb_state_to_variant(state)
    assert variant["value"][1]["username"] == ""
    assert usb_state_from_variant(variant) == state


def test_usb_failed_round_trip():
    state = UsbState(UsbStateKind.FAILED, error=CredentialError(ErrorKind.NO_CREDENTIALS))
    variant = usb_state_to_variant(state)
    assert variant == {"type": "FAILED", "value": "NoCredentials"}
    assert usb_state_from_variant(variant) == state


def test_usb_failed_internal_gets_generic_message():
    state = UsbState(
        UsbStateKind.FAILED, error=CredentialError(ErrorKind.INTERNAL, "disk on fire")
    )
    restored = usb_state_from_variant(usb_state_to_variant(state))
    assert restored.error.kind is ErrorKind.INTERNAL
    assert restored.error.detail == "Something went wrong. Please try again later."


@pytest.mark.parametrize(
    "value",
    [
        {"type": "NEEDS_PIN", "value": True},
        {"type": "NEEDS_PIN", "value": "3"},
        {"type": "NEEDS_PIN", "value": 2**40},
        {"type": "FAILED", "value": 5},
        {"type": "SELECT_CREDENTIAL", "value": "creds"},
        {"type": "SELECT_CREDENTIAL", "value": [{"name": "no id"}]},
        {"type": "UNKNOWN", "value": False},
        {"type": "IDLE"},
    ],
)
def test_usb_malformed_variants(value):
    with pytest.raises(VariantError):
        usb_state_from_variant(value)


def test_background_usb_event_round_trip():
    event = UsbStateChanged(UsbState(UsbStateKind.NEEDS_PIN, attempts_left=1))
    wire = background_event_to_wire(event)
    assert wire[0] == "UsbStateChanged"
    assert background_event_from_wire(wire) == event


def test_background_hybrid_event_round_trip():
    event = HybridQrStateChanged(HybridState(HybridStateKind.STARTED, "FIDO:/42"))
    wire = background_event_to_wire(event)
    assert wire[0] == "HybridStateChanged"
    assert background_event_from_wire(wire) == event


def test_background_unknown_event_name():
    with pytest.raises(VariantError):
        background_event_from_wire(("Nope", {"type": "IDLE", "value": False}))


def test_background_event_not_a_pair():
    with pytest.raises(VariantError):
        background_event_from_wire("UsbStateChanged")


def test_background_event_to_wire_rejects_other_objects():
    with pytest.raises(TypeError):
        background_event_to_wire(UsbState())