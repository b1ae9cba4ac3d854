# credentialsd

Building blocks for a WebAuthn credential service and the trusted UI that
drives it. The package has no runtime dependencies.

## Modules

- `credentialsd.model`: the shared data model.
  - `Credential`, `Device`, `Transport` (with `as_str()` and `parse()`),
    `Operation`, `CredentialType`.
  - `GetClientCapabilitiesResponse`, whose `to_dict()` returns the
    capabilities keyed by camelCase names.
  - The USB and hybrid (QR code) states: `UsbState` / `UsbStateKind` and
    `HybridState` / `HybridStateKind`. A state checks on construction that it
    carries only the data that belongs to its kind.
  - Background events: `UsbStateChanged` and `HybridQrStateChanged`.
  - View updates sent to a UI: `SetTitle`, `SetDevices`, `SetCredentials`,
    `WaitingForDevice`, `SelectingDevice`, `UsbNeedsPin`,
    `UsbNeedsUserVerification`, `UsbNeedsUserPresence`, `HybridNeedsQrCode`,
    `HybridConnecting`, `HybridConnected`, `Completed`, `Cancelled`, `Failed`.
  - `CredentialError` with an `ErrorKind`, and the `WebAuthnError` codes.
  - `FlowController`, the abstract async interface the UI uses to reach the
    credential service. Its methods raise when a call fails.
- `credentialsd.cbor`: `CborWriter`, which writes definite-length CBOR byte
  strings, text strings, integers, and array and map headers to a binary
  stream. `MajorType` lists the CBOR major types.
- `credentialsd.cose`: the COSE identifiers `CoseKeyAlgorithmIdentifier`
  (with `from_ctap()`, which accepts only ES256 and EdDSA),
  `CoseEllipticCurveIdentifier` and `CoseKeyType`, and the errors `CoseError`,
  `InvalidKeyError` and `UnsupportedAlgorithmError`.
- `credentialsd.server`: the records exchanged with clients.
  - `CreateCredentialRequest` and `GetCredentialRequest` are read from
    dictionaries with `from_dict()`.
  - `CreateCredentialResponse` and `GetCredentialResponse` are built with
    `from_public_key()` and turned into dictionaries with `to_dict()`.
  - `ViewRequest` holds an operation and a request id.
  - `ServiceError` holds the service's error codes.
  - `credential_to_wire` / `credential_from_wire` and `device_to_wire` /
    `device_from_wire` convert records to and from dictionaries.
  - Malformed input raises `VariantError`.
- `credentialsd.events`: encodes USB and hybrid states as tagged
  `{"type": ..., "value": ...}` dictionaries (`usb_state_to_variant`,
  `usb_state_from_variant`, `hybrid_state_to_variant`,
  `hybrid_state_from_variant`). It also encodes background events as
  `(name, state)` pairs (`background_event_to_wire`,
  `background_event_from_wire`).
- `credentialsd.view_model`: `ViewModel`, which merges user actions
  (`Initiated`, `DeviceSelected`, `CredentialSelected`, `UsbPinEntered`,
  `UserCancelled`) with background events from a `FlowController` and puts
  `ViewUpdate`s on a queue. `failure_message()` gives the text shown for a
  failed USB flow.

## Installing

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Examples

Encoding CBOR:

```python
import io
from credentialsd.cbor import CborWriter

buf = io.BytesIO()
writer = CborWriter(buf)
writer.write_map_start(1)
writer.write_text("alg")
writer.write_number(-7)
print(buf.getvalue().hex())  # a163616c6726
```

Parsing transports:

```python
from credentialsd.model import Transport

transport = Transport.parse("USB")
print(transport.as_str())  # USB
```

Converting a USB state change to its wire form and back:

```python
from credentialsd.model import UsbState, UsbStateChanged, UsbStateKind
from credentialsd.events import background_event_from_wire, background_event_to_wire

wire = background_event_to_wire(
    UsbStateChanged(UsbState(UsbStateKind.NEEDS_PIN, attempts_left=3))
)
print(wire)  # ('UsbStateChanged', {'type': 'NEEDS_PIN', 'value': 3})
event = background_event_from_wire(wire)
```

Driving a flow:

1. Subclass `FlowController`.
2. Build a `ViewModel` from an `Operation`, the controller, an async iterable
   of view events, and an `asyncio.Queue` for updates.
3. Await `start_event_loop()`.

The loop ends in one of three ways: on `UserCancelled`, on a hybrid
user-cancelled state, or once both event sources are exhausted.

## What this package does not do

It does not connect to D-Bus or any other bus, and it does not run the
credential service. It does not talk to authenticators, and it draws no
windows. A `FlowController` that reaches a real service, and a UI that shows
the `ViewUpdate`s, must be supplied by the program that uses the package. The
package installs no commands.