"""Data model, CBOR/COSE helpers, wire encoding and view-model logic for a WebAuthn credential service."""

__version__ = "0.1.0"