from __future__ import annotations

import base64


def encode_component(value: str) -> str:
    """Encode a key component to Base64URL without padding."""
    raw = value.encode("utf-8")
    encoded = base64.urlsafe_b64encode(raw).decode("ascii")
    return encoded.rstrip("=")


def decode_component(value: str) -> str:
    """Decode a Base64URL key component without padding."""
    padded = value + "=" * ((4 - len(value) % 4) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")
