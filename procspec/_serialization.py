from typing import Any

from msgspec.json import Encoder

__all__ = ("encode_json",)


def _fallback_enc_hook(value: Any) -> Any:
    return str(value)


_encoder = Encoder(enc_hook=_fallback_enc_hook)


def encode_json(data: Any) -> str:
    """Encode data to a JSON string, stringifying values msgspec cannot encode natively."""
    return _encoder.encode(data).decode("utf-8")
