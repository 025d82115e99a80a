"""
Compact signed payloads for cookies.

Token format: ``base64url(json) + "." + base64url(hmac_sha256(key, base64url(json)))``.
The payload is readable by the client; integrity comes from the itsdangerous
signer only. Expiry lives inside the payload and is checked by the callers.
"""

import hashlib
import json
import secrets
from typing import Any, Optional

from itsdangerous import BadData, BadSignature, Signer
from itsdangerous.encoding import base64_decode, base64_encode

from core.config import settings
from core.logging import get_logger

logger = get_logger(__name__)

MIN_KEY_BYTES = 32
SEPARATOR = "."
SALT = "house-bartender.cookie"

__all__ = [
    "BadSignature",
    "ConfigurationError",
    "MIN_KEY_BYTES",
    "SignedSerializer",
    "load_signing_key",
    "signer",
]


class ConfigurationError(RuntimeError):
    pass


def load_signing_key(key_hex: Optional[str]) -> bytes:
    """Decode the configured key or fall back to a per-process random one.

    With the random fallback every cookie signed before a restart stops
    verifying, so all sessions and pending flashes reset.
    """
    key = b""
    if key_hex:
        try:
            key = bytes.fromhex(key_hex)
        except ValueError as e:
            raise ConfigurationError(f"SESSION_HASH_KEY_HEX invalid hex: {e}") from e
    if len(key) < MIN_KEY_BYTES:
        logger.warning(
            "SESSION_HASH_KEY_HEX not set (or too short); generating ephemeral session key, "
            "sessions will reset on restart"
        )
        key = secrets.token_bytes(MIN_KEY_BYTES)
    return key


class SignedSerializer:
    def __init__(self, key: bytes):
        if len(key) < MIN_KEY_BYTES:
            raise ConfigurationError(f"signing key must be at least {MIN_KEY_BYTES} bytes")
        self._signer = Signer(
            key,
            salt=SALT,
            sep=SEPARATOR,
            key_derivation="hmac",
            digest_method=hashlib.sha256,
        )

    def sign(self, value: Any) -> str:
        raw = json.dumps(value, separators=(",", ":"), sort_keys=True).encode("utf-8")
        return self._signer.sign(base64_encode(raw)).decode("ascii")

    def verify(self, token: str) -> Any:
        """Payload of a token signed with this key; raises BadSignature otherwise."""
        if not token:
            raise BadSignature("empty token")
        payload = self._signer.unsign(token)
        if SEPARATOR.encode("ascii") in payload:
            raise BadSignature("bad format")
        try:
            return json.loads(base64_decode(payload))
        except (BadData, ValueError) as e:
            raise BadSignature(f"undecodable payload: {e}") from e

    def loads(self, token: Optional[str]) -> Optional[Any]:
        """Verified payload, or None for a missing or tampered token."""
        if not token:
            return None
        try:
            return self.verify(token)
        except BadSignature:
            return None


signer = SignedSerializer(load_signing_key(settings.session_hash_key_hex))
