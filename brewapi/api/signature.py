"""Detached-payload JWS verification for signed API files.

Signed endpoints (*.jws.json) carry a JSON envelope:

    {"payload": "<raw JSON text>",
     "signatures": [{"header": {"kid": "homebrew-1"},
                     "protected": "<base64url header>",
                     "signature": "<base64url RSASSA-PSS signature>"}]}

The protected header must declare alg=PS512 and b64=false (RFC 7797), so the
signing input is the encoded protected header, a dot, and the payload text
exactly as transmitted.
"""

import base64
import binascii
import json
import logging
from pathlib import Path
from typing import Any, Optional, Tuple, Union

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from pydantic import ValidationError

from brewapi.core.config import BUNDLED_PUBLIC_KEY_PATH, JWS_ALGORITHM, JWS_KEY_ID
from brewapi.api.exceptions import ConfigurationError
from brewapi.api.models import EnvelopeSignature, ProtectedHeader

log = logging.getLogger(__name__)

# Failure reasons returned by verify_and_parse_jws
KEY_NOT_FOUND = "key not found"
INVALID_PROTECTED_HEADER = "invalid protected header"
INVALID_ALGORITHM = "invalid algorithm"
SIGNATURE_MISMATCH = "signature mismatch"
INVALID_PAYLOAD = "invalid payload"


def load_public_key(path: Optional[Path] = None) -> rsa.RSAPublicKey:
    """Load the PEM-encoded RSA verification key.

    Args:
        path: PEM file (defaults to the bundled homebrew-1 key).

    Raises:
        ConfigurationError: File unreadable or not an RSA public key.
    """
    path = Path(path) if path is not None else BUNDLED_PUBLIC_KEY_PATH
    try:
        key = serialization.load_pem_public_key(path.read_bytes())
    except OSError as e:
        raise ConfigurationError(f"Cannot read public key {path}: {e}")
    except (ValueError, UnsupportedAlgorithm) as e:
        raise ConfigurationError(f"Invalid public key {path}: {e}")

    if not isinstance(key, rsa.RSAPublicKey):
        raise ConfigurationError(f"Public key {path} is not an RSA key")
    return key


def _b64url_decode(encoded: str) -> bytes:
    """Decode base64url with or without padding."""
    padded = encoded + "=" * (-len(encoded) % 4)
    return base64.b64decode(padded, altchars=b"-_", validate=True)


def _find_signature(envelope: Any) -> Optional[EnvelopeSignature]:
    """Return the signature entry for JWS_KEY_ID, ignoring malformed entries."""
    if not isinstance(envelope, dict):
        return None
    signatures = envelope.get("signatures")
    if not isinstance(signatures, list):
        return None

    for entry in signatures:
        if not isinstance(entry, dict):
            continue
        header = entry.get("header")
        if not isinstance(header, dict) or header.get("kid") != JWS_KEY_ID:
            continue
        try:
            return EnvelopeSignature.model_validate(entry)
        except ValidationError as e:
            log.debug(f"Skipping malformed {JWS_KEY_ID} signature entry: {e}")
    return None


def _decode_protected_header(protected: str) -> Optional[ProtectedHeader]:
    """Decode the header; None unless it is base64url-encoded JSON object text."""
    try:
        decoded = _b64url_decode(protected)
        return ProtectedHeader.model_validate(json.loads(decoded))
    except (binascii.Error, ValueError, ValidationError):
        return None


def verify_and_parse_jws(
    envelope: Any,
    public_key: Optional[rsa.RSAPublicKey] = None,
) -> Tuple[bool, Union[str, Any]]:
    """Verify a signed envelope and return its parsed payload.

    Args:
        envelope: Parsed JSON of a *.jws.json file.
        public_key: RSA verification key (defaults to the bundled key).

    Returns:
        (True, payload) where payload is the parsed JSON value, or
        (False, reason) where reason is one of the module's reason strings.
    """
    signature = _find_signature(envelope)
    if signature is None:
        return False, KEY_NOT_FOUND

    header = _decode_protected_header(signature.protected)
    if header is None:
        return False, INVALID_PROTECTED_HEADER

    # An absent b64 means true, which would change the signing input
    if header.alg != JWS_ALGORITHM or header.b64 is not False:
        return False, INVALID_ALGORITHM

    payload = envelope.get("payload")
    if not isinstance(payload, str):
        return False, INVALID_PAYLOAD

    if public_key is None:
        public_key = load_public_key()

    signing_input = f"{signature.protected}.{payload}".encode("utf-8")
    try:
        public_key.verify(
            _b64url_decode(signature.signature),
            signing_input,
            padding.PSS(
                mgf=padding.MGF1(hashes.SHA512()),
                salt_length=padding.PSS.DIGEST_LENGTH,
            ),
            hashes.SHA512(),
        )
    except (InvalidSignature, binascii.Error, ValueError):
        return False, SIGNATURE_MISMATCH

    try:
        return True, json.loads(payload)
    except ValueError:
        return False, INVALID_PAYLOAD
