"""
brewapi data models.
Error codes, the signed envelope schema, and fetch results.
"""

from typing import Any, NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, StrictStr


# =============================================================================
# Error Models
# =============================================================================

class ErrorCode:
    """Error code registry for the API ingestion pipeline"""
    API_CONFIG_INVALID = "API_CONFIG_INVALID"
    API_FETCH_FAILED = "API_FETCH_FAILED"
    API_CACHE_CORRUPT = "API_CACHE_CORRUPT"
    API_SIGNATURE_INVALID = "API_SIGNATURE_INVALID"
    API_RESOURCE_INVALID = "API_RESOURCE_INVALID"


# =============================================================================
# Signature Envelope Models
# =============================================================================

class SignatureHeader(BaseModel):
    """Unprotected per-signature header; only kid is consulted"""
    model_config = ConfigDict(extra="allow")

    kid: Optional[StrictStr] = None


class EnvelopeSignature(BaseModel):
    """One entry of the envelope's signatures list"""
    model_config = ConfigDict(extra="allow")

    header: SignatureHeader
    protected: StrictStr
    signature: StrictStr


class ProtectedHeader(BaseModel):
    """Decoded protected header.

    Field values are kept as sent; alg and b64 are compared exactly by the
    verifier. An absent b64 means the payload is base64url-encoded (RFC 7797
    default), hence the True default.
    """
    model_config = ConfigDict(extra="allow")

    alg: Optional[Any] = None
    b64: Any = True
    crit: Any = None


# =============================================================================
# Fetch Results
# =============================================================================

class FetchResult(NamedTuple):
    """Parsed document plus whether it was downloaded during this call."""
    document: Any
    fresh: bool
