"""Gateway message signatures.

The gateway authenticates a JSON document by hashing the exact serialized
bytes concatenated with a shared secret. Because the digest covers bytes,
the payload must be serialized exactly once and those same bytes sent on the
wire; re-serializing (even with identical content) can reorder keys or change
whitespace and invalidate the signature.

Header format::

    sender=<pos id>;signature=<hex digest>;algorithm=MD5;content=DOCUMENT
"""

import hashlib
import hmac
import json
from typing import Any

SIGNATURE_HEADER = "OpenPayU-Signature"

DEFAULT_ALGORITHM = "MD5"

# Header algorithm name -> hashlib name
_ALGORITHMS = {
    "MD5": "md5",
    "SHA": "sha1",
    "SHA1": "sha1",
    "SHA-1": "sha1",
    "SHA256": "sha256",
    "SHA-256": "sha256",
}


def canonical_json(payload: Any) -> bytes:
    """Serialize a payload to the compact UTF-8 bytes that get signed and sent."""
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


def digest(body: bytes, secret: str, algorithm: str = DEFAULT_ALGORITHM) -> str:
    try:
        hash_name = _ALGORITHMS[algorithm.upper()]
    except KeyError:
        raise ValueError(f"Unsupported signature algorithm: {algorithm}") from None
    return hashlib.new(hash_name, body + secret.encode("utf-8")).hexdigest()


def sign(body: bytes, secret: str, sender: str = "", algorithm: str = DEFAULT_ALGORITHM) -> str:
    """Return the signature header value for ``body``."""
    signature = digest(body, secret, algorithm)
    return f"sender={sender};signature={signature};algorithm={algorithm.upper()};content=DOCUMENT"


def parse_header(value: str) -> dict[str, str]:
    parts = {}
    for chunk in value.split(";"):
        key, sep, val = chunk.partition("=")
        if sep:
            parts[key.strip().lower()] = val.strip()
    return parts


def verify(body: bytes, header: str | None, secret: str) -> bool:
    """Check an inbound signature header against the raw request body."""
    if not header or not secret:
        return False

    parts = parse_header(header)
    signature = parts.get("signature")
    if not signature:
        return False

    try:
        expected = digest(body, secret, parts.get("algorithm", DEFAULT_ALGORITHM))
    except ValueError:
        return False
    return hmac.compare_digest(expected, signature.lower())
