"""
Security utilities - Webhook signatures
"""

import hashlib
import hmac


def compute_signature(body: bytes, secret: str) -> str:
    """Hex HMAC-SHA256 of the raw request body"""
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def verify_signature(body: bytes, signature: str, secret: str) -> bool:
    """Constant-time comparison against the expected signature"""
    # Bytes comparison; a str compare raises on non-ASCII header values
    return hmac.compare_digest(signature.encode("utf-8"), compute_signature(body, secret).encode("ascii"))
