import hashlib

FINGERPRINT_LENGTH = 32


def content_fingerprint(content: str) -> str:
    """SHA-256 of the UTF-8 content, truncated to 32 hex characters."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()[:FINGERPRINT_LENGTH]
