import hmac
from enum import Enum


class Algorithm(str, Enum):
    SHA1 = "sha1"
    SHA256 = "sha256"
    # Shared secret sent as-is in a header, not a digest of the body.
    TOKEN = "token"


def _as_bytes(value: str | bytes) -> bytes:
    return value.encode() if isinstance(value, str) else value


def sign(body: bytes, key: str | bytes, algorithm: Algorithm) -> str:
    """Return the hex signature a provider would send for ``body``."""
    if algorithm is Algorithm.TOKEN:
        return _as_bytes(key).decode()
    return hmac.new(_as_bytes(key), body, algorithm.value).hexdigest()


def verify(
    body: bytes, key: str | bytes, signature: str, algorithm: Algorithm
) -> bool:
    """Check ``signature`` against the keyed digest of the raw ``body``.

    The signature may carry an ``<algorithm>=`` prefix as GitHub and
    Bitbucket send it. Malformed, truncated or mis-prefixed signatures are
    a non-match, never an exception.
    """
    if not key or not signature:
        return False

    if algorithm is Algorithm.TOKEN:
        return hmac.compare_digest(_as_bytes(key), signature.encode())

    prefix, sep, digest = signature.partition("=")
    if sep:
        if prefix != algorithm.value:
            return False
        signature = digest

    try:
        provided = bytes.fromhex(signature)
    except ValueError:
        return False

    expected = hmac.new(_as_bytes(key), body, algorithm.value)
    return hmac.compare_digest(expected.digest(), provided)
