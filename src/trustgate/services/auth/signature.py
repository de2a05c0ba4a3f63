"""Keyed signatures for cross-site handoff redirects.

The canonical string and digest must stay byte-for-byte identical to what the
partner site computes, otherwise every handoff fails:

    1. drop the ``sign`` parameter and any empty or null value
    2. trim string values
    3. sort keys ascending
    4. join as ``k1=v1&k2=v2&...&`` and append ``key=<shared secret>``
    5. MD5, lowercase hex (32 characters)
"""

import hashlib
import hmac
import logging
import time
from typing import Any, Mapping
from urllib.parse import urlencode

logger = logging.getLogger(__name__)

SIGN_KEYS = frozenset({"sign", "Sign"})
DEFAULT_MAX_AGE_SECONDS = 300


class SignatureVerifier:
    """
    Computes and checks handoff signatures and timestamp freshness.

    The freshness window is the only replay defense (there is no nonce store),
    so ``max_age_seconds`` bounds how long a captured link stays usable.

    Attributes:
        secret: Shared secret configured out-of-band with the partner site
        max_age_seconds: Allowed distance of a timestamp from now, either direction

    Example:
        >>> verifier = SignatureVerifier("bfd150510a4b6b6")
        >>> params = {"email": "a@b.com", "timestamp": "1700000000"}
        >>> verifier.verify({**params, "sign": verifier.sign(params)})
        True
    """

    def __init__(self, secret: str, max_age_seconds: int = DEFAULT_MAX_AGE_SECONDS):
        if not secret:
            raise ValueError("Signature secret must not be empty")
        self.secret = secret
        self.max_age_seconds = max_age_seconds

    @staticmethod
    def canonical_params(params: Mapping[str, Any]) -> dict[str, str]:
        """Filter and normalize parameters, returned in ascending key order."""
        filtered: dict[str, str] = {}
        for key, value in params.items():
            if key in SIGN_KEYS or value is None or value == "":
                continue
            filtered[key] = value.strip() if isinstance(value, str) else str(value)
        return {key: filtered[key] for key in sorted(filtered)}

    def canonical_string(self, params: Mapping[str, Any]) -> str:
        pairs = "".join(f"{key}={value}&" for key, value in self.canonical_params(params).items())
        return f"{pairs}key={self.secret}"

    def sign(self, params: Mapping[str, Any]) -> str:
        """
        Compute the signature for a parameter map.

        Args:
            params: Request parameters; a ``sign`` entry, if present, is ignored

        Returns:
            32-character lowercase hex digest
        """
        return hashlib.md5(self.canonical_string(params).encode("utf-8")).hexdigest()

    def verify(self, params: Mapping[str, Any]) -> bool:
        """
        Check the ``sign`` entry of ``params`` against the remaining entries.

        Fails closed: a missing or empty ``sign`` is never valid.
        """
        received = params.get("sign")
        if not received or not isinstance(received, str):
            return False

        expected = self.sign(params)
        return hmac.compare_digest(received.encode("utf-8"), expected.encode("utf-8"))

    def verify_freshness(
        self,
        timestamp: str | int | None,
        max_age_seconds: int | None = None,
        now: int | None = None,
    ) -> bool:
        """
        Check that a timestamp is within the window around now.

        Args:
            timestamp: Epoch seconds as a decimal string (or int)
            max_age_seconds: Override for the configured window
            now: Override for the current epoch seconds

        Returns:
            False if the timestamp is missing, unparsable, or more than
            ``max_age_seconds`` away from now in either direction
        """
        if timestamp is None or timestamp == "" or isinstance(timestamp, bool):
            return False

        if isinstance(timestamp, str):
            # plain ASCII digits only
            value = timestamp.strip()
            if not (value.isascii() and value.isdecimal()):
                logger.debug(f"Unparsable handoff timestamp: {timestamp!r}")
                return False
            timestamp = value

        try:
            issued = int(timestamp)
        except (TypeError, ValueError):
            logger.debug(f"Unparsable handoff timestamp: {timestamp!r}")
            return False

        window = self.max_age_seconds if max_age_seconds is None else max_age_seconds
        current = int(time.time()) if now is None else now
        return abs(current - issued) <= window

    def build_query(self, params: Mapping[str, Any]) -> str:
        """
        Build a signed query string for a handoff link.

        Empty values are left out of the link, matching how they are left out
        of the signature.

        Example:
            >>> verifier.build_query({"email": "a@b.com", "orderNo": "", "timestamp": "1700000000"})
            'email=a%40b.com&timestamp=1700000000&sign=...'
        """
        query = {
            key: value
            for key, value in params.items()
            if key not in SIGN_KEYS and value is not None and value != ""
        }
        query["sign"] = self.sign(params)
        return urlencode(query)
