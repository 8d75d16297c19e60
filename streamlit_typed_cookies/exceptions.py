"""Exceptions raised by cookie objects and the cookie manager."""


class CookieError(Exception):
    """Base class for every cookie failure."""


class ValidationError(CookieError, ValueError):
    """Raise when a name, value, domain or attribute is invalid."""


class NotFoundError(CookieError, KeyError):
    """Raise when a cookie is missing from the request or the manager."""

    def __str__(self) -> str:
        # KeyError quotes its message; keep it readable.
        return str(self.args[0]) if self.args else ""


class TransportError(CookieError):
    """Raise when the outbound cookie channel rejects a write."""


class DecryptionError(CookieError):
    """Raise when an encrypted cookie value cannot be decrypted."""
