"""
Validation helpers for cookie attributes.

Every helper is pure: it inspects its argument and either returns a
normalized value or raises `ValidationError`.
"""

import re
from urllib.parse import quote

from streamlit_typed_cookies.exceptions import ValidationError

# Browsers drop cookies whose encoded name=value pair is larger than this.
MAX_COOKIE_SIZE = 4096

_LABEL_CHARS = re.compile(r"([a-z\d](-*[a-z\d])*)(\.([a-z\d](-*[a-z\d])*))*", re.IGNORECASE)
_TOTAL_LENGTH = re.compile(r".{1,253}")
_LABEL_LENGTH = re.compile(r"[^.]{1,63}(\.[^.]{1,63})*")

_FORBIDDEN_ATTRIBUTE_CHARS = frozenset(",; \t\r\n\x0b\x0c")


def is_scalar(value: object) -> bool:
    """Return whether `value` is a scalar that can be written to a cookie."""
    return isinstance(value, str | bytes | int | float)


def validate_name(name: object) -> str:
    """
    Validate a cookie name.

    Returns:
        str: The name as text.

    Raises:
        ValidationError: If the name is empty or not a scalar.

    """
    if isinstance(name, bool) or not is_scalar(name) or name in ("", b""):
        msg = f"Invalid cookie name: {name!r}"
        raise ValidationError(msg)
    if isinstance(name, bytes):
        return name.decode("ascii", errors="replace")
    return str(name)


def check_domain(domain: str) -> bool:
    """
    Return whether `domain` is a syntactically valid cookie domain.

    A single leading dot is allowed. Labels may contain letters, digits and
    inner hyphens; the whole name is at most 253 characters and each label at
    most 63.
    """
    if domain.startswith("."):
        domain = domain[1:]
    return bool(_LABEL_CHARS.fullmatch(domain) and _TOTAL_LENGTH.fullmatch(domain) and _LABEL_LENGTH.fullmatch(domain))


def validate_domain(domain: object) -> str:
    """
    Validate a cookie domain attribute.

    Returns:
        str: The unchanged domain.

    Raises:
        ValidationError: If the domain is not a string or is malformed.

    """
    if not isinstance(domain, str) or not check_domain(domain):
        msg = f"Invalid domain attribute: {domain!r}"
        raise ValidationError(msg)
    return domain


def validate_path(location: object) -> str:
    """
    Validate a cookie path attribute.

    Paths are written verbatim into the ``Set-Cookie`` header, so separators
    and control characters are refused.

    Returns:
        str: The unchanged path.

    Raises:
        ValidationError: If the path is not a string or contains a forbidden character.

    """
    if not isinstance(location, str) or not is_safe_attribute(location):
        msg = f"Invalid path attribute: {location!r}"
        raise ValidationError(msg)
    return location


def is_safe_attribute(text: str) -> bool:
    """
    Return whether `text` can be written as a ``Set-Cookie`` attribute value.

    Rejects the characters refused by PHP's ``setcookie`` (``,; \\t\\r\\n\\v\\f``)
    plus every other control character.
    """
    return not any(char in _FORBIDDEN_ATTRIBUTE_CHARS or ord(char) < 0x20 or ord(char) == 0x7F for char in text)


def encode_pair(name: str, value: str) -> str:
    """
    Return the ``name=value`` pair as it is sent to the client.

    Both parts are percent-encoded from UTF-8.

    Raises:
        ValidationError: If either part cannot be encoded as UTF-8.

    """
    try:
        return f"{quote(name, safe='')}={quote(value, safe='')}"
    except UnicodeEncodeError as err:
        # Lone surrogates survive str operations but not encoding.
        msg = "Cookie name and value must be valid Unicode text"
        raise ValidationError(msg) from err


def validate_size(name: str, value: str) -> str:
    """
    Check that a cookie fits within the browser limit.

    The ``name=value`` pair is measured in its percent-encoded wire form, so
    non-ASCII content counts for its encoded length.

    Returns:
        str: The unchanged value.

    Raises:
        ValidationError: If the encoded pair is larger than `MAX_COOKIE_SIZE`
            or the value is not valid Unicode text.

    """
    size = len(encode_pair(name, value))
    if size > MAX_COOKIE_SIZE:
        msg = f"Cookie size larger than 4KB ({size} bytes encoded)"
        raise ValidationError(msg)
    return value
