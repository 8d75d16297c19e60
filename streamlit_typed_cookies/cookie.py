"""
Plain cookie entity.

A `Cookie` holds the attributes of one cookie and reads or writes it through
the `RequestContext` of the current request.
"""

import logging
import time
import warnings
from collections.abc import Callable, Mapping
from typing import Any, Protocol, Self, TypeVar

from streamlit_typed_cookies.exceptions import CookieError, NotFoundError, TransportError, ValidationError
from streamlit_typed_cookies.serialization import Serializer, default_serializer
from streamlit_typed_cookies.transport import RequestContext
from streamlit_typed_cookies.validation import (
    is_scalar,
    validate_domain,
    validate_name,
    validate_path,
    validate_size,
)

logger = logging.getLogger(__name__)

# Deleted cookies are rewritten with an expiry this many seconds in the past.
DELETE_OFFSET = 86400

_TRUE_STRINGS = frozenset({"1", "true", "on", "yes"})


class CookieProtocol(Protocol):
    """Operations shared by plain and encrypted cookies."""

    def get_name(self) -> str: ...

    def get_value(self, unserialize: bool = True) -> Any: ...

    def set_value(self, value: Any, serialize: bool = True) -> Self: ...

    def save(self) -> bool: ...

    def load(self) -> Self: ...

    def delete(self) -> bool: ...

    def exists(self) -> bool: ...


class ConfigurableCookie(CookieProtocol, Protocol):
    def set_expire(self, timestamp: int) -> Self: ...

    def set_path(self, location: str) -> Self: ...

    def set_domain(self, domain: str) -> Self: ...

    def set_secure(self, flag: object = False) -> Self: ...

    def set_httponly(self, flag: object = False) -> Self: ...


C = TypeVar("C", bound=ConfigurableCookie)


def to_bool(flag: object) -> bool:
    """Coerce `flag` to a boolean, reading "1", "true", "on" and "yes" as true."""
    if isinstance(flag, str):
        return flag.strip().lower() in _TRUE_STRINGS
    if isinstance(flag, bytes):
        return flag.strip().lower().decode("ascii", errors="replace") in _TRUE_STRINGS
    return bool(flag)


def apply_properties(cookie: C, properties: Mapping[str, Any] | None, serialize: bool = True) -> C:
    """
    Configure `cookie` from a property mapping.

    Recognized keys are ``value``, ``expire``, ``path``, ``domain``, ``secure``
    and ``httponly``; each one is passed to the matching setter. Unknown keys
    are ignored with a warning.

    Returns:
        The configured cookie.

    Raises:
        ValidationError: If a setter rejects its value.

    """
    setters: dict[str, Callable[[Any], Any]] = {
        "value": lambda value: cookie.set_value(value, serialize),
        "expire": cookie.set_expire,
        "path": cookie.set_path,
        "domain": cookie.set_domain,
        "secure": cookie.set_secure,
        "httponly": cookie.set_httponly,
    }
    for key, value in (properties or {}).items():
        setter = setters.get(key)
        if setter is None:
            warnings.warn(f"Ignoring unknown cookie property {key!r}.", UserWarning, stacklevel=2)
            continue
        setter(value)
    return cookie


def scalar_to_text(value: object) -> str:
    """
    Convert a raw scalar to the text stored in a cookie.

    Booleans become ``"1"`` or ``""``, bytes are decoded as UTF-8 and
    numbers use ``str()``.

    Returns:
        str: The text form of `value`.

    Raises:
        ValidationError: If the value is not valid UTF-8 / Unicode text.

    """
    if isinstance(value, bool):
        return "1" if value else ""
    if isinstance(value, bytes):
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError as err:
            msg = "Raw cookie value must be UTF-8 text"
            raise ValidationError(msg) from err
    text = str(value)
    try:
        text.encode("utf-8")
    except UnicodeEncodeError as err:
        # Lone surrogates, e.g. from a badly decoded request.
        msg = "Raw cookie value must be valid Unicode text"
        raise ValidationError(msg) from err
    return text


class Cookie:
    """
    A single cookie bound to a request.

    Setters validate their input and return the cookie so calls can be
    chained::

        Cookie("theme", context=ctx).set_value("dark").set_path("/").save()
    """

    def __init__(self, name: object, *, context: RequestContext, serializer: Serializer | None = None) -> None:
        """
        Initialize the cookie.

        Args:
            name: The cookie name. Must be a non-empty scalar.
            context: Request context used for loading, saving and deleting.
            serializer: Codec used when values are (un)serialized. Defaults to JSON.

        Raises:
            ValidationError: If the name is invalid.

        """
        self._context = context
        self._serializer = serializer if serializer is not None else default_serializer
        self._name = validate_name(name)
        self._value: str | None = None
        self._expire: int | None = None
        self._path: str | None = None
        self._domain: str | None = None
        self._secure = False
        self._httponly = False

    @property
    def context(self) -> RequestContext:
        """The request context the cookie reads from and writes to."""
        return self._context

    @property
    def serializer(self) -> Serializer:
        """The codec used by `set_value` and `get_value`."""
        return self._serializer

    @property
    def name(self) -> str:
        """The cookie name."""
        return self._name

    @property
    def value(self) -> str | None:
        """The stored value, serialized or raw."""
        return self._value

    @property
    def expire(self) -> int | None:
        """Expiration time as a UNIX timestamp, or None for a session cookie."""
        return self._expire

    @property
    def path(self) -> str | None:
        """The path attribute, or None to let the browser pick the default."""
        return self._path

    @property
    def domain(self) -> str | None:
        """The domain attribute, or None for a host-only cookie."""
        return self._domain

    @property
    def secure(self) -> bool:
        """Whether the cookie is sent over HTTPS only."""
        return self._secure

    @property
    def httponly(self) -> bool:
        """Whether the cookie is hidden from client-side scripts."""
        return self._httponly

    def __repr__(self) -> str:
        """
        Return a string representation of the cookie.

        Returns:
            str: Class name, cookie name and stored value.

        """
        return f"<{type(self).__name__} {self._name!r}: {self._value!r}>"

    def set_name(self, name: object) -> Self:
        """
        Set the cookie name.

        Raises:
            ValidationError: If the name is empty or not a scalar, or if the
                stored value no longer fits under the new name.

        """
        new_name = validate_name(name)
        if self._value is not None:
            # The name counts towards the size limit.
            validate_size(new_name, self._value)
        self._name = new_name
        return self

    def get_name(self) -> str:
        """
        Return the cookie name.

        Returns:
            str: The name the cookie is saved and loaded under.

        """
        return self._name

    def set_value(self, value: Any, serialize: bool = True) -> Self:
        """
        Set the cookie content.

        Args:
            value: The content. Any serializable value when `serialize` is true,
                a scalar otherwise.
            serialize: Encode `value` with the serializer before storing it.

        Raises:
            ValidationError: If the value cannot be stored or is larger than 4KB.
                The previous value is kept.

        """
        if serialize:
            stored = self._serializer.encode(value)
        elif is_scalar(value):
            stored = scalar_to_text(value)
        else:
            msg = "Cannot set non-scalar value without serialization"
            raise ValidationError(msg)

        # Only replace the stored value once the encoded cookie is known to fit.
        self._value = validate_size(self._name, stored)
        return self

    def get_value(self, unserialize: bool = True) -> Any:
        """
        Get the cookie content.

        Args:
            unserialize: Decode the stored value with the serializer.

        Returns:
            The decoded value, the raw stored string, or None if no value is set.

        Raises:
            ValidationError: If the stored value cannot be unserialized.

        """
        if self._value is None:
            return None
        return self._serializer.decode(self._value) if unserialize else self._value

    def set_expire(self, timestamp: int) -> Self:
        """
        Set the expiration time as a UNIX timestamp.

        Raises:
            ValidationError: If `timestamp` is not an integer.

        """
        if isinstance(timestamp, bool) or not isinstance(timestamp, int):
            msg = f"Invalid cookie expiration time: {timestamp!r}"
            raise ValidationError(msg)
        self._expire = timestamp
        return self

    def set_path(self, location: str) -> Self:
        """
        Set the path attribute.

        Raises:
            ValidationError: If `location` is not a string or contains a
                separator (``,``, ``;``, whitespace) or control character.

        """
        self._path = validate_path(location)
        return self

    def set_domain(self, domain: str) -> Self:
        """
        Set the domain attribute.

        Raises:
            ValidationError: If the domain is malformed.

        """
        self._domain = validate_domain(domain)
        return self

    def set_secure(self, flag: object = False) -> Self:
        """Send the cookie over HTTPS only."""
        self._secure = to_bool(flag)
        return self

    def set_httponly(self, flag: object = False) -> Self:
        """Hide the cookie from client-side scripts."""
        self._httponly = to_bool(flag)
        return self

    def _write(self, value: str, expire: int | None) -> None:
        """
        Hand the cookie to the outbound sink.

        Raises:
            TransportError: If the sink returns False or fails while writing.

        """
        try:
            accepted = self._context.sink.set_cookie(
                self._name,
                value,
                expire,
                self._path,
                self._domain,
                self._secure,
                self._httponly,
            )
        except CookieError:
            raise
        except Exception as err:
            # Sinks may fail in their own way (closed connection, unsafe attribute).
            msg = f"Cannot set cookie: {self._name}"
            raise TransportError(msg) from err
        if accepted is False:
            msg = f"Cannot set cookie: {self._name}"
            raise TransportError(msg)

    def save(self) -> bool:
        """
        Send the cookie to the client.

        Returns:
            bool: Always True; failures raise.

        Raises:
            TransportError: If the outbound channel rejects the cookie.

        """
        self._write(self._value if self._value is not None else "", self._expire)
        logger.debug("Saved cookie %r", self._name)
        return True

    def load(self) -> Self:
        """
        Load the raw cookie content from the request.

        Raises:
            NotFoundError: If the request carries no cookie with this name.

        """
        if not self.exists():
            msg = f"Cookie {self._name!r} does not exist"
            raise NotFoundError(msg)
        self._value = self._context.cookies[self._name]
        return self

    def delete(self) -> bool:
        """
        Ask the client to drop the cookie.

        A cookie missing from the request is already deleted; nothing is sent.

        Returns:
            bool: Always True; failures raise.

        Raises:
            TransportError: If the outbound channel rejects the expired cookie.

        """
        if not self.exists():
            return True
        self._write("", int(time.time()) - DELETE_OFFSET)
        logger.debug("Deleted cookie %r", self._name)
        return True

    def exists(self) -> bool:
        """Return whether the request carries a cookie with this name."""
        return self._name in self._context.cookies

    @classmethod
    def create(
        cls,
        name: object,
        properties: Mapping[str, Any] | None = None,
        serialize: bool = True,
        *,
        context: RequestContext,
        serializer: Serializer | None = None,
    ) -> "Cookie":
        """
        Create a cookie and configure it from `properties`.

        Returns:
            Cookie: The new cookie.

        Raises:
            ValidationError: If the name or a property is invalid.

        """
        cookie = cls(name, context=context, serializer=serializer)
        return apply_properties(cookie, properties, serialize)

    @classmethod
    def retrieve(cls, name: object, *, context: RequestContext, serializer: Serializer | None = None) -> "Cookie":
        """
        Create a cookie and load it from the request.

        Raises:
            NotFoundError: If the request carries no such cookie.

        """
        return cls(name, context=context, serializer=serializer).load()

    @classmethod
    def erase(cls, name: object, *, context: RequestContext) -> bool:
        """
        Delete a cookie by name.

        Returns:
            bool: True once the cookie is gone or was never there.

        """
        return cls(name, context=context).delete()
