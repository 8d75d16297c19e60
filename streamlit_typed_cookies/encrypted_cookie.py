"""
Encrypted cookie built on top of Cookie.

Provides `EncryptedCookie`, which transparently encrypts values at rest in
cookies. The cipher key is derived from a server secret and the client's
network address, so a value only decrypts for the client it was issued to.
"""

import base64
import binascii
import os
from collections.abc import Mapping
from typing import Any, Self

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from streamlit_typed_cookies.cookie import Cookie, apply_properties, scalar_to_text
from streamlit_typed_cookies.exceptions import DecryptionError, ValidationError
from streamlit_typed_cookies.serialization import Serializer
from streamlit_typed_cookies.transport import RequestContext
from streamlit_typed_cookies.validation import is_scalar

NONCE_SIZE = 12
TAG_SIZE = 16


def _md5(data: bytes) -> bytes:
    """
    Hash `data` with MD5.

    Returns:
        bytes: The 16 byte digest, half of a client-specific key.

    """
    digest = hashes.Hash(hashes.MD5())
    digest.update(data)
    return digest.finalize()


def client_specific_key(context: RequestContext, key: bytes) -> bytes:
    """
    Derive a 256-bit cipher key bound to the requesting client.

    The key is the MD5 digest of the client address (remote address plus any
    ``X-Forwarded-For`` value) followed by the MD5 digest of the server secret.
    A client whose apparent address changes can no longer decrypt its cookies.

    Returns:
        bytes: A 32 byte key.

    """
    return _md5(context.client_id.encode("utf-8")) + _md5(key)


class EncryptedCookie:
    """
    A cookie whose value is encrypted with AES-256-GCM.

    Wraps a plain `Cookie`: attributes and transport operations are delegated
    to it, only `set_value` and `get_value` add the encryption step.
    """

    def __init__(
        self,
        name: object,
        key: str | bytes,
        *,
        context: RequestContext,
        serializer: Serializer | None = None,
    ) -> None:
        """
        Initialize the encrypted cookie.

        Args:
            name: The cookie name.
            key: The server secret. Must not be empty.
            context: Request context used for transport and key derivation.
            serializer: Codec used when values are (un)serialized. Defaults to JSON.

        Raises:
            ValidationError: If the secret or the name is invalid.

        """
        if not isinstance(key, str | bytes) or not key:
            msg = "Invalid secret key"
            raise ValidationError(msg)
        self._key = key.encode("utf-8") if isinstance(key, str) else key
        self._cookie = Cookie(name, context=context, serializer=serializer)

    @property
    def cookie(self) -> Cookie:
        """The wrapped plain cookie, holding the ciphertext."""
        return self._cookie

    @property
    def name(self) -> str:
        """The cookie name."""
        return self._cookie.name

    @property
    def value(self) -> str | None:
        """The stored ciphertext token."""
        return self._cookie.value

    @property
    def expire(self) -> int | None:
        """Expiration time as a UNIX timestamp, or None for a session cookie."""
        return self._cookie.expire

    @property
    def path(self) -> str | None:
        """The path attribute of the wrapped cookie."""
        return self._cookie.path

    @property
    def domain(self) -> str | None:
        """The domain attribute of the wrapped cookie."""
        return self._cookie.domain

    @property
    def secure(self) -> bool:
        """Whether the cookie is sent over HTTPS only."""
        return self._cookie.secure

    @property
    def httponly(self) -> bool:
        """Whether the cookie is hidden from client-side scripts."""
        return self._cookie.httponly

    def __repr__(self) -> str:
        """
        Return a string representation of the EncryptedCookie.

        The ciphertext is left out; it is meaningless to a reader.

        Returns:
            str: Class name and cookie name.

        """
        return f"<EncryptedCookie {self.name!r}>"

    def _cipher(self) -> AESGCM:
        """
        Build the AES-256-GCM cipher for the current client.

        Returns:
            AESGCM: Cipher keyed with `client_specific_key`.

        """
        return AESGCM(client_specific_key(self._cookie.context, self._key))

    def set_value(self, value: Any, serialize: bool = True) -> Self:
        """
        Encrypt and store the cookie content.

        Raises:
            ValidationError: If the value cannot be stored or the ciphertext is
                larger than 4KB. The previous value is kept.

        """
        if serialize:
            plaintext = self._cookie.serializer.encode(value)
        elif is_scalar(value):
            plaintext = scalar_to_text(value)
        else:
            msg = "Cannot set non-scalar value without serialization"
            raise ValidationError(msg)

        try:
            data = plaintext.encode("utf-8")
        except UnicodeEncodeError as err:
            # The JSON codec keeps non-ASCII text, lone surrogates included.
            msg = "Cookie value must be valid Unicode text"
            raise ValidationError(msg) from err

        # A fresh nonce per write; it travels in front of the ciphertext.
        nonce = os.urandom(NONCE_SIZE)
        ciphertext = self._cipher().encrypt(nonce, data, None)
        token = base64.urlsafe_b64encode(nonce + ciphertext).decode("ascii")
        # The plain cookie size-checks the token.
        self._cookie.set_value(token, serialize=False)
        return self

    def get_value(self, unserialize: bool = True) -> Any:
        """
        Decrypt the cookie content.

        Returns:
            The decrypted value, unserialized unless `unserialize` is false, or
            None if no value is set.

        Raises:
            DecryptionError: If the stored token cannot be decrypted.
            ValidationError: If the decrypted text cannot be unserialized.

        """
        token = self._cookie.get_value(unserialize=False)
        if token is None:
            return None

        try:
            data = base64.urlsafe_b64decode(token.encode("ascii"))
        except (binascii.Error, UnicodeEncodeError, ValueError) as err:
            msg = f"Cookie {self.name!r} data cannot be decrypted"
            raise DecryptionError(msg) from err
        if len(data) < NONCE_SIZE + TAG_SIZE:
            msg = f"Cookie {self.name!r} data cannot be decrypted"
            raise DecryptionError(msg)

        try:
            plaintext = self._cipher().decrypt(data[:NONCE_SIZE], data[NONCE_SIZE:], None).decode("utf-8")
        except (InvalidTag, UnicodeDecodeError) as err:
            msg = f"Cookie {self.name!r} data cannot be decrypted"
            raise DecryptionError(msg) from err

        return self._cookie.serializer.decode(plaintext) if unserialize else plaintext

    def get_name(self) -> str:
        """
        Return the cookie name.

        Returns:
            str: The name of the wrapped cookie.

        """
        return self._cookie.get_name()

    def set_name(self, name: object) -> Self:
        """Rename the wrapped cookie. See `Cookie.set_name`."""
        self._cookie.set_name(name)
        return self

    def set_expire(self, timestamp: int) -> Self:
        """Set the expiration time. See `Cookie.set_expire`."""
        self._cookie.set_expire(timestamp)
        return self

    def set_path(self, location: str) -> Self:
        """Set the path attribute. See `Cookie.set_path`."""
        self._cookie.set_path(location)
        return self

    def set_domain(self, domain: str) -> Self:
        """Set the domain attribute. See `Cookie.set_domain`."""
        self._cookie.set_domain(domain)
        return self

    def set_secure(self, flag: object = False) -> Self:
        """Send the cookie over HTTPS only."""
        self._cookie.set_secure(flag)
        return self

    def set_httponly(self, flag: object = False) -> Self:
        """Hide the cookie from client-side scripts."""
        self._cookie.set_httponly(flag)
        return self

    def save(self) -> bool:
        """
        Send the ciphertext to the client.

        Returns:
            bool: Always True; failures raise.

        Raises:
            TransportError: If the outbound channel rejects the cookie.

        """
        return self._cookie.save()

    def load(self) -> Self:
        """
        Load the ciphertext from the request; decryption happens in `get_value`.

        Raises:
            NotFoundError: If the request carries no cookie with this name.

        """
        self._cookie.load()
        return self

    def delete(self) -> bool:
        """
        Ask the client to drop the cookie. See `Cookie.delete`.

        Returns:
            bool: Always True; failures raise.

        """
        return self._cookie.delete()

    def exists(self) -> bool:
        """Return whether the request carries a cookie with this name."""
        return self._cookie.exists()

    @classmethod
    def create(
        cls,
        name: object,
        key: str | bytes,
        properties: Mapping[str, Any] | None = None,
        *,
        context: RequestContext,
        serializer: Serializer | None = None,
    ) -> "EncryptedCookie":
        """
        Create an encrypted cookie and configure it from `properties`.

        A ``value`` property is serialized and encrypted.

        Raises:
            ValidationError: If the name, the secret or a property is invalid.

        """
        cookie = cls(name, key, context=context, serializer=serializer)
        return apply_properties(cookie, properties)

    @classmethod
    def retrieve(
        cls,
        name: object,
        key: str | bytes,
        *,
        context: RequestContext,
        serializer: Serializer | None = None,
    ) -> "EncryptedCookie":
        """
        Create an encrypted cookie and load its ciphertext from the request.

        Raises:
            NotFoundError: If the request carries no such cookie.

        """
        return cls(name, key, context=context, serializer=serializer).load()
