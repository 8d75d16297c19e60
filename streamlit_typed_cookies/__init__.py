"""
Typed cookie objects for Python request handlers and Streamlit apps.

This package exposes:
- `Cookie`: a single validated cookie bound to a request context.
- `EncryptedCookie`: same API with transparent, client-bound encryption.
- `CookieManager`: load/save/read several cookies at one time.
"""

from .cookie import Cookie, CookieProtocol, apply_properties
from .cookie_manager import BatchResult, CookieManager
from .encrypted_cookie import EncryptedCookie, client_specific_key
from .exceptions import CookieError, DecryptionError, NotFoundError, TransportError, ValidationError
from .serialization import JSONSerializer, Serializer
from .streamlit_transport import StreamlitCookieSink, streamlit_context
from .transport import CookieSink, HeaderCookieSink, RequestContext, parse_cookies
from .validation import MAX_COOKIE_SIZE, check_domain

__all__ = [
    "MAX_COOKIE_SIZE",
    "BatchResult",
    "Cookie",
    "CookieError",
    "CookieManager",
    "CookieProtocol",
    "CookieSink",
    "DecryptionError",
    "EncryptedCookie",
    "HeaderCookieSink",
    "JSONSerializer",
    "NotFoundError",
    "RequestContext",
    "Serializer",
    "StreamlitCookieSink",
    "TransportError",
    "ValidationError",
    "apply_properties",
    "check_domain",
    "client_specific_key",
    "parse_cookies",
    "streamlit_context",
]
