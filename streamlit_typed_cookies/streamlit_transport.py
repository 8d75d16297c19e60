"""
Streamlit adapter for the cookie transport.

Inbound cookies and client metadata come from ``st.context``. Outbound
cookies are written from the browser side: a zero-height HTML component
assigns ``document.cookie`` on the parent page.
"""

import json
import logging
from urllib.parse import unquote

import streamlit as st
from streamlit.components.v1 import html

from streamlit_typed_cookies.transport import RequestContext, format_set_cookie

logger = logging.getLogger(__name__)


class StreamlitCookieSink:
    """
    Write cookies into the browser running the Streamlit app.

    Script code cannot create HttpOnly cookies, so such writes are rejected.
    """

    def set_cookie(
        self,
        name: str,
        value: str,
        expire: int | None,
        path: str | None,
        domain: str | None,
        secure: bool,
        httponly: bool,
    ) -> bool:
        """
        Render a snippet that stores the cookie in the browser.

        A missing path defaults to ``/`` so the cookie is visible to the whole app.

        Returns:
            bool: False for HttpOnly cookies, True once the snippet is rendered.

        Raises:
            ValueError: If the path or domain is unsafe. See `format_set_cookie`.

        """
        if httponly:
            logger.debug("Rejecting HttpOnly cookie %r: not settable from the browser", name)
            return False

        header = format_set_cookie(name, value, expire, path or "/", domain, secure)
        # json.dumps produces a valid JS string literal; escaping "<" keeps
        # "</script>" or "<!--" in the header from ending the inline script.
        literal = json.dumps(header).replace("<", "\\u003c")
        html(f"<script>window.parent.document.cookie = {literal};</script>", height=0)
        return True


def streamlit_context(sink: StreamlitCookieSink | None = None) -> RequestContext:
    """
    Build a request context for the current Streamlit session.

    Must be called from within a running Streamlit script.

    Returns:
        RequestContext: Cookies, sink and client address of the session.

    """
    context = st.context
    cookies = {unquote(name): unquote(value) for name, value in context.cookies.items()}
    return RequestContext(
        cookies=cookies,
        sink=sink if sink is not None else StreamlitCookieSink(),
        remote_addr=context.ip_address or "",
        forwarded_for=context.headers.get("X-Forwarded-For", ""),
    )
