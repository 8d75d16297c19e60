"""
Batch management of cookie objects.

Provides `CookieManager`, a registry of named cookies that loads, saves and
reads them together.
"""

import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import Any, Self

from streamlit_typed_cookies.cookie import CookieProtocol
from streamlit_typed_cookies.exceptions import CookieError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    """
    Outcome of a batch operation over registered cookies.

    A batch stops at the first failing cookie: `failed` and `error` describe
    it, `completed` lists the cookies processed before it.
    """

    completed: list[str] = field(default_factory=list)
    values: dict[str, Any] = field(default_factory=dict)
    failed: str | None = None
    error: CookieError | None = None

    @property
    def ok(self) -> bool:
        """
        Return whether every cookie was processed.

        Returns:
            bool: True if the batch ran to completion.

        """
        return self.error is None

    def unwrap(self) -> dict[str, Any]:
        """
        Return the collected values, or raise the error that stopped the batch.

        Returns:
            dict[str, Any]: Values gathered by `CookieManager.get_values`, empty
            for other operations.

        Raises:
            CookieError: The error reported by the failing cookie.

        """
        if self.error is not None:
            raise self.error
        return self.values


class CookieManager:
    """
    Manage several cookies, plain or encrypted, at one time.

    Cookies are keyed by name; registering a cookie whose name is already
    present replaces the previous entry.
    """

    def __init__(self) -> None:
        """Initialize an empty manager."""
        # Insertion order is registration order, which batches follow.
        self._cookies: dict[str, CookieProtocol] = {}

    def __repr__(self) -> str:
        """
        Return a string representation of the CookieManager.

        Returns:
            str: The registered cookie names.

        """
        return f"<CookieManager: {list(self._cookies)!r}>"

    def __contains__(self, cookie: object) -> bool:
        """
        Return whether a cookie or name is registered.

        Unlike `is_registered`, empty arguments and objects that are neither
        names nor cookies are simply not contained.

        Returns:
            bool: True if a cookie with that name is registered.

        """
        if not cookie:
            return False
        try:
            name = self._resolve_name(cookie)
        except ValidationError:
            return False
        return name in self._cookies

    def __iter__(self) -> Iterator[str]:
        """
        Iterate over the registered cookie names.

        Returns:
            Iterator[str]: Names in registration order.

        """
        return iter(self._cookies)

    def __len__(self) -> int:
        """
        Return the number of registered cookies.

        Returns:
            int: The number of cookies.

        """
        return len(self._cookies)

    @staticmethod
    def _resolve_name(cookie: object) -> str:
        """
        Return the name of a cookie, or the argument itself if it is a name.

        Raises:
            ValidationError: If the argument is neither a name nor a cookie.

        """
        if isinstance(cookie, str):
            return cookie
        # Duck-typed: any object implementing the cookie protocol works.
        get_name = getattr(cookie, "get_name", None)
        if get_name is None:
            msg = f"Invalid cookie object or name: {cookie!r}"
            raise ValidationError(msg)
        return get_name()

    def register(self, cookie: CookieProtocol) -> Self:
        """Store `cookie` under its name, replacing any cookie with that name."""
        self._cookies[cookie.get_name()] = cookie
        return self

    def unregister(self, cookie: CookieProtocol | str) -> Self:
        """
        Remove a cookie from the manager.

        Args:
            cookie: The cookie or its name.

        Raises:
            NotFoundError: If the argument is empty or the cookie is not registered.

        """
        if not cookie:
            msg = "Invalid cookie object or name"
            raise NotFoundError(msg)
        name = self._resolve_name(cookie)
        if name not in self._cookies:
            msg = f"Cookie {name!r} is not registered"
            raise NotFoundError(msg)
        del self._cookies[name]
        return self

    def is_registered(self, cookie: CookieProtocol | str) -> bool:
        """
        Return whether a cookie with the same name is registered.

        Raises:
            ValidationError: If the argument is empty.

        """
        if not cookie:
            msg = "Invalid cookie object or name"
            raise ValidationError(msg)
        return self._resolve_name(cookie) in self._cookies

    def get(self, name: str) -> CookieProtocol:
        """
        Return the cookie registered under `name`.

        Raises:
            NotFoundError: If no such cookie is registered.

        """
        try:
            return self._cookies[name]
        except KeyError as err:
            msg = f"Cookie {name!r} is not registered"
            raise NotFoundError(msg) from err

    def _run(self, operation: Callable[[CookieProtocol], Any], collect: bool = False) -> BatchResult:
        """
        Apply `operation` to every cookie, stopping at the first failure.

        Args:
            operation: Called with each registered cookie in turn.
            collect: Store each call's return value under the cookie name.

        Returns:
            BatchResult: Processed names, collected values and any error.

        """
        result = BatchResult()
        for name, cookie in self._cookies.items():
            try:
                outcome = operation(cookie)
            except CookieError as err:
                # Fail fast: later cookies are not attempted, earlier ones are not undone.
                logger.debug("Batch stopped at cookie %r: %s", name, err)
                result.failed = name
                result.error = err
                break
            if collect:
                result.values[name] = outcome
            result.completed.append(name)
        return result

    def get_values(self) -> BatchResult:
        """
        Read the decoded value of every registered cookie.

        Returns:
            BatchResult: Values by name in `values`, or the first error.

        """
        return self._run(lambda cookie: cookie.get_value(), collect=True)

    def save(self) -> BatchResult:
        """
        Save every registered cookie in registration order.

        Cookies saved before a failure stay saved.

        Returns:
            BatchResult: Saved names, or the first error.

        """
        return self._run(lambda cookie: cookie.save())

    def load(self) -> BatchResult:
        """
        Load every registered cookie from the request in registration order.

        Returns:
            BatchResult: Loaded names, or the first error.

        """
        return self._run(lambda cookie: cookie.load())
