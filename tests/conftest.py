import typing

import pytest

from streamlit_typed_cookies.transport import RequestContext


class RecordingSink:
    def __init__(self, reject: typing.Iterable[str] = ()) -> None:
        self.calls: list[tuple[typing.Any, ...]] = []
        self.reject = set(reject)

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
        if name in self.reject:
            return False
        self.calls.append((name, value, expire, path, domain, secure, httponly))
        return True

    @property
    def names(self) -> list[str]:
        return [call[0] for call in self.calls]


class ContextFactory(typing.Protocol):  # pragma: nocover
    def __call__(
        self,
        cookies: dict[str, str] | None = None,
        remote_addr: str = "203.0.113.7",
        forwarded_for: str = "",
    ) -> RequestContext: ...


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def context_factory(sink: RecordingSink) -> ContextFactory:
    def factory(
        cookies: dict[str, str] | None = None,
        remote_addr: str = "203.0.113.7",
        forwarded_for: str = "",
    ) -> RequestContext:
        return RequestContext(
            cookies=cookies or {},
            sink=sink,
            remote_addr=remote_addr,
            forwarded_for=forwarded_for,
        )

    return factory


@pytest.fixture
def context(context_factory: ContextFactory) -> RequestContext:
    return context_factory()
