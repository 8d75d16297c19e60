import pytest

from streamlit_typed_cookies.cookie import Cookie
from streamlit_typed_cookies.cookie_manager import BatchResult, CookieManager
from streamlit_typed_cookies.encrypted_cookie import EncryptedCookie
from streamlit_typed_cookies.exceptions import DecryptionError, NotFoundError, TransportError, ValidationError
from streamlit_typed_cookies.transport import RequestContext

from .conftest import ContextFactory, RecordingSink


@pytest.fixture
def manager() -> CookieManager:
    return CookieManager()


class TestRegistry:
    def test_register(self, manager: CookieManager, context: RequestContext) -> None:
        cookie = Cookie("a", context=context)
        assert manager.register(cookie) is manager
        assert manager.is_registered("a")
        assert manager.is_registered(cookie)
        assert manager.get("a") is cookie
        assert "a" in manager
        assert len(manager) == 1

    def test_register_overwrites(self, manager: CookieManager, context: RequestContext) -> None:
        first = Cookie("a", context=context)
        second = Cookie("a", context=context)
        manager.register(first).register(second)
        assert manager.get("a") is second
        assert list(manager) == ["a"]

    def test_unregister(self, manager: CookieManager, context: RequestContext) -> None:
        manager.register(Cookie("a", context=context)).register(Cookie("b", context=context))
        manager.unregister("a")
        assert not manager.is_registered("a")
        assert list(manager) == ["b"]

    def test_unregister_by_instance(self, manager: CookieManager, context: RequestContext) -> None:
        cookie = Cookie("a", context=context)
        manager.register(cookie).unregister(cookie)
        assert "a" not in manager

    def test_unregister_missing(self, manager: CookieManager) -> None:
        with pytest.raises(NotFoundError, match="not registered"):
            manager.unregister("a")

    @pytest.mark.parametrize("cookie", ["", None])
    def test_unregister_empty(self, manager: CookieManager, cookie: object) -> None:
        with pytest.raises(NotFoundError):
            manager.unregister(cookie)  # type: ignore[arg-type]

    @pytest.mark.parametrize("cookie", ["", None])
    def test_is_registered_empty(self, manager: CookieManager, cookie: object) -> None:
        with pytest.raises(ValidationError):
            manager.is_registered(cookie)  # type: ignore[arg-type]

    def test_is_registered_rejects_other_objects(self, manager: CookieManager) -> None:
        with pytest.raises(ValidationError):
            manager.is_registered(42)  # type: ignore[arg-type]

    @pytest.mark.parametrize("other", [42, object(), None, "", b"a"])
    def test_membership_of_foreign_objects(self, manager: CookieManager, context: RequestContext, other: object) -> None:
        manager.register(Cookie("a", context=context))
        assert other not in manager

    def test_get_missing(self, manager: CookieManager) -> None:
        with pytest.raises(NotFoundError):
            manager.get("a")

    def test_mixed_cookie_types(self, manager: CookieManager, context: RequestContext) -> None:
        manager.register(Cookie("plain", context=context)).register(EncryptedCookie("secret", "k", context=context))
        assert list(manager) == ["plain", "secret"]
        assert repr(manager) == "<CookieManager: ['plain', 'secret']>"


class TestBatch:
    def test_load_and_get_values(self, manager: CookieManager, context_factory: ContextFactory) -> None:
        context = context_factory({"a": '"1"', "b": '"2"'})
        manager.register(Cookie("a", context=context)).register(Cookie("b", context=context))

        loaded = manager.load()
        assert loaded.ok
        assert loaded.completed == ["a", "b"]

        values = manager.get_values()
        assert values.ok
        assert values.values == {"a": "1", "b": "2"}
        assert values.unwrap() == {"a": "1", "b": "2"}

    def test_load_stops_at_missing_cookie(self, manager: CookieManager, context_factory: ContextFactory) -> None:
        context = context_factory({"a": '"1"', "c": '"3"'})
        for name in "abc":
            manager.register(Cookie(name, context=context))

        result = manager.load()
        assert not result.ok
        assert result.completed == ["a"]
        assert result.failed == "b"
        assert isinstance(result.error, NotFoundError)
        assert manager.get("c").get_value() is None

    def test_save_is_fail_fast(self, manager: CookieManager, context: RequestContext, sink: RecordingSink) -> None:
        sink.reject.add("second")
        for name in ("first", "second", "third"):
            manager.register(Cookie(name, context=context).set_value(name))

        result = manager.save()
        assert sink.names == ["first"]
        assert result.completed == ["first"]
        assert result.failed == "second"
        assert isinstance(result.error, TransportError)
        with pytest.raises(TransportError):
            result.unwrap()

    def test_save_all(self, manager: CookieManager, context: RequestContext, sink: RecordingSink) -> None:
        manager.register(Cookie("a", context=context).set_value(1))
        manager.register(EncryptedCookie("b", "k", context=context).set_value(2))
        result = manager.save()
        assert result.ok
        assert result.unwrap() == {}
        assert sink.names == ["a", "b"]

    def test_get_values_with_encrypted_cookie(self, manager: CookieManager, context: RequestContext) -> None:
        manager.register(Cookie("a", context=context).set_value("plain"))
        manager.register(EncryptedCookie("b", "k", context=context).set_value({"hidden": True}))
        assert manager.get_values().unwrap() == {"a": "plain", "b": {"hidden": True}}

    def test_get_values_stops_at_first_error(self, manager: CookieManager, context_factory: ContextFactory) -> None:
        context = context_factory({"broken": "garbage"})
        manager.register(Cookie("a", context=context).set_value(1))
        manager.register(EncryptedCookie("broken", "k", context=context).load())
        manager.register(Cookie("c", context=context).set_value(3))

        result = manager.get_values()
        assert result.values == {"a": 1}
        assert result.failed == "broken"
        assert isinstance(result.error, DecryptionError)

    def test_empty_manager(self, manager: CookieManager) -> None:
        assert manager.save() == BatchResult()
        assert manager.get_values().unwrap() == {}
