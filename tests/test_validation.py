import pytest

from streamlit_typed_cookies.exceptions import ValidationError
from streamlit_typed_cookies.validation import (
    MAX_COOKIE_SIZE,
    check_domain,
    encode_pair,
    is_safe_attribute,
    validate_domain,
    validate_name,
    validate_path,
    validate_size,
)


class TestDomain:
    @pytest.mark.parametrize(
        "domain",
        ["example.com", "sub.example.co.uk", ".example.com", "localhost", "EXAMPLE.org", "xn--bcher-kva.de", "a--b.io"],
    )
    def test_valid_domains(self, domain: str) -> None:
        assert check_domain(domain)
        assert validate_domain(domain) == domain

    @pytest.mark.parametrize(
        "domain",
        ["", ".", "-bad-.com", "bad-.com", "a..b", "exa mple.com", "example.com.", "a" * 300 + ".com", "a" * 64 + ".com"],
    )
    def test_invalid_domains(self, domain: str) -> None:
        assert not check_domain(domain)
        with pytest.raises(ValidationError):
            validate_domain(domain)

    def test_label_of_63_characters_is_allowed(self) -> None:
        assert check_domain("a" * 63 + ".com")

    def test_overall_length_limit(self) -> None:
        domain = ".".join(["a" * 63] * 4)  # 255 characters
        assert not check_domain(domain)
        assert check_domain(domain[:253].rstrip("."))

    def test_trailing_newline_is_rejected(self) -> None:
        assert not check_domain("example.com\n")

    def test_non_string_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            validate_domain(42)


class TestName:
    @pytest.mark.parametrize("name", ["session", "a", 1, 2.5, b"raw"])
    def test_scalar_names(self, name: object) -> None:
        assert validate_name(name)

    @pytest.mark.parametrize("name", ["", b"", None, [], {"a": 1}, True])
    def test_invalid_names(self, name: object) -> None:
        with pytest.raises(ValidationError, match="Invalid cookie name"):
            validate_name(name)

    def test_name_is_returned_as_text(self) -> None:
        assert validate_name(7) == "7"
        assert validate_name(b"raw") == "raw"


class TestPath:
    @pytest.mark.parametrize("path", ["/", "/app", "/a/b-c_d.e", "/~user/%20x", ""])
    def test_valid_paths(self, path: str) -> None:
        assert validate_path(path) == path

    @pytest.mark.parametrize(
        "path",
        ["/; Domain=evil.example", "/a,b", "/a b", "/\r\nX-Injected: 1", "/\n", "/\t", "/\x0b", "/\x0c", "/\x00", "/\x7f"],
    )
    def test_separators_and_control_characters(self, path: str) -> None:
        assert not is_safe_attribute(path)
        with pytest.raises(ValidationError, match="path"):
            validate_path(path)

    def test_non_string_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            validate_path(None)


class TestSize:
    def test_limit_is_inclusive(self) -> None:
        value = "x" * (MAX_COOKIE_SIZE - 2)  # "a=" takes two bytes
        assert validate_size("a", value) == value

    def test_oversize_value(self) -> None:
        with pytest.raises(ValidationError, match="4KB"):
            validate_size("a", "x" * (MAX_COOKIE_SIZE - 1))

    def test_name_counts_towards_limit(self) -> None:
        value = "x" * (MAX_COOKIE_SIZE - 2)
        with pytest.raises(ValidationError):
            validate_size("ab", value)

    def test_size_counts_percent_encoded_bytes(self) -> None:
        # 700 characters, 1400 UTF-8 bytes, 4200 once percent-encoded, plus "="
        with pytest.raises(ValidationError, match="4201"):
            validate_size("", "é" * 700)

    def test_encoded_pair(self) -> None:
        assert encode_pair("a b", '"é;"') == "a%20b=%22%C3%A9%3B%22"

    def test_lone_surrogate(self) -> None:
        with pytest.raises(ValidationError, match="Unicode"):
            validate_size("a", "\ud800")
