"""Codecs turning arbitrary values into cookie-safe text and back."""

import json
from typing import Any, Protocol

from streamlit_typed_cookies.exceptions import ValidationError


class Serializer(Protocol):
    """Encode values to text before they are stored in a cookie."""

    def encode(self, value: Any) -> str: ...

    def decode(self, data: str) -> Any: ...


class JSONSerializer:
    """Compact JSON codec, the default for every cookie."""

    def encode(self, value: Any) -> str:
        """
        Serialize `value` to compact JSON.

        Raises:
            ValidationError: If the value cannot be represented as JSON.

        """
        try:
            return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
        except (TypeError, ValueError) as err:
            msg = f"Cannot serialize cookie value of type {type(value).__name__}"
            raise ValidationError(msg) from err

    def decode(self, data: str) -> Any:
        """
        Parse JSON produced by `encode`.

        Raises:
            ValidationError: If the data is not valid JSON.

        """
        try:
            return json.loads(data)
        except (TypeError, ValueError) as err:
            msg = "Cookie value cannot be unserialized"
            raise ValidationError(msg) from err


default_serializer = JSONSerializer()
