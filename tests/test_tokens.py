from __future__ import annotations

import sys
import types

import pytest

from promptise.errors import TokenCountUnavailable
from promptise.tokens import _load_encoding, count_tokens


@pytest.fixture(autouse=True)
def _clear_encoding_cache():
    _load_encoding.cache_clear()
    yield
    _load_encoding.cache_clear()


def test_count_tokens_given_mocked_tiktoken_when_counted_then_encoding_length_is_returned(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    # Given
    requested: list[str] = []

    class FakeEncoding:
        def encode(self, text: str) -> list[int]:
            return list(range(len(text.split())))

    def get_encoding(name: str) -> FakeEncoding:
        requested.append(name)
        return FakeEncoding()

    fake_tiktoken = types.ModuleType("tiktoken")
    fake_tiktoken.get_encoding = get_encoding
    monkeypatch.setitem(sys.modules, "tiktoken", fake_tiktoken)

    # When
    first = count_tokens("one two three")
    second = count_tokens("four five")

    # Then
    assert (first, second) == (3, 2)
    assert requested == ["o200k_base"]


def test_count_tokens_given_encoding_load_failure_when_counted_then_unavailable_is_raised(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    # Given
    def get_encoding(name: str):
        raise OSError("network unreachable")

    fake_tiktoken = types.ModuleType("tiktoken")
    fake_tiktoken.get_encoding = get_encoding
    monkeypatch.setitem(sys.modules, "tiktoken", fake_tiktoken)

    # When
    with pytest.raises(TokenCountUnavailable) as excinfo:
        count_tokens("hello")

    # Then
    assert "network unreachable" in str(excinfo.value)
