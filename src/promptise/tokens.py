"""Token counting for rendered previews."""

from __future__ import annotations

from collections.abc import Callable
from functools import lru_cache
from typing import Any

from promptise.errors import TokenCountUnavailable

DEFAULT_ENCODING = "o200k_base"

TokenCounter = Callable[[str], int]


@lru_cache(maxsize=None)
def _load_encoding(name: str) -> Any:
    import tiktoken

    return tiktoken.get_encoding(name)


def count_tokens(text: str, encoding_name: str = DEFAULT_ENCODING) -> int:
    """Count tokens in ``text`` with a tiktoken encoding.

    ``o200k_base`` matches GPT-4o family models; other model families will
    differ. Treat the result as an estimate.

    Raises:
        TokenCountUnavailable: If tiktoken is missing or the encoding cannot be loaded.
    """
    try:
        encoding = _load_encoding(encoding_name)
        return len(encoding.encode(text))
    except Exception as exc:
        raise TokenCountUnavailable(f"token count unavailable: {exc}") from exc
