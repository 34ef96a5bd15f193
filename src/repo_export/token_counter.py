from __future__ import annotations

import math
import threading
from typing import Any, Protocol

import tiktoken

from repo_export.logging import logger

DEFAULT_TOKEN_MODEL = "gpt-4"


class TokenCounterLike(Protocol):
    def count_tokens(self, text: str) -> int: ...


def approximate_tokens(text: str) -> int:
    """Very rough estimate: about four characters per token."""
    return math.ceil(len(text) / 4)


class TokenCounter:
    """Count tokens with a tiktoken encoder for `model_name`.

    The encoder is loaded on first use. When it cannot be loaded (unknown model,
    BPE table unavailable offline...) counting falls back to
    :func:`approximate_tokens`. ``model_name=None`` selects the approximation
    directly.
    """

    def __init__(self, model_name: str | None = DEFAULT_TOKEN_MODEL) -> None:
        self.model_name = model_name
        self._encoder: tiktoken.Encoding | None = None
        self._loaded = model_name is None
        self._lock = threading.Lock()

    def _get_encoder(self) -> tiktoken.Encoding | None:
        if self._loaded:
            return self._encoder
        with self._lock:
            if not self._loaded:
                try:
                    self._encoder = tiktoken.encoding_for_model(str(self.model_name))
                except Exception as e:  # noqa: BLE001
                    logger.error(
                        "Error initializing tiktoken, using approximate counts",
                        model=self.model_name,
                        error=str(e),
                    )
                    self._encoder = None
                self._loaded = True
        return self._encoder

    @property
    def is_approximate(self) -> bool:
        return self._get_encoder() is None

    def count_tokens(self, text: Any) -> int:  # noqa: ANN401
        """Count tokens in `text`; never raises.

        Non-string values are stringified; None and empty text count as 0. Text
        that looks like special tokens is encoded as ordinary text.

        Args:
            text (Any): the text to count

        Returns:
            int: the token count (0 on failure)
        """
        if text is None:
            return 0
        try:
            text_str = text if isinstance(text, str) else str(text)
            if not text_str:
                return 0
            encoder = self._get_encoder()
            if encoder is None:
                return approximate_tokens(text_str)
            return len(encoder.encode(text_str, disallowed_special=()))
        except Exception as e:  # noqa: BLE001
            logger.error("Error counting tokens", error=str(e))
            return 0
