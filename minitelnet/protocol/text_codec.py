"""Decoding of remote output lines into text."""

import codecs
import logging
from typing import Sequence

from ..exceptions import ConfigurationError, DecodeError

logger = logging.getLogger(__name__)

DEFAULT_ENCODING = "utf-8"
# Legacy multi-byte encodings tried in order when strict UTF-8 fails
DEFAULT_FALLBACK_ENCODINGS = ("gbk", "gb18030")


def validate_encoding(name: str) -> str:
    """Return the canonical codec name for ``name`` or raise ConfigurationError."""
    try:
        return codecs.lookup(name).name
    except LookupError as e:
        raise ConfigurationError(
            f"Unknown encoding '{name}'", context={"encoding": name}
        ) from e


def decode_text(
    data: bytes,
    encoding: str = DEFAULT_ENCODING,
    fallbacks: Sequence[str] = DEFAULT_FALLBACK_ENCODINGS,
) -> str:
    """
    Decode ``data`` strictly, trying ``encoding`` first and then each fallback.

    Args:
        data: Raw line bytes.
        encoding: Primary encoding.
        fallbacks: Encodings tried in order when the primary one fails.

    Returns:
        The decoded text.

    Raises:
        DecodeError: If no encoding accepts the bytes. The primary encoding's
            UnicodeDecodeError is attached as ``original_exception``.
    """
    try:
        return data.decode(encoding)
    except UnicodeDecodeError as primary_error:
        for fallback in fallbacks:
            try:
                text = data.decode(fallback)
            except UnicodeDecodeError:
                continue
            logger.debug(f"[DATA] Decoded {len(data)} bytes with fallback {fallback}")
            return text
        raise DecodeError(
            f"Cannot decode line as {encoding} or any of {', '.join(fallbacks)}",
            context={"bytes": data[:32].hex()},
            original_exception=primary_error,
        ) from primary_error
