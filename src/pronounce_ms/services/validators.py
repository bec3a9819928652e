"""
Input Validation for the Pronunciation Service.

Validation runs before any cache lookup or job creation, so a rejected
request never changes service state.

Validation Rules:
    - Text: a string, non-empty, at most 100 characters, containing at
      least one CJK ideograph (U+4E00-U+9FFF or U+3400-U+4DBF)
    - Language: one of the supported codes (zh-CN, zh-TW)
    - Batch: a list of 1-10 valid texts

Error reasons reported in ValidationError.reason:
    TEXT_REQUIRED, TEXT_TOO_LONG, TEXT_NOT_CHINESE,
    LANGUAGE_UNSUPPORTED, TEXTS_REQUIRED, TOO_MANY_TEXTS

Usage:
    from pronounce_ms.services.validators import validate_text

    try:
        text = validate_text(body.text)
    except ValidationError as e:
        return JSONResponse(status_code=400, content=e.to_dict())
"""
from __future__ import annotations

import re
from typing import Any, List, Optional, Sequence

from pronounce_ms.core.config import Defaults
from pronounce_ms.core.errors import ValidationError
from pronounce_ms.core.logging import debug, get_logger

_LOG = get_logger("pronounce-ms.validators")

# CJK Unified Ideographs and Extension A
_CJK_RE = re.compile("[一-鿿㐀-䶿]")


def is_valid_chinese_text(text: Any, max_length: int = Defaults.TEXT_MAX_CHARS) -> bool:
    """
    Text-validity predicate shared by /audio and /preload.

    Examples:
        >>> is_valid_chinese_text("你好")
        True
        >>> is_valid_chinese_text("hello")
        False
        >>> is_valid_chinese_text("学" * 101)
        False
    """
    if not isinstance(text, str) or not text:
        return False
    return len(text) <= max_length and _CJK_RE.search(text) is not None


def validate_text(text: Any, max_length: int = Defaults.TEXT_MAX_CHARS) -> str:
    """
    Validate one text snippet.

    Returns:
        The text, unchanged.

    Raises:
        ValidationError: With a reason naming the failed rule.
    """
    if not isinstance(text, str) or not text:
        raise ValidationError("Text is required", "TEXT_REQUIRED")

    if len(text) > max_length:
        raise ValidationError(
            f"Text exceeds maximum length ({len(text)} > {max_length})",
            "TEXT_TOO_LONG",
        )

    if _CJK_RE.search(text) is None:
        debug(_LOG, "rejected_text", text=text[:20])
        raise ValidationError(
            "Invalid Chinese text provided: text must contain Chinese characters",
            "TEXT_NOT_CHINESE",
        )

    return text


def validate_language(
    language: Optional[str],
    supported: Sequence[str] = Defaults.SUPPORTED_LANGUAGES,
    default: str = Defaults.DEFAULT_LANGUAGE,
) -> str:
    """
    Validate a language code, substituting the default when absent.

    Raises:
        ValidationError: If the code is not supported.
    """
    if language is None:
        return default
    if language not in supported:
        raise ValidationError(
            f"Unsupported language: {language}",
            "LANGUAGE_UNSUPPORTED",
            details={"supportedLanguages": list(supported)},
        )
    return language


def validate_texts(
    texts: Any,
    max_texts: int = Defaults.PRELOAD_MAX_TEXTS,
    max_length: int = Defaults.TEXT_MAX_CHARS,
) -> List[str]:
    """
    Validate a preload batch.

    Every entry must pass validate_text; the first failing entry is
    reported with its index.

    Raises:
        ValidationError: If the batch is empty, too large or contains an
            invalid text.
    """
    if not isinstance(texts, list) or len(texts) == 0:
        raise ValidationError("Invalid input: texts must be a non-empty array", "TEXTS_REQUIRED")

    if len(texts) > max_texts:
        raise ValidationError(
            f"Too many texts to preload ({len(texts)} > {max_texts})",
            "TOO_MANY_TEXTS",
        )

    for index, text in enumerate(texts):
        try:
            validate_text(text, max_length)
        except ValidationError as e:
            raise ValidationError(
                f"Invalid Chinese text at position {index}: {e.message}",
                e.reason,
                details={"index": index},
            ) from e

    return list(texts)
