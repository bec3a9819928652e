"""Tests for input validation."""
from __future__ import annotations

import pytest

from pronounce_ms.core.errors import ErrorCode, ValidationError
from pronounce_ms.services.validators import (
    is_valid_chinese_text,
    validate_language,
    validate_text,
    validate_texts,
)


class TestTextPredicate:

    def test_chinese_text(self):
        assert is_valid_chinese_text("你好") is True

    def test_latin_only(self):
        assert is_valid_chinese_text("hello") is False

    def test_mixed_text_accepted(self):
        assert is_valid_chinese_text("hello 你") is True

    def test_extension_a(self):
        """CJK Extension A (U+3400-U+4DBF) counts as Chinese."""
        assert is_valid_chinese_text("㐀") is True

    def test_japanese_kana_rejected(self):
        assert is_valid_chinese_text("ひらがな") is False

    def test_length_boundary(self):
        assert is_valid_chinese_text("学" * 100) is True
        assert is_valid_chinese_text("学" * 101) is False

    def test_empty_and_non_string(self):
        assert is_valid_chinese_text("") is False
        assert is_valid_chinese_text(None) is False
        assert is_valid_chinese_text(42) is False
        assert is_valid_chinese_text(["你好"]) is False


class TestValidateText:

    def test_returns_text_unchanged(self):
        assert validate_text(" 你好 ") == " 你好 "

    @pytest.mark.parametrize(
        "text,reason",
        [
            ("", "TEXT_REQUIRED"),
            (None, "TEXT_REQUIRED"),
            (123, "TEXT_REQUIRED"),
            ("学" * 101, "TEXT_TOO_LONG"),
            ("hello", "TEXT_NOT_CHINESE"),
        ],
    )
    def test_rejections(self, text, reason):
        with pytest.raises(ValidationError) as exc_info:
            validate_text(text)
        assert exc_info.value.reason == reason
        assert exc_info.value.code == ErrorCode.INVALID_INPUT
        assert exc_info.value.http_status == 400

    def test_custom_max_length(self):
        with pytest.raises(ValidationError):
            validate_text("你好吗", max_length=2)


class TestValidateLanguage:

    def test_default_when_missing(self):
        assert validate_language(None) == "zh-CN"

    def test_supported(self):
        assert validate_language("zh-TW") == "zh-TW"

    def test_unsupported(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_language("en")
        assert exc_info.value.reason == "LANGUAGE_UNSUPPORTED"
        assert exc_info.value.details["supportedLanguages"] == ["zh-CN", "zh-TW"]


class TestValidateTexts:

    def test_valid_batch(self):
        assert validate_texts(["学习", "中文"]) == ["学习", "中文"]

    def test_ten_is_allowed(self):
        assert len(validate_texts(["学习"] * 10)) == 10

    def test_empty_batch(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_texts([])
        assert exc_info.value.reason == "TEXTS_REQUIRED"

    def test_not_a_list(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_texts("学习")
        assert exc_info.value.reason == "TEXTS_REQUIRED"

    def test_too_many(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_texts(["学习"] * 11)
        assert exc_info.value.reason == "TOO_MANY_TEXTS"

    def test_invalid_entry_reports_index(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_texts(["学习", "hello", "中文"])
        assert exc_info.value.reason == "TEXT_NOT_CHINESE"
        assert exc_info.value.details["index"] == 1
