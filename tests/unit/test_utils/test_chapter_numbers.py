"""Tests for chapter number extraction and filename derivation."""

import pytest

from novelsync.utils.chapter_numbers import (
    ChapterNumber,
    chapter_filename,
    chinese_to_arabic,
    extract_chapter_number,
    parse_filename_ordinal,
)
from novelsync.utils.security import sanitize_identifier, sanitize_title


class TestChineseToArabic:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("五", 5),
            ("十", 10),
            ("十五", 15),
            ("二十", 20),
            ("二十三", 23),
            ("一百", 100),
            ("一百零五", 105),
            ("一百二十三", 123),
            ("两千", 2000),
            ("一千二百三十四", 1234),
        ],
    )
    def test_conversion(self, text, expected):
        assert chinese_to_arabic(text) == expected

    @pytest.mark.parametrize("text", ["", "  ", "章", "十x"])
    def test_invalid(self, text):
        assert chinese_to_arabic(text) is None


class TestExtractChapterNumber:
    @pytest.mark.parametrize(
        "link_text, expected",
        [
            ("第123章 风起云涌", ChapterNumber("0123", "风起云涌")),
            ("Chapter 45: The End", ChapterNumber("0045", "The End")),
            ("12. Title", ChapterNumber("0012", "Title")),
            ("第十五章 归来", ChapterNumber("0015", "归来")),
            ("第一百二十三章 大战", ChapterNumber("0123", "大战")),
            ("序章", ChapterNumber(None, "序章")),
        ],
    )
    def test_extraction(self, link_text, expected):
        assert extract_chapter_number(link_text) == expected

    def test_number_inside_text(self):
        result = extract_chapter_number("Volume 2 Chapter 10 Return")
        assert result.number == "0010"
        assert "Return" in result.title

    def test_title_is_filename_safe(self):
        result = extract_chapter_number('第7章 Who? "Me"/You')
        assert result.number == "0007"
        assert result.title == "Who MeYou"
        assert not any(c in result.title for c in '\\/:*?"<>|')

    def test_number_only_keeps_text_as_title(self):
        result = extract_chapter_number("100")
        assert result.number == "0100"
        assert result.title


class TestChapterFilename:
    def test_with_number(self):
        assert (
            chapter_filename("第123章 风起云涌", ChapterNumber("0123", "风起云涌"), 1)
            == "0123 - 风起云涌.txt"
        )

    def test_without_number(self):
        assert chapter_filename("序章", ChapterNumber(None, "序章"), 1) == "序章.txt"

    def test_fallback_to_index(self):
        assert chapter_filename("***", ChapterNumber(None, ""), 7) == "chapter-0007.txt"

    def test_truncated(self):
        name = chapter_filename("x", ChapterNumber("0001", "a" * 300), 1, max_length=50)
        assert name.endswith(".txt")
        assert len(name) == 50 + len(".txt")


class TestParseFilenameOrdinal:
    @pytest.mark.parametrize(
        "filename, expected",
        [
            ("0123 - 风起云涌.txt", 123),
            ("0001 -Start.txt", 1),
            ("12345 - Long.txt", 12345),
            ("序章.txt", None),
            ("Chapter 5 - x.txt", None),
        ],
    )
    def test_parse(self, filename, expected):
        assert parse_filename_ordinal(filename) == expected


class TestSanitizers:
    def test_sanitize_title_keeps_unicode(self):
        assert sanitize_title("  风起   云涌 ") == "风起 云涌"

    def test_sanitize_title_strips_invalid(self):
        assert sanitize_title('a<b>c:d"e/f\\g|h?i*j') == "abcdefghij"

    def test_sanitize_identifier(self):
        assert sanitize_identifier("a b/c") == "a_b_c"
        assert sanitize_identifier(".hidden") == "_.hidden"
        assert sanitize_identifier("") == "_"
