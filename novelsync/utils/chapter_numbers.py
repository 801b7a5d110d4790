"""Chapter number parsing and chapter filename derivation.

Listing pages label chapters as "第123章 标题", "Chapter 45: Title",
"12. Title" or with Chinese numerals ("第一百二十三章"). The number is padded
to four digits and becomes the filename prefix ("0123 - 标题.txt"), which is
also what the translation pipeline reads back for range filtering.
"""

import re
from typing import NamedTuple, Optional

from novelsync.utils.security import sanitize_title

CHINESE_DIGITS = {
    "〇": 0,
    "零": 0,
    "一": 1,
    "二": 2,
    "两": 2,
    "三": 3,
    "四": 4,
    "五": 5,
    "六": 6,
    "七": 7,
    "八": 8,
    "九": 9,
}
CHINESE_MULTIPLIERS = {"十": 10, "百": 100, "千": 1000}

_MARKER = r"(?:第|ch(?:apter)?\.?)"
_SUFFIX = r"[章节篇回卷.:：\-]?"

_LEADING_NUMBER = re.compile(rf"^\s*{_MARKER}?\s*(\d+)\s*{_SUFFIX}\s*(.*)$", re.I | re.S)
_INNER_NUMBER = re.compile(rf"^(.*?){_MARKER}\s*(\d+)\s*{_SUFFIX}\s*(.*)$", re.I | re.S)
_ANY_NUMBER = re.compile(r"(\d+)")
_CHINESE_NUMBER = re.compile(r"^\s*第?([零〇一二两三四五六七八九十百千]+)[章节篇回卷]?\s*(.*)$", re.S)
_FILENAME_ORDINAL = re.compile(r"^(\d+)\s*-")

ORDINAL_WIDTH = 4


class ChapterNumber(NamedTuple):
    number: Optional[str]  # zero-padded, e.g. "0123"
    title: str  # remaining title text, filename-safe


def chinese_to_arabic(text: str) -> Optional[int]:
    """Convert a Chinese numeral up to the thousands to an int.

    "五" -> 5, "十五" -> 15, "二十" -> 20, "一百二十三" -> 123, "百" -> 100.
    Returns None for empty input or any non-numeral character.
    """
    if not text or not text.strip():
        return None

    total = 0
    digit = 0
    found = False
    for char in text.strip():
        if char in CHINESE_DIGITS:
            digit = CHINESE_DIGITS[char]
            found = True
        elif char in CHINESE_MULTIPLIERS:
            # A bare multiplier ("十五", "百") implies a leading one
            total += (digit or 1) * CHINESE_MULTIPLIERS[char]
            digit = 0
            found = True
        else:
            return None
    total += digit
    return total if found else None


def _pad(number: int) -> str:
    return str(number).zfill(ORDINAL_WIDTH)


def extract_chapter_number(link_text: str) -> ChapterNumber:
    """Pull the chapter number out of a listing link's text.

    Tries, in order: a leading Arabic number (optionally after 第/Chapter),
    a marked number later in the text, any digit run, then Chinese numerals.
    When nothing matches, the number is None and the title is the whole
    sanitized text.
    """
    text = link_text.strip()
    number: Optional[int] = None
    title = ""

    match = _LEADING_NUMBER.match(text)
    if match:
        number = int(match.group(1))
        title = match.group(2)
    else:
        match = _INNER_NUMBER.match(text)
        if match:
            number = int(match.group(2))
            title = f"{match.group(1).strip()} {match.group(3).strip()}"
        else:
            match = _ANY_NUMBER.search(text)
            if match:
                number = int(match.group(1))
                title = text[: match.start()] + text[match.end():]

    if number is None:
        match = _CHINESE_NUMBER.match(text)
        if match:
            number = chinese_to_arabic(match.group(1))
            if number is not None:
                title = match.group(2)

    title = sanitize_title(title)
    if number is None:
        return ChapterNumber(None, sanitize_title(text))
    if not title or title == _pad(number):
        title = sanitize_title(text)
    return ChapterNumber(_pad(number), title)


def chapter_filename(
    link_text: str,
    chapter: ChapterNumber,
    index: int,
    max_length: int = 200,
) -> str:
    """Build the raw chapter filename.

    - With a number: "NNNN - Title.txt"
    - Without: "Title.txt"
    - Nothing usable: "chapter-NNNN.txt" from the listing index
    """
    if chapter.number:
        base = f"{chapter.number} - {chapter.title}".strip()
    else:
        base = chapter.title.strip()

    base = base[:max_length].strip()
    if not base:
        base = sanitize_title(link_text)[:max_length].strip()
    if not base:
        base = f"chapter-{_pad(index)}"
    return f"{base}.txt"


def parse_filename_ordinal(filename: str) -> Optional[int]:
    """Read the chapter ordinal from a "NNNN - Title.txt" filename."""
    match = _FILENAME_ORDINAL.match(filename)
    if not match:
        return None
    return int(match.group(1))
