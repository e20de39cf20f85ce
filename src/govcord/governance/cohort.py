"""
Cohort label normalisation.

Members describe their cohort in free text: "7", "07", "Class 7", "7班",
"七班", "十一班" or "Class Eleven". Every form normalises to the decimal
numeral without leading zeros ("7", "11"), which is what candidate codes
and administrator seats are keyed on.
"""

from __future__ import annotations

import re

from govcord.governance.errors import MalformedCohortError

_CHINESE_DIGITS = {
    "零": 0, "〇": 0, "一": 1, "二": 2, "两": 2, "三": 3, "四": 4,
    "五": 5, "六": 6, "七": 7, "八": 8, "九": 9,
}

_ENGLISH_UNITS = {
    "zero": 0, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
    "eleven": 11, "twelve": 12, "thirteen": 13, "fourteen": 14,
    "fifteen": 15, "sixteen": 16, "seventeen": 17, "eighteen": 18,
    "nineteen": 19,
}

_ENGLISH_TENS = {
    "twenty": 20, "thirty": 30, "forty": 40, "fifty": 50,
    "sixty": 60, "seventy": 70, "eighty": 80, "ninety": 90,
}

# Words that decorate a cohort label without changing its number.
_DECORATION = re.compile(r"(?i)\b(?:class|cohort|group|number|no)\b\.?|[班级組组第号#]")

_DIGITS = re.compile(r"\d+")


def _parse_chinese(text: str) -> int | None:
    """Parse a Chinese numeral between 0 and 99 ("七", "十一", "二十", "九十九")."""
    if not text or any(ch not in _CHINESE_DIGITS and ch != "十" for ch in text):
        return None
    if "十" not in text:
        if len(text) != 1:
            return None
        return _CHINESE_DIGITS[text]
    if text.count("十") != 1:
        return None
    tens_part, _, units_part = text.partition("十")
    if len(tens_part) > 1 or len(units_part) > 1:
        return None
    tens = _CHINESE_DIGITS[tens_part] if tens_part else 1
    units = _CHINESE_DIGITS[units_part] if units_part else 0
    if tens == 0:
        return None
    return tens * 10 + units


def _parse_english(text: str) -> int | None:
    """Parse an English number word between 0 and 99 ("seven", "twenty-one")."""
    words = [w for w in re.split(r"[\s\-]+", text.lower()) if w]
    if len(words) == 1:
        word = words[0]
        if word in _ENGLISH_UNITS:
            return _ENGLISH_UNITS[word]
        return _ENGLISH_TENS.get(word)
    if len(words) == 2 and words[0] in _ENGLISH_TENS:
        units = _ENGLISH_UNITS.get(words[1])
        if units is not None and 0 < units < 10:
            return _ENGLISH_TENS[words[0]] + units
    return None


def normalize_cohort(label: str | None) -> str:
    """Return the decimal numeral for a cohort label.

    Args:
        label: Free-text cohort label from a member profile.

    Returns:
        The cohort number as a string without leading zeros.

    Raises:
        MalformedCohortError: If no single cohort number can be read from the label.
    """
    if label is None:
        raise MalformedCohortError("No cohort is set on your profile.")

    stripped = _DECORATION.sub(" ", str(label)).strip()
    if not stripped:
        raise MalformedCohortError(f"Cannot read a cohort number from {label!r}.")

    numbers = _DIGITS.findall(stripped)
    if numbers:
        remainder = _DIGITS.sub(" ", stripped).strip()
        if len(numbers) != 1 or remainder:
            raise MalformedCohortError(f"Cannot read a cohort number from {label!r}.")
        value = int(numbers[0])
    else:
        compact = re.sub(r"\s+", "", stripped)
        value = _parse_chinese(compact)
        if value is None:
            value = _parse_english(stripped)
        if value is None:
            raise MalformedCohortError(f"Cannot read a cohort number from {label!r}.")

    if value <= 0:
        raise MalformedCohortError(f"Cohort numbers start at 1, got {label!r}.")
    return str(value)


def cohort_sort_key(cohort: str) -> tuple[int, str]:
    """Sort normalised cohorts numerically, keeping unexpected values last."""
    return (int(cohort), cohort) if cohort.isdigit() else (10**9, cohort)


def candidate_code(cohort: str, sequence: int) -> str:
    """Cohort numeral followed by the two-digit sequence ("7", 3 -> "703")."""
    return f"{cohort}{sequence:02d}"
