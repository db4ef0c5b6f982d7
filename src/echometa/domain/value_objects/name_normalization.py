"""Name normalization for sorting and fuzzy matching.

Hey future me - this is THE normalization used both for alphabetical sorting and for
confidence scoring. Keep them identical! If scoring normalizes differently than sorting,
"Los Bunkers" sorts under B but scores against "los bunkers" and you get weird matches.

Examples:
    >>> normalize_for_sorting("The Beatles")
    'beatles'
    >>> normalize_for_sorting("Café Tacvba")
    'cafe tacvba'
    >>> normalize_for_sorting("Los Bunkers")
    'bunkers'
    >>> normalize_for_sorting("blink‐182")
    'blink-182'
"""

import re
import unicodedata

# Hey future me - these patterns run IN SEQUENCE, each on the output of the previous one.
# So "The A Team" loses both "The" and "A". That's the sorting behaviour users already
# see in the library, don't "fix" it to a single strip.
LEADING_ARTICLES: tuple[re.Pattern[str], ...] = tuple(
    re.compile(rf"^{article}\s+", re.IGNORECASE)
    for article in ("the", "a", "an", "el", "la", "los", "las", "un", "una")
)

_HYPHENS = re.compile("[\u2010-\u2015\u2212\ufe58\ufe63\uff0d]")
_SPACES = re.compile("[\u00a0\u2000-\u200a\u202f\u205f\u3000]")
_SINGLE_QUOTES = re.compile("[\u2018\u2019\u201a\u201b\u2032\u2035]")
_DOUBLE_QUOTES = re.compile("[\u201c\u201d\u201e\u201f\u2033\u2036]")
_ZERO_WIDTH = re.compile("[\u200b-\u200d\ufeff]")
_COMBINING_MARKS = re.compile("[\u0300-\u036f]")


def normalize_unicode_punctuation(value: str) -> str:
    """Fold look-alike Unicode punctuation to ASCII.

    "blink‐182" with a Unicode hyphen and "blink-182" must compare equal.
    """
    value = _HYPHENS.sub("-", value)
    value = _SPACES.sub(" ", value)
    value = _SINGLE_QUOTES.sub("'", value)
    value = _DOUBLE_QUOTES.sub('"', value)
    value = value.replace("\u2026", "...")
    return _ZERO_WIDTH.sub("", value)


def remove_accents(value: str) -> str:
    """'Café' -> 'Cafe', 'Ñoño' -> 'Nono'."""
    return _COMBINING_MARKS.sub("", unicodedata.normalize("NFD", value))


def remove_leading_articles(value: str) -> str:
    result = value.strip()
    for article in LEADING_ARTICLES:
        result = article.sub("", result)
    return result


def normalize_for_sorting(value: str | None) -> str:
    """Normalize a name for alphabetical sorting and matching.

    Folds punctuation, strips leading English/Spanish articles, strips
    diacritics and lowercases. None and "" both yield "".
    """
    if not value:
        return ""

    normalized = normalize_unicode_punctuation(value.strip())
    return remove_accents(remove_leading_articles(normalized)).lower()
