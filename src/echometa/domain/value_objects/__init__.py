"""Domain value objects."""

from echometa.domain.value_objects.name_normalization import (
    normalize_for_sorting,
    normalize_unicode_punctuation,
    remove_accents,
    remove_leading_articles,
)

__all__ = [
    "normalize_for_sorting",
    "normalize_unicode_punctuation",
    "remove_accents",
    "remove_leading_articles",
]
