# ABOUTME: Metadata package for the book records that flow through conversion and introspection.
# ABOUTME: Exports BookMetadata, TitleAuthor and the input parsing helpers.

from epuber.metadata.parsing import (
    blank_to_null,
    default_if_blank,
    normalize_for_comparison,
    parse_float,
    parse_key_value,
    parse_list,
)
from epuber.metadata.types import BookMetadata, TitleAuthor, quantize_rating

__all__ = [
    "BookMetadata",
    "TitleAuthor",
    "blank_to_null",
    "default_if_blank",
    "normalize_for_comparison",
    "parse_float",
    "parse_key_value",
    "parse_list",
    "quantize_rating",
]
