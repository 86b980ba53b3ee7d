"""Tools package for decision file processing utilities."""

from tools.text_reader import FileValidator, decode_text, derive_title

__all__ = [
    "FileValidator",
    "decode_text",
    "derive_title",
]
