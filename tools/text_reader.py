"""Plain-text file helpers for decision ingestion.

Decodes uploaded bytes, derives display titles from filenames, and checks
filenames against the suggested extension allow-list.
"""

import re
from typing import Dict, List, Optional, Union
from loguru import logger

from clerk.error_handling import DocumentParsingError
from clerk.logging_config import log_tool_execution

_EXTENSION_RE = re.compile(r"\.[^/.]+$")

DEFAULT_ALLOWED_EXTENSIONS = [".txt", ".md"]


def derive_title(filename: str) -> str:
    """Strip the last dot-delimited extension from a filename.

    ``"State v. Doe.txt"`` becomes ``"State v. Doe"`` and
    ``"archive.tar.gz"`` becomes ``"archive.tar"``. A name that would become
    empty (such as ``".txt"``) is returned unchanged.
    """
    title = _EXTENSION_RE.sub("", filename)
    return title or filename


@log_tool_execution("text_decoder")
def decode_text(content: Union[bytes, str]) -> str:
    """Decode uploaded content as UTF-8 text, dropping a leading BOM.

    Raises:
        DocumentParsingError: If the bytes are not valid UTF-8
    """
    if isinstance(content, str):
        return content.lstrip("\ufeff")

    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise DocumentParsingError(f"File is not valid UTF-8 text: {e}") from e


class FileValidator:
    """Checks uploaded decision files against the suggested allow-list.

    Nothing here rejects a file: off-list extensions and empty files only
    produce warnings.
    """

    def __init__(self, allowed_extensions: Optional[List[str]] = None):
        """Initialize file validator.

        Args:
            allowed_extensions: Suggested file extensions, with leading dot
        """
        self.allowed_extensions = [
            ext.lower() for ext in (allowed_extensions or DEFAULT_ALLOWED_EXTENSIONS)
        ]

    @log_tool_execution("file_validator")
    def validate_file(self, filename: str, file_size: int) -> Dict[str, any]:
        """Validate an uploaded file.

        Args:
            filename: Name of the uploaded file
            file_size: Size of the decoded content in characters or bytes

        Returns:
            Dictionary with validation results:
                - warnings: List of validation warnings
                - file_extension: Lower-cased extension or None
        """
        warnings = []

        file_ext = None
        if '.' in filename:
            file_ext = '.' + filename.rsplit('.', 1)[1].lower()

        if not file_ext or file_ext not in self.allowed_extensions:
            warnings.append(
                f"Unexpected file type. Suggested types: {', '.join(self.allowed_extensions)}"
            )

        if file_size == 0:
            warnings.append("File is empty")

        if warnings:
            logger.info(
                f"File validation warnings",
                filename=filename,
                warnings=warnings
            )

        return {
            "warnings": warnings,
            "file_extension": file_ext,
        }
