import os

from shared.extractors.TextExtractorInterface import TextExtractorInterface
from shared.extractors.formats.TextExtractorDoc import TextExtractorDoc
from shared.extractors.formats.TextExtractorDocx import TextExtractorDocx
from shared.extractors.formats.TextExtractorPdf import TextExtractorPdf
from shared.extractors.formats.TextExtractorTxt import TextExtractorTxt
from shared.extractors.formats.TextExtractorXlsx import TextExtractorXlsx
from shared.models.errors import UnsupportedFormatError


class TextExtractorRegistry:
    """Dispatches a file to its text extractor by lower-cased extension."""

    def __init__(self, extractors: list[TextExtractorInterface] | None = None):
        self.extractors: list[TextExtractorInterface] = extractors or [
            TextExtractorPdf(),
            TextExtractorDocx(),
            TextExtractorDoc(),
            TextExtractorTxt(),
            TextExtractorXlsx(),
        ]

    @staticmethod
    def get_extension(filename: str) -> str:
        return os.path.splitext(filename)[1].lower()

    def get_supported_extensions(self) -> list[str]:
        return [ext for extractor in self.extractors for ext in extractor.get_extensions()]

    def is_supported_extension(self, filename: str) -> bool:
        """Pure check on the filename, usable before any download."""
        ext = self.get_extension(filename)
        return any(extractor.supports(ext) for extractor in self.extractors)

    def get_extractor(self, file_path: str) -> TextExtractorInterface:
        """Return the extractor for `file_path`.

        Raises:
            UnsupportedFormatError: If no extractor handles the extension.
        """
        ext = self.get_extension(file_path)
        for extractor in self.extractors:
            if extractor.supports(ext):
                return extractor
        raise UnsupportedFormatError(f"Unsupported format: {ext or '(no extension)'}")
