from pypdf import PdfReader

from shared.extractors.TextExtractorInterface import TextExtractorInterface


class TextExtractorPdf(TextExtractorInterface):
    def get_extensions(self) -> tuple[str, ...]:
        return (".pdf",)

    def _extract_sync(self, path: str) -> str:
        reader = PdfReader(path)
        pages = [page.extract_text() or "" for page in reader.pages]
        return "\n\n".join(pages)
