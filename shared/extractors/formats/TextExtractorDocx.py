from docx import Document

from shared.extractors.TextExtractorInterface import TextExtractorInterface


class TextExtractorDocx(TextExtractorInterface):
    def get_extensions(self) -> tuple[str, ...]:
        return (".docx",)

    def _extract_sync(self, path: str) -> str:
        document = Document(path)
        # one paragraph per block so the chunker sees the document structure
        return "\n\n".join(p.text for p in document.paragraphs if p.text.strip())
