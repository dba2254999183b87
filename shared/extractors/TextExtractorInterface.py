import asyncio
from abc import ABC, abstractmethod


class TextExtractorInterface(ABC):
    """Turns a file on disk into plain text for one or more extensions."""

    @abstractmethod
    def get_extensions(self) -> tuple[str, ...]:
        """
        Returns the lower-case extensions handled, with leading dot (e.g. (".pdf",)).
        """
        pass

    def supports(self, ext: str) -> bool:
        return ext.lower() in self.get_extensions()

    def _extract_sync(self, path: str) -> str:
        """
        Blocking extraction, run in a worker thread by do_extract().
        """
        raise NotImplementedError

    async def do_extract(self, path: str) -> str:
        """Extract the text of the file at `path`.

        Args:
            path (str): Local file path.

        Returns:
            str: The extracted text (may be empty, e.g. for scanned PDFs).
        """
        return await asyncio.to_thread(self._extract_sync, path)
