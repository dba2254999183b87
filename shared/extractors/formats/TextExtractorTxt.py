import aiofiles

from shared.extractors.TextExtractorInterface import TextExtractorInterface


class TextExtractorTxt(TextExtractorInterface):
    def get_extensions(self) -> tuple[str, ...]:
        return (".txt",)

    async def do_extract(self, path: str) -> str:
        async with aiofiles.open(path, mode="r", encoding="utf-8", errors="replace") as f:
            return await f.read()
