import asyncio

from shared.extractors.TextExtractorInterface import TextExtractorInterface


class TextExtractorDoc(TextExtractorInterface):
    """Legacy Word files, read through the `antiword` command line tool."""

    command = "antiword"

    def get_extensions(self) -> tuple[str, ...]:
        return (".doc",)

    async def do_extract(self, path: str) -> str:
        try:
            process = await asyncio.create_subprocess_exec(
                self.command, path,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError:
            raise RuntimeError(f"'{self.command}' is not installed (e.g. apt-get install antiword).")
        stdout, stderr = await process.communicate()
        if process.returncode != 0:
            raise RuntimeError(
                "Error extracting text from .doc file: %s" % stderr.decode("utf-8", errors="replace").strip()
            )
        return stdout.decode("utf-8", errors="replace")
