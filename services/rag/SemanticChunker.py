"""Structure-aware text chunker.

Packs blank-line separated paragraphs into chunks of at most ``max_size``
characters. Paragraphs that do not fit on their own are split into sentences,
and sentences that still do not fit are force-split at a preceding space (or
hard-cut when no good space exists). Every chunk after the first starts with
a word-aligned tail of the previous chunk so neighbouring chunks share context.
"""

import re

from shared.helper.HelperConfig import HelperConfig

DEFAULT_MAX_SIZE = 1800
DEFAULT_OVERLAP_SIZE = 400
MIN_CHUNK_SIZE = 50

PARAGRAPH_SEP = "\n\n"
SENTENCE_SEP = " "

_PARAGRAPH_SPLIT = re.compile(r"\n\n+")
_SENTENCE = re.compile(r"[^.!?]+[.!?]*|[.!?]+")


class SemanticChunker:
    def __init__(self, helper_config: HelperConfig | None = None):
        if helper_config is not None:
            self.max_size = helper_config.get_int_val("CHUNK_MAX_SIZE", default=DEFAULT_MAX_SIZE, minimum=1)
            self.overlap_size = helper_config.get_int_val("CHUNK_OVERLAP_SIZE", default=DEFAULT_OVERLAP_SIZE, minimum=0)
        else:
            self.max_size = DEFAULT_MAX_SIZE
            self.overlap_size = DEFAULT_OVERLAP_SIZE

    ##########################################
    ################# PUBLIC #################
    ##########################################

    def chunk(self, text: str, max_size: int | None = None, overlap_size: int | None = None) -> list[str]:
        """Split `text` into ordered, overlapping chunks.

        Args:
            text (str): The extracted document text.
            max_size (int | None): Maximum chunk length; defaults to CHUNK_MAX_SIZE.
            overlap_size (int | None): Length of the tail carried into the next chunk;
                defaults to CHUNK_OVERLAP_SIZE.

        Returns:
            list[str]: Chunks of at least 50 characters, in document order.
        """
        max_size = max_size or self.max_size
        overlap_size = self.overlap_size if overlap_size is None else overlap_size
        if max_size <= 0:
            raise ValueError("max_size must be positive")

        normalized = text.replace("\r\n", "\n").replace("\r", "\n")
        paragraphs = [p.strip() for p in _PARAGRAPH_SPLIT.split(normalized) if p.strip()]

        chunks: list[str] = []
        current = ""
        has_body = False
        for unit, sep in self._iter_units(paragraphs, max_size, overlap_size):
            if has_body:
                candidate = f"{current}{sep}{unit}"
                if len(candidate) <= max_size:
                    current = candidate
                    continue
                chunks.append(current.strip())
            seed = self._get_last_n_chars(chunks[-1], overlap_size) if chunks else ""
            current = self._with_overlap(seed, unit, sep, max_size)
            has_body = True

        if has_body and current.strip():
            chunks.append(current.strip())

        return [c for c in chunks if len(c) >= MIN_CHUNK_SIZE]

    ##########################################
    ################ HELPERS #################
    ##########################################

    def _iter_units(self, paragraphs: list[str], max_size: int, overlap_size: int):
        """Yield (unit, separator) pairs, every unit at most max_size long.

        The separator is the text that joins the unit to what precedes it in
        the same chunk: a blank line before a paragraph, a space inside one.
        """
        # leave room for a little overlap in front of forced pieces
        budget = max(1, max_size - min(overlap_size, max_size // 2) - 1)
        for paragraph in paragraphs:
            if len(paragraph) <= max_size:
                yield paragraph, PARAGRAPH_SEP
                continue
            first = True
            for sentence in self._split_sentences(paragraph):
                pieces = [sentence] if len(sentence) <= max_size else self._force_split(sentence, budget)
                for piece in pieces:
                    yield piece, PARAGRAPH_SEP if first else SENTENCE_SEP
                    first = False

    @staticmethod
    def _split_sentences(paragraph: str) -> list[str]:
        return [s.strip() for s in _SENTENCE.findall(paragraph) if s.strip()]

    @staticmethod
    def _force_split(text: str, budget: int) -> list[str]:
        """Cut an oversized sentence at the last space before `budget`.

        The space must fall in the last 30% of the window, otherwise the
        window is hard-cut.
        """
        pieces: list[str] = []
        start = 0
        while start < len(text):
            end = start + budget
            if end >= len(text):
                pieces.append(text[start:].strip())
                break
            last_space = text.rfind(" ", start, end + 1)
            if last_space > start + budget * 0.7:
                end = last_space
            pieces.append(text[start:end].strip())
            start = end
        return [p for p in pieces if p]

    @staticmethod
    def _get_last_n_chars(text: str, n: int) -> str:
        """Return the last `n` characters of `text`, starting at a word when possible."""
        if n <= 0:
            return ""
        if len(text) <= n:
            return text
        tail = text[-n:]
        first_space = tail.find(" ")
        if 0 < first_space < n * 0.3:
            return tail[first_space + 1:]
        return tail

    def _with_overlap(self, seed: str, body: str, sep: str, max_size: int) -> str:
        """Prefix `body` with as much of `seed` as fits within max_size."""
        room = max_size - len(body) - len(sep)
        if not seed or room <= 0:
            return body
        if len(seed) > room:
            seed = self._get_last_n_chars(seed, room)
        seed = seed.strip()
        return f"{seed}{sep}{body}" if seed else body
