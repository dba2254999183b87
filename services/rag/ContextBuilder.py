"""Assembles the retrieval context handed to the chat model."""

from typing import Literal

from pydantic import BaseModel

from services.rag.RetrievalStrategySelector import RetrievalPlan
from services.rag.SourceUrlGenerator import format_source_with_link
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import SimilarDocument
from shared.repositories.RepositoryInterfaces import DocumentVectorRepository

ContextStrategy = Literal["empty", "weak_match", "full_document", "comparison", "pointed"]

WEAK_MATCH_CHARS = 200
WEAK_MATCH_SOURCES = 3
PREVIEW_CHARS = 200
FULL_DOCUMENT_MAX_SECTIONS = 30
FULL_DOCUMENT_MAX_CHARS = 25_000

EMPTY_CONTEXT = "No hay documentos indexados todavía."


class AssembledContext(BaseModel):
    strategy: ContextStrategy
    text: str
    sources: list[str] = []
    truncated: bool = False


class ContextBuilder:
    def __init__(self, helper_config: HelperConfig, vector_repository: DocumentVectorRepository):
        self.logging = helper_config.get_logger()
        self._vector_repository = vector_repository

    async def do_build(self, plan: RetrievalPlan, results: list[SimilarDocument]) -> AssembledContext:
        """Pick the context strategy for the retrieved chunks and render it.

        Args:
            plan (RetrievalPlan): Intent and k chosen for the question.
            results (list[SimilarDocument]): Retrieved chunks, best first.

        Returns:
            AssembledContext: The rendered context and the strategy used.
        """
        if not results:
            return AssembledContext(strategy="empty", text=EMPTY_CONTEXT)

        if plan.intent == "full_document":
            context = await self._build_full_document(results[0])
        elif plan.intent == "comparison":
            context = self._build_comparison(results)
        else:
            context = self._build_pointed(results)

        if len(context.text.strip()) < WEAK_MATCH_CHARS:
            return self._build_weak_match(results)
        self.logging.debug(
            "Context strategy '%s' with %d chars from %d sources",
            context.strategy, len(context.text), len(context.sources),
        )
        return context

    ##########################################
    ############### STRATEGIES ###############
    ##########################################

    async def _build_full_document(self, top: SimilarDocument) -> AssembledContext:
        chunks = await self._vector_repository.get_all_chunks_by_source(top.source)
        if not chunks:
            return self._build_pointed([top])

        header = f"DOCUMENTO: {format_source_with_link(top.source, top.source_url)}"
        sections: list[str] = []
        truncated = False
        if len(chunks) <= FULL_DOCUMENT_MAX_SECTIONS:
            sections = [f"### Sección {c.chunk_index}\n{c.text}" for c in chunks]
        else:
            used_chars = 0
            for c in chunks:
                section = f"### Sección {c.chunk_index}\n{c.text}"
                if len(sections) >= FULL_DOCUMENT_MAX_SECTIONS or used_chars + len(section) > FULL_DOCUMENT_MAX_CHARS:
                    truncated = True
                    break
                sections.append(section)
                used_chars += len(section)

        text = header + "\n\n" + "\n\n".join(sections)
        if truncated:
            text += (
                f"\n\n[Nota: el documento tiene {len(chunks)} secciones; "
                f"se incluyen las primeras {len(sections)}. El contenido está truncado.]"
            )
        return AssembledContext(strategy="full_document", text=text, sources=[top.source], truncated=truncated)

    def _build_comparison(self, results: list[SimilarDocument]) -> AssembledContext:
        groups: dict[str, list[SimilarDocument]] = {}
        for doc in results:
            groups.setdefault(doc.source, []).append(doc)
        blocks = []
        for source, docs in groups.items():
            body = "\n\n".join(d.text for d in docs)
            blocks.append(f"## Documento: {format_source_with_link(source, docs[0].source_url)}\n\n{body}")
        return AssembledContext(strategy="comparison", text="\n\n---\n\n".join(blocks), sources=list(groups))

    def _build_pointed(self, results: list[SimilarDocument]) -> AssembledContext:
        items = [f"- {d.text} (fuente: {format_source_with_link(d.source, d.source_url)})" for d in results]
        sources = list(dict.fromkeys(d.source for d in results))
        return AssembledContext(strategy="pointed", text="\n\n".join(items), sources=sources)

    def _build_weak_match(self, results: list[SimilarDocument]) -> AssembledContext:
        top: dict[str, SimilarDocument] = {}
        for doc in results:
            if doc.source not in top:
                top[doc.source] = doc
            if len(top) >= WEAK_MATCH_SOURCES:
                break
        items = []
        for source, doc in top.items():
            preview = doc.text.strip().replace("\n", " ")
            if len(preview) > PREVIEW_CHARS:
                preview = preview[:PREVIEW_CHARS].rstrip() + "..."
            items.append(f"- {format_source_with_link(source, doc.source_url)}: \"{preview}\"")
        text = "DOCUMENTOS RELACIONADOS (coincidencia no exacta):\n" + "\n".join(items)
        return AssembledContext(strategy="weak_match", text=text, sources=list(top))
