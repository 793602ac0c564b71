"""
Dalil - Concierge Assistant
============================
Hosting-side orchestration around the ``RetrievalEngine``.

Architecture (OOP)
------------------
``ResponseGenerator``
    Protocol for anything that turns ``(history, items)`` into an answer.

``ConciergeResponder``
    Formats the retrieved items and recent history into a prompt and
    calls Gemini through LangChain.  An LLM failure is logged and
    answered with a fixed apology.

``ConciergeAssistant``
    Per-message flow:
        1. Lazily initialise the engine (single-flight).
        2. Embed the query (cached).
        3. Retrieve → bounded item list.
        4. No items → fixed "no information" message (no LLM call).
        5. Otherwise hand history + items to the responder.

Usage:
    assistant = ConciergeAssistant(engine, EmbeddingService(embedder), ConciergeResponder())
    answer = await assistant.answer("user-1", "show me beach clubs to chill")
"""

from __future__ import annotations

import time
from typing import Protocol, runtime_checkable

from dalil.config.prompt_templates import EMPTY_CONTEXT, EMPTY_HISTORY, ITEM_TEMPLATE, LLM_ERROR_RESPONSE, NO_RESULTS_RESPONSE, RESPONSE_PROMPT_TEMPLATE, SYSTEM_PROMPT
from dalil.config.settings import settings
from dalil.src.core.embeddings import EmbeddingService
from dalil.src.core.retrieval_engine import RetrievalEngine
from dalil.src.models.catalog import CatalogItem
from dalil.src.utils.logger import get_logger

logger = get_logger(__name__)

# ── Type aliases ───────────────────────────────────────────────────────
ChatMessage = dict[str, str]


@runtime_checkable
class ResponseGenerator(Protocol):
    """Turns conversation history plus retrieved items into a user-facing answer."""

    async def generate(self, history: list[ChatMessage], items: list[CatalogItem]) -> str: ...


# ══════════════════════════════════════════════════════════════════════
#  CONCIERGE RESPONDER
# ══════════════════════════════════════════════════════════════════════

class ConciergeResponder:
    """
    LLM-backed ``ResponseGenerator``.

    Parameters
    ----------
    llm
        Any LangChain chat model exposing ``ainvoke``.  Defaults to
        ``ChatGoogleGenerativeAI`` configured from settings.
    history_limit
        Number of prior messages included in the prompt.
    """

    __slots__ = ("_llm", "_history_limit")

    def __init__(self, llm: object | None = None, history_limit: int | None = None) -> None:
        self._llm = llm if llm is not None else self._init_llm()
        self._history_limit = history_limit or settings.HISTORY_LIMIT


    @staticmethod
    def _init_llm() -> object:
        """Initialise the Gemini LLM via LangChain."""
        from langchain_google_genai import ChatGoogleGenerativeAI

        llm = ChatGoogleGenerativeAI(model=settings.LLM_MODEL, temperature=settings.LLM_TEMPERATURE, google_api_key=settings.GOOGLE_API_KEY.get_secret_value())
        logger.info("LLM initialised: %s (temperature=%.1f)", settings.LLM_MODEL, settings.LLM_TEMPERATURE)
        return llm


    async def generate(self, history: list[ChatMessage], items: list[CatalogItem]) -> str:
        """
        The last ``user`` message in *history* is the question; earlier
        messages (up to ``history_limit``) are passed as context.
        """
        question, previous = self._split_question(history)
        prompt = RESPONSE_PROMPT_TEMPLATE.format(count=len(items), context=self.format_context(items), history=self.format_history(previous[-self._history_limit:]), question=question)

        t_llm = time.perf_counter()
        try:
            from langchain_core.messages import HumanMessage, SystemMessage

            messages = [SystemMessage(content=SYSTEM_PROMPT), HumanMessage(content=prompt)]
            response_obj = await self._llm.ainvoke(messages)  # type: ignore[union-attr]
            answer = response_obj.content if hasattr(response_obj, "content") else str(response_obj)
        except Exception:
            logger.exception("[RESPOND] LLM call failed.")
            return LLM_ERROR_RESPONSE

        logger.info("[RESPOND] LLM response: %.1fms (%d chars)", (time.perf_counter() - t_llm) * 1000, len(answer))
        return answer

    # ══════════════════════════════════════════════════════════════════
    #  PROMPT FORMATTING
    # ══════════════════════════════════════════════════════════════════

    @staticmethod
    def _split_question(history: list[ChatMessage]) -> tuple[str, list[ChatMessage]]:
        for idx in range(len(history) - 1, -1, -1):
            if history[idx].get("role") == "user":
                return history[idx].get("content", ""), history[:idx]
        return "", list(history)


    @staticmethod
    def format_context(items: list[CatalogItem]) -> str:
        """Numbered knowledge-base block, one entry per item."""
        if not items:
            return EMPTY_CONTEXT

        blocks: list[str] = []
        for i, item in enumerate(items, 1):
            details = [item.description, item.information]
            if item.timing:
                details.append(f"Timing: {item.timing}")
            if item.pricing:
                details.append(f"Pricing: {item.pricing}")
            if item.address:
                details.append(f"Address: {item.address}")
            if item.redirect_url:
                details.append(f"Booking: {item.redirect_url}")
            blocks.append(ITEM_TEMPLATE.format(index=i, name=item.name, category=item.category, subcategory=item.subcategory or "-", details="\n".join(d for d in details if d)))
        return "\n\n".join(blocks)


    @staticmethod
    def format_history(messages: list[ChatMessage]) -> str:
        """Format chat history into a readable conversation block."""
        if not messages:
            return EMPTY_HISTORY

        lines: list[str] = []
        for msg in messages:
            role_label = "User" if msg.get("role") == "user" else "Dalil"
            lines.append(f"{role_label}: {msg.get('content', '')}")
        return "\n".join(lines)


# ══════════════════════════════════════════════════════════════════════
#  CONCIERGE ASSISTANT
# ══════════════════════════════════════════════════════════════════════

class ConciergeAssistant:
    """
    Wires embedding, retrieval and response generation for one message.

    Parameters
    ----------
    engine
        The process-wide ``RetrievalEngine``.
    embeddings
        Cached query embedder.
    responder
        Any ``ResponseGenerator``.
    """

    __slots__ = ("_engine", "_embeddings", "_responder")

    def __init__(self, engine: RetrievalEngine, embeddings: EmbeddingService, responder: ResponseGenerator) -> None:
        self._engine = engine
        self._embeddings = embeddings
        self._responder = responder


    async def answer(self, user_id: str, query: str, history: list[ChatMessage] | None = None) -> str:
        t_start = time.perf_counter()

        if not self._engine.is_initialized() and not await self._engine.initialize():
            logger.warning("[ASSISTANT] Catalog unavailable — answering without retrieval.")
            return NO_RESULTS_RESPONSE

        embedding = await self._embeddings.embed(query)
        items = await self._engine.find_relevant(query, embedding, user_id)
        if not items:
            logger.info("[ASSISTANT] No items for '%s'.", query[:60])
            return NO_RESULTS_RESPONSE

        conversation = [*(history or []), {"role": "user", "content": query}]
        answer = await self._responder.generate(conversation, items)
        logger.info("[ASSISTANT] Answered in %.1fms with %d item(s).", (time.perf_counter() - t_start) * 1000, len(items))
        return answer
