"""
Retrieval Orchestrator

Runs the question-answering pipeline:
1. Fingerprint the query with its recent conversation turns
2. Return a cached answer when one exists
3. Short-circuit with an advisory when the vector store is unavailable
4. Embed the query and search for articles above the similarity threshold
5. Build the prompt from the retrieved articles and conversation history
6. Generate the answer and cache it

Every failure on the way is turned into a fixed, user-visible response; no
exception from a collaborator escapes answer().
"""

import time
import logging
from typing import List, Dict, Optional, Any, Sequence, Union

from ..cache.query_cache import QueryCache
from ..errors import EmbeddingError, GenerationError
from ..models import (
    Article,
    ConversationTurn,
    QueryResult,
    QueryStatus,
    RetrievedCandidate,
    VectorStoreState,
)

logger = logging.getLogger(__name__)

HistoryItem = Union[ConversationTurn, Dict[str, Any]]

DEGRADED_RESPONSE = (
    "I'm currently unable to access the news database, so I can't answer "
    "questions about recent news right now. Please try again later."
)
NO_RELEVANT_ARTICLES_NOTICE = (
    "I couldn't find any news articles relevant to your question."
)
GENERATION_FAILED_RESPONSE = (
    "I'm sorry, I couldn't generate an answer right now. "
    "Please try again in a moment."
)
EMBEDDING_FAILED_RESPONSE = (
    "I'm sorry, I couldn't process your question right now. "
    "Please try again in a moment."
)

GROUNDED_INSTRUCTIONS = """You are a helpful news assistant that provides accurate, informative responses based on the latest news articles.

IMPORTANT INSTRUCTIONS:
1. Answer using ONLY the information in the news articles below
2. Cite your sources by referencing the article numbers in brackets, e.g., [1], [2]
3. If the articles do not contain the answer, say so clearly
4. Be objective and factual, and prefer the most recent information
5. Keep responses conversational but informative"""

NO_DATA_INSTRUCTIONS = """You are a helpful news assistant. No news articles relevant to the user's question were found in the database.

IMPORTANT INSTRUCTIONS:
1. Clearly state that no relevant news articles were found
2. Do not invent news, events, dates or sources
3. Suggest rephrasing the question or asking about another topic
4. Keep the response short and friendly"""


def _turn_text(turn: HistoryItem) -> Dict[str, str]:
    if isinstance(turn, ConversationTurn):
        return {'role': turn.role, 'content': turn.content}
    return {'role': turn.get('role', 'user'), 'content': turn.get('content', '')}


class RetrievalOrchestrator:
    """
    Retrieval-augmented answering over the news vector store.

    The orchestrator holds no per-request state; shared state lives in the
    query cache and the vector store.
    """

    def __init__(
        self,
        embedding_service,
        vector_store,
        generation_service,
        query_cache: Optional[QueryCache] = None,
        vector_store_state: VectorStoreState = VectorStoreState.AVAILABLE,
        top_k: int = 5,
        similarity_threshold: float = 0.7,
        prompt_history_turns: int = 5
    ):
        """
        Initialize the orchestrator.

        Args:
            embedding_service: Provider exposing embed(text)
            vector_store: Store exposing search(vector, limit, score_threshold)
            generation_service: Provider exposing generate(prompt)
            query_cache: Optional answer cache
            vector_store_state: Availability probed at startup
            top_k: Maximum number of articles retrieved per query
            similarity_threshold: Minimum cosine similarity of a candidate
            prompt_history_turns: Conversation turns included in the prompt
        """
        self.embedding_service = embedding_service
        self.vector_store = vector_store
        self.generation_service = generation_service
        self.query_cache = query_cache
        self.vector_store_state = vector_store_state
        self.top_k = top_k
        self.similarity_threshold = similarity_threshold
        self.prompt_history_turns = prompt_history_turns

    def _retrieve(self, query_vector) -> List[RetrievedCandidate]:
        """
        Search the vector store and apply the relevance gate.

        Search failures are logged and reported as no candidates.
        """
        try:
            hits = self.vector_store.search(
                query_vector,
                limit=self.top_k,
                score_threshold=self.similarity_threshold
            )
        except Exception as e:
            logger.error(f"Vector search failed: {e}")
            return []

        candidates = []
        for hit in hits:
            score = float(hit['score'])
            if score < self.similarity_threshold:
                continue
            payload = dict(hit.get('payload') or {})
            payload.setdefault('id', hit['id'])
            candidates.append(RetrievedCandidate(Article.from_payload(payload), score))

        candidates.sort(key=lambda c: c.similarity_score, reverse=True)
        return candidates[:self.top_k]

    def _format_context(self, candidates: List[RetrievedCandidate]) -> str:
        """Format retrieved articles, most similar first, for the prompt."""
        parts = []
        for i, candidate in enumerate(candidates, 1):
            article = candidate.article
            parts.append(
                f"[{i}] Title: {article.title}\n"
                f"Content: {article.content}\n"
                f"Source: {article.source}\n"
                f"Published: {article.published_at}\n"
                f"---"
            )
        return "\n".join(parts)

    def _format_history(self, history: Sequence[HistoryItem]) -> str:
        if self.prompt_history_turns <= 0:
            return ""
        lines = []
        for turn in list(history)[-self.prompt_history_turns:]:
            fields = _turn_text(turn)
            lines.append(f"{fields['role'].capitalize()}: {fields['content']}")
        return "\n".join(lines)

    def build_prompt(
        self,
        question: str,
        candidates: List[RetrievedCandidate],
        history: Optional[Sequence[HistoryItem]] = None
    ) -> str:
        """
        Build the single instruction + context + history + question prompt.

        An empty candidate list produces the no-data prompt.
        """
        if candidates:
            instructions = GROUNDED_INSTRUCTIONS
            context_text = f"\n\nCONTEXT FROM RECENT NEWS ARTICLES:\n{self._format_context(candidates)}"
        else:
            instructions = NO_DATA_INSTRUCTIONS
            context_text = "\n\nCONTEXT: No relevant news articles found."

        history_text = self._format_history(history or [])
        if history_text:
            history_text = f"\n\nPREVIOUS CONVERSATION:\n{history_text}"

        return f"""{instructions}{context_text}{history_text}

QUESTION: {question}

ANSWER:"""

    def _answer_without_data(self, question, history, fingerprint) -> QueryResult:
        """Respond when no article passed the relevance gate."""
        try:
            generated = self.generation_service.generate(
                self.build_prompt(question, [], history)
            )
            response_text = f"{NO_RELEVANT_ARTICLES_NOTICE}\n\n{generated}"
        except GenerationError as e:
            logger.warning(f"Generation failed on the no-data path: {e}")
            response_text = NO_RELEVANT_ARTICLES_NOTICE

        return QueryResult(
            response_text=response_text,
            sources=[],
            from_cache=False,
            candidate_count=0,
            status=QueryStatus.NO_DATA,
            fingerprint=fingerprint
        )

    def answer(
        self,
        question: str,
        history: Optional[Sequence[HistoryItem]] = None
    ) -> QueryResult:
        """
        Answer a question from the news store.

        Args:
            question: User's question
            history: Conversation so far, oldest first (read only)

        Returns:
            QueryResult with the response text, the source articles and
            how the response was produced

        Raises:
            ValueError: If question is empty
        """
        if not question or not question.strip():
            raise ValueError("Question cannot be empty")

        start_time = time.time()
        history = list(history or [])

        # Step 1: Fingerprint and cache lookup
        fingerprint = ""
        if self.query_cache is not None:
            fingerprint = self.query_cache.fingerprint(question, history)
            cached = self.query_cache.lookup(fingerprint)
            if cached is not None:
                logger.info(f"Using cached response for {fingerprint[:8]}")
                return QueryResult(
                    response_text=cached.response_text,
                    sources=cached.sources,
                    from_cache=True,
                    candidate_count=len(cached.sources),
                    status=QueryStatus.CACHED,
                    fingerprint=fingerprint
                )

        # Step 2: Degraded mode
        if self.vector_store_state is not VectorStoreState.AVAILABLE:
            logger.info("Vector store unavailable, returning advisory response")
            return QueryResult(
                response_text=DEGRADED_RESPONSE,
                sources=[],
                from_cache=False,
                candidate_count=0,
                status=QueryStatus.DEGRADED,
                fingerprint=fingerprint
            )

        # Step 3: Embed the query
        try:
            query_vector = self.embedding_service.embed(question)
        except EmbeddingError as e:
            logger.error(f"Query embedding failed: {e}")
            return QueryResult(
                response_text=EMBEDDING_FAILED_RESPONSE,
                sources=[],
                from_cache=False,
                candidate_count=0,
                status=QueryStatus.EMBEDDING_FAILED,
                fingerprint=fingerprint
            )

        # Step 4: Similarity search
        candidates = self._retrieve(query_vector)
        if not candidates:
            logger.info("No articles above the similarity threshold")
            return self._answer_without_data(question, history, fingerprint)

        sources = [c.article for c in candidates]

        # Step 5: Generate
        prompt = self.build_prompt(question, candidates, history)
        try:
            response_text = self.generation_service.generate(prompt)
        except GenerationError as e:
            logger.error(f"Generation failed: {e}")
            return QueryResult(
                response_text=GENERATION_FAILED_RESPONSE,
                sources=sources,
                from_cache=False,
                candidate_count=len(candidates),
                status=QueryStatus.GENERATION_FAILED,
                fingerprint=fingerprint
            )

        # Step 6: Cache write (best effort)
        if self.query_cache is not None:
            self.query_cache.store_answer(fingerprint, response_text, sources)

        logger.info(
            f"Answered with {len(candidates)} articles in {time.time() - start_time:.2f}s"
        )
        return QueryResult(
            response_text=response_text,
            sources=sources,
            from_cache=False,
            candidate_count=len(candidates),
            status=QueryStatus.ANSWERED,
            fingerprint=fingerprint
        )
