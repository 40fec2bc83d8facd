import logging
from typing import Any, Optional

from webrag.config import RETRIEVAL
from webrag.core.context_builder import NoContext, build_context
from webrag.core.vector_store import VectorStore

logger = logging.getLogger(__name__)

NO_CONTEXT_ANSWER = (
    "I don't have enough information to answer this question. "
    "Please analyze some web content first."
)
ERROR_ANSWER = "Sorry, I encountered an error while trying to answer your question."

PROMPT_TEMPLATE = """
You are an AI web analysis agent designed to answer questions based on extracted web content.

Context information is below:
---
{context}
---

Given the context information and no prior knowledge, answer the following question:
{question}

If you don't know the answer, just say "I don't have enough information to answer this question." Don't try to make up an answer.
Provide a detailed and informative response.
Format your answer in markdown.
"""


def build_prompt(context: str, question: str) -> str:
    return PROMPT_TEMPLATE.format(context=context, question=question)


class QueryAgent:
    """Answers questions from stored web content.

    retrieve -> build context -> complete. Every turn ends with an answer
    string: no matches give the fixed refusal without calling the LLM, and
    any failure gives a generic apology.
    """

    def __init__(self, vector_store: VectorStore, llm: Any, top_k: Optional[int] = None):
        self.vector_store = vector_store
        self.llm = llm
        self.top_k = RETRIEVAL["top_k"] if top_k is None else top_k

    def answer(self, question: str) -> str:
        try:
            logger.debug("[QueryAgent] Retrieving context for: %s", question[:100])
            matches = self.vector_store.query_content(question, self.top_k)

            outcome = build_context(matches)
            if isinstance(outcome, NoContext):
                logger.info("[QueryAgent] No stored content matched, refusing")
                return NO_CONTEXT_ANSWER

            logger.debug("[QueryAgent] Generating answer from %d sources", outcome.sources)
            return self.llm.complete(build_prompt(outcome.text, question))
        except Exception as e:
            logger.error("[QueryAgent] Error answering question: %s: %s", type(e).__name__, e)
            return ERROR_ANSWER
