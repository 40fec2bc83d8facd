from webrag.core.embedder import Embedder
from webrag.core.vector_store import VectorStore
from webrag.core.llm import LLMWrapper
from webrag.core.query_agent import QueryAgent

__all__ = ["Embedder", "VectorStore", "LLMWrapper", "QueryAgent"]
