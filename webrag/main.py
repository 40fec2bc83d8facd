import logging
import os
from contextlib import asynccontextmanager
from typing import Any, List, Optional

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from webrag.core.embedder import Embedder
from webrag.core.index import get_index
from webrag.core.llm import LLMWrapper
from webrag.core.query_agent import QueryAgent
from webrag.core.vector_store import VectorStore
from webrag.ingestion.analyzer import PageAnalyzer
from webrag.ingestion.base import ContentExtractor
from webrag.ingestion.service import IngestionService
from webrag.ingestion.website import WebsiteExtractor
from webrag.routers import ingest_router, library_router, query_router

# Load environment variables
load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def build_components(
    app: FastAPI,
    vector_store: Optional[VectorStore] = None,
    llm: Optional[Any] = None,
    extractor: Optional[ContentExtractor] = None,
) -> List[Any]:
    """Wire the shared components onto app.state, building any not given.

    Returns the HTTP-backed components built here, which the caller closes.
    """
    owned: List[Any] = []
    if vector_store is None:
        embedder = Embedder()
        owned.append(embedder)
        vector_store = VectorStore(index=get_index(), embedder=embedder)
    if llm is None:
        llm = LLMWrapper()
        owned.append(llm)
    if extractor is None:
        extractor = WebsiteExtractor()
        owned.append(extractor)

    app.state.vector_store = vector_store
    app.state.llm = llm
    app.state.query_agent = QueryAgent(vector_store, llm)
    app.state.ingestion_service = IngestionService(extractor, PageAnalyzer(llm), vector_store)
    return owned


def create_app(
    vector_store: Optional[VectorStore] = None,
    llm: Optional[Any] = None,
    extractor: Optional[ContentExtractor] = None,
) -> FastAPI:
    injected = vector_store is not None and llm is not None and extractor is not None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Build shared components once and make sure the index exists."""
        logger.info("Starting up Web RAG API...")
        owned = [] if injected else build_components(app, vector_store, llm, extractor)
        try:
            # IndexUnavailable here is fatal: nothing can be stored or queried
            app.state.vector_store.initialize()
            logger.info("VectorStore initialized")
            yield
        finally:
            for component in owned:
                component.close()
            logger.info("Shut down Web RAG API")

    app = FastAPI(
        title="Web RAG API",
        description="Summarize web pages and answer questions about them",
        version="1.0.0",
        lifespan=lifespan,
    )
    if injected:
        build_components(app, vector_store, llm, extractor)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,  # must be False when allow_origins=["*"]
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(ingest_router, prefix="/api")
    app.include_router(query_router, prefix="/api")
    app.include_router(library_router, prefix="/api")

    @app.get("/api/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
