import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from webrag.core.exceptions import CompletionFailed, ExtractionFailed
from webrag.core.models import PageContent
from webrag.core.vector_store import VectorStore
from webrag.ingestion.service import IngestionService
from webrag.ingestion.website import normalize_url
from webrag.routers.deps import get_ingestion_service, get_vector_store

logger = logging.getLogger(__name__)

router = APIRouter(tags=["ingestion"])


class SummarizeRequest(BaseModel):
    url: str = ""


class IndexedInfo(BaseModel):
    status: str
    chunks_stored: int
    facets_stored: int
    degraded_embeddings: int
    reason: Optional[str] = None


class SummarizeResponse(BaseModel):
    url: str
    title: str
    summary: str
    cleaned_text: str = Field(serialization_alias="cleanedText")
    indexed: IndexedInfo


class ContentRequest(BaseModel):
    url: str
    content: PageContent


@router.post("/summarize", response_model=SummarizeResponse, response_model_by_alias=True)
def summarize(request: SummarizeRequest, service: IngestionService = Depends(get_ingestion_service)):
    """Fetch a page, summarize it and index it for later questions."""
    try:
        url = normalize_url(request.url)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        result = service.summarize_url(url)
    except ExtractionFailed as e:
        raise HTTPException(status_code=422, detail=str(e))
    except CompletionFailed as e:
        logger.error("[Ingest] Summary generation failed for %s: %s", url, e)
        raise HTTPException(status_code=500, detail=f"Error generating summary: {e}")

    return SummarizeResponse(
        url=result.url,
        title=result.title,
        summary=result.summary,
        cleaned_text=result.cleaned_text,
        indexed=IndexedInfo(**result.indexed.as_dict()),
    )


@router.post("/ingest/content", response_model=IndexedInfo)
def ingest_content(request: ContentRequest, vector_store: VectorStore = Depends(get_vector_store)):
    """Index content that was already extracted elsewhere."""
    if not request.url.strip():
        raise HTTPException(status_code=400, detail="URL is required")
    result = vector_store.store_content(request.url.strip(), request.content)
    return IndexedInfo(**result.as_dict())
