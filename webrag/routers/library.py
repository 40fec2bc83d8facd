from typing import List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from webrag.core.exceptions import StorageWriteFailed
from webrag.core.vector_store import VectorStore
from webrag.routers.deps import get_vector_store

router = APIRouter(prefix="/library", tags=["library"])


class LibraryResponse(BaseModel):
    sources: List[str]


class SourceCount(BaseModel):
    url: str
    records: int


@router.get("", response_model=LibraryResponse)
def get_library(vector_store: VectorStore = Depends(get_vector_store)):
    """List every URL that has records in the index."""
    return LibraryResponse(sources=vector_store.list_sources())


@router.get("/count", response_model=SourceCount)
def count_source(url: str, vector_store: VectorStore = Depends(get_vector_store)):
    return SourceCount(url=url, records=vector_store.count_source(url))


@router.delete("")
def delete_source(url: str, vector_store: VectorStore = Depends(get_vector_store)):
    """Delete all records for a given URL."""
    try:
        vector_store.delete_source(url)
    except StorageWriteFailed as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"message": f"Deleted source: {url}"}
