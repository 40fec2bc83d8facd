from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from webrag.core.query_agent import QueryAgent
from webrag.routers.deps import get_query_agent

router = APIRouter(tags=["query"])


class QueryRequest(BaseModel):
    question: str = ""


class QueryResponse(BaseModel):
    answer: str


@router.post("/query", response_model=QueryResponse)
def query(request: QueryRequest, agent: QueryAgent = Depends(get_query_agent)):
    """Answer a question from the analyzed web content."""
    if not request.question.strip():
        raise HTTPException(status_code=400, detail="Question is required")
    return QueryResponse(answer=agent.answer(request.question))
