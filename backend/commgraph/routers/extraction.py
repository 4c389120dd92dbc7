"""Extraction execution routes."""

from fastapi import APIRouter, Depends, HTTPException, Path
from sqlalchemy.orm import Session

from commgraph.db.dependencies import get_db
from commgraph.extraction.errors import AllStrategiesFailed, CostLimitExceeded
from commgraph.schemas.common import ApiResponse
from commgraph.schemas.extraction import (
    BatchExtractionRequest,
    BatchExtractionRunResult,
    ExtractionRequest,
    ExtractionRunResult,
)
from commgraph.services.extraction import run_batch_extraction, run_extraction


router = APIRouter(prefix="/conversations/{conversation_id}")


@router.post("/extract", response_model=ApiResponse[ExtractionRunResult])
async def extract_conversation(
    payload: ExtractionRequest,
    conversation_id: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
) -> ApiResponse[ExtractionRunResult]:
    """Extract entities and relationships from one message and store them."""

    try:
        result = await run_extraction(db, conversation_id, payload.text, payload.options.to_options())
    except CostLimitExceeded as exc:
        raise HTTPException(status_code=429, detail=str(exc)) from exc
    except AllStrategiesFailed as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return ApiResponse(data=result)


@router.post("/extract/batch", response_model=ApiResponse[BatchExtractionRunResult])
async def extract_conversation_batch(
    payload: BatchExtractionRequest,
    conversation_id: str = Path(..., min_length=1),
    db: Session = Depends(get_db),
) -> ApiResponse[BatchExtractionRunResult]:
    messages = [message.to_message() for message in payload.messages]
    result = await run_batch_extraction(db, conversation_id, messages, payload.options.to_options())
    return ApiResponse(data=result)
