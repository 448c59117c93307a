"""
BugSage - Log Analysis API Routes
=================================

FastAPI endpoints for log analysis and analysis history.
"""

from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Response
import uuid

from src.config import get_settings, Settings
from src.api.auth import AuthenticatedUser, get_current_user
from src.api.schemas import (
    AnalysisHistoryItem,
    AnalyzeRequest,
    AnalyzeResponse,
    HistoryListResponse,
    ParsedLog,
    ParseRequest,
    ParseResponse,
    SaveAnalysisRequest,
    SortField,
    SortOrder,
    UpdateAnalysisRequest,
)
from src.core.errors import PersistenceError
from src.core.history_query import export_history_csv, query_history
from src.core.history_store import BaseHistoryStore, get_history_store
from src.core.llm_analyzer import BaseLLMAnalyzer, get_llm_analyzer
from src.core.log_classifier import classify_log
from src.core.prompt_builder import build_analysis_prompt
from shared.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["log-analysis"])


def _validate_logs(logs: str, settings: Settings) -> None:
    if not logs.strip():
        raise HTTPException(status_code=400, detail="No logs provided")
    if len(logs) > settings.max_log_chars:
        raise HTTPException(
            status_code=413,
            detail=f"Logs exceed the {settings.max_log_chars} character limit"
        )


# =============================================================================
# ANALYSIS ENDPOINTS
# =============================================================================

@router.post("/parse", response_model=ParseResponse)
async def parse_logs(
    request: ParseRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    settings: Settings = Depends(get_settings)
):
    """
    Classify a log without calling the language model.

    Returns the extracted facts and the document that would be sent
    for analysis.
    """
    _validate_logs(request.logs, settings)

    record, structured_prompt = classify_log(request.logs)

    return ParseResponse(
        parsed=ParsedLog.model_validate(record),
        structured_prompt=structured_prompt
    )


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze_logs(
    request: AnalyzeRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
    analyzer: BaseLLMAnalyzer = Depends(get_llm_analyzer),
    store: BaseHistoryStore = Depends(get_history_store)
):
    """
    Analyze a log with the language model.

    The log is classified, combined with the caller's context hints and
    sent to the configured provider. With ``save`` set, the result is
    also written to the caller's history; a failed save is reported in
    the response without discarding the analysis.
    """
    _validate_logs(request.logs, settings)

    prompt = build_analysis_prompt(request.logs, request.context)

    logger.info(
        "Analyzing log",
        extra={
            "log_chars": len(request.logs),
            "error_type": prompt.record.error_type,
            "framework": prompt.record.framework,
            "language": prompt.record.language,
            "provider": analyzer.provider.value
        }
    )

    analysis = await analyzer.analyze(prompt)

    response = AnalyzeResponse(
        analysis_id=str(uuid.uuid4()),
        analysis=analysis,
        parsed=ParsedLog.model_validate(prompt.record),
        structured_prompt=prompt.structured_log,
        provider=analyzer.provider.value
    )

    if request.save:
        try:
            item = await store.save(
                user_id=user.user_id,
                logs=request.logs,
                context=request.context,
                analysis=analysis,
                token=user.token
            )
            response.saved = True
            response.history_id = item.id
        except PersistenceError as e:
            logger.error(f"Analysis {response.analysis_id} not saved: {e.message}")
            response.save_error = e.message

    return response


# =============================================================================
# HISTORY ENDPOINTS
# =============================================================================

@router.get("/history", response_model=HistoryListResponse)
async def list_history(
    search: Optional[str] = Query(default=None, max_length=500),
    sort_by: SortField = Query(default=SortField.DATE),
    order: SortOrder = Query(default=SortOrder.DESC),
    user: AuthenticatedUser = Depends(get_current_user),
    store: BaseHistoryStore = Depends(get_history_store)
):
    """List the caller's saved analyses, filtered and sorted."""
    items = await store.list_items(user.user_id, user.token)
    items = query_history(items, search=search, sort_by=sort_by, order=order)

    return HistoryListResponse(items=items, total=len(items))


@router.get("/history/export")
async def export_history(
    search: Optional[str] = Query(default=None, max_length=500),
    sort_by: SortField = Query(default=SortField.DATE),
    order: SortOrder = Query(default=SortOrder.DESC),
    user: AuthenticatedUser = Depends(get_current_user),
    store: BaseHistoryStore = Depends(get_history_store)
):
    """Download the caller's saved analyses as CSV."""
    items = await store.list_items(user.user_id, user.token)
    items = query_history(items, search=search, sort_by=sort_by, order=order)

    logger.info(f"Exporting {len(items)} analyses", extra={"item_count": len(items)})

    return Response(
        content=export_history_csv(items),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="analysis-history.csv"'}
    )


@router.post("/history", response_model=AnalysisHistoryItem, status_code=201)
async def save_history_item(
    request: SaveAnalysisRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    store: BaseHistoryStore = Depends(get_history_store)
):
    """Save an analysis to the caller's history."""
    return await store.save(
        user_id=user.user_id,
        logs=request.logs,
        context=request.context,
        analysis=request.analysis,
        token=user.token
    )


@router.patch("/history/{item_id}", response_model=AnalysisHistoryItem)
async def update_history_item(
    item_id: str,
    request: UpdateAnalysisRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    store: BaseHistoryStore = Depends(get_history_store)
):
    """Replace the analysis text of a saved item."""
    return await store.update_analysis(item_id, request.analysis, user.user_id, user.token)


@router.delete("/history/{item_id}", status_code=204)
async def delete_history_item(
    item_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    store: BaseHistoryStore = Depends(get_history_store)
):
    """Delete a saved item."""
    await store.delete(item_id, user.user_id, user.token)
    return Response(status_code=204)
