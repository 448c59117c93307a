"""
BugSage - Log Analysis API Schemas
==================================

Pydantic models for the analysis and history API.
"""

from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from enum import Enum


class SortField(str, Enum):
    """Fields the analysis history can be sorted by."""
    DATE = "date"
    CONTEXT = "context"


class SortOrder(str, Enum):
    """Sort direction."""
    ASC = "asc"
    DESC = "desc"


class AnalysisContext(BaseModel):
    """Technology hints supplied with a log."""

    frontend: str = Field(
        default="",
        description="Frontend framework (react, vue, angular, nextjs or free text)"
    )
    backend: str = Field(
        default="",
        description="Backend technology (nodejs, python, java, dotnet or free text)"
    )
    platform: str = Field(
        default="",
        description="Hosting platform (aws, gcp, azure, vercel or free text)"
    )

    def has_hints(self) -> bool:
        return bool(self.frontend or self.backend or self.platform)


class ParsedLog(BaseModel):
    """Facts extracted from a log by the classifier."""

    model_config = ConfigDict(from_attributes=True)

    error_type: Optional[str] = None
    error_message: Optional[str] = None
    stack_trace: list[str] = Field(default_factory=list)
    file_paths: list[str] = Field(default_factory=list)
    line_numbers: list[int] = Field(default_factory=list)
    framework: Optional[str] = None
    language: Optional[str] = None
    environment: Optional[str] = None
    timestamp: Optional[str] = None


class ParseRequest(BaseModel):
    """Request to classify a log without analysing it."""

    logs: str = Field(
        ...,
        description="Raw log text"
    )


class ParseResponse(BaseModel):
    """Classifier output for a log."""

    parsed: ParsedLog = Field(
        ...,
        description="Extracted facts"
    )
    structured_prompt: str = Field(
        ...,
        description="Markdown document built from the facts and the raw log"
    )


class AnalyzeRequest(BaseModel):
    """Request to analyse a log."""

    logs: str = Field(
        ...,
        description="Raw log text"
    )
    context: AnalysisContext = Field(
        default_factory=AnalysisContext,
        description="Optional technology hints"
    )
    save: bool = Field(
        default=False,
        description="Save the analysis to the caller's history"
    )


class AnalyzeResponse(BaseModel):
    """Result of a log analysis."""

    analysis_id: str = Field(
        ...,
        description="Unique analysis identifier"
    )
    analysis: str = Field(
        ...,
        description="Markdown root-cause analysis from the language model"
    )
    parsed: ParsedLog = Field(
        ...,
        description="Facts extracted from the log"
    )
    structured_prompt: str = Field(
        ...,
        description="Document sent to the language model"
    )
    provider: str = Field(
        ...,
        description="Text-generation provider used"
    )
    analyzed_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the analysis was performed"
    )
    saved: bool = Field(
        default=False,
        description="Whether the analysis was saved to history"
    )
    history_id: Optional[str] = Field(
        None,
        description="ID of the saved history item"
    )
    save_error: Optional[str] = Field(
        None,
        description="Why saving failed, when it was requested and failed"
    )


class AnalysisHistoryItem(BaseModel):
    """A saved analysis."""

    id: str = Field(..., description="Item ID, assigned by the store")
    user_id: str = Field(..., description="Owner of the analysis")
    logs: str = Field(..., description="Raw log text")
    context: AnalysisContext = Field(default_factory=AnalysisContext)
    analysis: str = Field(..., description="Markdown analysis")
    created_at: datetime = Field(..., description="When the item was saved")


class SaveAnalysisRequest(BaseModel):
    """Request to save an analysis to history."""

    logs: str = Field(..., min_length=1)
    context: AnalysisContext = Field(default_factory=AnalysisContext)
    analysis: str = Field(..., min_length=1)


class UpdateAnalysisRequest(BaseModel):
    """Request to replace the text of a saved analysis."""

    analysis: str = Field(..., min_length=1)


class HistoryListResponse(BaseModel):
    """A user's saved analyses after search and sort."""

    items: list[AnalysisHistoryItem] = Field(default_factory=list)
    total: int = Field(..., description="Number of items returned")
