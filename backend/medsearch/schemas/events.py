"""
Progress Event Schemas

Pydantic models for progress updates emitted while a search runs.
A host can forward them as Server-Sent Events or simply log them.
"""
from pydantic import BaseModel, Field
from typing import Literal, Optional
from enum import Enum


class ProgressStep(str, Enum):
    """All possible steps in the search pipeline."""
    REFINING = "refining"
    SEARCHING = "searching"
    DEDUPLICATING = "deduplicating"
    SCORING = "scoring"
    FILTERING = "filtering"
    ASSEMBLING = "assembling"
    COMPLETE = "complete"


class ProgressEvent(BaseModel):
    """Progress update during a search."""
    type: Literal["progress"] = "progress"
    step: ProgressStep
    message: str = Field(description="Human-readable status message")
    detail: Optional[str] = Field(default=None, description="Additional detail like 'Found 25 records'")
    progress_percent: int = Field(ge=0, le=100, description="Overall progress percentage")


STEP_CONFIG = {
    ProgressStep.REFINING: {"label": "Refining query", "progress": 5},
    ProgressStep.SEARCHING: {"label": "Searching sources", "progress": 20},
    ProgressStep.DEDUPLICATING: {"label": "Removing duplicates", "progress": 60},
    ProgressStep.SCORING: {"label": "Scoring records", "progress": 70},
    ProgressStep.FILTERING: {"label": "Applying filter tiers", "progress": 85},
    ProgressStep.ASSEMBLING: {"label": "Assembling results", "progress": 95},
    ProgressStep.COMPLETE: {"label": "Complete", "progress": 100},
}


def progress_event(step: ProgressStep, message: str, detail: Optional[str] = None) -> ProgressEvent:
    """Build a ProgressEvent with the step's configured percentage."""
    return ProgressEvent(
        step=step,
        message=message,
        detail=detail,
        progress_percent=STEP_CONFIG[step]["progress"],
    )
