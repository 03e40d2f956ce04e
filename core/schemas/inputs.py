"""
Proctor Core Input Schemas

This module defines Pydantic V2 models for:
- Raw perception observations (RawObservation)
- Pushed observation batches (ObservationBatchPayload)
- Session start requests (StartSessionPayload)
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


# =============================================================================
# Enums
# =============================================================================

class ObservationSource(str, Enum):
    """Independent perception signal sources."""
    FACE = "face"
    OBJECT = "object"


# =============================================================================
# Observation Models
# =============================================================================

class RawObservation(BaseModel):
    """
    Single labeled observation emitted by a perception model.

    Face observations describe one detected face each; `metric` carries the
    face's eye aspect ratio. Object observations carry the detector class name
    as `label`.
    """
    source: ObservationSource = Field(..., description="face or object")
    label: str = Field(..., min_length=1, description="Classifier output value")
    confidence: float = Field(..., ge=0.0, le=1.0, description="Classifier confidence")
    timestamp: float = Field(..., description="Observation time in epoch seconds")
    metric: Optional[float] = Field(
        None,
        ge=0.0,
        description="Per-face openness metric (eye aspect ratio); face observations only"
    )


# =============================================================================
# Request Payloads
# =============================================================================

class ObservationBatchPayload(BaseModel):
    """
    Observation batch pushed by the client running the perception models.
    The latest batch is consumed by the next pipeline tick.
    """
    session_id: str = Field(..., description="Active session identifier")
    observations: List[RawObservation] = Field(
        default_factory=list,
        description="Observations captured for one frame"
    )


class StartSessionPayload(BaseModel):
    """Request to begin a proctored session."""
    candidate_name: str = Field(..., min_length=1, description="Candidate display name")
    session_id: Optional[str] = Field(
        None,
        description="Caller-provided session identifier (generated when omitted)"
    )
