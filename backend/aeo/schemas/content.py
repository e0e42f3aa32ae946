"""
Content Gate & Ingestion Schemas
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class ContentPayload(BaseModel):
    """One generated artifact submitted to the gates"""
    artifact: Dict[str, Any]
    text: str  # rendered text scanned for phrases and readability
    kind: str


class GateReport(BaseModel):
    """Per-gate findings; ``gate_failures`` names every failing gate"""
    structure_errors: List[str] = Field(default_factory=list)
    forbidden_hits: List[str] = Field(default_factory=list)
    readability: float = 0.0
    semantic_drift: Optional[Literal["pass", "fail"]] = None
    gate_failures: List[str] = Field(default_factory=list)


class GateResult(BaseModel):
    ok: bool
    report: GateReport


class ContentItemAccepted(BaseModel):
    id: str


class JobTriggerResponse(BaseModel):
    job_run_id: str
    job_type: str
    status: str
