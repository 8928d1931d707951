"""
Pydantic schemas for per-project implementation tracking and progress.
"""
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .framework_schemas import FrameworkBase

# --- Enums ---

class StatusEnum(str, Enum):
    """
    Implementation status, in display order. This is not a transition graph:
    any status may follow any other.
    """
    NOT_STARTED = "Not started"
    DRAFT = "Draft"
    IN_PROGRESS = "In progress"
    AWAITING_REVIEW = "Awaiting review"
    AWAITING_APPROVAL = "Awaiting approval"
    IMPLEMENTED = "Implemented"
    AUDITED = "Audited"
    NEEDS_REWORK = "Needs rework"

COMPLETED_STATUSES = (StatusEnum.IMPLEMENTED.value, StatusEnum.AUDITED.value)

# --- Implementation Schemas ---

class ImplementationUpdate(BaseModel):
    status: Optional[StatusEnum] = None
    owner: Optional[str] = None
    reviewer: Optional[str] = None
    approver: Optional[str] = None
    due_date: Optional[date] = None
    implementation_details: Optional[str] = None
    evidence_links: Optional[List[Dict[str, Any]]] = None
    feedback_links: Optional[List[Dict[str, Any]]] = None
    auditor_feedback: Optional[str] = None
    risks_to_add: Optional[List[str]] = None
    risks_to_remove: Optional[List[str]] = None

class ImplementationState(BaseModel):
    id: UUID
    level: int
    status: StatusEnum
    owner: Optional[str] = None
    reviewer: Optional[str] = None
    approver: Optional[str] = None
    due_date: Optional[date] = None
    implementation_details: Optional[str] = None
    evidence_links: List[Dict[str, Any]] = []
    feedback_links: List[Dict[str, Any]] = []
    auditor_feedback: Optional[str] = None
    linked_risks: List[str] = []
    updated_at: Optional[datetime] = None

class ProjectLevel3Node(BaseModel):
    id: UUID
    title: str
    description: Optional[str] = None
    summary: Optional[str] = None
    questions: Optional[List[str]] = None
    evidence_examples: Optional[List[str]] = None
    order_no: int
    implementation: Optional[ImplementationState] = None

class ProjectLevel2Node(ProjectLevel3Node):
    items: List[ProjectLevel3Node] = []

class ProjectLevel1Node(BaseModel):
    id: UUID
    title: str
    description: Optional[str] = None
    order_no: int
    items: List[ProjectLevel2Node] = []

class ProjectFrameworkResponse(FrameworkBase):
    project_framework_id: UUID = Field(alias="projectFrameworkId")
    framework_id: UUID = Field(alias="frameworkId")
    project_id: UUID = Field(alias="projectId")
    structure: List[ProjectLevel1Node] = []

    class Config:
        populate_by_name = True

# --- Progress Schemas ---

class ProgressBucket(BaseModel):
    total: int = 0
    completed: int = 0
    assigned: int = 0
    percentage: int = 0

class FrameworkProgress(BaseModel):
    level2: ProgressBucket
    level3: Optional[ProgressBucket] = None
    overall: ProgressBucket

class FrameworkProgressEntry(BaseModel):
    framework_id: UUID = Field(alias="frameworkId")
    project_framework_id: UUID = Field(alias="projectFrameworkId")
    name: str
    hierarchy_type: str
    progress: FrameworkProgress

    class Config:
        populate_by_name = True
