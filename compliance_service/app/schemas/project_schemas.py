"""
Pydantic schemas for host projects and project-framework associations.
"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .framework_schemas import FrameworkResponse
from .implementation_schemas import FrameworkProgress

# --- Project Schemas ---

class ProjectCreate(BaseModel):
    project_title: str
    is_organizational: bool = False
    system_frameworks: List[str] = []

class ProjectResponse(BaseModel):
    id: UUID
    project_title: str
    is_organizational: bool
    created_at: Optional[datetime] = None
    system_frameworks: List[str] = []

class SystemFrameworkLink(BaseModel):
    framework_key: str

# --- Association Schemas ---

class AssociationRequest(BaseModel):
    framework_id: UUID = Field(alias="frameworkId")
    project_id: UUID = Field(alias="projectId")

    class Config:
        populate_by_name = True

class AttachResponse(BaseModel):
    success: bool = True
    project_framework_id: UUID = Field(alias="projectFrameworkId")
    level2_count: int = Field(alias="level2Count")
    level3_count: int = Field(alias="level3Count")
    already_attached: bool = Field(default=False, alias="alreadyAttached")
    message: str

    class Config:
        populate_by_name = True

class DetachResponse(BaseModel):
    success: bool = True
    removed: bool
    message: str

class ProjectFrameworkEntry(BaseModel):
    project_framework_id: UUID
    framework_id: UUID
    added_at: Optional[datetime] = None
    name: str
    description: Optional[str] = None
    is_organizational: bool
    hierarchy_type: str
    level_1_name: str
    level_2_name: str
    level_3_name: Optional[str] = None

class LinkedProject(BaseModel):
    project_framework_id: UUID
    project_id: UUID
    added_at: Optional[datetime] = None
    project_title: str
    is_organizational: bool
    progress: FrameworkProgress

# --- Framework detail ---

class FrameworkDetailResponse(FrameworkResponse):
    linked_projects: List[LinkedProject] = Field(default=[], alias="linkedProjects")

    class Config:
        from_attributes = True
        populate_by_name = True
