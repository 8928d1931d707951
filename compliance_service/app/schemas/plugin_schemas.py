"""
Pydantic schemas for the framework plugin registry and its lifecycle.
"""
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class PluginResponse(BaseModel):
    key: str
    name: str
    description: str
    version: str
    author: str
    allows_import: bool
    template_id: Optional[str] = None

class PluginLifecycleResponse(BaseModel):
    success: bool = True
    message: str
    framework_id: Optional[UUID] = Field(default=None, alias="frameworkId")
    completed_at: datetime = Field(alias="completedAt")

    class Config:
        populate_by_name = True
