"""
Pydantic schemas for frameworks.

`ParsedFramework` is the canonical in-memory tree every import path is
normalised into. The `*Response` schemas serialise persisted frameworks.
"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, Field

# --- Enums ---

class HierarchyType(str, Enum):
    TWO_LEVEL = "two_level"
    THREE_LEVEL = "three_level"

# --- Canonical import tree ---

class HierarchyConfig(BaseModel):
    type: HierarchyType
    level1_name: str
    level2_name: str
    level3_name: Optional[str] = None

class Level3Item(BaseModel):
    title: str
    description: Optional[str] = None
    order_no: Optional[int] = None
    summary: Optional[str] = None
    questions: Optional[List[str]] = None
    evidence_examples: Optional[List[str]] = None
    metadata: Dict[str, Any] = {}

class Level2Item(BaseModel):
    title: str
    description: Optional[str] = None
    order_no: Optional[int] = None
    summary: Optional[str] = None
    questions: Optional[List[str]] = None
    evidence_examples: Optional[List[str]] = None
    metadata: Dict[str, Any] = {}
    items: List[Level3Item] = []

class Level1Item(BaseModel):
    title: str
    description: Optional[str] = None
    order_no: Optional[int] = None
    metadata: Dict[str, Any] = {}
    items: List[Level2Item] = []

class ParsedFramework(BaseModel):
    name: str
    description: Optional[str] = None
    version: str = "1.0.0"
    is_organizational: bool = False
    hierarchy: HierarchyConfig
    structure: List[Level1Item]

    def leaf_count(self) -> int:
        """Number of nodes progress is tracked against at the deepest level."""
        if self.hierarchy.type == HierarchyType.THREE_LEVEL:
            return sum(len(l2.items) for l1 in self.structure for l2 in l1.items)
        return sum(len(l1.items) for l1 in self.structure)

# --- Persisted structure ---

class Level3NodeResponse(BaseModel):
    id: UUID
    title: str
    description: Optional[str] = None
    summary: Optional[str] = None
    questions: Optional[List[str]] = None
    evidence_examples: Optional[List[str]] = None
    order_no: int
    metadata: Optional[Dict[str, Any]] = Field(
        default=None, validation_alias=AliasChoices("extra_metadata", "metadata")
    )

    class Config:
        from_attributes = True

class Level2NodeResponse(BaseModel):
    id: UUID
    title: str
    description: Optional[str] = None
    summary: Optional[str] = None
    questions: Optional[List[str]] = None
    evidence_examples: Optional[List[str]] = None
    order_no: int
    metadata: Optional[Dict[str, Any]] = Field(
        default=None, validation_alias=AliasChoices("extra_metadata", "metadata")
    )
    items: List[Level3NodeResponse] = []

    class Config:
        from_attributes = True

class Level1NodeResponse(BaseModel):
    id: UUID
    title: str
    description: Optional[str] = None
    order_no: int
    metadata: Optional[Dict[str, Any]] = Field(
        default=None, validation_alias=AliasChoices("extra_metadata", "metadata")
    )
    items: List[Level2NodeResponse] = []

    class Config:
        from_attributes = True

# --- Framework Schemas ---

class FrameworkBase(BaseModel):
    name: str
    description: Optional[str] = None
    version: str
    is_organizational: bool
    hierarchy_type: HierarchyType
    level_1_name: str
    level_2_name: str
    level_3_name: Optional[str] = None

class FrameworkSummaryResponse(FrameworkBase):
    id: UUID
    plugin_key: str
    created_at: Optional[datetime] = None
    level1_count: int = 0
    level2_count: int = 0
    level3_count: int = 0

    class Config:
        from_attributes = True

class FrameworkResponse(FrameworkBase):
    id: UUID
    plugin_key: str
    created_at: Optional[datetime] = None
    structure: List[Level1NodeResponse] = []

    class Config:
        from_attributes = True

# --- Import request/response ---

class ExcelImportRequest(BaseModel):
    """Rows already read from the two workbook sheets. Shapes are checked during ingestion."""
    info: Optional[Any] = None
    structure: Optional[Any] = None

class TemplateImportRequest(BaseModel):
    template_id: Optional[Any] = Field(default=None, alias="templateId")
    customize: Any = False
    # Edited template JSON when the user chose to customise
    customized_json: Optional[Any] = Field(default=None, alias="customizedJson")

    class Config:
        populate_by_name = True

class ImportResult(BaseModel):
    success: bool = True
    framework_id: UUID = Field(alias="frameworkId")
    items_created: int = Field(alias="itemsCreated")
    replaced: bool = False
    message: str

    class Config:
        populate_by_name = True

class TemplateSummary(BaseModel):
    id: str
    name: str
    description: str
    category: str
    tags: List[str] = []
    hierarchy_type: HierarchyType
    level1_count: int
    leaf_count: int

class TemplateDetail(TemplateSummary):
    framework: Dict[str, Any]
