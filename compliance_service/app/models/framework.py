"""
Data models for framework definitions: the Framework and its two- or
three-level structure.

These rows are the tenant's "master list" of compliance requirements and are
not tied to any project. Per-project tracking lives in `implementation.py`.
"""
import uuid
from sqlalchemy import (
    Column, Integer, String, Text, DateTime, Boolean, JSON, ForeignKey, UniqueConstraint
)
from sqlalchemy.orm import relationship

from .base import Base, UUIDChar, utcnow

TWO_LEVEL = "two_level"
THREE_LEVEL = "three_level"


class Framework(Base):
    """
    A compliance framework owned by one tenant, e.g. 'DORA' or an imported
    in-house control catalogue. `hierarchy_type` decides whether Level 2 or
    Level 3 nodes are the leaves.
    """
    __tablename__ = 'frameworks'

    id = Column(UUIDChar, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(String, nullable=False, index=True)
    # Key of the plugin that owns this framework ('custom-framework-import', 'dora', ...)
    plugin_key = Column(String, nullable=False, index=True)

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    version = Column(String(50), nullable=False, default="1.0.0")
    is_organizational = Column(Boolean, nullable=False, default=False)

    hierarchy_type = Column(String(50), nullable=False, default=TWO_LEVEL)
    level_1_name = Column(String(100), nullable=False, default="Category")
    level_2_name = Column(String(100), nullable=False, default="Control")
    level_3_name = Column(String(100), nullable=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    structure = relationship(
        "Level1Node",
        back_populates="framework",
        cascade="all, delete-orphan",
        order_by="[Level1Node.order_no, Level1Node.position]",
    )
    project_links = relationship(
        "ProjectFrameworkAssociation",
        back_populates="framework",
        cascade="all, delete-orphan",
    )

    __table_args__ = (UniqueConstraint('tenant_id', 'name', name='_framework_tenant_name_uc'),)

    @property
    def is_three_level(self) -> bool:
        return self.hierarchy_type == THREE_LEVEL

    def __repr__(self):
        return f"<Framework(id={self.id}, name='{self.name}', hierarchy='{self.hierarchy_type}')>"


class Level1Node(Base):
    """A top-level item (Category, Article, Clause, ...)."""
    __tablename__ = 'framework_level1'

    id = Column(UUIDChar, primary_key=True, default=uuid.uuid4)
    framework_id = Column(UUIDChar, ForeignKey('frameworks.id', ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    order_no = Column(Integer, nullable=False, default=1)
    # Declaration index inside the parent; breaks order_no ties
    position = Column(Integer, nullable=False, default=0)
    extra_metadata = Column("metadata", JSON, nullable=True)

    framework = relationship("Framework", back_populates="structure")
    items = relationship(
        "Level2Node",
        back_populates="level1",
        cascade="all, delete-orphan",
        order_by="[Level2Node.order_no, Level2Node.position]",
    )

    def __repr__(self):
        return f"<Level1Node(id={self.id}, title='{self.title}')>"


class Level2Node(Base):
    """A second-level item (Control, Requirement, ...). Leaf of a two-level framework."""
    __tablename__ = 'framework_level2'

    id = Column(UUIDChar, primary_key=True, default=uuid.uuid4)
    level1_id = Column(UUIDChar, ForeignKey('framework_level1.id', ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    summary = Column(Text, nullable=True)
    questions = Column(JSON, nullable=True)
    evidence_examples = Column(JSON, nullable=True)
    order_no = Column(Integer, nullable=False, default=1)
    position = Column(Integer, nullable=False, default=0)
    extra_metadata = Column("metadata", JSON, nullable=True)

    level1 = relationship("Level1Node", back_populates="items")
    items = relationship(
        "Level3Node",
        back_populates="level2",
        cascade="all, delete-orphan",
        order_by="[Level3Node.order_no, Level3Node.position]",
    )

    def __repr__(self):
        return f"<Level2Node(id={self.id}, title='{self.title}')>"


class Level3Node(Base):
    """A sub-control. Only present, and then the leaf, in three-level frameworks."""
    __tablename__ = 'framework_level3'

    id = Column(UUIDChar, primary_key=True, default=uuid.uuid4)
    level2_id = Column(UUIDChar, ForeignKey('framework_level2.id', ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    summary = Column(Text, nullable=True)
    questions = Column(JSON, nullable=True)
    evidence_examples = Column(JSON, nullable=True)
    order_no = Column(Integer, nullable=False, default=1)
    position = Column(Integer, nullable=False, default=0)
    extra_metadata = Column("metadata", JSON, nullable=True)

    level2 = relationship("Level2Node", back_populates="items")

    def __repr__(self):
        return f"<Level3Node(id={self.id}, title='{self.title}')>"
