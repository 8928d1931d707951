"""
Data models for per-project tracking: the project-framework association and
the implementation rows fanned out over a framework's structure.

These capture the state of one project's work against one framework.
"""
import uuid
from sqlalchemy import (
    Column, Integer, String, Text, Date, DateTime, JSON, ForeignKey, UniqueConstraint, Index
)
from sqlalchemy.orm import relationship

from .base import Base, UUIDChar, utcnow


class ProjectFrameworkAssociation(Base):
    """Links a framework to a project and owns that project's implementation rows."""
    __tablename__ = 'project_frameworks'

    id = Column(UUIDChar, primary_key=True, default=uuid.uuid4)
    project_id = Column(UUIDChar, ForeignKey('projects.id', ondelete="CASCADE"), nullable=False, index=True)
    framework_id = Column(UUIDChar, ForeignKey('frameworks.id', ondelete="CASCADE"), nullable=False, index=True)
    added_at = Column(DateTime, default=utcnow)

    project = relationship("Project", back_populates="framework_links")
    framework = relationship("Framework", back_populates="project_links")
    implementations = relationship(
        "Implementation",
        back_populates="association",
        cascade="all, delete-orphan",
    )

    __table_args__ = (UniqueConstraint('framework_id', 'project_id', name='_project_framework_uc'),)

    def __repr__(self):
        return f"<ProjectFrameworkAssociation(id={self.id}, project_id={self.project_id}, framework_id={self.framework_id})>"


class Implementation(Base):
    """
    Tracking record for one structure node within one association.

    `level` says which table `node_id` points into: 2 for Level2Node, 3 for
    Level3Node. Three-level frameworks get rows at both depths.
    """
    __tablename__ = 'framework_implementations'

    id = Column(UUIDChar, primary_key=True, default=uuid.uuid4)
    project_framework_id = Column(
        UUIDChar, ForeignKey('project_frameworks.id', ondelete="CASCADE"), nullable=False
    )
    level = Column(Integer, nullable=False)
    node_id = Column(UUIDChar, nullable=False)

    status = Column(String(50), nullable=False, default="Not started")
    owner = Column(String, nullable=True)
    reviewer = Column(String, nullable=True)
    approver = Column(String, nullable=True)
    due_date = Column(Date, nullable=True)
    implementation_details = Column(Text, nullable=True)
    evidence_links = Column(JSON, nullable=True)
    feedback_links = Column(JSON, nullable=True)
    auditor_feedback = Column(Text, nullable=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    association = relationship("ProjectFrameworkAssociation", back_populates="implementations")
    risks = relationship("ImplementationRisk", back_populates="implementation", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint('project_framework_id', 'level', 'node_id', name='_implementation_node_uc'),
        Index('ix_implementation_pf_level', 'project_framework_id', 'level'),
    )

    def __repr__(self):
        return f"<Implementation(id={self.id}, level={self.level}, status='{self.status}')>"


class ImplementationRisk(Base):
    """A risk from the host's risk register linked to an implementation row."""
    __tablename__ = 'framework_implementation_risks'

    implementation_id = Column(
        UUIDChar, ForeignKey('framework_implementations.id', ondelete="CASCADE"), primary_key=True
    )
    risk_id = Column(String, primary_key=True)

    implementation = relationship("Implementation", back_populates="risks")
