"""
The slice of the host platform's project registry that the framework engine
reads: the project's scope and its native (system) framework links.
"""
import uuid
from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from .base import Base, UUIDChar, utcnow


class Project(Base):
    __tablename__ = 'projects'

    id = Column(UUIDChar, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(String, nullable=False, index=True)
    project_title = Column(String(255), nullable=False)
    # Organizational projects only accept organizational frameworks
    is_organizational = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow)

    system_frameworks = relationship(
        "ProjectSystemFramework",
        back_populates="project",
        cascade="all, delete-orphan",
    )
    framework_links = relationship(
        "ProjectFrameworkAssociation",
        back_populates="project",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<Project(id={self.id}, title='{self.project_title}')>"


class ProjectSystemFramework(Base):
    """A built-in framework (e.g. 'eu-ai-act') enabled on a project by the host."""
    __tablename__ = 'project_system_frameworks'

    id = Column(UUIDChar, primary_key=True, default=uuid.uuid4)
    project_id = Column(UUIDChar, ForeignKey('projects.id', ondelete="CASCADE"), nullable=False, index=True)
    framework_key = Column(String(100), nullable=False)

    project = relationship("Project", back_populates="system_frameworks")

    __table_args__ = (UniqueConstraint('project_id', 'framework_key', name='_project_system_framework_uc'),)
