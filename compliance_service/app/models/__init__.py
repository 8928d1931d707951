# In models/__init__.py
from .base import Base, UUIDChar

# Import all models so they are registered with the Base metadata
from .framework import Framework, Level1Node, Level2Node, Level3Node, TWO_LEVEL, THREE_LEVEL
from .project import Project, ProjectSystemFramework
from .implementation import ProjectFrameworkAssociation, Implementation, ImplementationRisk
