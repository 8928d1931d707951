# In routers/__init__.py
from .plugins import router as plugins_router
from .frameworks import router as frameworks_router
from .project_frameworks import router as project_frameworks_router
from .projects import router as projects_router
