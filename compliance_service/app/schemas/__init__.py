# In schemas/__init__.py

# Import all schemas from their respective modules to make them available
# at the package level, e.g., `from .. import schemas` -> `schemas.ParsedFramework`
from .framework_schemas import *
from .implementation_schemas import *
from .project_schemas import *
from .plugin_schemas import *
