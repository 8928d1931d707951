# In services/__init__.py
from . import (
    template_service,
    ingestion_service,
    validation_service,
    framework_service,
    project_service,
    association_service,
    progress_service,
    implementation_service,
    import_service,
    plugin_service,
)
