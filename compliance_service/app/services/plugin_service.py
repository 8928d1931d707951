"""
Registry of framework plugins and their install/uninstall lifecycle.

`custom-framework-import` lets users import their own frameworks. The
prepackaged regulatory plugins each ship one bundled template that is
imported when the plugin is installed.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.orm import Session

from .. import models, schemas
from ..exceptions import NotFoundError
from ..models.base import utcnow
from . import import_service

logger = logging.getLogger(__name__)

CUSTOM_IMPORT_KEY = "custom-framework-import"


@dataclass(frozen=True)
class FrameworkPlugin:
    key: str
    name: str
    description: str
    version: str = "1.0.0"
    author: str = "Compliance Platform"
    allows_import: bool = False
    # Bundled library template imported on install
    template_id: Optional[str] = None


PLUGINS = {plugin.key: plugin for plugin in (
    FrameworkPlugin(
        key=CUSTOM_IMPORT_KEY,
        name="Custom Framework Import",
        description="Import custom compliance frameworks from JSON, Excel or the template library",
        allows_import=True,
    ),
    FrameworkPlugin(
        key="dora",
        name="DORA Compliance",
        description="Digital Operational Resilience Act compliance framework for financial services",
        template_id="dora",
    ),
    FrameworkPlugin(
        key="ccpa",
        name="CCPA Compliance",
        description="California Consumer Privacy Act compliance framework for consumer data privacy",
        template_id="ccpa",
    ),
    FrameworkPlugin(
        key="texas-ai-act",
        name="Texas Responsible AI Governance Act (TRAIGA)",
        description="Texas Responsible AI Governance Act compliance framework for organizations deploying high-risk AI systems in Texas",
        template_id="texas-ai-act",
    ),
    FrameworkPlugin(
        key="data-governance",
        name="Data Governance",
        description="Data governance framework for enterprise data management and quality",
        template_id="data-governance",
    ),
)}


def to_response(plugin: FrameworkPlugin) -> schemas.PluginResponse:
    return schemas.PluginResponse(
        key=plugin.key,
        name=plugin.name,
        description=plugin.description,
        version=plugin.version,
        author=plugin.author,
        allows_import=plugin.allows_import,
        template_id=plugin.template_id,
    )


def list_plugins() -> List[FrameworkPlugin]:
    return list(PLUGINS.values())


def get_plugin(key: str) -> FrameworkPlugin:
    plugin = PLUGINS.get(key)
    if plugin is None:
        raise NotFoundError(f"Plugin '{key}' not found", resource="plugin")
    return plugin


def _plugin_frameworks(db: Session, tenant_id: str, key: str) -> List[models.Framework]:
    return db.query(models.Framework).filter(
        models.Framework.tenant_id == tenant_id,
        models.Framework.plugin_key == key,
    ).all()


def install(db: Session, tenant_id: str, key: str) -> schemas.PluginLifecycleResponse:
    """
    Installs a plugin for a tenant. Prepackaged plugins import their bundled
    framework the first time; installing again leaves it untouched.
    """
    plugin = get_plugin(key)
    framework_id = None
    if plugin.template_id is not None:
        existing = _plugin_frameworks(db, tenant_id, key)
        if existing:
            framework_id = existing[0].id
            logger.info(f"[{plugin.name}] Framework already present for tenant {tenant_id}, skipping import")
        else:
            result = import_service.import_template(db, tenant_id, key, plugin.template_id)
            framework_id = result.framework_id
            logger.info(f"[{plugin.name}] Imported framework with {result.items_created} items for tenant {tenant_id}")

    return schemas.PluginLifecycleResponse(
        message=f"{plugin.name} plugin installed successfully",
        framework_id=framework_id,
        completed_at=utcnow(),
    )


def uninstall(db: Session, tenant_id: str, key: str) -> schemas.PluginLifecycleResponse:
    """
    Uninstalls a plugin for a tenant. Project associations always go, which
    may leave a project with no frameworks. Imported custom frameworks are
    kept so a reinstall finds them; bundled frameworks are removed.
    """
    plugin = get_plugin(key)
    frameworks = _plugin_frameworks(db, tenant_id, key)
    removed_links = 0
    for framework in frameworks:
        removed_links += len(framework.project_links)
        if plugin.allows_import:
            for link in list(framework.project_links):
                framework.project_links.remove(link)
        else:
            db.delete(framework)
    db.commit()

    if plugin.allows_import:
        message = f"{plugin.name} plugin uninstalled. Framework definitions kept, {removed_links} project associations removed"
    else:
        message = f"{plugin.name} plugin uninstalled. {len(frameworks)} frameworks and {removed_links} project associations removed"
    logger.info(f"[{plugin.name}] Uninstalled for tenant {tenant_id}: {message}")
    return schemas.PluginLifecycleResponse(message=message, completed_at=utcnow())
