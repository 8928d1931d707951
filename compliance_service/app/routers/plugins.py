"""
API router for the plugin registry and per-tenant plugin lifecycle.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from ..database import get_db
from ..dependencies import get_framework_plugin, get_tenant_id
from ..exceptions import FrameworkServiceError
from ..services import plugin_service
from ..services.plugin_service import FrameworkPlugin
from .. import schemas
from .errors import http_error

router = APIRouter(
    prefix="/plugins",
    tags=["Plugins"]
)

@router.get("", response_model=List[schemas.PluginResponse])
def list_plugins():
    return [plugin_service.to_response(plugin) for plugin in plugin_service.list_plugins()]

@router.get("/{plugin_key}", response_model=schemas.PluginResponse)
def get_plugin(plugin: FrameworkPlugin = Depends(get_framework_plugin)):
    return plugin_service.to_response(plugin)

@router.post("/{plugin_key}/install", response_model=schemas.PluginLifecycleResponse)
def install_plugin(
    plugin: FrameworkPlugin = Depends(get_framework_plugin),
    tenant_id: str = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    """
    Install a plugin for the calling tenant. Prepackaged regulatory plugins
    import their bundled framework on first install.
    """
    try:
        return plugin_service.install(db, tenant_id, plugin.key)
    except FrameworkServiceError as e:
        raise http_error(e)

@router.post("/{plugin_key}/uninstall", response_model=schemas.PluginLifecycleResponse)
def uninstall_plugin(
    plugin: FrameworkPlugin = Depends(get_framework_plugin),
    tenant_id: str = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    """
    Uninstall a plugin for the calling tenant. All of the plugin's project
    associations are removed; bundled frameworks are deleted too.
    """
    try:
        return plugin_service.uninstall(db, tenant_id, plugin.key)
    except FrameworkServiceError as e:
        raise http_error(e)
