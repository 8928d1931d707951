"""
Request-scoped FastAPI dependencies shared by the routers.
"""
from typing import Optional

from fastapi import Header, HTTPException

from .config import settings
from .exceptions import NotFoundError
from .services import plugin_service


def get_tenant_id(x_tenant_id: Optional[str] = Header(default=None)) -> str:
    """Tenant of the caller, from the `X-Tenant-ID` header."""
    tenant_id = (x_tenant_id or "").strip()
    return tenant_id or settings.DEFAULT_TENANT_ID


def get_framework_plugin(plugin_key: str) -> plugin_service.FrameworkPlugin:
    try:
        return plugin_service.get_plugin(plugin_key)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)


def get_import_plugin(plugin_key: str) -> plugin_service.FrameworkPlugin:
    """Only plugins that accept user imports expose the import routes."""
    plugin = get_framework_plugin(plugin_key)
    if not plugin.allows_import:
        raise HTTPException(status_code=404, detail=f"Plugin '{plugin_key}' does not support framework import")
    return plugin
