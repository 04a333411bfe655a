"""Databricks workspace connection for the Unity Catalog metadata source.

The access control engine never talks to a workspace itself. This module
only builds the WorkspaceClient that UnityCatalogAdapter uses to enumerate
catalogs, schemas and tables so they can be filtered.
"""

from __future__ import annotations

from databricks.sdk import WorkspaceClient
from databricks.sdk.core import Config


class WorkspaceAuthError(RuntimeError):
    """Raised when a Databricks workspace client cannot be configured."""


def get_client(profile: str | None = None) -> WorkspaceClient:
    """
    Create a WorkspaceClient from unified Databricks authentication.

    Args:
        profile: Optional profile name from ~/.databrickscfg. Environment
                 variables are used when omitted.

    Raises:
        WorkspaceAuthError: If the SDK cannot resolve a configuration.
    """
    try:
        cfg = Config(profile=profile) if profile else Config()
    except ValueError as exc:
        raise WorkspaceAuthError(f"Databricks authentication failed: {exc}") from exc
    return WorkspaceClient(config=cfg)
