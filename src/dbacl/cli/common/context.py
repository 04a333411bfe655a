"""Application context management for the CLI."""

from dataclasses import dataclass, field
from pathlib import Path

from dbacl.cli.common.exits import EXIT_INVALID, die
from dbacl.core.adapters.unitycatalog import UnityCatalogAdapter
from dbacl.core.auth import WorkspaceAuthError, get_client
from dbacl.core.config import SECURITY_CONFIG_FILE
from dbacl.core.errors import ConfigParseError, ConfigurationError
from dbacl.core.file_based import FileBasedSystemAccessControl
from dbacl.core.identity import Identity, TransactionId
from dbacl.core.manager import AccessControlManager


@dataclass
class AclAppContext:
    """Access control manager configured from one rule file, plus the caller."""

    rules_file: Path
    manager: AccessControlManager
    identity: Identity
    transaction_id: TransactionId = field(default_factory=TransactionId.create)


@dataclass
class UCAppContext:
    """AclAppContext plus a Unity Catalog metadata source."""

    acl: AclAppContext
    profile: str | None
    adapter: UnityCatalogAdapter


def build_manager(rules_file: Path) -> AccessControlManager:
    """Create a manager with the rule-file provider, exiting on bad configuration."""
    manager = AccessControlManager()
    try:
        manager.set_system_access_control(
            FileBasedSystemAccessControl.NAME,
            {SECURITY_CONFIG_FILE: str(rules_file)},
        )
    except (ConfigurationError, ConfigParseError) as exc:
        die(str(exc), code=EXIT_INVALID)
    return manager


def build_acl_context(rules_file: Path, user: str, principal: str | None = None) -> AclAppContext:
    """Build the access control context for rule commands."""
    try:
        identity = Identity(user=user, principal=principal)
    except ValueError as exc:
        die(str(exc), code=EXIT_INVALID)
    return AclAppContext(
        rules_file=rules_file,
        manager=build_manager(rules_file),
        identity=identity,
    )


def build_uc_context(
    rules_file: Path, user: str, principal: str | None, profile: str | None
) -> UCAppContext:
    """Build the context for Unity Catalog commands."""
    acl = build_acl_context(rules_file, user, principal)
    try:
        client = get_client(profile)
    except WorkspaceAuthError as exc:
        die(str(exc), code=1)
    return UCAppContext(acl=acl, profile=profile, adapter=UnityCatalogAdapter(client))
