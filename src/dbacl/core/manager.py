"""Access control manager.

AccessControlManager is the entry point the rest of the platform calls. It
keeps a registry of provider factories, the providers currently activated
from them, and forwards every check and filter to those providers:

- with no provider configured, every check succeeds and every filter
  returns its input unchanged;
- with several providers, a check is denied if any provider denies it and
  a filter returns the intersection of what each provider lets through.

Every resource-scoped call takes the TransactionId of the query it belongs
to. It is only used to correlate log lines and is never stored.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import AbstractSet, Callable, Mapping, TypeVar

from dbacl.core.config import ACCESS_CONTROL_NAME, load_properties
from dbacl.core.errors import AccessDeniedError, ConfigurationError
from dbacl.core.file_based import FileBasedSystemAccessControlFactory
from dbacl.core.identity import (
    CatalogSchemaName,
    CatalogSchemaTableName,
    GrantPrincipal,
    Identity,
    Privilege,
    SchemaTableName,
    TransactionId,
)
from dbacl.core.system import (
    ALLOW_ALL_FACTORY,
    READ_ONLY_FACTORY,
    SystemAccessControl,
    SystemAccessControlFactory,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_CONFIG_PATH = Path("etc/access-control.properties")


class AccessControlManager:
    """Dispatches authorization checks to the configured providers."""

    def __init__(self) -> None:
        self._factories: dict[str, SystemAccessControlFactory] = {}
        self._providers: tuple[SystemAccessControl, ...] = ()
        self._lock = threading.Lock()
        for factory in (FileBasedSystemAccessControlFactory(), ALLOW_ALL_FACTORY, READ_ONLY_FACTORY):
            self.add_system_access_control_factory(factory)

    @property
    def providers(self) -> tuple[SystemAccessControl, ...]:
        return self._providers

    def add_system_access_control_factory(self, factory: SystemAccessControlFactory) -> None:
        """Register a provider factory under its name."""
        with self._lock:
            if factory.name in self._factories:
                raise ConfigurationError(f"Access control '{factory.name}' is already registered")
            self._factories[factory.name] = factory

    def _create(self, name: str, properties: Mapping[str, str]) -> SystemAccessControl:
        factory = self._factories.get(name)
        if factory is None:
            known = ", ".join(sorted(self._factories))
            raise ConfigurationError(f"Access control '{name}' is not registered (known: {known})")
        return factory.create(dict(properties))

    def set_system_access_control(self, name: str, properties: Mapping[str, str]) -> None:
        """
        Activate a single provider, replacing any active ones.

        May be called repeatedly to reconfigure. If creating the provider
        fails, the previously active providers stay in place.

        Raises:
            ConfigurationError: If the name is unknown or options are invalid.
            ConfigParseError: If the provider's rule file cannot be loaded.
        """
        provider = self._create(name, properties)
        with self._lock:
            self._providers = (provider,)
        logger.info("Access control '%s' activated", name)

    def add_system_access_control(self, name: str, properties: Mapping[str, str]) -> None:
        """Activate an additional provider alongside the active ones."""
        provider = self._create(name, properties)
        with self._lock:
            self._providers = self._providers + (provider,)
        logger.info("Access control '%s' added (%d active)", name, len(self._providers))

    def load_system_access_control(self, path: str | Path = DEFAULT_CONFIG_PATH) -> bool:
        """
        Activate the provider described by a properties file.

        The file names the provider with `access-control.name`; all other
        keys are passed to the provider as options. A missing file leaves
        the manager unconfigured.

        Returns:
            True if a provider was activated, False if the file does not exist.
        """
        path = Path(path)
        if not path.exists():
            logger.info("No access control configuration at %s, allowing all requests", path)
            return False
        properties = load_properties(path)
        name = properties.pop(ACCESS_CONTROL_NAME, None)
        if not name:
            raise ConfigurationError(f"{path}: {ACCESS_CONTROL_NAME} must be set")
        self.set_system_access_control(name, properties)
        return True

    def _check(
        self,
        transaction_id: TransactionId | None,
        check: Callable[[SystemAccessControl], None],
    ) -> None:
        for provider in self._providers:
            try:
                check(provider)
            except AccessDeniedError as exc:
                logger.debug("transaction=%s %s", transaction_id, exc)
                raise

    def _filter(
        self,
        candidates: AbstractSet[T],
        apply: Callable[[SystemAccessControl, frozenset[T]], AbstractSet[T]],
    ) -> set[T]:
        frozen = frozenset(candidates)
        result = set(frozen)
        for provider in self._providers:
            result &= apply(provider, frozen)
        return result

    def check_can_set_user(self, principal: str | None, user: str) -> None:
        self._check(None, lambda p: p.check_can_set_user(principal, user))

    def check_can_access_catalog(
        self, transaction_id: TransactionId, identity: Identity, catalog: str
    ) -> None:
        self._check(transaction_id, lambda p: p.check_can_access_catalog(identity, catalog))

    def filter_catalogs(
        self, transaction_id: TransactionId, identity: Identity, catalogs: AbstractSet[str]
    ) -> set[str]:
        return self._filter(catalogs, lambda p, c: p.filter_catalogs(identity, c))

    def check_can_create_schema(
        self, transaction_id: TransactionId, identity: Identity, schema: CatalogSchemaName
    ) -> None:
        self._check(transaction_id, lambda p: p.check_can_create_schema(identity, schema))

    def check_can_drop_schema(
        self, transaction_id: TransactionId, identity: Identity, schema: CatalogSchemaName
    ) -> None:
        self._check(transaction_id, lambda p: p.check_can_drop_schema(identity, schema))

    def check_can_rename_schema(
        self,
        transaction_id: TransactionId,
        identity: Identity,
        schema: CatalogSchemaName,
        new_schema_name: str,
    ) -> None:
        self._check(
            transaction_id, lambda p: p.check_can_rename_schema(identity, schema, new_schema_name)
        )

    def check_can_show_schemas(
        self, transaction_id: TransactionId, identity: Identity, catalog: str
    ) -> None:
        self._check(transaction_id, lambda p: p.check_can_show_schemas(identity, catalog))

    def filter_schemas(
        self,
        transaction_id: TransactionId,
        identity: Identity,
        catalog: str,
        schema_names: AbstractSet[str],
    ) -> set[str]:
        return self._filter(schema_names, lambda p, s: p.filter_schemas(identity, catalog, s))

    def check_can_create_table(
        self, transaction_id: TransactionId, identity: Identity, table: CatalogSchemaTableName
    ) -> None:
        self._check(transaction_id, lambda p: p.check_can_create_table(identity, table))

    def check_can_drop_table(
        self, transaction_id: TransactionId, identity: Identity, table: CatalogSchemaTableName
    ) -> None:
        self._check(transaction_id, lambda p: p.check_can_drop_table(identity, table))

    def check_can_rename_table(
        self,
        transaction_id: TransactionId,
        identity: Identity,
        table: CatalogSchemaTableName,
        new_table: CatalogSchemaTableName,
    ) -> None:
        self._check(transaction_id, lambda p: p.check_can_rename_table(identity, table, new_table))

    def check_can_show_tables_metadata(
        self, transaction_id: TransactionId, identity: Identity, schema: CatalogSchemaName
    ) -> None:
        self._check(transaction_id, lambda p: p.check_can_show_tables_metadata(identity, schema))

    def filter_tables(
        self,
        transaction_id: TransactionId,
        identity: Identity,
        catalog: str,
        table_names: AbstractSet[SchemaTableName],
    ) -> set[SchemaTableName]:
        return self._filter(table_names, lambda p, t: p.filter_tables(identity, catalog, t))

    def check_can_add_column(
        self, transaction_id: TransactionId, identity: Identity, table: CatalogSchemaTableName
    ) -> None:
        self._check(transaction_id, lambda p: p.check_can_add_column(identity, table))

    def check_can_drop_column(
        self, transaction_id: TransactionId, identity: Identity, table: CatalogSchemaTableName
    ) -> None:
        self._check(transaction_id, lambda p: p.check_can_drop_column(identity, table))

    def check_can_rename_column(
        self, transaction_id: TransactionId, identity: Identity, table: CatalogSchemaTableName
    ) -> None:
        self._check(transaction_id, lambda p: p.check_can_rename_column(identity, table))

    def check_can_select_from_columns(
        self,
        transaction_id: TransactionId,
        identity: Identity,
        table: CatalogSchemaTableName,
        columns: AbstractSet[str],
    ) -> None:
        self._check(
            transaction_id, lambda p: p.check_can_select_from_columns(identity, table, columns)
        )

    def check_can_insert_into_table(
        self, transaction_id: TransactionId, identity: Identity, table: CatalogSchemaTableName
    ) -> None:
        self._check(transaction_id, lambda p: p.check_can_insert_into_table(identity, table))

    def check_can_delete_from_table(
        self, transaction_id: TransactionId, identity: Identity, table: CatalogSchemaTableName
    ) -> None:
        self._check(transaction_id, lambda p: p.check_can_delete_from_table(identity, table))

    def check_can_create_view(
        self, transaction_id: TransactionId, identity: Identity, view: CatalogSchemaTableName
    ) -> None:
        self._check(transaction_id, lambda p: p.check_can_create_view(identity, view))

    def check_can_drop_view(
        self, transaction_id: TransactionId, identity: Identity, view: CatalogSchemaTableName
    ) -> None:
        self._check(transaction_id, lambda p: p.check_can_drop_view(identity, view))

    def check_can_create_view_with_select_from_columns(
        self,
        transaction_id: TransactionId,
        identity: Identity,
        table: CatalogSchemaTableName,
        columns: AbstractSet[str],
    ) -> None:
        self._check(
            transaction_id,
            lambda p: p.check_can_create_view_with_select_from_columns(identity, table, columns),
        )

    def check_can_set_system_session_property(
        self, transaction_id: TransactionId, identity: Identity, property_name: str
    ) -> None:
        self._check(
            transaction_id, lambda p: p.check_can_set_system_session_property(identity, property_name)
        )

    def check_can_set_catalog_session_property(
        self,
        transaction_id: TransactionId,
        identity: Identity,
        catalog: str,
        property_name: str,
    ) -> None:
        self._check(
            transaction_id,
            lambda p: p.check_can_set_catalog_session_property(identity, catalog, property_name),
        )

    def check_can_grant_table_privilege(
        self,
        transaction_id: TransactionId,
        identity: Identity,
        privilege: Privilege,
        table: CatalogSchemaTableName,
        grantee: GrantPrincipal,
        with_grant_option: bool,
    ) -> None:
        self._check(
            transaction_id,
            lambda p: p.check_can_grant_table_privilege(
                identity, privilege, table, grantee, with_grant_option
            ),
        )

    def check_can_revoke_table_privilege(
        self,
        transaction_id: TransactionId,
        identity: Identity,
        privilege: Privilege,
        table: CatalogSchemaTableName,
        revokee: GrantPrincipal,
        grant_option_for: bool,
    ) -> None:
        self._check(
            transaction_id,
            lambda p: p.check_can_revoke_table_privilege(
                identity, privilege, table, revokee, grant_option_for
            ),
        )
