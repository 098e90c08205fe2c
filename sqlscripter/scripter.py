"""
Server traversal and per-category export.

Each object category is described by a `Category` record; a single generic exporter
walks any of them. `SQLServerScripter` drives the records in a fixed order: logins and
SQL Agent jobs at server scope, then every database that is not excluded.
"""

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence, Union

from .common import convert_to_file_name, finalize_directory, prepare_directory
from .errors import ExportCancelled, MetadataError, ScriptingError
from .models import (ConnectionDescriptor, DbObject, ExportNotification, ExportSummary, ObjectType,
                     ScriptingOptions, build_exclusions)
from .redact import fixup_random_password
from .service import ScriptingService

logger = logging.getLogger(__name__)


def _always(obj: DbObject) -> bool:
    return True


def _not_system(obj: DbObject) -> bool:
    return not obj.is_system_object


def _not_system_or_encrypted(obj: DbObject) -> bool:
    return not obj.is_system_object and not obj.is_encrypted


def _exportable_table(obj: DbObject) -> bool:
    # tables ending in $ are replication/tooling artefacts
    return not obj.is_system_object and not obj.name.endswith('$')


def _exportable_role(obj: DbObject) -> bool:
    return not obj.is_fixed_role and obj.name != 'public'


def _collection(key: str) -> Callable[[ScriptingService, Optional[str]], List[DbObject]]:
    return lambda service, database: service.collection(database, key)


@dataclass(frozen=True)
class Category:
    object_type: ObjectType
    subdirectory: str
    list_objects: Callable[[ScriptingService, Optional[str]], List[DbObject]]
    is_exportable: Callable[[DbObject], bool] = _always
    redact_passwords: bool = False


SERVER_CATEGORIES = (
    Category(ObjectType.LOGIN, 'Logins', lambda service, _: service.logins(), redact_passwords=True),
    Category(ObjectType.SQL_AGENT_JOB, 'SQLAgent', lambda service, _: service.jobs()),
)

DATABASE_CATEGORIES = (
    Category(ObjectType.USER, 'Users', _collection('users'), _not_system),
    Category(ObjectType.SCHEMA, 'Schemas', _collection('schemas'), _not_system),
    Category(ObjectType.DATABASE_ROLE, 'Roles - Database', _collection('roles'), _exportable_role),
    Category(ObjectType.APPLICATION_ROLE, 'Roles - Application', _collection('application_roles')),
    Category(ObjectType.TABLE, 'Tables', _collection('tables'), _exportable_table),
    Category(ObjectType.VIEW, 'Views', _collection('views'), _not_system),
    Category(ObjectType.PROC, 'Procs', _collection('procedures'), _not_system_or_encrypted),
    Category(ObjectType.FUNCTION, 'Functions', _collection('functions'), _not_system_or_encrypted),
    Category(ObjectType.SYNONYM, 'Synonyms', _collection('synonyms')),
    Category(ObjectType.USER_TYPE, 'Types/User-Defined Types', _collection('user_types')),
    Category(ObjectType.USER_DATA_TYPE, 'Types/User-Defined Data Types', _collection('user_data_types')),
    Category(ObjectType.USER_TABLE_TYPE, 'Types/User-Defined Table Types', _collection('user_table_types')),
)


class NotificationSink:
    """Receives one notification per exported object, synchronously and in order."""

    def notify(self, notification: ExportNotification) -> None:
        raise NotImplementedError


class LoggingSink(NotificationSink):
    def notify(self, notification: ExportNotification) -> None:
        where = notification.server
        if notification.database is not None:
            where += f"/{notification.database}"
        logger.info(f"Exported {notification.object_type.value} {notification.object_name} "
                    f"({where}): {notification.path}")


class ConsoleSink(NotificationSink):
    def notify(self, notification: ExportNotification) -> None:
        print("----")
        print(f"Server: {notification.server}")
        if notification.database is not None:
            print(f"Database: {notification.database}")
        print(f"Object: {notification.object_type.value}.{notification.object_name}")
        print(f"Output File: {notification.path}")


class CollectingSink(NotificationSink):
    def __init__(self):
        self.notifications: List[ExportNotification] = []

    def notify(self, notification: ExportNotification) -> None:
        self.notifications.append(notification)


class CancellationToken:
    """Cooperative cancellation flag, safe to set from another thread or a signal handler."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ExportCancelled("Export cancelled")


def export_category(service: ScriptingService, category: Category, root: Path, database: Optional[str],
                    options: ScriptingOptions, sink: NotificationSink, token: CancellationToken,
                    summary: Optional[ExportSummary] = None) -> int:
    """Script every exportable object of one category into root/<subdirectory>.

    Returns the number of files written. Stale scripts in the directory are purged
    first, and the directory is removed when nothing was exported.
    """
    path = root / category.subdirectory
    objects = category.list_objects(service, database)
    exported = 0

    if objects:
        prepare_directory(path)

    for obj in objects:
        token.raise_if_cancelled()
        if not category.is_exportable(obj):
            continue

        target = path / convert_to_file_name(obj.name)
        try:
            service.script_to_file(obj, options, target)
        except ScriptingError as e:
            if not options.continue_on_error:
                raise
            logger.warning(f"Skipping {obj.object_type.value} {obj.full_name}: {e}")
            if summary is not None:
                summary.skipped.append(f"{obj.object_type.value} {obj.full_name}")
            continue

        if category.redact_passwords:
            fixup_random_password(target, options.encoding)

        exported += 1
        sink.notify(ExportNotification(service.server_name, database, obj.object_type, obj.name, target))

    finalize_directory(path, exported, root)
    return exported


def export_database(service: ScriptingService, database: DbObject, root: Path, options: ScriptingOptions,
                    sink: NotificationSink) -> int:
    """Write the CREATE DATABASE script to root/<db>.sql."""
    prepare_directory(root)
    target = root / convert_to_file_name(database.name)
    try:
        service.script_to_file(database, options, target)
    except ScriptingError as e:
        if not options.continue_on_error:
            raise
        logger.warning(f"Skipping database definition {database.name}: {e}")
        return 0
    sink.notify(ExportNotification(service.server_name, database.name, ObjectType.DATABASE, database.name, target))
    return 1


def server_directory(output_dir: Union[str, Path], server: str) -> Path:
    """<output>/HOST/INST for a named instance HOST\\INST, each part sanitized."""
    parts = [convert_to_file_name(part, suffix='') for part in server.split('\\')]
    return Path(output_dir).joinpath(*[part for part in parts if part])


class SQLServerScripter:
    """Scripts every object on a server into <output>/<server>/..."""

    def __init__(self, sink: Optional[NotificationSink] = None, options: Optional[ScriptingOptions] = None,
                 output_dir: Union[str, Path] = '.',
                 service_factory: Optional[Callable[[ConnectionDescriptor], ScriptingService]] = None):
        self.sink = sink or LoggingSink()
        self.options = options or ScriptingOptions()
        self.output_dir = Path(output_dir)
        if service_factory is None:
            from .catalog import SqlServerScriptingService
            service_factory = SqlServerScriptingService.connect
        self.service_factory = service_factory

    def script_everything(self, connection: ConnectionDescriptor, exclude_databases: Iterable[str] = (),
                          token: Optional[CancellationToken] = None) -> ExportSummary:
        """Script logins, jobs and every non-excluded database.

        Connection errors and server-level catalog errors abort the run. A database
        whose catalog cannot be read, or a filesystem or scripting error inside one
        category, is recorded in the summary and the run moves on.
        """
        excludes = build_exclusions(exclude_databases)
        token = token or CancellationToken()
        summary = ExportSummary(server=connection.server)

        with self.service_factory(connection) as service:
            server_root = server_directory(self.output_dir, connection.server)
            logger.info(f"Scripting server objects of {connection.server} into {server_root}")

            for category in SERVER_CATEGORIES:
                token.raise_if_cancelled()
                self._run_category(service, category, server_root, None, token, summary)

            for database in service.databases():
                if database.name in excludes:
                    logger.debug(f"Skipping excluded database {database.name}")
                    continue
                token.raise_if_cancelled()
                self._script_database(service, database, server_root, token, summary)

        logger.info(f"Scripted {summary.exported} objects from {len(summary.databases)} database(s)")
        return summary

    def _script_database(self, service: ScriptingService, database: DbObject, server_root: Path,
                         token: CancellationToken, summary: ExportSummary) -> None:
        logger.info(f"Scripting database: {database.name}")
        summary.databases.append(database.name)
        db_root = server_root / 'Databases' / convert_to_file_name(database.name, suffix='')

        try:
            summary.exported += export_database(service, database, db_root, self.options, self.sink)
        except (OSError, ScriptingError) as e:
            logger.error(f"Failed to script database definition {database.name}: {e}")
            summary.add_failure(f"{database.name}/{ObjectType.DATABASE.value}", e)

        for category in DATABASE_CATEGORIES:
            token.raise_if_cancelled()
            try:
                self._run_category(service, category, db_root, database.name, token, summary)
            except MetadataError as e:
                logger.error(f"Cannot read database {database.name}, skipping the rest of it: {e}")
                summary.add_failure(database.name, e)
                return

    def _run_category(self, service: ScriptingService, category: Category, root: Path, database: Optional[str],
                      token: CancellationToken, summary: ExportSummary) -> None:
        where = f"{database}/{category.subdirectory}" if database else category.subdirectory
        try:
            summary.exported += export_category(service, category, root, database, self.options,
                                                self.sink, token, summary)
        except (OSError, ScriptingError) as e:
            logger.error(f"Failed to script {where}: {e}")
            summary.add_failure(where, e)


def find_objects(service: ScriptingService, name: str, database: Optional[str] = None,
                 object_type: Optional[ObjectType] = None) -> List[DbObject]:
    """Look an object up by name (case-insensitive) at server scope or inside a database."""
    categories: Sequence[Category] = DATABASE_CATEGORIES if database else SERVER_CATEGORIES
    matches = []
    for category in categories:
        if object_type is not None and category.object_type is not object_type:
            continue
        for obj in category.list_objects(service, database):
            if obj.name.lower() == name.lower() or obj.full_name.lower() == name.lower():
                matches.append(obj)
    if database and (object_type is None or object_type is ObjectType.DATABASE):
        matches.extend(db for db in service.databases()
                       if db.name == database and db.name.lower() == name.lower())
    return matches
