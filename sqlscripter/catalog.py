"""
SQL Server catalog access.

`SqlServerScriptingService` implements `ScriptingService` over a single pyodbc
connection by reading the catalog views.
"""

import logging
import secrets
from contextlib import contextmanager
from typing import Dict, List, Optional

import pyodbc

from . import render
from .errors import MetadataError, ScriptingError, ServerConnectionError
from .models import ConnectionDescriptor, DbObject, ObjectType, ScriptingOptions
from .redact import SENTINEL_PASSWORD
from .service import ScriptingService

logger = logging.getLogger(__name__)


_IS_TOOLS_SUPPORT = """
    EXISTS (SELECT 1 FROM sys.extended_properties ep
            WHERE ep.class = 1 AND ep.major_id = {alias}.object_id AND ep.minor_id = 0
            AND ep.name = N'microsoft_database_tools_support')
"""

# Every query yields name, schema_name, object_id and the three predicate flags.
# Any further column ends up in DbObject.properties.
COLLECTION_QUERIES = {
    'users': (ObjectType.USER, """
        SELECT dp.name, NULL AS schema_name, dp.principal_id AS object_id,
            CASE WHEN dp.principal_id < 5 OR dp.name LIKE '##%' THEN 1 ELSE 0 END AS is_system_object,
            0 AS is_encrypted, 0 AS is_fixed_role,
            dp.type, dp.default_schema_name
        FROM sys.database_principals dp
        WHERE dp.type IN ('S', 'U', 'G', 'E', 'X')
        ORDER BY dp.name
    """),
    'schemas': (ObjectType.SCHEMA, """
        SELECT s.name, NULL AS schema_name, s.schema_id AS object_id,
            CASE WHEN s.schema_id < 5 OR s.schema_id BETWEEN 16384 AND 16399 THEN 1 ELSE 0 END AS is_system_object,
            0 AS is_encrypted, 0 AS is_fixed_role,
            USER_NAME(s.principal_id) AS owner
        FROM sys.schemas s
        ORDER BY s.name
    """),
    'roles': (ObjectType.DATABASE_ROLE, """
        SELECT r.name, NULL AS schema_name, r.principal_id AS object_id,
            0 AS is_system_object, 0 AS is_encrypted, r.is_fixed_role,
            USER_NAME(r.owning_principal_id) AS owner
        FROM sys.database_principals r
        WHERE r.type = 'R'
        ORDER BY r.name
    """),
    'application_roles': (ObjectType.APPLICATION_ROLE, """
        SELECT a.name, NULL AS schema_name, a.principal_id AS object_id,
            0 AS is_system_object, 0 AS is_encrypted, 0 AS is_fixed_role,
            a.default_schema_name
        FROM sys.database_principals a
        WHERE a.type = 'A'
        ORDER BY a.name
    """),
    'tables': (ObjectType.TABLE, f"""
        SELECT t.name, s.name AS schema_name, t.object_id,
            CASE WHEN t.is_ms_shipped = 1 OR {_IS_TOOLS_SUPPORT.format(alias='t')} THEN 1 ELSE 0 END AS is_system_object,
            0 AS is_encrypted, 0 AS is_fixed_role
        FROM sys.tables t
        JOIN sys.schemas s ON t.schema_id = s.schema_id
        ORDER BY s.name, t.name
    """),
    'views': (ObjectType.VIEW, f"""
        SELECT v.name, s.name AS schema_name, v.object_id,
            CASE WHEN v.is_ms_shipped = 1 OR {_IS_TOOLS_SUPPORT.format(alias='v')} THEN 1 ELSE 0 END AS is_system_object,
            0 AS is_encrypted, 0 AS is_fixed_role
        FROM sys.views v
        JOIN sys.schemas s ON v.schema_id = s.schema_id
        ORDER BY s.name, v.name
    """),
    'procedures': (ObjectType.PROC, f"""
        SELECT p.name, s.name AS schema_name, p.object_id,
            CASE WHEN p.is_ms_shipped = 1 OR {_IS_TOOLS_SUPPORT.format(alias='p')} THEN 1 ELSE 0 END AS is_system_object,
            ISNULL(OBJECTPROPERTY(p.object_id, 'IsEncrypted'), 0) AS is_encrypted, 0 AS is_fixed_role
        FROM sys.procedures p
        JOIN sys.schemas s ON p.schema_id = s.schema_id
        ORDER BY s.name, p.name
    """),
    'functions': (ObjectType.FUNCTION, f"""
        SELECT f.name, s.name AS schema_name, f.object_id,
            CASE WHEN f.is_ms_shipped = 1 OR {_IS_TOOLS_SUPPORT.format(alias='f')} THEN 1 ELSE 0 END AS is_system_object,
            ISNULL(OBJECTPROPERTY(f.object_id, 'IsEncrypted'), 0) AS is_encrypted, 0 AS is_fixed_role
        FROM sys.objects f
        JOIN sys.schemas s ON f.schema_id = s.schema_id
        WHERE f.type IN ('FN', 'IF', 'TF', 'FS', 'FT')
        ORDER BY s.name, f.name
    """),
    'synonyms': (ObjectType.SYNONYM, """
        SELECT syn.name, s.name AS schema_name, syn.object_id,
            0 AS is_system_object, 0 AS is_encrypted, 0 AS is_fixed_role,
            syn.base_object_name
        FROM sys.synonyms syn
        JOIN sys.schemas s ON syn.schema_id = s.schema_id
        ORDER BY s.name, syn.name
    """),
    'user_types': (ObjectType.USER_TYPE, """
        SELECT at.name, s.name AS schema_name, at.user_type_id AS object_id,
            0 AS is_system_object, 0 AS is_encrypted, 0 AS is_fixed_role,
            a.name AS assembly_name, at.assembly_class
        FROM sys.assembly_types at
        JOIN sys.schemas s ON at.schema_id = s.schema_id
        JOIN sys.assemblies a ON at.assembly_id = a.assembly_id
        WHERE at.is_user_defined = 1
        ORDER BY s.name, at.name
    """),
    'user_data_types': (ObjectType.USER_DATA_TYPE, """
        SELECT t.name, s.name AS schema_name, t.user_type_id AS object_id,
            0 AS is_system_object, 0 AS is_encrypted, 0 AS is_fixed_role,
            TYPE_NAME(t.system_type_id) AS base_type, t.max_length, t.precision, t.scale, t.is_nullable
        FROM sys.types t
        JOIN sys.schemas s ON t.schema_id = s.schema_id
        WHERE t.is_user_defined = 1 AND t.is_assembly_type = 0 AND t.is_table_type = 0
        ORDER BY s.name, t.name
    """),
    'user_table_types': (ObjectType.USER_TABLE_TYPE, """
        SELECT tt.name, s.name AS schema_name, tt.type_table_object_id AS object_id,
            0 AS is_system_object, 0 AS is_encrypted, 0 AS is_fixed_role,
            tt.user_type_id
        FROM sys.table_types tt
        JOIN sys.schemas s ON tt.schema_id = s.schema_id
        WHERE tt.is_user_defined = 1
        ORDER BY s.name, tt.name
    """),
}

LOGINS_QUERY = """
    SELECT sp.name, sp.principal_id AS object_id, sp.type, sp.is_disabled,
        sp.default_database_name, sp.default_language_name,
        sl.is_policy_checked, sl.is_expiration_checked
    FROM sys.server_principals sp
    LEFT JOIN sys.sql_logins sl ON sp.principal_id = sl.principal_id
    WHERE sp.type IN ('S', 'U', 'G', 'E', 'X')
    ORDER BY sp.name
"""

JOBS_QUERY = """
    SELECT j.name, CONVERT(nvarchar(36), j.job_id) AS job_id, j.enabled, j.description,
        c.name AS category_name, SUSER_SNAME(j.owner_sid) AS owner_login_name, j.start_step_id
    FROM msdb.dbo.sysjobs j
    LEFT JOIN msdb.dbo.syscategories c ON j.category_id = c.category_id
    ORDER BY j.name
"""

DATABASES_QUERY = """
    SELECT d.name, d.database_id AS object_id, d.collation_name,
        d.compatibility_level, d.recovery_model_desc
    FROM sys.databases d
    WHERE d.state = 0 AND HAS_DBACCESS(d.name) = 1
    ORDER BY d.name
"""

_BASE_KEYS = ('name', 'schema_name', 'object_id', 'is_system_object', 'is_encrypted', 'is_fixed_role')


def build_connection_string(connection: ConnectionDescriptor, database: str = 'master') -> str:
    """ODBC connection string; no username means the caller's integrated identity."""
    driver = connection.driver.strip('{}')
    conn_str = (
        f"DRIVER={{{driver}}};"
        f"SERVER={connection.server};"
        f"DATABASE={database};"
    )
    if connection.authentication_type == 'azure_ad':
        conn_str += "Authentication=ActiveDirectoryDefault;"
    elif connection.uses_integrated_auth:
        conn_str += "Trusted_Connection=yes;"
    else:
        conn_str += (
            f"UID={connection.username};"
            f"PWD={connection.password};"
        )
    conn_str += "TrustServerCertificate=yes;"
    return conn_str


class SqlServerScriptingService(ScriptingService):
    """Scripting service backed by the SQL Server catalog views."""

    def __init__(self, connection: pyodbc.Connection, server_name: str):
        self.connection = connection
        self.server_name = server_name
        self._current_database: Optional[str] = None

    @classmethod
    def connect(cls, descriptor: ConnectionDescriptor) -> 'SqlServerScriptingService':
        try:
            logger.info(f"Connecting to SQL Server: {descriptor.server}")
            connection = pyodbc.connect(build_connection_string(descriptor),
                                        timeout=descriptor.timeout, autocommit=True)
        except pyodbc.Error as e:
            logger.error(f"Failed to connect to SQL Server: {e}")
            raise ServerConnectionError(f"Database connection failed: {e}") from e
        logger.info("Successfully connected to SQL Server")
        return cls(connection, descriptor.server)

    def close(self) -> None:
        if self.connection:
            self.connection.close()
            self.connection = None
            logger.info("Database connection closed")

    @contextmanager
    def _translate(self, error_type, what: str):
        try:
            yield
        except pyodbc.Error as e:
            raise error_type(f"{what}: {e}") from e

    def _query(self, sql: str, *params) -> List[Dict]:
        cursor = self.connection.cursor()
        try:
            cursor.execute(sql, *params)
            columns = [d[0] for d in cursor.description]
            return [dict(zip(columns, row)) for row in cursor.fetchall()]
        finally:
            cursor.close()

    def _use(self, database: str) -> None:
        if database != self._current_database:
            cursor = self.connection.cursor()
            try:
                cursor.execute(render.use_database(database))
            finally:
                cursor.close()
            self._current_database = database

    @staticmethod
    def _to_object(row: Dict, object_type: ObjectType, database: Optional[str] = None) -> DbObject:
        return DbObject(
            name=row['name'],
            object_type=object_type,
            database=database,
            schema=row.get('schema_name'),
            object_id=row.get('object_id'),
            is_system_object=bool(row.get('is_system_object')),
            is_encrypted=bool(row.get('is_encrypted')),
            is_fixed_role=bool(row.get('is_fixed_role')),
            properties={k: v for k, v in row.items() if k not in _BASE_KEYS},
        )

    def logins(self) -> List[DbObject]:
        with self._translate(MetadataError, "Error retrieving logins"):
            rows = self._query(LOGINS_QUERY)
        return [self._to_object(row, ObjectType.LOGIN) for row in rows]

    def jobs(self) -> List[DbObject]:
        with self._translate(MetadataError, "Error retrieving SQL Agent jobs"):
            available = self._query("SELECT OBJECT_ID(N'msdb.dbo.sysjobs') AS object_id")
            if not available or available[0]['object_id'] is None:
                logger.info("SQL Agent is not available on this server; no jobs to script")
                return []
            rows = self._query(JOBS_QUERY)
        return [self._to_object(row, ObjectType.SQL_AGENT_JOB) for row in rows]

    def databases(self) -> List[DbObject]:
        with self._translate(MetadataError, "Error retrieving databases"):
            rows = self._query(DATABASES_QUERY)
        return [self._to_object(row, ObjectType.DATABASE, database=row['name']) for row in rows]

    def collection(self, database: str, key: str) -> List[DbObject]:
        object_type, query = COLLECTION_QUERIES[key]
        with self._translate(MetadataError, f"Error retrieving {key} in {database}"):
            self._use(database)
            rows = self._query(query)
        return [self._to_object(row, object_type, database) for row in rows]

    def script(self, obj: DbObject, options: ScriptingOptions) -> List[str]:
        renderer = getattr(self, f"_script_{obj.object_type.name.lower()}")
        with self._translate(ScriptingError, f"Error scripting {obj.object_type.value} {obj.full_name}"):
            if obj.database and obj.object_type is not ObjectType.DATABASE:
                self._use(obj.database)
            batches = renderer(obj, options)
        if options.include_database_context:
            batches.insert(0, render.use_database(self._context_database(obj)))
        return batches

    @staticmethod
    def _context_database(obj: DbObject) -> str:
        if obj.object_type is ObjectType.SQL_AGENT_JOB:
            return 'msdb'
        if obj.object_type in (ObjectType.LOGIN, ObjectType.DATABASE):
            return 'master'
        return obj.database

    # Catalog lookups shared by several renderers

    def _columns(self, object_id: int) -> List[Dict]:
        return self._query("""
            SELECT c.name, t.name AS type_name, SCHEMA_NAME(t.schema_id) AS type_schema, t.is_user_defined,
                c.max_length, c.precision, c.scale, c.is_nullable, c.is_identity,
                CAST(ic.seed_value AS BIGINT) AS seed_value, CAST(ic.increment_value AS BIGINT) AS increment_value,
                c.is_computed, cc.definition AS computed_definition, cc.is_persisted, c.collation_name,
                dc.name AS default_name, dc.definition AS default_definition, c.is_rowguidcol
            FROM sys.columns c
            JOIN sys.types t ON c.user_type_id = t.user_type_id
            LEFT JOIN sys.identity_columns ic ON c.object_id = ic.object_id AND c.column_id = ic.column_id
            LEFT JOIN sys.computed_columns cc ON c.object_id = cc.object_id AND c.column_id = cc.column_id
            LEFT JOIN sys.default_constraints dc ON c.default_object_id = dc.object_id
            WHERE c.object_id = ?
            ORDER BY c.column_id
        """, object_id)

    def _index_columns(self, object_id: int) -> Dict[int, Dict[str, List]]:
        rows = self._query("""
            SELECT ic.index_id, c.name, ic.is_descending_key, ic.is_included_column
            FROM sys.index_columns ic
            JOIN sys.columns c ON ic.object_id = c.object_id AND ic.column_id = c.column_id
            WHERE ic.object_id = ?
            ORDER BY ic.index_id, ic.key_ordinal, ic.index_column_id
        """, object_id)
        by_index: Dict[int, Dict[str, List]] = {}
        for row in rows:
            entry = by_index.setdefault(row['index_id'], {'columns': [], 'included': []})
            if row['is_included_column']:
                entry['included'].append(row['name'])
            else:
                entry['columns'].append(row)
        return by_index

    def _key_constraints(self, object_id: int, index_columns: Dict[int, Dict[str, List]]) -> List[Dict]:
        constraints = self._query("""
            SELECT kc.name, kc.type, i.type_desc, i.index_id
            FROM sys.key_constraints kc
            JOIN sys.indexes i ON kc.parent_object_id = i.object_id AND kc.unique_index_id = i.index_id
            WHERE kc.parent_object_id = ?
            ORDER BY kc.type, kc.name
        """, object_id)
        for constraint in constraints:
            constraint['type'] = constraint['type'].strip()
            constraint['columns'] = index_columns.get(constraint['index_id'], {}).get('columns', [])
        return constraints

    def _indexes(self, object_id: int, index_columns: Dict[int, Dict[str, List]]) -> List[Dict]:
        indexes = self._query("""
            SELECT i.index_id, i.name, i.is_unique, i.type_desc, i.filter_definition
            FROM sys.indexes i
            WHERE i.object_id = ? AND i.is_primary_key = 0 AND i.is_unique_constraint = 0
                AND i.type IN (1, 2) AND i.is_hypothetical = 0
            ORDER BY i.name
        """, object_id)
        for index in indexes:
            entry = index_columns.get(index['index_id'], {})
            index['columns'] = entry.get('columns', [])
            index['included'] = entry.get('included', [])
        return indexes

    def _foreign_keys(self, object_id: int) -> List[Dict]:
        fks = self._query("""
            SELECT fk.object_id, fk.name, SCHEMA_NAME(rt.schema_id) AS ref_schema, rt.name AS ref_table,
                fk.delete_referential_action_desc AS delete_action,
                fk.update_referential_action_desc AS update_action, fk.is_disabled
            FROM sys.foreign_keys fk
            JOIN sys.tables rt ON fk.referenced_object_id = rt.object_id
            WHERE fk.parent_object_id = ?
            ORDER BY fk.name
        """, object_id)
        columns = self._query("""
            SELECT fkc.constraint_object_id, pc.name AS column_name, rc.name AS ref_column_name
            FROM sys.foreign_key_columns fkc
            JOIN sys.columns pc ON fkc.parent_object_id = pc.object_id AND fkc.parent_column_id = pc.column_id
            JOIN sys.columns rc ON fkc.referenced_object_id = rc.object_id AND fkc.referenced_column_id = rc.column_id
            WHERE fkc.parent_object_id = ?
            ORDER BY fkc.constraint_object_id, fkc.constraint_column_id
        """, object_id)
        for fk in fks:
            own = [c for c in columns if c['constraint_object_id'] == fk['object_id']]
            fk['columns'] = [c['column_name'] for c in own]
            fk['ref_columns'] = [c['ref_column_name'] for c in own]
        return fks

    def _permissions(self, class_id: int, major_id: int) -> List[Dict]:
        return self._query("""
            SELECT p.state_desc, p.permission_name, USER_NAME(p.grantee_principal_id) AS grantee
            FROM sys.database_permissions p
            WHERE p.class = ? AND p.major_id = ? AND p.minor_id = 0
            ORDER BY grantee, p.permission_name
        """, class_id, major_id)

    def _member_of(self, principal_id: int) -> List[str]:
        rows = self._query("""
            SELECT USER_NAME(rm.role_principal_id) AS role_name
            FROM sys.database_role_members rm
            WHERE rm.member_principal_id = ?
            ORDER BY role_name
        """, principal_id)
        return [row['role_name'] for row in rows]

    def _module(self, object_id: int) -> Dict:
        rows = self._query("""
            SELECT m.definition, m.uses_ansi_nulls, m.uses_quoted_identifier
            FROM sys.sql_modules m
            WHERE m.object_id = ?
        """, object_id)
        if not rows or rows[0]['definition'] is None:
            raise ScriptingError(f"Definition unavailable for object {object_id} (permissions or WITH ENCRYPTION)")
        return rows[0]

    def _object_permissions(self, obj: DbObject, options: ScriptingOptions) -> List[str]:
        if not options.permissions:
            return []
        securable = render.qualified_name(obj.schema, obj.name)
        return render.permission_statements(securable, self._permissions(1, obj.object_id))

    # Renderers, one per object type

    def _script_login(self, obj: DbObject, options: ScriptingOptions) -> List[str]:
        login = dict(obj.properties, name=obj.name)
        batches = render.create_login(login, password=secrets.token_urlsafe(24))
        if options.role_memberships:
            roles = self._query("""
                SELECT r.name
                FROM sys.server_role_members m
                JOIN sys.server_principals r ON m.role_principal_id = r.principal_id
                WHERE m.member_principal_id = ?
                ORDER BY r.name
            """, obj.object_id)
            batches.extend(render.server_role_membership(row['name'], obj.name) for row in roles)
        return batches

    def _script_sql_agent_job(self, obj: DbObject, options: ScriptingOptions) -> List[str]:
        job_id = obj.properties['job_id']
        steps = self._query("""
            SELECT step_id, step_name, subsystem, command, database_name,
                on_success_action, on_fail_action, retry_attempts, retry_interval
            FROM msdb.dbo.sysjobsteps
            WHERE job_id = ?
            ORDER BY step_id
        """, job_id)
        schedules = self._query("""
            SELECT s.name, s.enabled, s.freq_type, s.freq_interval, s.freq_subday_type, s.freq_subday_interval,
                s.freq_relative_interval, s.freq_recurrence_factor, s.active_start_date, s.active_end_date,
                s.active_start_time, s.active_end_time
            FROM msdb.dbo.sysjobschedules js
            JOIN msdb.dbo.sysschedules s ON js.schedule_id = s.schedule_id
            WHERE js.job_id = ?
            ORDER BY s.name
        """, job_id)
        return render.create_job(dict(obj.properties, name=obj.name), steps, schedules)

    def _script_database(self, obj: DbObject, options: ScriptingOptions) -> List[str]:
        files = self._query("""
            SELECT name, physical_name, type_desc, size, max_size, growth, is_percent_growth
            FROM sys.master_files
            WHERE database_id = ?
            ORDER BY file_id
        """, obj.object_id)
        return render.create_database(dict(obj.properties, name=obj.name), files)

    def _script_user(self, obj: DbObject, options: ScriptingOptions) -> List[str]:
        rows = self._query("""
            SELECT sp.name AS login_name
            FROM sys.database_principals dp
            JOIN sys.server_principals sp ON dp.sid = sp.sid
            WHERE dp.principal_id = ?
        """, obj.object_id)
        user = dict(obj.properties, name=obj.name, login_name=rows[0]['login_name'] if rows else None)
        batches = [render.create_user(user)]
        if options.role_memberships:
            batches.extend(render.role_membership(role, obj.name) for role in self._member_of(obj.object_id))
        return batches

    def _script_schema(self, obj: DbObject, options: ScriptingOptions) -> List[str]:
        batches = [render.create_schema(obj.name, obj.properties.get('owner'))]
        if options.permissions:
            securable = f"SCHEMA::{render.quote_name(obj.name)}"
            batches.extend(render.permission_statements(securable, self._permissions(3, obj.object_id)))
        return batches

    def _script_database_role(self, obj: DbObject, options: ScriptingOptions) -> List[str]:
        batches = [render.create_role(obj.name, obj.properties.get('owner'))]
        if options.role_memberships:
            batches.extend(render.role_membership(role, obj.name) for role in self._member_of(obj.object_id))
        return batches

    def _script_application_role(self, obj: DbObject, options: ScriptingOptions) -> List[str]:
        return [render.create_application_role(obj.name, obj.properties.get('default_schema_name'),
                                               SENTINEL_PASSWORD)]

    def _script_table(self, obj: DbObject, options: ScriptingOptions) -> List[str]:
        columns = self._columns(obj.object_id)
        index_columns = self._index_columns(obj.object_id)
        batches = [
            'SET ANSI_NULLS ON',
            'SET QUOTED_IDENTIFIER ON',
            render.create_table(obj.schema, obj.name, columns, self._key_constraints(obj.object_id, index_columns)),
        ]
        if options.indexes:
            batches.extend(render.create_index(obj.schema, obj.name, index)
                           for index in self._indexes(obj.object_id, index_columns))
        batches.extend(render.default_constraints(obj.schema, obj.name, columns))
        for fk in self._foreign_keys(obj.object_id):
            batches.extend(render.foreign_key(obj.schema, obj.name, fk))
        checks = self._query("""
            SELECT name, definition, is_disabled
            FROM sys.check_constraints
            WHERE parent_object_id = ?
            ORDER BY name
        """, obj.object_id)
        for check in checks:
            batches.extend(render.check_constraint(obj.schema, obj.name, check))
        if options.triggers:
            triggers = self._query("""
                SELECT tr.name, m.definition, tr.is_disabled, m.uses_ansi_nulls, m.uses_quoted_identifier
                FROM sys.triggers tr
                JOIN sys.sql_modules m ON tr.object_id = m.object_id
                WHERE tr.parent_id = ?
                ORDER BY tr.name
            """, obj.object_id)
            for trigger in triggers:
                if trigger['definition'] is None:
                    logger.warning(f"Trigger {trigger['name']} on {obj.full_name} is encrypted; not scripted")
                    continue
                batches.extend(render.trigger_batches(obj.schema, obj.name, trigger))
        batches.extend(self._object_permissions(obj, options))
        return batches

    def _script_module(self, obj: DbObject, options: ScriptingOptions) -> List[str]:
        module = self._module(obj.object_id)
        batches = render.module_batches(module['definition'], bool(module['uses_ansi_nulls']),
                                        bool(module['uses_quoted_identifier']))
        batches.extend(self._object_permissions(obj, options))
        return batches

    _script_view = _script_module
    _script_proc = _script_module
    _script_function = _script_module

    def _script_synonym(self, obj: DbObject, options: ScriptingOptions) -> List[str]:
        batches = [render.create_synonym(obj.schema, obj.name, obj.properties['base_object_name'])]
        batches.extend(self._object_permissions(obj, options))
        return batches

    def _type_permissions(self, obj: DbObject, options: ScriptingOptions) -> List[str]:
        if not options.permissions:
            return []
        securable = f"TYPE::{render.qualified_name(obj.schema, obj.name)}"
        type_id = obj.properties.get('user_type_id', obj.object_id)
        return render.permission_statements(securable, self._permissions(6, type_id))

    def _script_user_type(self, obj: DbObject, options: ScriptingOptions) -> List[str]:
        batches = [render.create_clr_type(obj.schema, obj.name, obj.properties['assembly_name'],
                                          obj.properties['assembly_class'])]
        batches.extend(self._type_permissions(obj, options))
        return batches

    def _script_user_data_type(self, obj: DbObject, options: ScriptingOptions) -> List[str]:
        batches = [render.create_alias_type(obj.schema, obj.name, obj.properties)]
        batches.extend(self._type_permissions(obj, options))
        return batches

    def _script_user_table_type(self, obj: DbObject, options: ScriptingOptions) -> List[str]:
        columns = self._columns(obj.object_id)
        index_columns = self._index_columns(obj.object_id)
        batches = [render.create_table_type(obj.schema, obj.name, columns,
                                            self._key_constraints(obj.object_id, index_columns))]
        batches.extend(self._type_permissions(obj, options))
        return batches
