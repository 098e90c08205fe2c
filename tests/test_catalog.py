import importlib.util
import unittest

from sqlscripter.errors import MetadataError, ScriptingError
from sqlscripter.models import ConnectionDescriptor, DbObject, ObjectType, ScriptingOptions


def _pyodbc_loads():
    # pyodbc needs the unixODBC shared library at import time
    if importlib.util.find_spec('pyodbc') is None:
        return False
    try:
        importlib.import_module('pyodbc')
    except ImportError:
        return False
    return True


class CatalogCursor:
    def __init__(self, connection):
        self.connection = connection
        self.description = None
        self._rows = []

    def execute(self, sql, *params):
        self.connection.executed.append(sql.strip())
        for key, result in self.connection.responses:
            if key in sql:
                break
        else:
            result = []
        if isinstance(result, Exception):
            raise result
        columns = list(result[0]) if result else ['unused']
        self.description = [(name,) for name in columns]
        self._rows = [tuple(row[name] for name in columns) for row in result]

    def fetchall(self):
        return list(self._rows)

    def close(self):
        pass


class CatalogConnection:
    """Answers each query with the rows of the first response whose key occurs in the SQL."""

    def __init__(self, responses=()):
        self.responses = list(responses)
        self.executed = []
        self.closed = False

    def cursor(self):
        return CatalogCursor(self)

    def close(self):
        self.closed = True


@unittest.skipUnless(_pyodbc_loads(), 'pyodbc cannot be loaded')
class ConnectionStringTestCase(unittest.TestCase):
    def setUp(self):
        from sqlscripter.catalog import build_connection_string
        self.build = build_connection_string

    def test_integrated_auth(self):
        conn_str = self.build(ConnectionDescriptor(server='HOST\\INST'))
        self.assertIn('DRIVER={ODBC Driver 17 for SQL Server};', conn_str)
        self.assertIn('SERVER=HOST\\INST;', conn_str)
        self.assertIn('Trusted_Connection=yes;', conn_str)
        self.assertNotIn('UID=', conn_str)

    def test_sql_auth(self):
        conn_str = self.build(ConnectionDescriptor(server='SQL01', username='scripter', password='pw'), 'Sales')
        self.assertIn('DATABASE=Sales;', conn_str)
        self.assertIn('UID=scripter;PWD=pw;', conn_str)
        self.assertNotIn('Trusted_Connection', conn_str)

    def test_azure_ad(self):
        conn_str = self.build(ConnectionDescriptor(server='x.database.windows.net', authentication_type='azure_ad'))
        self.assertIn('Authentication=ActiveDirectoryDefault;', conn_str)


@unittest.skipUnless(_pyodbc_loads(), 'pyodbc cannot be loaded')
class CatalogTestCase(unittest.TestCase):
    def service(self, *responses):
        from sqlscripter.catalog import SqlServerScriptingService
        self.connection = CatalogConnection(responses)
        return SqlServerScriptingService(self.connection, 'SQL01')


class EnumerationTestCase(CatalogTestCase):
    def test_role_flags_and_properties(self):
        service = self.service(('FROM sys.database_principals r', [
            {'name': 'db_owner', 'schema_name': None, 'object_id': 16384, 'is_system_object': 0,
             'is_encrypted': 0, 'is_fixed_role': 1, 'owner': 'dbo'},
            {'name': 'Reporting', 'schema_name': None, 'object_id': 5, 'is_system_object': 0,
             'is_encrypted': 0, 'is_fixed_role': 0, 'owner': 'app'},
        ]))

        fixed, custom = service.collection('Sales', 'roles')

        self.assertEqual(self.connection.executed[0], 'USE [Sales]')
        self.assertEqual(fixed.object_type, ObjectType.DATABASE_ROLE)
        self.assertEqual(fixed.database, 'Sales')
        self.assertTrue(fixed.is_fixed_role)
        self.assertFalse(custom.is_fixed_role)
        self.assertEqual(custom.object_id, 5)
        self.assertEqual(custom.properties, {'owner': 'app'})

    def test_procedure_system_and_encrypted_flags(self):
        service = self.service(('FROM sys.procedures p', [
            {'name': 'sp_upgraddiagrams', 'schema_name': 'dbo', 'object_id': 1, 'is_system_object': 1,
             'is_encrypted': 0, 'is_fixed_role': 0},
            {'name': 'usp_Secret', 'schema_name': 'dbo', 'object_id': 2, 'is_system_object': 0,
             'is_encrypted': 1, 'is_fixed_role': 0},
        ]))

        system, secret = service.collection('Sales', 'procedures')

        self.assertTrue(system.is_system_object)
        self.assertFalse(system.is_encrypted)
        self.assertEqual(secret.full_name, 'dbo.usp_Secret')
        self.assertTrue(secret.is_encrypted)
        self.assertEqual(secret.properties, {})

    def test_database_switched_once(self):
        service = self.service()
        service.collection('Sales', 'tables')
        service.collection('Sales', 'views')
        service.collection('HR', 'views')
        uses = [sql for sql in self.connection.executed if sql.startswith('USE')]
        self.assertEqual(uses, ['USE [Sales]', 'USE [HR]'])

    def test_logins(self):
        service = self.service(('FROM sys.server_principals sp', [
            {'name': 'app', 'object_id': 267, 'type': 'S', 'is_disabled': 0,
             'default_database_name': 'Sales', 'default_language_name': 'us_english',
             'is_policy_checked': 1, 'is_expiration_checked': 0},
        ]))

        [login] = service.logins()

        self.assertEqual(login.object_type, ObjectType.LOGIN)
        self.assertIsNone(login.schema)
        self.assertEqual(login.object_id, 267)
        self.assertEqual(login.properties['type'], 'S')
        self.assertNotIn('name', login.properties)

    def test_jobs_empty_without_sql_agent(self):
        service = self.service(("OBJECT_ID(N'msdb.dbo.sysjobs')", [{'object_id': None}]))
        self.assertEqual(service.jobs(), [])
        self.assertFalse(any('FROM msdb.dbo.sysjobs j' in sql for sql in self.connection.executed))

    def test_jobs_listed_with_sql_agent(self):
        service = self.service(
            ("OBJECT_ID(N'msdb.dbo.sysjobs')", [{'object_id': 1093578934}]),
            ('FROM msdb.dbo.sysjobs j', [{'name': 'Nightly Backup', 'job_id': 'A1B2', 'enabled': 1}]),
        )
        [job] = service.jobs()
        self.assertEqual(job.name, 'Nightly Backup')
        self.assertEqual(job.object_type, ObjectType.SQL_AGENT_JOB)
        self.assertEqual(job.properties['job_id'], 'A1B2')

    def test_driver_error_becomes_metadata_error(self):
        import pyodbc
        service = self.service(('FROM sys.tables t', pyodbc.Error('42000', 'permission denied')))
        with self.assertRaises(MetadataError):
            service.collection('Sales', 'tables')


class RenderingTestCase(CatalogTestCase):
    def test_application_role_uses_sentinel(self):
        service = self.service()
        role = DbObject('Reporting', ObjectType.APPLICATION_ROLE, database='Sales',
                        properties={'default_schema_name': 'dbo'})
        batches = service.script(role, ScriptingOptions())
        self.assertEqual(batches, [
            'USE [Sales]',
            "CREATE APPLICATION ROLE [Reporting] WITH DEFAULT_SCHEMA = [dbo], PASSWORD = N'**CHANGEME**'",
        ])

    def test_context_omitted_when_disabled(self):
        service = self.service()
        role = DbObject('Reporting', ObjectType.APPLICATION_ROLE, database='Sales')
        batches = service.script(role, ScriptingOptions(include_database_context=False))
        self.assertEqual(batches, ["CREATE APPLICATION ROLE [Reporting] WITH PASSWORD = N'**CHANGEME**'"])

    def test_login_with_server_roles(self):
        service = self.service(('FROM sys.server_role_members', [{'name': 'dbcreator'}]))
        login = DbObject('app', ObjectType.LOGIN, object_id=267, properties={
            'type': 'S', 'is_disabled': 0, 'default_database_name': 'Sales',
            'default_language_name': 'us_english', 'is_policy_checked': 1, 'is_expiration_checked': 0,
        })

        batches = service.script(login, ScriptingOptions())

        self.assertEqual(batches[0], 'USE [master]')
        self.assertIn("CREATE LOGIN [app] WITH PASSWORD=N'", batches[1])
        self.assertIn("', DEFAULT_DATABASE=[Sales], DEFAULT_LANGUAGE=[us_english]", batches[1])
        self.assertIn('CHECK_EXPIRATION=OFF, CHECK_POLICY=ON', batches[1])
        self.assertEqual(batches[2:], ['ALTER LOGIN [app] DISABLE', 'ALTER SERVER ROLE [dbcreator] ADD MEMBER [app]'])

    def test_login_without_role_memberships(self):
        service = self.service(('FROM sys.server_role_members', [{'name': 'dbcreator'}]))
        login = DbObject('CORP\\bob', ObjectType.LOGIN, object_id=268, properties={'type': 'U'})
        batches = service.script(login, ScriptingOptions(role_memberships=False, include_database_context=False))
        self.assertEqual(batches, ['CREATE LOGIN [CORP\\bob] FROM WINDOWS WITH DEFAULT_DATABASE=[master]'])

    def test_user_for_login_with_roles(self):
        service = self.service(
            ('JOIN sys.server_principals sp ON dp.sid', [{'login_name': 'app'}]),
            ('FROM sys.database_role_members', [{'role_name': 'Reporting'}, {'role_name': 'db_datareader'}]),
        )
        user = DbObject('app', ObjectType.USER, database='Sales', object_id=5,
                        properties={'type': 'S', 'default_schema_name': 'dbo'})

        batches = service.script(user, ScriptingOptions())

        self.assertEqual(batches, [
            'USE [Sales]',
            'CREATE USER [app] FOR LOGIN [app] WITH DEFAULT_SCHEMA=[dbo]',
            'ALTER ROLE [Reporting] ADD MEMBER [app]',
            'ALTER ROLE [db_datareader] ADD MEMBER [app]',
        ])

    def table_service(self):
        return self.service(
            ('FROM sys.columns c', [
                {'name': 'Id', 'type_name': 'int', 'is_nullable': 0, 'is_identity': 1,
                 'seed_value': 1, 'increment_value': 1},
            ]),
            ('FROM sys.index_columns ic', [
                {'index_id': 1, 'name': 'Id', 'is_descending_key': 0, 'is_included_column': 0},
                {'index_id': 2, 'name': 'Id', 'is_descending_key': 1, 'is_included_column': 0},
            ]),
            ('FROM sys.key_constraints kc', [
                {'name': 'PK_Orders', 'type': 'PK', 'type_desc': 'CLUSTERED', 'index_id': 1},
            ]),
            ('FROM sys.indexes i', [
                {'index_id': 2, 'name': 'IX_Orders_Id', 'is_unique': 0, 'type_desc': 'NONCLUSTERED',
                 'filter_definition': None},
            ]),
            ('FROM sys.triggers tr', [
                {'name': 'trg_Hidden', 'definition': None, 'is_disabled': 0,
                 'uses_ansi_nulls': 1, 'uses_quoted_identifier': 1},
                {'name': 'trg_Log', 'definition': 'CREATE TRIGGER trg_Log ON dbo.Orders AFTER INSERT AS SELECT 1',
                 'is_disabled': 1, 'uses_ansi_nulls': 1, 'uses_quoted_identifier': 1},
            ]),
            ('FROM sys.database_permissions p', [
                {'state_desc': 'GRANT', 'permission_name': 'SELECT', 'grantee': 'Reporting'},
            ]),
        )

    def test_table(self):
        service = self.table_service()
        table = DbObject('Orders', ObjectType.TABLE, database='Sales', schema='dbo', object_id=901578250)

        batches = service.script(table, ScriptingOptions())

        self.assertEqual(batches[:4], [
            'USE [Sales]',
            'SET ANSI_NULLS ON',
            'SET QUOTED_IDENTIFIER ON',
            'CREATE TABLE [dbo].[Orders](\n'
            '\t[Id] [int] IDENTITY(1,1) NOT NULL,\n'
            ' CONSTRAINT [PK_Orders] PRIMARY KEY CLUSTERED \n(\n\t[Id] ASC\n)\n'
            ')',
        ])
        self.assertEqual(batches[4], 'CREATE NONCLUSTERED INDEX [IX_Orders_Id] ON [dbo].[Orders]\n(\n\t[Id] DESC\n)')
        self.assertEqual(batches[5:], [
            'SET ANSI_NULLS ON',
            'SET QUOTED_IDENTIFIER ON',
            'CREATE TRIGGER trg_Log ON dbo.Orders AFTER INSERT AS SELECT 1',
            'DISABLE TRIGGER [dbo].[trg_Log] ON [dbo].[Orders]',
            'GRANT SELECT ON [dbo].[Orders] TO [Reporting]',
        ])

    def test_table_options_drop_sections(self):
        service = self.table_service()
        table = DbObject('Orders', ObjectType.TABLE, database='Sales', schema='dbo', object_id=901578250)
        options = ScriptingOptions(indexes=False, triggers=False, permissions=False, include_database_context=False)

        batches = service.script(table, options)

        self.assertEqual(len(batches), 3)
        self.assertTrue(batches[2].startswith('CREATE TABLE [dbo].[Orders]('))

    def test_user_table_type(self):
        service = self.service(
            ('FROM sys.columns c', [{'name': 'LineId', 'type_name': 'int', 'is_nullable': 0}]),
            ('FROM sys.index_columns ic', [
                {'index_id': 1, 'name': 'LineId', 'is_descending_key': 0, 'is_included_column': 0},
            ]),
            ('FROM sys.key_constraints kc', [
                {'name': 'PK__TT_Order__1A2B', 'type': 'PK', 'type_desc': 'CLUSTERED', 'index_id': 1},
            ]),
            ('FROM sys.database_permissions p', [
                {'state_desc': 'GRANT', 'permission_name': 'EXECUTE', 'grantee': 'app'},
            ]),
        )
        table_type = DbObject('OrderLines', ObjectType.USER_TABLE_TYPE, database='Sales', schema='dbo',
                              object_id=1977058079, properties={'user_type_id': 257})

        batches = service.script(table_type, ScriptingOptions())

        self.assertEqual(batches, [
            'USE [Sales]',
            'CREATE TYPE [dbo].[OrderLines] AS TABLE(\n'
            '\t[LineId] [int] NOT NULL,\n'
            ' PRIMARY KEY CLUSTERED \n(\n\t[LineId] ASC\n)\n'
            ')',
            'GRANT EXECUTE ON TYPE::[dbo].[OrderLines] TO [app]',
        ])

    def test_encrypted_module_is_a_scripting_error(self):
        service = self.service(('FROM sys.sql_modules m', [
            {'definition': None, 'uses_ansi_nulls': 1, 'uses_quoted_identifier': 1},
        ]))
        proc = DbObject('usp_Secret', ObjectType.PROC, database='Sales', schema='dbo', object_id=7)
        with self.assertRaises(ScriptingError):
            service.script(proc, ScriptingOptions())

    def test_view_definition(self):
        service = self.service(('FROM sys.sql_modules m', [
            {'definition': '\r\nCREATE VIEW dbo.OrderTotals AS SELECT 1 AS n\r\n',
             'uses_ansi_nulls': 1, 'uses_quoted_identifier': 0},
        ]))
        view = DbObject('OrderTotals', ObjectType.VIEW, database='Sales', schema='dbo', object_id=8)
        batches = service.script(view, ScriptingOptions(permissions=False))
        self.assertEqual(batches, [
            'USE [Sales]',
            'SET ANSI_NULLS ON',
            'SET QUOTED_IDENTIFIER OFF',
            'CREATE VIEW dbo.OrderTotals AS SELECT 1 AS n',
        ])


if __name__ == '__main__':
    unittest.main()
