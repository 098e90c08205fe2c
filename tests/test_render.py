import unittest

from sqlscripter import render


class QuotingTestCase(unittest.TestCase):
    def test_quote_name_escapes_bracket(self):
        self.assertEqual(render.quote_name('odd]name'), '[odd]]name]')

    def test_quote_string(self):
        self.assertEqual(render.quote_string("O'Brien"), "N'O''Brien'")
        self.assertEqual(render.quote_string(None), 'NULL')

    def test_qualified_name(self):
        self.assertEqual(render.qualified_name('dbo', 'Orders'), '[dbo].[Orders]')
        self.assertEqual(render.qualified_name(None, 'Orders'), '[Orders]')


class DataTypeTestCase(unittest.TestCase):
    def test_unicode_length_is_halved(self):
        self.assertEqual(render.format_data_type('nvarchar', 100), '[nvarchar](50)')

    def test_max_length(self):
        self.assertEqual(render.format_data_type('varchar', -1), '[varchar](max)')

    def test_decimal(self):
        self.assertEqual(render.format_data_type('decimal', 9, 18, 2), '[decimal](18, 2)')

    def test_plain_and_user_defined(self):
        self.assertEqual(render.format_data_type('int', 4, 10, 0), '[int]')
        self.assertEqual(render.format_data_type('Phone', type_schema='dbo', is_user_defined=True), '[dbo].[Phone]')


class TableTestCase(unittest.TestCase):
    def test_create_table(self):
        columns = [
            {'name': 'Id', 'type_name': 'int', 'is_nullable': False, 'is_identity': True,
             'seed_value': 1, 'increment_value': 1},
            {'name': 'Note', 'type_name': 'nvarchar', 'max_length': 200, 'is_nullable': True},
        ]
        self.assertEqual(
            render.create_table('dbo', 'Orders', columns),
            'CREATE TABLE [dbo].[Orders](\n'
            '\t[Id] [int] IDENTITY(1,1) NOT NULL,\n'
            '\t[Note] [nvarchar](100) NULL\n'
            ')',
        )

    def test_disabled_foreign_key_is_nocheck(self):
        fk = {'name': 'FK_Orders_Customers', 'columns': ['CustomerId'], 'ref_schema': 'dbo',
              'ref_table': 'Customers', 'ref_columns': ['Id'], 'delete_action': 'CASCADE', 'is_disabled': True}
        add, state = render.foreign_key('dbo', 'Orders', fk)
        self.assertIn('REFERENCES [dbo].[Customers] ([Id])', add)
        self.assertIn('ON DELETE CASCADE', add)
        self.assertEqual(state, 'ALTER TABLE [dbo].[Orders] NOCHECK CONSTRAINT [FK_Orders_Customers]')


class SecurityTestCase(unittest.TestCase):
    def test_grant_with_grant_option(self):
        statements = render.permission_statements('[dbo].[Orders]', [
            {'state_desc': 'GRANT_WITH_GRANT_OPTION', 'permission_name': 'SELECT', 'grantee': 'Reporting'},
            {'state_desc': 'DENY', 'permission_name': 'DELETE', 'grantee': 'app'},
        ])
        self.assertEqual(statements, [
            'GRANT SELECT ON [dbo].[Orders] TO [Reporting] WITH GRANT OPTION',
            'DENY DELETE ON [dbo].[Orders] TO [app]',
        ])

    def test_sql_login_created_disabled(self):
        batches = render.create_login({'name': 'app', 'type': 'S', 'default_database_name': 'Sales',
                                       'is_policy_checked': True}, 'pw')
        self.assertEqual(len(batches), 2)
        self.assertIn("CREATE LOGIN [app] WITH PASSWORD=N'pw', DEFAULT_DATABASE=[Sales]", batches[0])
        self.assertIn('CHECK_POLICY=ON', batches[0])
        self.assertEqual(batches[1], 'ALTER LOGIN [app] DISABLE')

    def test_windows_login(self):
        batches = render.create_login({'name': 'CORP\\bob', 'type': 'U', 'is_disabled': False}, 'unused')
        self.assertEqual(batches, ['CREATE LOGIN [CORP\\bob] FROM WINDOWS WITH DEFAULT_DATABASE=[master]'])

    def test_role_owned_by_dbo_has_no_authorization(self):
        self.assertEqual(render.create_role('Reporting', 'dbo'), 'CREATE ROLE [Reporting]')
        self.assertEqual(render.create_role('Reporting', 'app'), 'CREATE ROLE [Reporting] AUTHORIZATION [app]')

    def test_module_batches(self):
        self.assertEqual(
            render.module_batches('\r\nCREATE VIEW v AS SELECT 1\r\n', uses_quoted_identifier=False),
            ['SET ANSI_NULLS ON', 'SET QUOTED_IDENTIFIER OFF', 'CREATE VIEW v AS SELECT 1'],
        )


if __name__ == '__main__':
    unittest.main()
