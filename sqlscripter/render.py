"""
Script builders for SQL Server objects.

Every function here is pure: it receives catalog rows as dictionaries and returns
script text (or a list of batches). Batches are later written with a GO terminator
after each one.
"""

from typing import Dict, List, Optional, Sequence


CHARACTER_TYPES = {'char', 'varchar', 'text', 'nchar', 'nvarchar', 'ntext'}
UNICODE_TYPES = {'nchar', 'nvarchar'}
LENGTH_TYPES = {'char', 'varchar', 'binary', 'varbinary', 'nchar', 'nvarchar'}
SCALE_TYPES = {'datetime2', 'datetimeoffset', 'time'}
PRECISION_SCALE_TYPES = {'decimal', 'numeric'}

REFERENTIAL_ACTIONS = {
    'CASCADE': 'CASCADE',
    'SET_NULL': 'SET NULL',
    'SET_DEFAULT': 'SET DEFAULT',
}

SQL_LOGIN_NOTICE = '/* For security reasons the login is created disabled and with a random password. */'


def quote_name(name: str) -> str:
    return '[' + name.replace(']', ']]') + ']'


def quote_string(value: Optional[str]) -> str:
    if value is None:
        return 'NULL'
    return "N'" + value.replace("'", "''") + "'"


def qualified_name(schema: Optional[str], name: str) -> str:
    if schema:
        return f"{quote_name(schema)}.{quote_name(name)}"
    return quote_name(name)


def use_database(database: str) -> str:
    return f"USE {quote_name(database)}"


def format_data_type(type_name: str, max_length: Optional[int] = None, precision: Optional[int] = None,
                     scale: Optional[int] = None, type_schema: Optional[str] = None,
                     is_user_defined: bool = False) -> str:
    """Render a column or alias type the way SQL Server scripts it, e.g. [nvarchar](50)."""
    if is_user_defined:
        return qualified_name(type_schema, type_name)

    rendered = quote_name(type_name)
    if type_name in LENGTH_TYPES:
        if max_length == -1:
            return f"{rendered}(max)"
        length = max_length // 2 if type_name in UNICODE_TYPES else max_length
        return f"{rendered}({length})"
    if type_name in PRECISION_SCALE_TYPES:
        return f"{rendered}({precision}, {scale})"
    if type_name in SCALE_TYPES:
        return f"{rendered}({scale})"
    if type_name == 'float' and precision and precision != 53:
        return f"{rendered}({precision})"
    return rendered


def column_definition(col: Dict) -> str:
    name = quote_name(col['name'])
    if col.get('is_computed'):
        definition = f"\t{name}  AS {col['computed_definition']}"
        if col.get('is_persisted'):
            definition += ' PERSISTED'
        return definition

    parts = [f"\t{name}", format_data_type(
        col['type_name'], col.get('max_length'), col.get('precision'), col.get('scale'),
        col.get('type_schema'), bool(col.get('is_user_defined')),
    )]
    if col.get('is_identity'):
        seed = col.get('seed_value') if col.get('seed_value') is not None else 1
        increment = col.get('increment_value') if col.get('increment_value') is not None else 1
        parts.append(f"IDENTITY({seed},{increment})")
    if col.get('collation_name') and col['type_name'] in CHARACTER_TYPES and not col.get('is_user_defined'):
        parts.append(f"COLLATE {col['collation_name']}")
    if col.get('is_rowguidcol'):
        parts.append('ROWGUIDCOL')
    parts.append('NULL' if col.get('is_nullable') else 'NOT NULL')
    return ' '.join(parts)


def index_column_list(columns: Sequence[Dict]) -> str:
    rendered = [
        f"\t{quote_name(c['name'])} {'DESC' if c.get('is_descending_key') else 'ASC'}"
        for c in columns
    ]
    return '\n' + ',\n'.join(rendered) + '\n'


def key_constraint(constraint: Dict, named: bool = True) -> str:
    """PRIMARY KEY / UNIQUE clause for use inside a CREATE TABLE or CREATE TYPE body."""
    kind = 'PRIMARY KEY' if constraint['type'] == 'PK' else 'UNIQUE'
    prefix = f"CONSTRAINT {quote_name(constraint['name'])} " if named else ''
    return f" {prefix}{kind} {constraint['type_desc']} \n({index_column_list(constraint['columns'])})"


def create_table(schema: str, name: str, columns: Sequence[Dict],
                 key_constraints: Sequence[Dict] = ()) -> str:
    body = [column_definition(c) for c in columns]
    body.extend(key_constraint(k) for k in key_constraints)
    return f"CREATE TABLE {qualified_name(schema, name)}(\n" + ',\n'.join(body) + '\n)'


def default_constraints(schema: str, table: str, columns: Sequence[Dict]) -> List[str]:
    batches = []
    for col in columns:
        if col.get('default_name') and col.get('default_definition'):
            batches.append(
                f"ALTER TABLE {qualified_name(schema, table)} ADD  CONSTRAINT {quote_name(col['default_name'])}  "
                f"DEFAULT {col['default_definition']} FOR {quote_name(col['name'])}"
            )
    return batches


def create_index(schema: str, table: str, index: Dict) -> str:
    unique = 'UNIQUE ' if index.get('is_unique') else ''
    statement = (
        f"CREATE {unique}{index['type_desc']} INDEX {quote_name(index['name'])} "
        f"ON {qualified_name(schema, table)}\n({index_column_list(index['columns'])})"
    )
    if index.get('included'):
        statement += '\nINCLUDE(' + ','.join(quote_name(c) for c in index['included']) + ')'
    if index.get('filter_definition'):
        statement += f"\nWHERE {index['filter_definition']}"
    return statement


def foreign_key(schema: str, table: str, fk: Dict) -> List[str]:
    target = qualified_name(schema, table)
    columns = ', '.join(quote_name(c) for c in fk['columns'])
    ref_columns = ', '.join(quote_name(c) for c in fk['ref_columns'])
    statement = (
        f"ALTER TABLE {target}  WITH CHECK ADD  CONSTRAINT {quote_name(fk['name'])} FOREIGN KEY({columns})\n"
        f"REFERENCES {qualified_name(fk['ref_schema'], fk['ref_table'])} ({ref_columns})"
    )
    for clause, action in (('ON DELETE', fk.get('delete_action')), ('ON UPDATE', fk.get('update_action'))):
        if action in REFERENTIAL_ACTIONS:
            statement += f"\n{clause} {REFERENTIAL_ACTIONS[action]}"
    state = 'NOCHECK' if fk.get('is_disabled') else 'CHECK'
    return [statement, f"ALTER TABLE {target} {state} CONSTRAINT {quote_name(fk['name'])}"]


def check_constraint(schema: str, table: str, check: Dict) -> List[str]:
    target = qualified_name(schema, table)
    statement = f"ALTER TABLE {target}  WITH CHECK ADD  CONSTRAINT {quote_name(check['name'])} CHECK  ({check['definition']})"
    state = 'NOCHECK' if check.get('is_disabled') else 'CHECK'
    return [statement, f"ALTER TABLE {target} {state} CONSTRAINT {quote_name(check['name'])}"]


def module_batches(definition: str, uses_ansi_nulls: bool = True, uses_quoted_identifier: bool = True) -> List[str]:
    """SET batches followed by the stored module text (view, procedure, function, trigger)."""
    return [
        f"SET ANSI_NULLS {'ON' if uses_ansi_nulls else 'OFF'}",
        f"SET QUOTED_IDENTIFIER {'ON' if uses_quoted_identifier else 'OFF'}",
        definition.strip('\r\n'),
    ]


def trigger_batches(schema: str, table: str, trigger: Dict) -> List[str]:
    batches = module_batches(trigger['definition'], trigger.get('uses_ansi_nulls', True),
                             trigger.get('uses_quoted_identifier', True))
    if trigger.get('is_disabled'):
        batches.append(f"DISABLE TRIGGER {qualified_name(schema, trigger['name'])} ON {qualified_name(schema, table)}")
    return batches


def permission_statements(securable: str, permissions: Sequence[Dict]) -> List[str]:
    """GRANT/DENY statements; securable is already rendered, e.g. [dbo].[T] or SCHEMA::[s]."""
    statements = []
    for perm in permissions:
        state = perm['state_desc']
        suffix = ''
        if state == 'GRANT_WITH_GRANT_OPTION':
            state, suffix = 'GRANT', ' WITH GRANT OPTION'
        statements.append(
            f"{state} {perm['permission_name']} ON {securable} TO {quote_name(perm['grantee'])}{suffix}"
        )
    return statements


def role_membership(role: str, member: str) -> str:
    return f"ALTER ROLE {quote_name(role)} ADD MEMBER {quote_name(member)}"


def create_login(login: Dict, password: str) -> List[str]:
    name = quote_name(login['name'])
    default_db = quote_name(login.get('default_database_name') or 'master')
    language = login.get('default_language_name')

    if login['type'] == 'S':
        options = [f"PASSWORD={quote_string(password)}", f"DEFAULT_DATABASE={default_db}"]
        if language:
            options.append(f"DEFAULT_LANGUAGE={quote_name(language)}")
        options.append(f"CHECK_EXPIRATION={'ON' if login.get('is_expiration_checked') else 'OFF'}")
        options.append(f"CHECK_POLICY={'ON' if login.get('is_policy_checked') else 'OFF'}")
        return [
            f"{SQL_LOGIN_NOTICE}\nCREATE LOGIN {name} WITH " + ', '.join(options),
            f"ALTER LOGIN {name} DISABLE",
        ]

    if login['type'] in ('E', 'X'):
        batches = [f"CREATE LOGIN {name} FROM EXTERNAL PROVIDER"]
    else:
        options = [f"DEFAULT_DATABASE={default_db}"]
        if language:
            options.append(f"DEFAULT_LANGUAGE={quote_name(language)}")
        batches = [f"CREATE LOGIN {name} FROM WINDOWS WITH " + ', '.join(options)]
    if login.get('is_disabled'):
        batches.append(f"ALTER LOGIN {name} DISABLE")
    return batches


def server_role_membership(role: str, login: str) -> str:
    return f"ALTER SERVER ROLE {quote_name(role)} ADD MEMBER {quote_name(login)}"


def create_job(job: Dict, steps: Sequence[Dict], schedules: Sequence[Dict]) -> List[str]:
    job_name = quote_string(job['name'])
    batches = [
        "EXEC msdb.dbo.sp_add_job "
        f"@job_name={job_name}, "
        f"@enabled={int(bool(job.get('enabled')))}, "
        f"@description={quote_string(job.get('description') or '')}, "
        f"@category_name={quote_string(job.get('category_name') or '[Uncategorized (Local)]')}, "
        f"@owner_login_name={quote_string(job.get('owner_login_name'))}"
    ]
    for step in steps:
        batches.append(
            "EXEC msdb.dbo.sp_add_jobstep "
            f"@job_name={job_name}, "
            f"@step_name={quote_string(step['step_name'])}, "
            f"@step_id={step['step_id']}, "
            f"@subsystem={quote_string(step['subsystem'])}, "
            f"@command={quote_string(step.get('command') or '')}, "
            f"@database_name={quote_string(step.get('database_name'))}, "
            f"@on_success_action={step.get('on_success_action', 1)}, "
            f"@on_fail_action={step.get('on_fail_action', 2)}, "
            f"@retry_attempts={step.get('retry_attempts', 0)}, "
            f"@retry_interval={step.get('retry_interval', 0)}"
        )
    if job.get('start_step_id'):
        batches.append(f"EXEC msdb.dbo.sp_update_job @job_name={job_name}, @start_step_id={job['start_step_id']}")
    for schedule in schedules:
        batches.append(
            "EXEC msdb.dbo.sp_add_jobschedule "
            f"@job_name={job_name}, "
            f"@name={quote_string(schedule['name'])}, "
            f"@enabled={int(bool(schedule.get('enabled')))}, "
            f"@freq_type={schedule['freq_type']}, "
            f"@freq_interval={schedule['freq_interval']}, "
            f"@freq_subday_type={schedule['freq_subday_type']}, "
            f"@freq_subday_interval={schedule['freq_subday_interval']}, "
            f"@freq_relative_interval={schedule['freq_relative_interval']}, "
            f"@freq_recurrence_factor={schedule['freq_recurrence_factor']}, "
            f"@active_start_date={schedule['active_start_date']}, "
            f"@active_end_date={schedule['active_end_date']}, "
            f"@active_start_time={schedule['active_start_time']}, "
            f"@active_end_time={schedule['active_end_time']}"
        )
    batches.append(f"EXEC msdb.dbo.sp_add_jobserver @job_name={job_name}, @server_name=N'(local)'")
    return batches


def _file_size(pages: int) -> str:
    return f"{pages * 8}KB"


def _file_spec(f: Dict) -> str:
    if f.get('max_size') in (-1, None):
        max_size = 'UNLIMITED'
    else:
        max_size = _file_size(f['max_size'])
    growth = f"{f['growth']}%" if f.get('is_percent_growth') else _file_size(f.get('growth') or 0)
    return (
        f"( NAME = {quote_string(f['name'])}, FILENAME = {quote_string(f['physical_name'])} , "
        f"SIZE = {_file_size(f['size'])} , MAXSIZE = {max_size} , FILEGROWTH = {growth} )"
    )


def create_database(database: Dict, files: Sequence[Dict]) -> List[str]:
    name = quote_name(database['name'])
    statement = f"CREATE DATABASE {name}"
    rows = [f for f in files if f.get('type_desc') == 'ROWS']
    logs = [f for f in files if f.get('type_desc') == 'LOG']
    if rows:
        statement += '\n ON  PRIMARY \n' + ',\n'.join(_file_spec(f) for f in rows)
    if logs:
        statement += '\n LOG ON \n' + ',\n'.join(_file_spec(f) for f in logs)
    if database.get('collation_name'):
        statement += f"\n COLLATE {database['collation_name']}"

    batches = [statement]
    if database.get('compatibility_level'):
        batches.append(f"ALTER DATABASE {name} SET COMPATIBILITY_LEVEL = {database['compatibility_level']}")
    if database.get('recovery_model_desc'):
        batches.append(f"ALTER DATABASE {name} SET RECOVERY {database['recovery_model_desc']} ")
    return batches


def create_user(user: Dict) -> str:
    name = quote_name(user['name'])
    if user.get('type') in ('E', 'X'):
        statement = f"CREATE USER {name} FROM EXTERNAL PROVIDER"
    elif user.get('login_name'):
        statement = f"CREATE USER {name} FOR LOGIN {quote_name(user['login_name'])}"
    else:
        statement = f"CREATE USER {name} WITHOUT LOGIN"
    if user.get('default_schema_name') and user.get('type') != 'G':
        statement += f" WITH DEFAULT_SCHEMA={quote_name(user['default_schema_name'])}"
    return statement


def create_schema(name: str, owner: Optional[str] = None) -> str:
    statement = f"CREATE SCHEMA {quote_name(name)}"
    if owner:
        statement += f" AUTHORIZATION {quote_name(owner)}"
    return statement


def create_role(name: str, owner: Optional[str] = None) -> str:
    statement = f"CREATE ROLE {quote_name(name)}"
    if owner and owner != 'dbo':
        statement += f" AUTHORIZATION {quote_name(owner)}"
    return statement


def create_application_role(name: str, default_schema: Optional[str], password: str) -> str:
    options = []
    if default_schema:
        options.append(f"DEFAULT_SCHEMA = {quote_name(default_schema)}")
    options.append(f"PASSWORD = {quote_string(password)}")
    return f"CREATE APPLICATION ROLE {quote_name(name)} WITH " + ', '.join(options)


def create_synonym(schema: str, name: str, base_object_name: str) -> str:
    return f"CREATE SYNONYM {qualified_name(schema, name)} FOR {base_object_name}"


def create_clr_type(schema: str, name: str, assembly_name: str, assembly_class: str) -> str:
    return f"CREATE TYPE {qualified_name(schema, name)}\nEXTERNAL NAME {quote_name(assembly_name)}.{quote_name(assembly_class)}"


def create_alias_type(schema: str, name: str, base: Dict) -> str:
    rendered = format_data_type(base['base_type'], base.get('max_length'), base.get('precision'), base.get('scale'))
    nullable = 'NULL' if base.get('is_nullable') else 'NOT NULL'
    return f"CREATE TYPE {qualified_name(schema, name)} FROM {rendered} {nullable}"


def create_table_type(schema: str, name: str, columns: Sequence[Dict],
                      key_constraints: Sequence[Dict] = ()) -> str:
    body = [column_definition(c) for c in columns]
    # table type constraints carry generated names and are scripted anonymously
    body.extend(key_constraint(k, named=False) for k in key_constraints)
    return f"CREATE TYPE {qualified_name(schema, name)} AS TABLE(\n" + ',\n'.join(body) + '\n)'
