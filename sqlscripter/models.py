from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, List, Optional


SYSTEM_DATABASES = frozenset({
    'master',
    'model',
    'msdb',
    'tempdb',
    'ReportServer',
    'ReportServerTempDB',
})


class ObjectType(Enum):
    DATABASE = "Database"
    LOGIN = "Login"
    SQL_AGENT_JOB = "SQLAgentJob"
    USER = "User"
    SCHEMA = "Schema"
    DATABASE_ROLE = "DatabaseRole"
    APPLICATION_ROLE = "ApplicationRole"
    TABLE = "Table"
    VIEW = "View"
    PROC = "Proc"
    FUNCTION = "Function"
    SYNONYM = "Synonym"
    USER_TYPE = "UserType"
    USER_DATA_TYPE = "UserDataType"
    USER_TABLE_TYPE = "UserTableType"


@dataclass
class ConnectionDescriptor:
    """Where to connect and as whom. No username means integrated authentication."""
    server: str
    username: Optional[str] = None
    password: Optional[str] = None
    driver: str = 'ODBC Driver 17 for SQL Server'
    authentication_type: str = 'sql'
    timeout: int = 30

    @property
    def uses_integrated_auth(self) -> bool:
        return not self.username


@dataclass(frozen=True)
class ScriptingOptions:
    include_database_context: bool = True
    continue_on_error: bool = True
    indexes: bool = True
    permissions: bool = True
    triggers: bool = True
    role_memberships: bool = True
    no_command_terminator: bool = False
    encoding: str = 'utf-8'

    @classmethod
    def from_config(cls, section: Optional[Dict]) -> 'ScriptingOptions':
        """Build options from the `scripting` config section."""
        if not section:
            return cls()
        known = set(cls.__dataclass_fields__)
        unknown = sorted(set(section) - known)
        if unknown:
            raise ValueError(f"Unknown scripting option(s): {', '.join(unknown)}")
        return cls(**section)


@dataclass
class DbObject:
    """One scriptable object as reported by the metadata source."""
    name: str
    object_type: ObjectType
    database: Optional[str] = None
    schema: Optional[str] = None
    object_id: Optional[int] = None
    is_system_object: bool = False
    is_encrypted: bool = False
    is_fixed_role: bool = False
    properties: Dict[str, Any] = field(default_factory=dict)

    @property
    def full_name(self) -> str:
        if self.schema:
            return f"{self.schema}.{self.name}"
        return self.name


@dataclass(frozen=True)
class ExportNotification:
    server: str
    database: Optional[str]
    object_type: ObjectType
    object_name: str
    path: Path


@dataclass
class ExportSummary:
    server: str
    databases: List[str] = field(default_factory=list)
    exported: int = 0
    failures: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    def add_failure(self, where: str, error: BaseException) -> None:
        self.failures.append(f"{where}: {error}")

    @property
    def succeeded(self) -> bool:
        return not self.failures


def build_exclusions(extra: Optional[Iterable[str]]) -> FrozenSet[str]:
    """Merge caller exclusions with the built-in system databases."""
    if extra is None:
        raise ValueError("exclude_databases cannot be None")
    if isinstance(extra, str):
        extra = [extra]
    return SYSTEM_DATABASES | frozenset(extra)
