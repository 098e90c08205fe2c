"""
The capability the exporters depend on: enumerate server and database collections,
and render one object's definition to a file.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Union

from .common import write_script
from .models import DbObject, ScriptingOptions


class ScriptingService(ABC):
    """Metadata source plus renderer for one server."""

    server_name: str

    @abstractmethod
    def logins(self) -> List[DbObject]:
        ...

    @abstractmethod
    def jobs(self) -> List[DbObject]:
        ...

    @abstractmethod
    def databases(self) -> List[DbObject]:
        ...

    @abstractmethod
    def collection(self, database: str, key: str) -> List[DbObject]:
        """Objects of one database collection, e.g. 'tables' or 'user_data_types'."""
        ...

    @abstractmethod
    def script(self, obj: DbObject, options: ScriptingOptions) -> List[str]:
        """Render an object's definition as a list of batches."""
        ...

    def script_to_file(self, obj: DbObject, options: ScriptingOptions, path: Union[str, Path]) -> None:
        batches = self.script(obj, options)
        write_script(batches, path, options)

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
