"""Script a SQL Server instance into a directory tree of .sql files."""

__version__ = "0.1.0"
