"""
Script every object on a SQL Server instance into a tree of .sql files.

Layout:
    <output>/<server>/Logins/<login>.sql
    <output>/<server>/SQLAgent/<job>.sql
    <output>/<server>/Databases/<db>/<db>.sql
    <output>/<server>/Databases/<db>/<category>/<object>.sql
"""

import argparse
import logging
import signal
from datetime import datetime
from pathlib import Path

from .common import setup_logging
from .errors import ExportCancelled, MetadataError, ServerConnectionError
from .models import ScriptingOptions
from .scripter import CancellationToken, ConsoleSink, LoggingSink, SQLServerScripter
from .settings import add_connection_arguments, connection_from_settings, read_config, resolve_settings

logger = logging.getLogger(__name__)


def _install_interrupt_handler(token: CancellationToken) -> None:
    def handler(signum, frame):
        if token.cancelled:
            raise KeyboardInterrupt
        logger.warning("Cancelling export after the current object (Ctrl+C again to abort)")
        token.cancel()

    signal.signal(signal.SIGINT, handler)


def run_export(settings: dict, options: ScriptingOptions, sink, token: CancellationToken) -> int:
    connection = connection_from_settings(settings)
    output_dir = Path(settings.get('output_directory') or '.')
    scripter = SQLServerScripter(sink=sink, options=options, output_dir=output_dir)

    try:
        summary = scripter.script_everything(connection, settings['exclude_databases'], token)
    except (ExportCancelled, KeyboardInterrupt):
        logger.info("Export cancelled by user")
        return 1
    except (ServerConnectionError, MetadataError) as e:
        logger.error(f"Export failed: {e}")
        return 1

    for skipped in summary.skipped:
        logger.warning(f"Not scripted: {skipped}")
    for failure in summary.failures:
        logger.error(f"Category failed: {failure}")

    git_cfg = settings.get('git') or {}
    if git_cfg.get('commit'):
        from .git_ops import commit_export

        message = git_cfg.get('message') or (
            f"Scripted {connection.server} at {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}"
        )
        commit_export(output_dir, message, remote=git_cfg.get('remote'), push_changes=bool(git_cfg.get('push')))

    logger.info(f"Export completed: {summary.exported} objects, output directory {output_dir.absolute()}")
    return 0 if summary.succeeded else 1


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description='Script SQL Server logins, jobs and database objects to .sql files')
    add_connection_arguments(parser)
    parser.add_argument('-o', '--output', help='Output root directory. Overrides config.output_directory')
    parser.add_argument('--exclude', nargs='*', metavar='DATABASE',
                        help='Databases to skip in addition to the system databases')
    parser.add_argument('--progress', choices=['log', 'console'], default='log',
                        help='How to report each exported object (default: log)')
    parser.add_argument('--commit', action='store_true', help='Commit the output directory to git after the run')
    parser.add_argument('--message', help='Commit message for --commit')
    parser.add_argument('--push', action='store_true', help='Push after committing')
    parser.add_argument('--log-file', default='sqlscripter.log', help='Log file (default: sqlscripter.log)')
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument('-q', '--quiet', action='store_true', help='Only log warnings and errors')
    verbosity.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    args = parser.parse_args(argv)

    level = logging.WARNING if args.quiet else logging.DEBUG if args.verbose else logging.INFO
    setup_logging(args.log_file, level)

    config = read_config(args.config)
    settings = resolve_settings(args, config)
    try:
        options = ScriptingOptions.from_config(config.get('scripting'))
    except (TypeError, ValueError) as e:
        raise SystemExit(f"Invalid scripting options: {e}")

    sink = ConsoleSink() if args.progress == 'console' else LoggingSink()
    token = CancellationToken()
    _install_interrupt_handler(token)

    try:
        return run_export(settings, options, sink, token)
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        return 1


if __name__ == '__main__':
    raise SystemExit(main())
