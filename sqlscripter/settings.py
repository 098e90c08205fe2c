import argparse
import os
from typing import Dict, Optional

from .common import load_config
from .models import ConnectionDescriptor


def add_connection_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('-c', '--config', help='Path to YAML/JSON config')
    parser.add_argument('--server', help='Server or server\\instance to script. Overrides config.server')
    parser.add_argument('--user', help='SQL login. Omit to use integrated authentication')
    parser.add_argument('--password', help='Password for --user')
    parser.add_argument('--driver', help='ODBC driver name. Overrides config.driver')


def read_config(config_path: Optional[str]) -> Dict:
    if not config_path:
        return {}
    if not os.path.exists(config_path):
        raise SystemExit(f"Config file not found: {config_path}")
    config = load_config(config_path)
    if not isinstance(config, dict):
        raise SystemExit(f"Config file must hold a mapping: {config_path}")
    return config


def resolve_settings(args: argparse.Namespace, config: Dict) -> Dict:
    """Merge CLI arguments over config values. Precedence: CLI > config > defaults."""
    settings = dict(config)
    overrides = {
        'server': getattr(args, 'server', None),
        'username': getattr(args, 'user', None),
        'password': getattr(args, 'password', None),
        'driver': getattr(args, 'driver', None),
        'output_directory': getattr(args, 'output', None),
    }
    settings.update({k: v for k, v in overrides.items() if v is not None})

    excludes = getattr(args, 'exclude', None)
    if excludes is None:
        excludes = config.get('exclude_databases') or []
    settings['exclude_databases'] = list(excludes)

    git_cfg = dict(config.get('git') or {})
    if getattr(args, 'commit', False):
        git_cfg['commit'] = True
    if getattr(args, 'push', False):
        git_cfg['push'] = True
    if getattr(args, 'message', None):
        git_cfg['message'] = args.message
    settings['git'] = git_cfg
    return settings


def connection_from_settings(settings: Dict) -> ConnectionDescriptor:
    server = settings.get('server')
    if not server:
        raise SystemExit('server must be provided via --server or config')
    username = settings.get('username') or settings.get('user') or settings.get('uid')
    password = settings.get('password') or settings.get('pwd')
    if username and password is None:
        raise SystemExit('Missing password for SQL authentication')

    descriptor = ConnectionDescriptor(
        server=str(server),
        username=str(username) if username else None,
        password=str(password) if password is not None else None,
    )
    if settings.get('driver'):
        descriptor.driver = settings['driver']
    if settings.get('authentication_type'):
        descriptor.authentication_type = settings['authentication_type']
    if settings.get('timeout') is not None:
        descriptor.timeout = int(settings['timeout'])
    return descriptor
