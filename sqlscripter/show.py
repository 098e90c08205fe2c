import argparse
import logging
from typing import List, Optional

from .common import format_script, setup_logging
from .errors import ScripterError
from .models import DbObject, ObjectType, ScriptingOptions
from .redact import redact_password
from .scripter import DATABASE_CATEGORIES, SERVER_CATEGORIES, find_objects
from .service import ScriptingService
from .settings import add_connection_arguments, connection_from_settings, read_config, resolve_settings

logger = logging.getLogger(__name__)


def _suggestions(service: ScriptingService, name: str, database: Optional[str]) -> List[str]:
    categories = DATABASE_CATEGORIES if database else SERVER_CATEGORIES
    candidates = []
    for category in categories:
        for obj in category.list_objects(service, database):
            if name.lower() in obj.full_name.lower():
                candidates.append(f"{obj.object_type.value}:{obj.full_name}")
    return candidates


def render_object(service: ScriptingService, obj: DbObject, options: ScriptingOptions) -> str:
    text = format_script(service.script(obj, options), options)
    if obj.object_type is ObjectType.LOGIN:
        text = redact_password(text)
    return text


def show_object(service: ScriptingService, name: str, options: ScriptingOptions, database: Optional[str] = None,
                object_type: Optional[ObjectType] = None, output_file: Optional[str] = None) -> int:
    matches = find_objects(service, name, database, object_type)
    where = f"database '{database}'" if database else f"server '{service.server_name}'"

    if not matches:
        print(f"Object '{name}' not found in {where}")
        candidates = _suggestions(service, name, database)
        if candidates:
            print("Did you mean:")
            for c in candidates[:10]:
                print(f"  - {c}")
        return 1

    if len(matches) > 1:
        print(f"'{name}' is ambiguous in {where}; narrow it with --type or a schema-qualified name:")
        for obj in matches:
            print(f"  - {obj.object_type.value}:{obj.full_name}")
        return 1

    obj = matches[0]
    text = render_object(service, obj, options)
    if output_file:
        with open(output_file, 'w', encoding=options.encoding, newline='') as f:
            f.write(text)
        print(f"Definition written to: {output_file}")
    else:
        print(f"Found {obj.object_type.value}: {obj.full_name}")
        print(text, end='')
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description='Script a single object by name to the console or a file')
    add_connection_arguments(parser)
    parser.add_argument('--database', help='Database holding the object. Omit for logins and SQL Agent jobs')
    parser.add_argument('--type', choices=[t.value for t in ObjectType], help='Restrict the lookup to one object type')
    parser.add_argument('-o', '--output', help='Write the script to a file instead of the console')
    parser.add_argument('object_name', help='Object name, optionally schema-qualified (schema.name)')
    args = parser.parse_args(argv)

    setup_logging(None, logging.WARNING)
    config = read_config(args.config)
    # -o names a file here, not the export root
    settings = resolve_settings(argparse.Namespace(**dict(vars(args), output=None)), config)
    try:
        options = ScriptingOptions.from_config(config.get('scripting'))
    except (TypeError, ValueError) as e:
        raise SystemExit(f"Invalid scripting options: {e}")

    from .catalog import SqlServerScriptingService

    object_type = ObjectType(args.type) if args.type else None
    try:
        with SqlServerScriptingService.connect(connection_from_settings(settings)) as service:
            return show_object(service, args.object_name, options, args.database, object_type, args.output)
    except ScripterError as e:
        logger.error(str(e))
        return 1


if __name__ == '__main__':
    raise SystemExit(main())
