import json
import logging
import shutil
import sys
from pathlib import Path
from typing import Dict, List, Optional, Union

import yaml

from .models import ScriptingOptions


SCRIPT_SUFFIX = '.sql'

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'

# Characters Windows refuses in file and path names, stripped on every platform.
INVALID_FILENAME_CHARS = ''.join(chr(c) for c in range(32)) + '"<>|:*?\\/'

_STRIP_TABLE = str.maketrans('', '', INVALID_FILENAME_CHARS)


def setup_logging(log_file: Optional[str] = 'sqlscripter.log', level: int = logging.INFO) -> None:
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.insert(0, logging.FileHandler(log_file))
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers)


def load_config(config_path: str) -> Dict:
    with open(config_path, 'r', encoding='utf-8') as f:
        if config_path.endswith(('.yaml', '.yml')):
            return yaml.safe_load(f) or {}
        return json.load(f)


def convert_to_file_name(name: str, suffix: str = SCRIPT_SUFFIX) -> str:
    """Strip characters that are illegal in file names and append the script suffix.

    A name made only of illegal characters collapses to the bare suffix.
    """
    return name.translate(_STRIP_TABLE) + suffix


def prepare_directory(path: Union[str, Path], suffix: str = SCRIPT_SUFFIX) -> None:
    """Create the directory, or purge the scripts a previous run left directly in it."""
    path = Path(path)
    if not path.exists():
        path.mkdir(parents=True)
        return
    for script in path.glob(f"*{suffix}"):
        if script.is_file():
            script.unlink()


def finalize_directory(path: Union[str, Path], exported_count: int, root: Optional[Union[str, Path]] = None) -> None:
    """Remove a category directory that received no scripts this run.

    With `root`, parents between the category and root that end up empty are removed too
    (e.g. `Types` once all of its type categories are gone).
    """
    path = Path(path)
    if exported_count == 0 and path.exists():
        shutil.rmtree(path)
    if root is None:
        return
    root = Path(root)
    parent = path.parent
    while root in parent.parents and parent.is_dir() and not any(parent.iterdir()):
        parent.rmdir()
        parent = parent.parent


def format_script(batches: List[str], options: ScriptingOptions) -> str:
    """Join batches, each followed by a GO terminator line."""
    parts = []
    for batch in batches:
        parts.append(batch.rstrip('\n') + '\n')
        if not options.no_command_terminator:
            parts.append('GO\n')
    return ''.join(parts)


def write_script(batches: List[str], path: Union[str, Path], options: ScriptingOptions) -> None:
    # newline='' writes '\n' untranslated
    with open(path, 'w', encoding=options.encoding, newline='') as f:
        f.write(format_script(batches, options))
