"""
Login script password redaction.

CREATE LOGIN scripts for SQL authenticated logins carry a freshly generated random
password. It is swapped for a fixed sentinel so exported trees neither leak it nor
change on every run.
"""

import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Union

logger = logging.getLogger(__name__)


SENTINEL_PASSWORD = '**CHANGEME**'

PASSWORD_PATTERN = re.compile(r"WITH PASSWORD=N'.+?', DEFAULT", re.DOTALL)
PASSWORD_REPLACEMENT = f"WITH PASSWORD=N'{SENTINEL_PASSWORD}', DEFAULT"


def redact_password(text: str) -> str:
    return PASSWORD_PATTERN.sub(PASSWORD_REPLACEMENT, text)


def fixup_random_password(path: Union[str, Path], encoding: str = 'utf-8') -> bool:
    """Replace the generated password in a login script with the sentinel.

    The file is rewritten through a temporary sibling that replaces it atomically, so
    a failed rewrite leaves the original script in place. Returns False when the
    script holds no password clause and was left untouched.
    """
    path = Path(path)
    with open(path, 'r', encoding=encoding, newline='') as f:
        original = f.read()

    redacted = redact_password(original)
    if redacted == original:
        return False

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix='.new', dir=path.parent)
    try:
        with os.fdopen(fd, 'w', encoding=encoding, newline='') as f:
            f.write(redacted)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise

    logger.debug(f"Redacted login password in {path}")
    return True
