"""
Git tracking for export trees using GitPython.

A scripted server tree is meant to be diffed over time; committing it after every
run keeps that history in a plain git repository.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from git import GitCommandError, RemoteProgress, Repo

logger = logging.getLogger(__name__)


class _LoggingProgress(RemoteProgress):
    def update(self, op_code, cur_count, max_count=None, message=''):
        if message:
            logger.debug(f"git push: {message}")


def open_repo(repo_path: Union[str, Path] = '.') -> Repo:
    path = Path(repo_path).resolve()
    if not (path / '.git').exists():
        logger.info(f"Initialising git repository in {path}")
        path.mkdir(parents=True, exist_ok=True)
        return Repo.init(path)
    return Repo(path)


def commit(repo: Repo, message: str) -> bool:
    """Stage everything, including deletions, and commit if anything changed."""
    if not message or not message.strip():
        raise ValueError("Commit message is required")
    repo.git.add('-A')
    if repo.head.is_valid():
        if not repo.is_dirty(index=True, working_tree=False, untracked_files=False):
            return False
    elif not repo.index.entries:
        return False
    try:
        repo.index.commit(message)
    except GitCommandError as e:
        raise RuntimeError(f"Git commit failed: {e}") from e
    return True


def push(repo: Repo, remote_name: str = 'origin') -> str:
    if repo.head.is_detached:
        refspec = 'HEAD'
    else:
        head = repo.active_branch.name
        refspec = f"{head}:{head}"
    remote = repo.remote(remote_name)
    results = remote.push(refspec, progress=_LoggingProgress())
    return "\n".join(str(r.summary) for r in results)


def commit_export(repo_path: Union[str, Path], message: str, remote: Optional[str] = None,
                  push_changes: bool = False) -> bool:
    """Commit the export tree at repo_path; optionally push the current branch."""
    repo = open_repo(repo_path)
    committed = commit(repo, message)
    if committed:
        logger.info(f"Committed export: {message}")
    else:
        logger.info("No changes in export tree; nothing committed")
    if push_changes:
        output = push(repo, remote or 'origin')
        logger.info(f"Pushed to {remote or 'origin'}: {output}")
    return committed
