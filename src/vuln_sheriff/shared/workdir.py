from __future__ import annotations

import os
import re
import shutil
import stat
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator


def _remove_readonly(func: Callable[[str], None], path: str, excinfo) -> None:
    """shutil.rmtree error hook: clear the read-only bit and retry once.

    Extracted archives and git object stores routinely contain read-only
    files.
    """
    try:
        os.chmod(path, stat.S_IWUSR | stat.S_IRUSR | stat.S_IXUSR)
    except OSError:
        pass
    func(path)


def rmtree_force(path: Path) -> None:
    if not path.exists():
        return
    try:
        shutil.rmtree(path)
    except PermissionError:
        shutil.rmtree(path, onexc=_remove_readonly)


def _safe_prefix(name: str) -> str:
    return re.sub(r"[^A-Za-z0-9._-]+", "-", name).strip("-") or "project"


def create_run_dir(base: Path) -> Path:
    """Create a uniquely named run directory below base."""
    base.mkdir(parents=True, exist_ok=True)
    return Path(tempfile.mkdtemp(prefix="patrol-", dir=base))


@contextmanager
def scoped_workdir(root: Path, name: str) -> Iterator[Path]:
    """Exclusive, uniquely named working directory removed on every exit path."""
    workdir = Path(tempfile.mkdtemp(prefix=f"{_safe_prefix(name)}-", dir=root))
    try:
        yield workdir
    finally:
        rmtree_force(workdir)
