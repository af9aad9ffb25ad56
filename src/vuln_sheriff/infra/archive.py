from __future__ import annotations

import shutil
import tarfile
from pathlib import Path, PurePosixPath
from typing import BinaryIO

from ..core.domain.exceptions import ArchiveError


def extract_tar_gz(fileobj: BinaryIO, dest: Path) -> None:
    """Extract a gzipped tar stream into dest, dropping the archive root folder.

    Only directories and regular files are written. An entry that would land
    outside dest aborts the extraction with ArchiveError.
    """
    root = dest.resolve()
    try:
        with tarfile.open(fileobj=fileobj, mode="r|gz") as tar:
            for member in tar:
                parts = PurePosixPath(member.name).parts
                # GitLab and GitHub archives wrap everything in one root folder
                if len(parts) <= 1:
                    continue

                target = (root / Path(*parts[1:])).resolve()
                if not target.is_relative_to(root) or target == root:
                    raise ArchiveError(f"archive entry escapes destination directory: {member.name}")

                if member.isdir():
                    target.mkdir(parents=True, exist_ok=True)
                elif member.isfile():
                    target.parent.mkdir(parents=True, exist_ok=True)
                    src = tar.extractfile(member)
                    if src is None:
                        continue
                    with src, open(target, "wb") as out:
                        shutil.copyfileobj(src, out)
                    target.chmod((member.mode & 0o777) | 0o600)
    except (tarfile.TarError, EOFError, OSError) as e:
        raise ArchiveError(f"failed to extract archive: {e}") from e
