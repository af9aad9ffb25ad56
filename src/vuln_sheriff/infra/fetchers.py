from __future__ import annotations

import logging
from pathlib import Path
from typing import Mapping
from urllib.parse import quote, urlsplit, urlunsplit

from git import Repo
from git.exc import GitCommandError

from ..core.domain.exceptions import SheriffError
from ..core.domain.models import Platform, Project
from ..core.ports import SourcePlatformPort

logger = logging.getLogger(__name__)

# user part of the token URL each platform accepts for HTTPS clones
_TOKEN_USERS = {Platform.GITLAB: "oauth2", Platform.GITHUB: "x-access-token"}


class FetchError(SheriffError):
    pass


class PlatformArchiveFetcher:
    """Downloads the project archive through the project's platform adapter."""

    def __init__(self, *, platforms: Mapping[Platform, SourcePlatformPort]) -> None:
        self._platforms = platforms

    def fetch(self, project: Project, dest: Path) -> None:
        platform = self._platforms.get(project.platform)
        if platform is None:
            raise FetchError(f"no {project.platform.value} client configured")
        platform.download(project, dest)


def authenticated_url(repo_url: str, platform: Platform, token: str | None) -> str:
    if not token:
        return repo_url
    parts = urlsplit(repo_url)
    if parts.scheme not in ("http", "https"):
        return repo_url
    netloc = f"{_TOKEN_USERS[platform]}:{quote(token, safe='')}@{parts.hostname}"
    if parts.port:
        netloc += f":{parts.port}"
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))


class GitCloneFetcher:
    """Shallow git clone of the default branch."""

    def __init__(self, *, tokens: Mapping[Platform, str | None] | None = None, depth: int = 1) -> None:
        self._tokens = dict(tokens or {})
        self._depth = depth

    def fetch(self, project: Project, dest: Path) -> None:
        url = authenticated_url(project.repo_url, project.platform, self._tokens.get(project.platform))
        logger.debug("Cloning repository", extra={"project": project.path})
        try:
            Repo.clone_from(url, dest, depth=self._depth, single_branch=True)
        except GitCommandError as e:
            # the command line carries the token
            raise FetchError(f"git clone of {project.path} failed with status {e.status}") from None
