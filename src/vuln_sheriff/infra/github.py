from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import requests
from github import Auth, Github, GithubException
from github.Issue import Issue as GithubIssue
from github.PaginatedList import PaginatedList
from github.Repository import Repository

from ..core.domain.models import Issue, IssueState, Platform, Project
from ..core.services.pagination import PaginatedFetcher
from .archive import extract_tar_gz

logger = logging.getLogger(__name__)

PER_PAGE = 100


def map_github_project(repo: Repository) -> Project:
    return Project(
        id=repo.id,
        name=repo.name,
        namespace=repo.owner.login if repo.owner else "",
        path=repo.full_name,
        web_url=repo.html_url,
        repo_url=repo.clone_url,
        platform=Platform.GITHUB,
    )


def map_github_issue(issue: GithubIssue) -> Issue:
    state = IssueState.CLOSED if issue.state == "closed" else IssueState.OPEN
    return Issue(id=issue.number, title=issue.title, state=state, web_url=issue.html_url)


class GitHubPlatform:
    """GitHub adapter built on PyGithub."""

    def __init__(
        self,
        *,
        token: str | None = None,
        timeout: float = 30.0,
        client: Github | None = None,
        session: requests.Session | None = None,
    ) -> None:
        if client is None:
            auth = Auth.Token(token) if token else None
            client = Github(auth=auth, timeout=int(timeout), per_page=PER_PAGE)
        self._gh = client
        self._timeout = timeout
        self._session = session or requests.Session()
        self._pager: PaginatedFetcher[Any] = PaginatedFetcher()

    def _all(self, plist: PaginatedList) -> list[Any]:
        def fetch_page(page: int | None) -> tuple[list[Any], int | None]:
            index = page or 0
            items = plist.get_page(index)
            return items, index + 1 if len(items) >= PER_PAGE else None

        return self._pager.fetch_all(fetch_page)

    def get_projects(self, path: str) -> list[Project]:
        """Repositories of an organization or user, or the single owner/repo."""
        parts = path.strip("/").split("/")
        if len(parts) == 2:
            return [map_github_project(self._gh.get_repo(path.strip("/")))]
        if len(parts) != 1:
            raise ValueError(f"unexpected github path {path!r}")

        owner = parts[0]
        try:
            repos = self._all(self._gh.get_organization(owner).get_repos())
        except GithubException as org_err:
            logger.debug("Not an organization, trying as user", extra={"location": owner, "error": str(org_err)})
            repos = self._all(self._gh.get_user(owner).get_repos(type="owner"))

        return [map_github_project(r) for r in repos if r is not None]

    def _repo(self, project: Project) -> Repository:
        return self._gh.get_repo(project.path)

    def download(self, project: Project, dest: Path) -> None:
        url = self._repo(project).get_archive_link("tarball")
        logger.debug("Got GitHub archive URL", extra={"project": project.path, "url": url})
        with self._session.get(url, stream=True, timeout=self._timeout) as resp:
            resp.raise_for_status()
            resp.raw.decode_content = True
            extract_tar_gz(resp.raw, dest)

    def find_tracked_issue(self, project: Project, title: str) -> Issue | None:
        for issue in self._all(self._repo(project).get_issues(state="all")):
            if issue.pull_request is None and issue.title == title:
                return map_github_issue(issue)
        return None

    def create_issue(self, project: Project, title: str, body: str) -> Issue:
        return map_github_issue(self._repo(project).create_issue(title=title, body=body))

    def update_issue(
        self,
        project: Project,
        issue_id: int,
        *,
        body: str | None = None,
        state: IssueState | None = None,
    ) -> Issue:
        issue = self._repo(project).get_issue(issue_id)
        changes: dict[str, Any] = {}
        if body is not None:
            changes["body"] = body
        if state is not None:
            changes["state"] = state.value
        issue.edit(**changes)
        return map_github_issue(issue)
