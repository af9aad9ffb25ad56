from __future__ import annotations

import logging
from pathlib import Path
from typing import Any
from urllib.parse import quote

import requests

from ..core.domain.models import Issue, IssueState, Platform, Project
from ..core.services.pagination import PaginatedFetcher
from .archive import extract_tar_gz

logger = logging.getLogger(__name__)

PER_PAGE = 100

_STATE_EVENTS = {IssueState.OPEN: "reopen", IssueState.CLOSED: "close"}


def _encode(path: str) -> str:
    return quote(path, safe="")


def map_gitlab_project(data: dict[str, Any]) -> Project:
    namespace = data.get("namespace") or {}
    return Project(
        id=data["id"],
        name=data.get("name", ""),
        namespace=namespace.get("full_path", ""),
        path=data.get("path_with_namespace", ""),
        web_url=data.get("web_url", ""),
        repo_url=data.get("http_url_to_repo", ""),
        platform=Platform.GITLAB,
    )


def map_gitlab_issue(data: dict[str, Any]) -> Issue:
    state = IssueState.CLOSED if data.get("state") == "closed" else IssueState.OPEN
    return Issue(id=data["iid"], title=data.get("title", ""), state=state, web_url=data.get("web_url", ""))


class GitLabPlatform:
    """GitLab REST v4 adapter for listing, archive download and issues."""

    def __init__(
        self,
        *,
        token: str | None = None,
        url: str = "https://gitlab.com",
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        self._api = f"{url.rstrip('/')}/api/v4"
        self._timeout = timeout
        self._session = session or requests.Session()
        if token:
            self._session.headers.update({"PRIVATE-TOKEN": token})
        self._pager: PaginatedFetcher[dict[str, Any]] = PaginatedFetcher()

    def _request(self, method: str, endpoint: str, **kwargs: Any) -> requests.Response:
        resp = self._session.request(method, f"{self._api}{endpoint}", timeout=self._timeout, **kwargs)
        resp.raise_for_status()
        return resp

    def _paginate(self, endpoint: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        def fetch_page(page: str | None) -> tuple[list[dict[str, Any]], str | None]:
            resp = self._request("GET", endpoint, params={**params, "per_page": PER_PAGE, "page": page or 1})
            return resp.json(), resp.headers.get("X-Next-Page") or None

        return self._pager.fetch_all(fetch_page)

    def get_projects(self, path: str) -> list[Project]:
        """Projects of a group and its sub-groups, or the single project at path."""
        try:
            items = self._paginate(
                f"/groups/{_encode(path)}/projects",
                {
                    "include_subgroups": "true",
                    "archived": "false",
                    "simple": "true",
                    "with_shared": "false",
                },
            )
        except requests.HTTPError as group_err:
            logger.debug("Not a group, trying as project", extra={"location": path, "error": str(group_err)})
            data = self._request("GET", f"/projects/{_encode(path)}").json()
            return [map_gitlab_project(data)]

        return [map_gitlab_project(item) for item in items]

    def download(self, project: Project, dest: Path) -> None:
        resp = self._request("GET", f"/projects/{project.id}/repository/archive.tar.gz", stream=True)
        with resp:
            resp.raw.decode_content = True
            extract_tar_gz(resp.raw, dest)

    def find_tracked_issue(self, project: Project, title: str) -> Issue | None:
        items = self._paginate(
            f"/projects/{project.id}/issues",
            {"search": title, "in": "title", "state": "all"},
        )
        for item in items:
            if item.get("title") == title:
                return map_gitlab_issue(item)
        return None

    def create_issue(self, project: Project, title: str, body: str) -> Issue:
        data = self._request(
            "POST",
            f"/projects/{project.id}/issues",
            json={"title": title, "description": body},
        ).json()
        return map_gitlab_issue(data)

    def update_issue(
        self,
        project: Project,
        issue_id: int,
        *,
        body: str | None = None,
        state: IssueState | None = None,
    ) -> Issue:
        payload: dict[str, Any] = {}
        if body is not None:
            payload["description"] = body
        if state is not None:
            payload["state_event"] = _STATE_EVENTS[state]
        data = self._request("PUT", f"/projects/{project.id}/issues/{issue_id}", json=payload).json()
        return map_gitlab_issue(data)
