from __future__ import annotations

from typing import Mapping, Sequence

from ..domain.exceptions import PatrolWarning, SheriffError, join_warnings
from ..domain.models import Platform, Project, ProjectLocation
from ..ports import LoggerPort, SourcePlatformPort


class LocationListingError(SheriffError):
    def __init__(self, location: ProjectLocation, message: str) -> None:
        self.location = location
        super().__init__(message)


class ProjectLister:
    """Resolves scan locations into a flat, de-duplicated project list.

    A location that cannot be listed becomes a warning; its projects are
    simply absent from the result.
    """

    def __init__(self, *, platforms: Mapping[Platform, SourcePlatformPort], logger: LoggerPort) -> None:
        self._platforms = platforms
        self._logger = logger

    def list_projects(self, locations: Sequence[ProjectLocation]) -> tuple[list[Project], PatrolWarning | None]:
        projects: list[Project] = []
        seen: set[tuple[Platform, int | str]] = set()
        errors: list[Exception] = []

        for location in locations:
            platform = self._platforms.get(location.platform)
            if platform is None:
                err = LocationListingError(
                    location, f"no {location.platform.value} client configured for {location.path}"
                )
                self._logger.error("Platform not configured", platform=location.platform.value, location=location.path)
                errors.append(err)
                continue

            try:
                found = platform.get_projects(location.path)
            except Exception as e:
                self._logger.error(
                    "Failed to list projects",
                    platform=location.platform.value,
                    location=location.path,
                    error=str(e),
                )
                err = LocationListingError(location, f"failed to list projects of {location.platform.value}://{location.path}")
                err.__cause__ = e
                errors.append(err)
                continue

            self._logger.debug("Listed projects", location=location.path, count=len(found))
            for project in found:
                if project.key in seen:
                    continue
                seen.add(project.key)
                projects.append(project)

        return projects, join_warnings("errors occurred when getting project list", errors)
