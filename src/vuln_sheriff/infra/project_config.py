from __future__ import annotations

import logging
import tomllib
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..core.domain.exceptions import ProjectConfigError
from ..core.domain.models import AcknowledgedVuln, Project, ProjectConfig

logger = logging.getLogger(__name__)

PROJECT_CONFIG_FILENAME = "sheriff.toml"


class AcknowledgedEntry(BaseModel):
    code: str
    reason: str = ""


class ProjectConfigFile(BaseModel):
    """Schema of the sheriff.toml a project keeps at its repository root."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    acknowledged: list[AcknowledgedEntry] = Field(default_factory=list)
    report_to_slack_channel: str = Field(default="", alias="report-to-slack-channel")

    def to_domain(self) -> ProjectConfig:
        return ProjectConfig(
            acknowledged=tuple(AcknowledgedVuln(code=a.code, reason=a.reason) for a in self.acknowledged),
            report_to_slack_channel=self.report_to_slack_channel,
        )


class TomlProjectConfigLoader:
    def __init__(self, *, filename: str = PROJECT_CONFIG_FILENAME) -> None:
        self._filename = filename

    def load(self, project: Project, directory: Path) -> ProjectConfig:
        """Read the project's policy file; a missing file means the default policy.

        Raises:
            ProjectConfigError: The file exists but is not valid.
        """
        path = directory / self._filename
        if not path.is_file():
            logger.debug("No project config found, using defaults", extra={"project": project.path})
            return ProjectConfig()

        try:
            data = tomllib.loads(path.read_text(encoding="utf-8"))
            config = ProjectConfigFile.model_validate(data)
        except (tomllib.TOMLDecodeError, ValidationError, OSError, UnicodeDecodeError) as e:
            raise ProjectConfigError(f"invalid {self._filename} in project {project.path}: {e}") from e

        logger.debug(
            "Loaded project config",
            extra={"project": project.path, "acknowledged": len(config.acknowledged)},
        )
        return config.to_domain()
