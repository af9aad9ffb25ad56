"""Optional TOML file holding default patrol arguments."""

from __future__ import annotations

import tomllib
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

DEFAULT_PATROL_FILE = "sheriff.toml"


class PatrolFileError(ValueError):
    pass


class PatrolFile(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    url: list[str] = Field(default_factory=list)
    report_to: list[str] = Field(default_factory=list, alias="report-to")
    enable_project_report_to: bool | None = Field(default=None, alias="enable-project-report-to")
    silent: bool | None = None
    verbose: bool | None = None


def load_patrol_file(path: Path | None) -> PatrolFile:
    """Load patrol defaults.

    Without an explicit path, sheriff.toml in the working directory is used
    when it exists. An explicit path must exist.
    """
    if path is None:
        path = Path(DEFAULT_PATROL_FILE)
        if not path.is_file():
            return PatrolFile()
    elif not path.is_file():
        raise PatrolFileError(f"config file {path} does not exist")

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
        return PatrolFile.model_validate(data)
    except (tomllib.TOMLDecodeError, ValidationError, OSError, UnicodeDecodeError) as e:
        raise PatrolFileError(f"invalid config file {path}: {e}") from e
