from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Sequence

from ...shared.workdir import create_run_dir, rmtree_force, scoped_workdir
from ..domain.exceptions import PatrolError, PatrolWarning, SheriffError
from ..domain.models import Project, ProjectLocation, Report
from ..ports import LoggerPort, ProjectConfigLoaderPort, ScannerPort, SourceFetcherPort
from .aggregator import ReportAggregator, ScanOutcome
from .project_lister import ProjectLister
from .report_builder import ReportBuilder


class ProjectScanError(SheriffError):
    def __init__(self, project: Project, stage: str, cause: BaseException) -> None:
        self.project = project
        self.stage = stage
        super().__init__(f"failed to scan project {project.path} during {stage}: {cause}")


class ScanOrchestrator:
    """Runs the fetch -> scan -> build pipeline for every project concurrently.

    Each project gets its own task and its own working directory. A task
    failure only affects that project's report (an error placeholder) and
    adds to the combined warning; siblings keep running.
    """

    def __init__(
        self,
        *,
        lister: ProjectLister,
        fetcher: SourceFetcherPort,
        scanner: ScannerPort,
        config_loader: ProjectConfigLoaderPort,
        builder: ReportBuilder,
        aggregator: ReportAggregator,
        logger: LoggerPort,
        scan_dir: Path,
        max_workers: int | None = None,
    ) -> None:
        self._lister = lister
        self._fetcher = fetcher
        self._scanner = scanner
        self._config_loader = config_loader
        self._builder = builder
        self._aggregator = aggregator
        self._logger = logger
        self._scan_dir = scan_dir
        self._max_workers = max_workers

    def patrol(self, locations: Sequence[ProjectLocation]) -> tuple[list[Report], PatrolWarning | None]:
        """Scan every project reachable from the given locations.

        Returns:
            Reports sorted by descending vulnerability count, and the
            combined warning (None if nothing went wrong).

        Raises:
            PatrolError: No locations, no location could be listed, or the
                run working directory could not be created.
        """
        if not locations:
            raise PatrolError("no scan targets given")

        try:
            run_dir = create_run_dir(self._scan_dir)
        except OSError as e:
            raise PatrolError(f"could not create working directory under {self._scan_dir}") from e
        self._logger.info("Created temporary directory", path=str(run_dir))

        try:
            self._logger.info("Getting the list of projects to scan", locations=[loc.path for loc in locations])
            projects, list_warning = self._lister.list_projects(locations)
            if list_warning is not None and len(list_warning.exceptions) >= len(locations):
                raise PatrolError("could not resolve any scan target") from list_warning

            outcomes = self._scan_all(projects, run_dir)
        finally:
            rmtree_force(run_dir)

        extra = [list_warning] if list_warning is not None else []
        return self._aggregator.aggregate(outcomes, extra_warnings=extra)

    def _scan_all(self, projects: Sequence[Project], run_dir: Path) -> list[ScanOutcome]:
        if not projects:
            return []

        workers = self._max_workers or len(projects)
        outcomes: list[ScanOutcome] = []
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="scan") as pool:
            futures = [pool.submit(self._scan_task, project, run_dir) for project in projects]
            for future in as_completed(futures):
                outcomes.append(future.result())
        return outcomes

    def _scan_task(self, project: Project, run_dir: Path) -> ScanOutcome:
        self._logger.info("Scanning project", project=project.path)
        try:
            report = self.scan_project(project, run_dir)
        except Exception as e:
            self._logger.error("Failed to scan project, skipping.", project=project.path, error=str(e))
            return ScanOutcome(report=Report.failed(project), error=e)
        return ScanOutcome(report=report)

    def scan_project(self, project: Project, run_dir: Path) -> Report:
        with scoped_workdir(run_dir, project.name) as workdir:
            stage = "fetch"
            try:
                self._logger.debug("Fetching project", project=project.path, dir=str(workdir))
                self._fetcher.fetch(project, workdir)

                stage = "config"
                config = self._config_loader.load(project, workdir)

                stage = "scan"
                self._logger.debug("Running scanner", project=project.path)
                raw = self._scanner.scan(workdir)
                findings = self._scanner.to_findings(project, raw)
            except Exception as e:
                raise ProjectScanError(project, stage, e) from e

            report = self._builder.build(project, config, findings)
            self._logger.info(
                "Finished scanning project",
                project=project.path,
                vulnerabilities=len(report.vulnerabilities),
            )
            return report
