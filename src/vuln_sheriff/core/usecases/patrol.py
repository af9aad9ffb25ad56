from __future__ import annotations

from ..domain.exceptions import join_warnings
from ..domain.models import PatrolArgs, PatrolResult
from ..ports import LoggerPort
from ..services import NotificationPublisher, ScanOrchestrator


class PatrolUseCase:
    """Use case for one patrol run.

    Scans every target, then publishes the reports. Fatal scan errors
    propagate; everything else ends up in the result's warning.
    """

    def __init__(
        self,
        *,
        orchestrator: ScanOrchestrator,
        publisher: NotificationPublisher,
        logger: LoggerPort,
    ) -> None:
        self._orchestrator = orchestrator
        self._publisher = publisher
        self._logger = logger

    def execute(self, args: PatrolArgs) -> PatrolResult:
        """Execute the patrol.

        Args:
            args: Resolved scan locations, report targets and flags

        Returns:
            Reports sorted by vulnerability count, plus the combined warning

        Raises:
            PatrolError: The patrol could not run at all
        """
        reports, scan_warning = self._orchestrator.patrol(args.locations)

        if not reports:
            self._logger.warning("No projects found to scan", locations=[loc.url for loc in args.locations])
            return PatrolResult(reports=[], warning=scan_warning)

        self._logger.info("Publishing reports", projects=len(reports))
        publish_warning = self._publisher.publish(reports, args)

        warning = join_warnings("patrol finished with errors", [scan_warning, publish_warning])
        return PatrolResult(reports=reports, warning=warning)
