"""Rendering of reports for the issue tracker, chat and console."""

from __future__ import annotations

from datetime import date
from typing import Any, Iterable, Sequence

from ..domain.models import ChatMessage, Report, SeverityScoreKind, Vulnerability
from ..domain.severity import SeverityThresholds, parse_score


def markdown_boolean(value: bool) -> str:
    return "✅" if value else "❌"


def osv_url(vuln_id: str) -> str:
    return f"https://osv.dev/{vuln_id}"


def _score_key(vuln: Vulnerability) -> tuple[int, float, str]:
    # numeric scores first (highest first), then raw strings
    value = parse_score(vuln.severity)
    if value is None:
        return (0, 0.0, vuln.severity)
    return (1, value, "")


def sort_by_score(vulns: Iterable[Vulnerability]) -> list[Vulnerability]:
    return sorted(vulns, key=_score_key, reverse=True)


def group_by_kind(
    vulns: Iterable[Vulnerability], order: Sequence[SeverityScoreKind]
) -> list[tuple[SeverityScoreKind, list[Vulnerability]]]:
    grouped: dict[SeverityScoreKind, list[Vulnerability]] = {}
    for v in vulns:
        grouped.setdefault(v.severity_kind, []).append(v)
    return [(kind, grouped[kind]) for kind in order if kind in grouped]


def group_reports_by_max_kind(
    reports: Iterable[Report], order: Sequence[SeverityScoreKind]
) -> dict[SeverityScoreKind, list[Report]]:
    """Vulnerable reports keyed by their highest live severity kind."""
    grouped: dict[SeverityScoreKind, list[Report]] = {}
    for r in reports:
        if r.error or not r.is_vulnerable:
            continue
        kind = r.max_severity_kind(order)
        if kind is not None:
            grouped.setdefault(kind, []).append(r)
    return grouped


def count_vulnerabilities_by_kind(reports: Iterable[Report]) -> dict[SeverityScoreKind, int]:
    counts = {kind: 0 for kind in SeverityScoreKind}
    for r in reports:
        for kind, n in r.count_by_kind().items():
            counts[kind] += n
    return counts


# Issue tracker

def format_issue_table(kind: SeverityScoreKind, vulns: Sequence[Vulnerability]) -> str:
    acknowledged = kind is SeverityScoreKind.ACKNOWLEDGED
    columns = ["OSV URL", "CVSS", "Ecosystem", "Package", "Version", "Fix Available", "Source"]
    if acknowledged:
        columns.append("Reason")

    md = f"\n## Severity: {kind.value}\n"
    md += "| " + " | ".join(columns) + " |\n"
    md += "| " + " | ".join("---" for _ in columns) + " |\n"
    for v in vulns:
        cells = [
            osv_url(v.id),
            v.severity,
            v.package_ecosystem,
            v.package_name,
            v.package_version,
            markdown_boolean(v.fix_available),
            v.source,
        ]
        if acknowledged:
            cells.append(v.ack_reason)
        md += "| " + " | ".join(cells) + " |\n"
    return md


def format_issue_body(report: Report, thresholds: SeverityThresholds) -> str:
    """Markdown body of the tracked vulnerability issue of a project."""
    md = ""
    for kind, group in group_by_kind(report.vulnerabilities, thresholds.display_order):
        md += format_issue_table(kind, sort_by_score(group))

    if report.outdated_acks:
        md += "\n## Outdated acknowledgements\n"
        md += "These codes are acknowledged in the project configuration but were not found by this scan:\n"
        for code in report.outdated_acks:
            md += f"- {code}\n"
    return md


# Chat (Slack block kit)

def _text(text: str, kind: str = "mrkdwn") -> dict[str, Any]:
    obj: dict[str, Any] = {"type": kind, "text": text}
    if kind == "plain_text":
        obj["emoji"] = True
    return obj


def header_block(text: str) -> dict[str, Any]:
    return {"type": "header", "text": _text(text, "plain_text")}


def context_block(text: str, block_id: str | None = None) -> dict[str, Any]:
    block: dict[str, Any] = {"type": "context", "elements": [_text(text)]}
    if block_id:
        block["block_id"] = block_id
    return block


def section_block(text: str | None = None, fields: Sequence[str] | None = None) -> dict[str, Any]:
    block: dict[str, Any] = {"type": "section"}
    if text is not None:
        block["text"] = _text(text)
    if fields:
        block["fields"] = [_text(f) for f in fields]
    return block


def _title(prefix: str, today: date | None) -> str:
    return f"{prefix} {(today or date.today()).isoformat()}"


def format_subtitle_list(entity: str, items: Sequence[str]) -> str:
    if not items:
        return f"no {entity} scanned"
    if len(items) == 1:
        return f"{entity} scanned: {items[0]}"
    return f"{entity} scanned:\n\t- " + "\n\t- ".join(items)


def _kind_label(kind: SeverityScoreKind) -> str:
    return kind.value.capitalize()


def format_summary(
    reports: Sequence[Report],
    targets: Sequence[str],
    thresholds: SeverityThresholds,
    today: date | None = None,
) -> ChatMessage:
    """Run summary: scanned targets, project count, counts per severity kind."""
    title = _title("Security Scan Report", today)
    counts = count_vulnerabilities_by_kind(reports)
    count_fields = [f"{kind.value}: *{counts[kind]}*" for kind in thresholds.display_order]
    total = sum(counts.values())

    blocks = (
        header_block(title),
        context_block(format_subtitle_list("targets", targets), block_id="targets-subtitle"),
        context_block(f"Total projects scanned: {len(reports)}", block_id="subtitleCount"),
        section_block(f"*Vulnerability Counts* (total {total})"),
        section_block(fields=count_fields),
    )
    return ChatMessage(text=f"{title}: {total} vulnerabilities in {len(reports)} projects", blocks=blocks)


def _report_link(report: Report) -> str:
    if report.issue_url:
        return f"<{report.issue_url}|Full report>"
    return "_full report unavailable_"


def format_thread_text(reports: Sequence[Report], thresholds: SeverityThresholds) -> str:
    """Detailed per-severity project listing posted under the summary."""
    order = thresholds.display_order
    grouped = group_reports_by_max_kind(reports, order)

    text = ""
    for kind in order:
        group = grouped.get(kind)
        if not group:
            continue
        text += f"Projects with vulnerabilities of *{kind.value}* severity\n"
        for r in group:
            text += f"<{r.project.web_url}|*{r.project.name}*>\n"
            text += f"\t{_report_link(r)}\t\t"
            text += f"\tVulnerability count: *{len(r.vulnerabilities)}*\n"
        text += "\n"

    failed = [r for r in reports if r.error]
    if failed:
        text += "Unsuccessfully scanned projects ❌\n"
        for r in failed:
            text += f"<{r.project.web_url}|*{r.project.name}*>\n"
        text += "\n"
    return text


def format_thread_messages(chunks: Sequence[str]) -> list[ChatMessage]:
    return [ChatMessage(text=chunk, blocks=(section_block(chunk),)) for chunk in chunks]


def format_project_message(report: Report, thresholds: SeverityThresholds, today: date | None = None) -> ChatMessage:
    """Compact message sent to a project's own report channel."""
    title = _title("Sheriff Report", today)
    counts = report.count_by_kind()
    subtitle = f"Project: <{report.project.web_url}|*{report.project.path}*>"
    if report.issue_url:
        full_report = f"Full report: <{report.issue_url}|*Full report*>"
    else:
        full_report = "_full report unavailable_"

    blocks = (
        header_block(title),
        context_block(subtitle, block_id="subtitle"),
        context_block(full_report, block_id="subtitleFullReport"),
        section_block(f"*Vulnerability Counts* (total {len(report.vulnerabilities)})"),
        section_block(fields=[f"{_kind_label(k)}: *{counts[k]}*" for k in thresholds.display_order]),
    )
    return ChatMessage(text=f"{title}: {report.project.path}", blocks=blocks)


# Console

def format_console_report(reports: Sequence[Report], thresholds: SeverityThresholds) -> str:
    lines: list[str] = []
    lines.append("=" * 80)
    lines.append(f"PATROL REPORT ({len(reports)} projects)")
    lines.append("=" * 80)

    for r in reports:
        if r.error:
            status = "SCAN FAILED"
        elif r.is_vulnerable:
            status = "VULNERABLE"
        else:
            status = "OK"
        lines.append("")
        lines.append(f"{r.project.path} [{r.project.platform.value}] - {status}")
        lines.append(f"  URL: {r.project.web_url}")
        if r.issue_url:
            lines.append(f"  Issue: {r.issue_url}")
        if r.error:
            continue

        counts = r.count_by_kind()
        summary = ", ".join(f"{_kind_label(k)}: {counts[k]}" for k in thresholds.display_order if counts[k])
        lines.append(f"  Vulnerabilities: {len(r.vulnerabilities)}" + (f" ({summary})" if summary else ""))

        for kind, group in group_by_kind(r.vulnerabilities, thresholds.display_order):
            lines.append(f"  -- {kind.value}")
            for v in sort_by_score(group):
                fix = "fix available" if v.fix_available else "no fix"
                line = f"    {v.id:<22} {v.severity or 'N/A':>6}  {v.package_ecosystem}/{v.package_name}@{v.package_version} ({fix})"
                if v.ack_reason:
                    line += f" - acknowledged: {v.ack_reason}"
                lines.append(line)

        if r.outdated_acks:
            lines.append(f"  Outdated acknowledgements: {', '.join(r.outdated_acks)}")

    lines.append("")
    lines.append("=" * 80)
    return "\n".join(lines)
