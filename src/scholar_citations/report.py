"""Citation-check reporting utilities."""
from __future__ import annotations

from .models import STEP_LABELS, CitationCheckJob, JobStatus


def render_report(job: CitationCheckJob) -> str:
    """Return a human-readable report summarizing a citation-check job."""

    header_lines = ["Citation Check Report", f"Job: {job.job_id}"]
    step = STEP_LABELS.get(job.step, job.step) if job.step else ""
    status_line = f"Status: {job.status}"
    if step and job.status != JobStatus.DONE:
        status_line += f" ({step}, {job.progress_pct}%)"
    header_lines.append(status_line)
    if job.error_message and job.status == JobStatus.ERROR:
        header_lines.append(f"Error: {job.error_message}")
    header_lines.append(f"Issues found: {job.summary.total}")
    for issue_type, count in sorted(job.summary.by_type.items()):
        header_lines.append(f"  {issue_type}: {count}")

    if not job.issues:
        header_lines.append("No citation issues detected.")
        return "\n".join(header_lines)

    lines = header_lines + ["Issues:"]
    for issue in job.issues:
        line = f"[{issue.severity.upper()}] {issue.type} (lines {issue.line_start}-{issue.line_end})"
        if issue.snippet:
            line += f" -> {issue.snippet}"
        lines.append(line)
        if issue.cited_keys:
            lines.append(f"    cited: {', '.join(issue.cited_keys)}")
    return "\n".join(lines)
