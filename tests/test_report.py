from scholar_citations.normalization import normalize_job
from scholar_citations.report import render_report


def test_report_lists_issues_and_type_counts(job_payload):
    report = render_report(normalize_job(job_payload()))

    assert report.splitlines()[0] == "Citation Check Report"
    assert "Job: job-1" in report
    assert "Status: DONE" in report
    assert "Issues found: 1" in report
    assert "  weak-citation: 1" in report
    assert "[HIGH] weak-citation (lines 3-3) -> as shown in \\cite{doe2021}" in report
    assert "cited: doe2021" in report


def test_report_shows_progress_for_running_jobs(job_payload):
    report = render_report(normalize_job(job_payload(status="RUNNING", issues=[], summary=None)))

    assert "Status: RUNNING (Verifying against local corpus..., 40%)" in report
    assert "Issues found: 0" in report
    assert "No citation issues detected." in report


def test_report_includes_error_message(job_payload):
    job = normalize_job(job_payload(status="ERROR", issues=[], message="Parser crashed"))

    assert "Error: Parser crashed" in render_report(job)
