from scholar_citations.models import CitationIssue, CitationSummary
from scholar_citations.normalization import (
    ensure_number,
    normalize_issue,
    normalize_issues,
    normalize_job,
    normalize_status,
    normalize_summary,
)


def test_ensure_number_coerces_like_the_ui():
    assert ensure_number(7) == 7
    assert ensure_number(0) == 0
    assert ensure_number(3.9) == 3
    assert ensure_number("12") == 12
    assert ensure_number("12px") == 12
    assert ensure_number("abc", 5) == 5
    assert ensure_number(None) == 0
    assert ensure_number(True, 9) == 9


def test_issue_offsets_derived_from_position_and_length(legacy_issue):
    issue = normalize_issue(legacy_issue)

    assert issue.start == 10
    assert issue.end == 14
    assert issue.to_dict()["from"] == 10
    assert issue.to_dict()["to"] == 14


def test_issue_legacy_fields_are_mapped(legacy_issue):
    issue = normalize_issue(legacy_issue)

    assert issue.id == "iss-1"
    assert issue.tex_file_name == "main.tex"
    assert issue.type == "weak-citation"
    assert issue.severity == "high"
    assert issue.line_start == 3
    assert issue.snippet == "as shown in \\cite{doe2021}"
    assert issue.cited_keys == ["doe2021"]
    assert issue.suggestions[0]["paperId"] == "paper-7"
    assert issue.created_at == "2024-05-01T10:00:00Z"


def test_issue_with_missing_fields_gets_defaults():
    issue = normalize_issue({"id": "bare"})

    assert issue.start == 0 and issue.end == 0
    assert issue.type == "missing-citation"
    assert issue.severity == "medium"
    assert issue.cited_keys == []
    assert issue.suggestions == []
    assert issue.evidence == []
    assert issue.created_at


def test_issue_numeric_strings_and_bad_lists_are_tolerated():
    issue = normalize_issue(
        {"id": 42, "position": "5", "length": "3", "citedKeys": "doe", "evidence": None}
    )

    assert issue.id == "42"
    assert (issue.start, issue.end) == (5, 8)
    assert issue.cited_keys == []
    assert issue.evidence == []


def test_issue_end_never_precedes_start():
    issue = normalize_issue({"id": "x", "position": 20, "length": -5})

    assert issue.end >= issue.start


def test_issue_normalization_is_idempotent(legacy_issue):
    once = normalize_issue(legacy_issue)

    assert normalize_issue(once.to_dict()) == once
    assert normalize_issue(once) == once


def test_canonical_offsets_are_kept():
    issue = normalize_issue({"id": "c", "from": 4, "to": 9, "texFileName": "a.tex", "type": "orphan-reference"})

    assert (issue.start, issue.end) == (4, 9)
    assert issue.tex_file_name == "a.tex"
    assert issue.type == "orphan-reference"


def test_summary_total_falls_back_to_total_issues():
    summary = normalize_summary({"totalIssues": 5})

    assert summary.total == 5


def test_summary_total_falls_back_to_issue_count():
    summary = normalize_summary({"byType": {"missing-citation": 3}}, issues=[{}, {}, {}])

    assert summary.total == 3
    assert summary.by_type == {"missing-citation": 3}


def test_summary_prefers_explicit_total_and_current_field_names():
    summary = normalize_summary(
        {"total": 2, "totalIssues": 9, "byType": {"weak-citation": 2}, "typeCounts": {"x": 1}}
    )

    assert summary.total == 2
    assert summary.by_type == {"weak-citation": 2}


def test_summary_missing_entirely_uses_issue_count():
    assert normalize_summary(None, issues=[{}, {}]) == CitationSummary(total=2)
    assert normalize_summary(None) == CitationSummary(total=0)


def test_summary_normalization_is_idempotent():
    once = normalize_summary(
        {"totalIssues": 4, "typeCounts": {"weak-citation": 4}, "contentHash": "abc", "startedAt": "t0"}
    )

    assert normalize_summary(once.to_dict()) == once
    assert normalize_summary(once) == once


def test_status_accepts_both_progress_field_names():
    assert normalize_status({"status": "RUNNING", "step": "PARSING", "progressPct": 40}).progress_pct == 40
    legacy = normalize_status({"status": "RUNNING", "currentStep": "SAVING", "progressPercent": "90"})
    assert legacy.step == "SAVING"
    assert legacy.progress_pct == 90
    assert normalize_status({"status": "RUNNING", "progressPct": 250}).progress_pct == 100


def test_job_normalization_from_backend_dto(job_payload):
    job = normalize_job(job_payload(status="RUNNING", message="still working"))

    assert job.job_id == "job-1"
    assert job.status == "RUNNING"
    assert job.step == "LOCAL_VERIFICATION"
    assert job.progress_pct == 40
    assert job.summary.total == 1
    assert job.summary.by_type == {"weak-citation": 1}
    assert isinstance(job.issues[0], CitationIssue)
    assert job.error_message == "still working"
    assert not job.is_terminal


def test_job_normalization_is_idempotent(job_payload):
    once = normalize_job(job_payload())

    assert normalize_job(once.to_dict()) == once
    assert once.is_terminal


def test_normalize_issues_handles_none():
    assert normalize_issues(None) == []
