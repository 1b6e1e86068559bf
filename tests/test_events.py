import pytest

from scholar_citations.errors import StreamParseError
from scholar_citations.events import (
    CompleteEvent,
    IssueEvent,
    StatusEvent,
    SummaryEvent,
    decode_event,
    parse_event,
)
from scholar_citations.stream import iter_sse_frames


def test_flat_status_event():
    event = parse_event({"type": "status", "status": "RUNNING", "step": "PARSING", "progressPct": 10})

    assert isinstance(event, StatusEvent)
    assert event.update.status == "RUNNING"
    assert event.update.step == "PARSING"
    assert event.update.progress_pct == 10


def test_wrapped_status_event():
    event = parse_event({"type": "status", "data": {"status": "RUNNING", "step": "SAVING", "progressPct": 95}})

    assert isinstance(event, StatusEvent)
    assert event.update.step == "SAVING"
    assert event.update.progress_pct == 95


def test_flat_and_wrapped_issue_events_normalize_the_issue(legacy_issue):
    flat = parse_event({"type": "issue", "issue": legacy_issue})
    wrapped = parse_event({"type": "issue", "data": {"issue": legacy_issue}})
    bare = parse_event({"type": "issue", "data": legacy_issue})

    for event in (flat, wrapped, bare):
        assert isinstance(event, IssueEvent)
        assert event.issue.id == "iss-1"
        assert (event.issue.start, event.issue.end) == (10, 14)


def test_type_may_live_inside_the_wrapper():
    event = parse_event({"data": {"type": "summary", "summary": {"totalIssues": 2}}})

    assert isinstance(event, SummaryEvent)
    assert event.summary.total == 2


def test_doubly_wrapped_summary():
    event = parse_event({"type": "summary", "data": {"data": {"summary": {"total": 6, "byType": {"a": 6}}}}})

    assert isinstance(event, SummaryEvent)
    assert event.summary.total == 6
    assert event.summary.by_type == {"a": 6}


def test_complete_and_unknown_events():
    assert isinstance(parse_event({"type": "complete"}), CompleteEvent)
    assert parse_event({"type": "tick", "message": "working"}) is None
    assert parse_event({"status": "RUNNING"}) is None


def test_decode_event_returns_raw_message_and_event():
    message, event = decode_event('{"type": "complete", "jobId": "job-1"}')

    assert message["jobId"] == "job-1"
    assert isinstance(event, CompleteEvent)


@pytest.mark.parametrize("data", ["{not json", "[1, 2]", '"complete"'])
def test_decode_event_rejects_malformed_payloads(data):
    with pytest.raises(StreamParseError) as excinfo:
        decode_event(data)

    assert excinfo.value.data == data


@pytest.mark.asyncio
async def test_sse_frames_are_grouped_by_blank_lines():
    async def lines():
        for line in [
            ": keep-alive",
            "event: status",
            'data: {"a":',
            "data: 1}",
            "",
            "",
            "id: 7",
            "data:{}",
            "",
            "data: trailing frame without terminator",
        ]:
            yield line

    frames = [frame async for frame in iter_sse_frames(lines())]

    assert frames == [("status", '{"a":\n1}'), ("", "{}")]
