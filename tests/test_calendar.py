"""Tests for calendar event conversion and paged fetching with a fake Graph client."""

import asyncio
from datetime import date, datetime
from types import SimpleNamespace

import pytest
from azure.core.exceptions import ClientAuthenticationError

from core.errors import SourceUnavailableError
from services.calendar import (
    fetch_calendar_events,
    html_to_text,
    parse_graph_datetime,
    resolve_calendar_id,
    to_calendar_event,
)


def _graph_time(value):
    return SimpleNamespace(date_time=value, time_zone="Pacific Standard Time")


def _recipient(address, name=None):
    return SimpleNamespace(email_address=SimpleNamespace(address=address, name=name))


def _graph_event(event_id="evt-1", subject="Smith Party - 6 guests", is_all_day=False, **overrides):
    fields = dict(
        id=event_id,
        subject=subject,
        is_all_day=is_all_day,
        start=_graph_time("2025-06-01T10:00:00.0000000"),
        end=_graph_time("2025-06-01T16:00:00.0000000"),
        body=SimpleNamespace(content="<p>Party of 6</p><p>jane@example.com</p>"),
        location=SimpleNamespace(display_name=" Marcus Whitman Hotel "),
        attendees=[_recipient("jane@example.com", "Jane Smith"), SimpleNamespace(email_address=None)],
        organizer=_recipient("tours@wallawalla.travel", "Tours"),
    )
    fields.update(overrides)
    return SimpleNamespace(**fields)


class FakeViewBuilder:
    """Calendar view builder serving canned pages keyed by next link."""

    def __init__(self, pages, url=None, error=None):
        self.pages = pages
        self.url = url
        self.error = error
        self.requests = []

    async def get(self, request_configuration=None):
        self.requests.append(self.url)
        if self.error is not None:
            raise self.error
        return self.pages[self.url]

    def with_url(self, url):
        follow = FakeViewBuilder(self.pages, url, self.error)
        follow.requests = self.requests
        return follow


def _fake_graph(builder, default_calendar_id="cal-default"):
    calendar_item = SimpleNamespace(calendar_view=builder)

    async def get_default_calendar():
        return SimpleNamespace(id=default_calendar_id)

    user = SimpleNamespace(
        calendars=SimpleNamespace(by_calendar_id=lambda calendar_id: calendar_item),
        calendar=SimpleNamespace(get=get_default_calendar),
    )
    return SimpleNamespace(users=SimpleNamespace(by_user_id=lambda mailbox: user))


def test_parse_graph_datetime():
    assert parse_graph_datetime("2025-06-01T10:30:00.1234567") == datetime(2025, 6, 1, 10, 30, 0, 123456)
    assert parse_graph_datetime("2025-06-01T10:30:00") == datetime(2025, 6, 1, 10, 30)
    assert parse_graph_datetime(None) is None


def test_html_to_text():
    assert html_to_text("<div>Party of 4<br>Pickup: Marcus&nbsp;Whitman</div>") == (
        "Party of 4\nPickup: Marcus\xa0Whitman"
    )
    assert html_to_text("plain text") == "plain text"
    assert html_to_text(None) == ""


def test_timed_event_conversion():
    event = to_calendar_event(_graph_event())

    assert event.id == "evt-1"
    assert event.title == "Smith Party - 6 guests"
    assert event.start.date_time == datetime(2025, 6, 1, 10, 0)
    assert event.end.date_time == datetime(2025, 6, 1, 16, 0)
    assert event.description == "Party of 6\njane@example.com"
    assert event.location == "Marcus Whitman Hotel"
    assert [a.email for a in event.attendees] == ["jane@example.com"]
    assert event.creator.email == "tours@wallawalla.travel"


def test_all_day_event_conversion():
    """Test all-day events keep only their date."""
    event = to_calendar_event(
        _graph_event(
            is_all_day=True,
            start=_graph_time("2025-06-01T00:00:00.0000000"),
            end=_graph_time("2025-06-02T00:00:00.0000000"),
            body=None,
            location=None,
        )
    )

    assert event.start.is_date_only
    assert event.start.day == date(2025, 6, 1)
    assert event.description == ""
    assert event.location is None


def test_fetch_follows_next_links(capsys):
    pages = {
        None: SimpleNamespace(value=[_graph_event("evt-1")], odata_next_link="page-2"),
        "page-2": SimpleNamespace(value=[_graph_event("evt-2")], odata_next_link="page-3"),
        "page-3": SimpleNamespace(value=[_graph_event("evt-3")], odata_next_link=None),
    }
    builder = FakeViewBuilder(pages)

    events = asyncio.run(
        fetch_calendar_events(
            _fake_graph(builder), "tours@example.com", "cal-1", date(2025, 6, 1), date(2025, 6, 30)
        )
    )

    assert [event.id for event in events] == ["evt-1", "evt-2", "evt-3"]
    assert builder.requests == [None, "page-2", "page-3"]
    assert "Fetched 3 events across 3 page(s)" in capsys.readouterr().out


def test_fetch_failure_is_source_unavailable():
    builder = FakeViewBuilder({}, error=RuntimeError("503 Service Unavailable"))

    with pytest.raises(SourceUnavailableError) as excinfo:
        asyncio.run(
            fetch_calendar_events(
                _fake_graph(builder), "tours@example.com", "cal-1", date(2025, 6, 1), date(2025, 6, 30)
            )
        )

    assert excinfo.value.source == "calendar"
    assert isinstance(excinfo.value.cause, RuntimeError)


def test_fetch_auth_failure_propagates():
    builder = FakeViewBuilder({}, error=ClientAuthenticationError(message="token expired"))

    with pytest.raises(ClientAuthenticationError):
        asyncio.run(
            fetch_calendar_events(
                _fake_graph(builder), "tours@example.com", "cal-1", date(2025, 6, 1), date(2025, 6, 30)
            )
        )


def test_resolve_calendar_id():
    graph = _fake_graph(FakeViewBuilder({}))

    assert asyncio.run(resolve_calendar_id(graph, "tours@example.com", "cal-given")) == "cal-given"
    assert asyncio.run(resolve_calendar_id(graph, "tours@example.com")) == "cal-default"
