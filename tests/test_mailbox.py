"""Tests for mailbox message conversion and fetching with a fake Graph client."""

import asyncio
from datetime import date, datetime, timezone
from types import SimpleNamespace

import pytest

from core.errors import SourceUnavailableError
from services.mailbox import fetch_messages, format_address, to_email_record


def _recipient(address, name=None):
    return SimpleNamespace(email_address=SimpleNamespace(address=address, name=name))


def _message(message_id="msg-1", **overrides):
    fields = dict(
        id=message_id,
        conversation_id=f"conv-{message_id}",
        subject="Wine tour booking confirmation",
        from_=_recipient("jane@example.com", "Jane Smith"),
        to_recipients=[_recipient("tours@wallawalla.travel", "tours@wallawalla.travel")],
        received_date_time=datetime(2025, 6, 3, 9, 30, tzinfo=timezone.utc),
        body_preview="Looking forward to Saturday",
        body=SimpleNamespace(content="<p>Booking WWT-10042</p>"),
        categories=["Promotions"],
    )
    fields.update(overrides)
    return SimpleNamespace(**fields)


class FakeMessagesBuilder:
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
        follow = FakeMessagesBuilder(self.pages, url, self.error)
        follow.requests = self.requests
        return follow


def _fake_graph(builder):
    user = SimpleNamespace(messages=builder)
    return SimpleNamespace(users=SimpleNamespace(by_user_id=lambda mailbox: user))


def test_format_address():
    assert format_address(_recipient("jane@example.com", "Jane Smith")) == "Jane Smith <jane@example.com>"
    assert format_address(_recipient("jane@example.com", "jane@example.com")) == "jane@example.com"
    assert format_address(None) == ""


def test_message_conversion():
    record = to_email_record(_message())

    assert record.id == "msg-1"
    assert record.thread_id == "conv-msg-1"
    assert record.sender == "Jane Smith <jane@example.com>"
    assert record.to == "tours@wallawalla.travel"
    assert record.received_at == datetime(2025, 6, 3, 9, 30, tzinfo=timezone.utc)
    assert record.snippet == "Looking forward to Saturday"
    assert record.body == "Booking WWT-10042"
    assert record.labels == ("promotions",)


def test_message_conversion_parses_string_timestamp():
    record = to_email_record(
        _message(received_date_time="2025-06-03T09:30:00Z", conversation_id=None, categories=None)
    )

    assert record.received_at == datetime(2025, 6, 3, 9, 30, tzinfo=timezone.utc)
    assert record.thread_id == "msg-1"
    assert record.labels == ()


def test_fetch_stops_at_limit():
    """Test paging stops as soon as the limit is reached."""
    pages = {
        None: SimpleNamespace(value=[_message("m1"), _message("m2")], odata_next_link="page-2"),
        "page-2": SimpleNamespace(value=[_message("m3"), _message("m4")], odata_next_link="page-3"),
        "page-3": SimpleNamespace(value=[_message("m5")], odata_next_link=None),
    }
    builder = FakeMessagesBuilder(pages)

    records = asyncio.run(
        fetch_messages(
            _fake_graph(builder), "tours@example.com", date(2025, 6, 1), date(2025, 6, 30), limit=3
        )
    )

    assert [record.id for record in records] == ["m1", "m2", "m3"]
    assert builder.requests == [None, "page-2"]


def test_fetch_reads_all_pages_under_limit():
    pages = {
        None: SimpleNamespace(value=[_message("m1")], odata_next_link="page-2"),
        "page-2": SimpleNamespace(value=[_message("m2")], odata_next_link=None),
    }

    records = asyncio.run(
        fetch_messages(
            _fake_graph(FakeMessagesBuilder(pages)),
            "tours@example.com",
            date(2025, 6, 1),
            date(2025, 6, 30),
        )
    )

    assert [record.id for record in records] == ["m1", "m2"]


def test_fetch_failure_is_source_unavailable():
    builder = FakeMessagesBuilder({}, error=RuntimeError("throttled"))

    with pytest.raises(SourceUnavailableError) as excinfo:
        asyncio.run(
            fetch_messages(
                _fake_graph(builder), "tours@example.com", date(2025, 6, 1), date(2025, 6, 30)
            )
        )

    assert excinfo.value.source == "mailbox"
