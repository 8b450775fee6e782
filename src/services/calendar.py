"""
Calendar event fetching from MS Graph.

Read-only: events are paged out of one mailbox calendar and converted into
CalendarEvent snapshots. Recurring events are expanded by the calendar view.
"""

import html
import re
from datetime import date, datetime, time, timedelta

from azure.core.exceptions import ClientAuthenticationError
from msgraph.generated.users.item.calendars.item.calendar_view.calendar_view_request_builder import (
    CalendarViewRequestBuilder,
)

from core.config import CALENDAR_PAGE_SIZE, CALENDAR_TIME_ZONE
from core.errors import SourceUnavailableError
from models.events import Attendee, CalendarEvent, EventTime

FRACTION_PATTERN = re.compile(r"(\.\d{6})\d+")
HTML_TAG_PATTERN = re.compile(r"<[^>]+>")


def parse_graph_datetime(value: str | None) -> datetime | None:
    """Parse Graph's dateTime string (7 fractional digits, no offset)."""
    if not value:
        return None
    cleaned = FRACTION_PATTERN.sub(r"\1", value.replace("Z", ""))
    return datetime.fromisoformat(cleaned)


def html_to_text(content: str | None) -> str:
    """Strip HTML markup from an event body, keeping one line per block."""
    if not content:
        return ""
    text = content.strip()
    if "<" in text:
        text = HTML_TAG_PATTERN.sub("\n", text)
    text = html.unescape(text)
    lines = [line.strip() for line in text.split("\n")]
    return "\n".join(line for line in lines if line)


def _to_attendee(recipient) -> Attendee | None:
    address = getattr(recipient, "email_address", None)
    if not address or not address.address:
        return None
    return Attendee(email=address.address, display_name=address.name)


def _to_event_time(value, is_all_day: bool) -> EventTime:
    parsed = parse_graph_datetime(value.date_time if value else None)
    if parsed is None:
        return EventTime()
    if is_all_day:
        return EventTime(day=parsed.date())
    return EventTime(date_time=parsed)


def to_calendar_event(graph_event) -> CalendarEvent:
    """Convert an MS Graph event into our CalendarEvent snapshot."""
    is_all_day = bool(graph_event.is_all_day)

    attendees = tuple(
        attendee
        for attendee in (_to_attendee(a) for a in graph_event.attendees or [])
        if attendee is not None
    )
    location = None
    if graph_event.location and graph_event.location.display_name:
        location = graph_event.location.display_name.strip() or None

    return CalendarEvent(
        id=graph_event.id,
        title=(graph_event.subject or "").strip(),
        start=_to_event_time(graph_event.start, is_all_day),
        end=_to_event_time(graph_event.end, is_all_day),
        description=html_to_text(graph_event.body.content if graph_event.body else None),
        location=location,
        attendees=attendees,
        creator=_to_attendee(graph_event.organizer),
    )


async def resolve_calendar_id(graph, mailbox: str, calendar_id: str | None = None) -> str:
    """Use the given calendar id, or look up the mailbox's default calendar."""
    if calendar_id:
        return calendar_id
    try:
        calendar = await graph.users.by_user_id(mailbox).calendar.get()
    except ClientAuthenticationError:
        raise
    except Exception as e:
        raise SourceUnavailableError(
            f"Cannot resolve default calendar for {mailbox}", cause=e, source="calendar"
        )
    return calendar.id


async def fetch_calendar_events(
    graph,
    mailbox: str,
    calendar_id: str,
    start_date: date,
    end_date: date,
    page_size: int = CALENDAR_PAGE_SIZE,
) -> list[CalendarEvent]:
    """
    Fetch all events from a calendar within date range (end date inclusive).

    Pages through the calendar view until the source has no next link.

    Raises:
        SourceUnavailableError: If any page cannot be fetched
        ClientAuthenticationError: Propagated so the caller can refresh credentials
    """
    start_dt = datetime.combine(start_date, time.min)
    end_dt = datetime.combine(end_date + timedelta(days=1), time.min)

    query_params = CalendarViewRequestBuilder.CalendarViewRequestBuilderGetQueryParameters(
        start_date_time=start_dt.strftime("%Y-%m-%dT%H:%M:%S"),
        end_date_time=end_dt.strftime("%Y-%m-%dT%H:%M:%S"),
        orderby=["start/dateTime"],
        top=page_size,
    )
    config = CalendarViewRequestBuilder.CalendarViewRequestBuilderGetRequestConfiguration(
        query_parameters=query_params
    )
    config.headers.add("Prefer", f'outlook.timezone="{CALENDAR_TIME_ZONE}"')

    builder = graph.users.by_user_id(mailbox).calendars.by_calendar_id(calendar_id).calendar_view
    events = []
    page = 0

    try:
        response = await builder.get(request_configuration=config)
        while response is not None:
            page += 1
            raw_events = response.value if response.value else []
            events.extend(to_calendar_event(event) for event in raw_events)

            if not response.odata_next_link:
                break
            response = await builder.with_url(response.odata_next_link).get(
                request_configuration=config
            )
    except ClientAuthenticationError:
        raise
    except Exception as e:
        raise SourceUnavailableError(
            f"Error fetching calendar events (page {page + 1})", cause=e, source="calendar"
        )

    print(f"  Fetched {len(events)} events across {page} page(s)")
    return events
