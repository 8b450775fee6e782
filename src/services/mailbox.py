"""
Email message fetching from an MS Graph mailbox.
"""

from datetime import date, datetime, time, timedelta, timezone

from azure.core.exceptions import ClientAuthenticationError
from msgraph.generated.users.item.messages.messages_request_builder import (
    MessagesRequestBuilder,
)

from core.config import DEFAULT_EMAIL_LIMIT, MAIL_PAGE_SIZE
from core.errors import SourceUnavailableError
from models.events import EmailRecord
from services.calendar import html_to_text

MESSAGE_FIELDS = [
    "id",
    "conversationId",
    "subject",
    "from",
    "toRecipients",
    "receivedDateTime",
    "bodyPreview",
    "body",
    "categories",
]


def format_address(recipient) -> str:
    """Render a Graph recipient as "Name <address>", or the bare address."""
    address = getattr(recipient, "email_address", None)
    if not address or not address.address:
        return ""
    if address.name and address.name != address.address:
        return f"{address.name} <{address.address}>"
    return address.address


def to_email_record(message) -> EmailRecord:
    """Convert an MS Graph message into our EmailRecord snapshot."""
    received_at = message.received_date_time
    if isinstance(received_at, str):
        received_at = datetime.fromisoformat(received_at.replace("Z", "+00:00"))

    return EmailRecord(
        id=message.id,
        thread_id=message.conversation_id or message.id,
        subject=message.subject or "",
        sender=format_address(message.from_),
        to=", ".join(filter(None, (format_address(r) for r in message.to_recipients or []))),
        received_at=received_at,
        snippet=message.body_preview or "",
        body=html_to_text(message.body.content if message.body else None),
        labels=tuple(category.lower() for category in message.categories or []),
    )


async def fetch_messages(
    graph,
    mailbox: str,
    start_date: date,
    end_date: date,
    limit: int = DEFAULT_EMAIL_LIMIT,
    page_size: int = MAIL_PAGE_SIZE,
) -> list[EmailRecord]:
    """
    Fetch up to `limit` messages received within the date range, newest first.

    Raises:
        SourceUnavailableError: If any page cannot be fetched
        ClientAuthenticationError: Propagated so the caller can refresh credentials
    """
    start_dt = datetime.combine(start_date, time.min, tzinfo=timezone.utc)
    end_dt = datetime.combine(end_date + timedelta(days=1), time.min, tzinfo=timezone.utc)
    start_str = start_dt.strftime("%Y-%m-%dT%H:%M:%SZ")
    end_str = end_dt.strftime("%Y-%m-%dT%H:%M:%SZ")

    query_params = MessagesRequestBuilder.MessagesRequestBuilderGetQueryParameters(
        filter=f"receivedDateTime ge {start_str} and receivedDateTime lt {end_str}",
        orderby=["receivedDateTime desc"],
        select=MESSAGE_FIELDS,
        top=min(page_size, limit),
    )
    config = MessagesRequestBuilder.MessagesRequestBuilderGetRequestConfiguration(
        query_parameters=query_params
    )

    builder = graph.users.by_user_id(mailbox).messages
    messages: list[EmailRecord] = []

    try:
        response = await builder.get(request_configuration=config)
        while response is not None:
            for message in response.value or []:
                messages.append(to_email_record(message))
                if len(messages) >= limit:
                    break

            if len(messages) >= limit or not response.odata_next_link:
                break
            response = await builder.with_url(response.odata_next_link).get()
    except ClientAuthenticationError:
        raise
    except Exception as e:
        raise SourceUnavailableError("Error fetching mailbox messages", cause=e, source="mailbox")

    print(f"  Fetched {len(messages)} messages")
    return messages
