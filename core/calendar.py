"""iCalendar (.ics) export for booking confirmations."""
import secrets
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Optional

PRODID = "-//TravelHub//Booking//EN"
MAX_LINE_OCTETS = 75


@dataclass
class CalendarEvent:
    title: str
    description: str
    location: str
    start_date: date
    end_date: date
    url: Optional[str] = None


def _ics_date(value: date) -> str:
    return value.strftime("%Y%m%d")


def escape_ics(text: str) -> str:
    return (
        text.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\n", "\\n")
    )


def fold_line(line: str, limit: int = MAX_LINE_OCTETS) -> str:
    """Fold a content line so no physical line exceeds `limit` UTF-8 octets (RFC 5545 3.1)."""
    if len(line.encode("utf-8")) <= limit:
        return line
    parts = []
    current = ""
    size = 0
    for char in line:
        width = len(char.encode("utf-8"))
        # continuation lines carry a leading space
        room = limit if not parts else limit - 1
        if size + width > room:
            parts.append(current)
            current, size = "", 0
        current += char
        size += width
    parts.append(current)
    return "\r\n ".join(parts)


def generate_uid(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"{int(now.timestamp() * 1000)}-{secrets.token_hex(5)}@travelhub.com"


def generate_ics(event: CalendarEvent, now: Optional[datetime] = None, uid: Optional[str] = None) -> str:
    now = now or datetime.now(timezone.utc)
    dtstamp = now.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")

    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{PRODID}",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        "BEGIN:VEVENT",
        f"UID:{uid or generate_uid(now)}",
        f"DTSTAMP:{dtstamp}",
        f"DTSTART;VALUE=DATE:{_ics_date(event.start_date)}",
        f"DTEND;VALUE=DATE:{_ics_date(event.end_date)}",
        f"SUMMARY:{escape_ics(event.title)}",
        f"DESCRIPTION:{escape_ics(event.description)}",
        f"LOCATION:{escape_ics(event.location)}",
    ]
    if event.url:
        lines.append(f"URL:{event.url}")
    lines += ["END:VEVENT", "END:VCALENDAR"]
    return "\r\n".join(fold_line(line) for line in lines)


def booking_calendar_event(
    hotel_name: str,
    check_in: date,
    check_out: date,
    confirmation_number: str,
    address: str = "",
    city: str = "",
    country: str = "",
    room_type: Optional[str] = None,
    guest_name: Optional[str] = None,
) -> CalendarEvent:
    """Build the all-day event for a stay. DTEND is exclusive, so it lands on checkout + 1."""
    description = "\n".join(
        line for line in (
            f"Confirmation: {confirmation_number}",
            f"Room: {room_type}" if room_type else "",
            f"Guest: {guest_name}" if guest_name else "",
            f"Check-in: {check_in.isoformat()}",
            f"Check-out: {check_out.isoformat()}",
        ) if line
    )
    location = ", ".join(part for part in (hotel_name, address, city, country) if part)
    return CalendarEvent(
        title=f"Hotel Stay: {hotel_name}",
        description=description,
        location=location,
        start_date=check_in,
        end_date=check_out + timedelta(days=1),
    )
