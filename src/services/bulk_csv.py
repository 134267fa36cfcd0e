"""Bulk-upload CSV export for locations waiting to be sent to the provider."""

import csv
import io
from datetime import date
from typing import Any, Iterable, Optional

from src.models.location import Location

CSV_HEADERS = [
    "ClientId",
    "BusinessName",
    "AddressLine",
    "City",
    "StateOrProvince",
    "PostalCode",
    "CountryOrRegion",
    "Phone",
    "Website",
    "Category",
    "Description",
    "Latitude",
    "Longitude",
    "Hours",
]

DEFAULT_COUNTRY = "IT"
DEFAULT_CATEGORY = "Local Business"

_DAY_ABBREVIATIONS = {
    "monday": "Mon",
    "tuesday": "Tue",
    "wednesday": "Wed",
    "thursday": "Thu",
    "friday": "Fri",
    "saturday": "Sat",
    "sunday": "Sun",
}


def format_opening_hours(opening_hours: Any) -> str:
    """
    Format opening hours as ``Mon 09:00-18:00;Tue 09:00-18:00``.

    Accepts a preformatted string or a mapping of day name to
    ``{"open": ..., "close": ...}``. Unknown days and incomplete entries are
    dropped.
    """
    if not opening_hours:
        return ""
    if isinstance(opening_hours, str):
        return opening_hours
    if not isinstance(opening_hours, dict):
        return ""

    parts = []
    for day, hours in opening_hours.items():
        abbrev = _DAY_ABBREVIATIONS.get(str(day).lower())
        if not abbrev or not isinstance(hours, dict):
            continue
        opens, closes = hours.get("open"), hours.get("close")
        if opens and closes:
            parts.append(f"{abbrev} {opens}-{closes}")
    return ";".join(parts)


def _coordinate(value: Optional[float]) -> str:
    return "" if value is None else str(value)


def location_to_row(location: Location) -> list[str]:
    return [
        location.id,
        location.business_name or "",
        location.address or "",
        location.city or "",
        location.state or "",
        location.zip_code or "",
        location.country or DEFAULT_COUNTRY,
        location.phone or "",
        location.website or "",
        location.category or DEFAULT_CATEGORY,
        location.description or "",
        _coordinate(location.latitude),
        _coordinate(location.longitude),
        format_opening_hours(location.opening_hours),
    ]


def generate_bulk_csv(locations: Iterable[Location]) -> str:
    """Render locations as a bulk-upload CSV document."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for location in locations:
        writer.writerow(location_to_row(location))
    return buffer.getvalue()


def generate_csv_filename(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"listings-upload-{today.isoformat()}.csv"


def validate_location_for_upload(location: Location) -> list[str]:
    """Return the CSV columns a location cannot fill; empty when uploadable."""
    errors = []
    if not location.business_name:
        errors.append("BusinessName")
    if not location.address:
        errors.append("AddressLine")
    if not location.city:
        errors.append("City")
    if not location.country:
        errors.append("CountryOrRegion")
    return errors
