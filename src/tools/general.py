"""Weather and local-time tools."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field

from src.tools.registry import ToolContext

logger = logging.getLogger(__name__)


class WeatherArgs(BaseModel):
    city: str = Field(..., min_length=1, description="City to report the weather for")


class LocalTimeArgs(BaseModel):
    location: str = Field(
        ...,
        min_length=1,
        description="Location as an IANA timezone name (e.g. 'Europe/Lisbon')",
    )


def _now() -> datetime:
    return datetime.now(UTC)


async def get_weather_information(ctx: ToolContext, args: WeatherArgs) -> str:
    """Runs only after the user approved the call."""
    logger.info("Getting weather information for %s", args.city)
    return f"The weather in {args.city} is sunny"


async def get_local_time(ctx: ToolContext, args: LocalTimeArgs) -> str:
    logger.info("Getting local time for %s", args.location)
    now = _now()
    try:
        zone = ZoneInfo(args.location.strip())
    except (ZoneInfoNotFoundError, ValueError):
        return (
            f"I don't know the timezone for {args.location}. "
            f"The current UTC time is {now.strftime('%H:%M')}."
        )
    local = now.astimezone(zone)
    return f"The local time in {args.location} is {local.strftime('%H:%M')} ({local.tzname()})"
