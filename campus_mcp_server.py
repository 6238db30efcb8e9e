from __future__ import annotations

from datetime import datetime
from pathlib import Path

from mcp.server.fastmcp import FastMCP

from campus_connect import DEFAULT_CATALOG, EvaluationYamlRepository, ReservationYamlRepository

mcp = FastMCP(
    "CampusConnect MCP Server",
    instructions="Expose campus reservations and project evaluation summaries from the campus_connect project.",
    json_response=True,
)

DATA_DIR = Path(__file__).parent / "data"
RESERVATIONS = ReservationYamlRepository(DATA_DIR)
EVALUATIONS = EvaluationYamlRepository(DATA_DIR)


@mcp.resource("campus://desks")
async def list_desks() -> list[str]:
    """List bookable desk names."""
    return DEFAULT_CATALOG.names("desk")


@mcp.resource("campus://labs")
async def list_labs() -> list[str]:
    """List bookable computer lab names."""
    return DEFAULT_CATALOG.names("lab")


@mcp.resource("campus://meeting-rooms")
async def list_meeting_rooms() -> list[str]:
    """List bookable meeting room names."""
    return DEFAULT_CATALOG.names("meeting-room")


@mcp.tool()
def check_availability(resource_name: str, date: str, start_time: str, end_time: str) -> bool:
    """Return True if the resource is free for [start_time, end_time) on the given ISO date."""
    return RESERVATIONS.check_availability(resource_name, date, start_time, end_time)


@mcp.tool()
def list_reservations(date: str | None = None, resource_name: str | None = None) -> list[dict[str, str]]:
    """Return active reservations, optionally filtered by date and resource."""
    records = RESERVATIONS.list_reservations(reservation_date=date, resource_name=resource_name)
    return [record.to_dict() for record in records]


@mcp.tool()
def add_reservation(
    resource_name: str,
    date: str,
    start_time: str,
    end_time: str,
    user_name: str,
    user_type: str = "student",
    purpose: str = "",
) -> dict[str, str]:
    """Book a desk, lab or meeting room. Times are HH:MM, date is YYYY-MM-DD."""
    created = RESERVATIONS.add_reservation(
        resource_name=resource_name,
        reservation_date=date,
        start_time=start_time,
        end_time=end_time,
        user_name=user_name,
        user_type=user_type,
        purpose=purpose,
        now=datetime.now(),
    )
    return created.to_dict()


@mcp.tool()
def project_evaluation_summary(project_id: str) -> dict:
    """Return the averaged scores and grade for a project's submitted evaluations."""
    return EVALUATIONS.summarize_project(project_id).to_dict()


def main() -> None:
    mcp.run()


if __name__ == "__main__":
    main()
