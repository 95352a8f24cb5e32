"""Central configuration, constants, and workflow vocabulary."""

from __future__ import annotations

from dataclasses import dataclass

# =============================================================================
# Tracker Vocabulary
# Field names the tracker client normalizes change items to before they reach
# the timeline engine.
# =============================================================================
STATUS_FIELD = "status"
MEMBERSHIP_FIELD = "Epic Child"

# Returned by point-in-time status queries for instants before creation
NOT_CREATED_YET = "NOT_CREATED_YET"

# =============================================================================
# Workflow Status Configuration
# =============================================================================
DONE_STATUS = "Done"

# Statuses that take an entity out of scope for burnup/scope counts
DESCOPED_STATUSES: frozenset[str] = frozenset({"Cancelled"})

# =============================================================================
# Business Calendar (fixed UTC working window, no holidays)
# =============================================================================
WORKDAY_START_HOUR: int = 9  # inclusive
WORKDAY_END_HOUR: int = 17  # exclusive
WORKING_WEEKDAYS: frozenset[int] = frozenset({0, 1, 2, 3, 4})  # Monday..Friday
HOURS_PER_WORKING_DAY: int = WORKDAY_END_HOUR - WORKDAY_START_HOUR

# =============================================================================
# Report Defaults
# =============================================================================
DEFAULT_PERIOD_LENGTH_DAYS: int = 14  # one sprint
DEFAULT_MAX_BUCKET: int = 10  # lead-time histogram overflow threshold (days)

# Hard cap on backward period walks; ten years of two-week sprints
MAX_PERIOD_ITERATIONS: int = 520

# Jira custom field holding the epic start date
FIELD_IDS = {
    "start_date": "customfield_10015",
}

SECONDS_PER_HOUR = 3600


@dataclass(slots=True)
class AppSettings:
    tracker_server: str | None = None
    workflow_file: str = "workflow.yaml"


SETTINGS = AppSettings()
