"""Dashboard counters and project list filtering."""

from datetime import date

from protracker.core.modules.dashboard.models import DashboardStats, ProjectSummary, StatusFilter
from protracker.core.modules.project.models import Project, ProjectStatus
from protracker.core.modules.workflow.engine import progress_percent

URGENT_WINDOW_DAYS = 7
RECENT_LIMIT = 5


def is_urgent(project: Project, today: date) -> bool:
    """Open project whose deadline falls between today and a week from now."""
    if project.status == ProjectStatus.COMPLETED or project.deadline is None:
        return False
    return 0 <= (project.deadline - today).days <= URGENT_WINDOW_DAYS


def summarize(project: Project, today: date) -> ProjectSummary:
    current = project.current_step
    return ProjectSummary(
        project=project,
        progress_percent=progress_percent(project),
        current_step_title=current.title if current is not None else None,
        urgent=is_urgent(project, today),
    )


def compute_stats(projects: list[Project], today: date) -> DashboardStats:
    completed = sum(1 for p in projects if p.status == ProjectStatus.COMPLETED)
    return DashboardStats(
        total=len(projects),
        in_progress=len(projects) - completed,
        completed=completed,
        urgent=sum(1 for p in projects if is_urgent(p, today)),
        recent=[summarize(p, today) for p in projects[:RECENT_LIMIT]],
    )


def filter_projects(
    projects: list[Project], today: date, query: str = "", status: StatusFilter = StatusFilter.ALL
) -> list[Project]:
    """Case-insensitive search on name and description plus a status filter."""
    needle = query.strip().casefold()
    result = []
    for project in projects:
        if needle and needle not in project.name.casefold() and needle not in project.description.casefold():
            continue
        if status == StatusFilter.ACTIVE and project.status != ProjectStatus.ACTIVE:
            continue
        if status == StatusFilter.COMPLETED and project.status != ProjectStatus.COMPLETED:
            continue
        if status == StatusFilter.URGENT and not is_urgent(project, today):
            continue
        result.append(project)
    return result
