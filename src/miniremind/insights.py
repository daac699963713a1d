"""List filtering, status counts, and health-goal progress for display surfaces."""

from dataclasses import dataclass
from typing import Literal

from miniremind.scheduling.reminders import Category, Reminder

StatusFilter = Literal["upcoming", "all", "completed"]

DEFAULT_TARGETS: dict[Category, int] = {
    Category.WATER: 8,
    Category.STRETCH: 6,
    Category.EYE: 6,
    Category.BREAK: 4,
}


@dataclass(frozen=True, slots=True)
class StatusCounts:
    total: int
    upcoming: int
    completed: int


@dataclass(frozen=True, slots=True)
class GoalProgress:
    category: Category
    current: int
    target: int

    @property
    def percent(self) -> float:
        if self.target <= 0:
            return 100.0
        return min(100.0, self.current / self.target * 100)

    @property
    def met(self) -> bool:
        return self.current >= self.target


def filter_reminders(
    reminders: list[Reminder],
    status: StatusFilter = "upcoming",
    query: str = "",
) -> list[Reminder]:
    """Case-insensitive title search plus status filter, newest first."""
    needle = query.strip().lower()

    def keep(r: Reminder) -> bool:
        if needle and needle not in r.title.lower():
            return False
        if status == "upcoming":
            return not r.is_completed
        if status == "completed":
            return r.is_completed
        return True

    return sorted(
        (r for r in reminders if keep(r)), key=lambda r: r.created_at, reverse=True
    )


def count_by_status(reminders: list[Reminder]) -> StatusCounts:
    completed = sum(1 for r in reminders if r.is_completed)
    return StatusCounts(
        total=len(reminders), upcoming=len(reminders) - completed, completed=completed
    )


def category_progress(
    reminders: list[Reminder],
    targets: dict[Category, int] | None = None,
) -> list[GoalProgress]:
    """Cumulative fired_count per health category against its target."""
    goals = targets if targets is not None else DEFAULT_TARGETS
    return [
        GoalProgress(
            category=category,
            current=sum(r.fired_count for r in reminders if r.category is category),
            target=target,
        )
        for category, target in goals.items()
    ]


def overall_progress(progress: list[GoalProgress]) -> float:
    total_target = sum(g.target for g in progress)
    if total_target <= 0:
        return 0.0
    total_current = sum(g.current for g in progress)
    return min(100.0, total_current / total_target * 100)
