"""Built-in achievement catalogue."""

from habitflow.engine.models import AchievementDefinition

DEFAULT_ACHIEVEMENTS = [
    AchievementDefinition(
        id="first_step",
        title="First Step",
        description="Complete a habit today",
        threshold=1,
        metric=lambda stats: stats.current_streak(),
    ),
    AchievementDefinition(
        id="week_warrior",
        title="Week Warrior",
        description="Keep your streak going for 7 days",
        threshold=7,
        metric=lambda stats: stats.current_streak(),
    ),
    AchievementDefinition(
        id="dedicated",
        title="Dedicated",
        description="Complete the same habit 21 days in a row",
        threshold=21,
        metric=lambda stats: stats.best_habit_streak(),
    ),
    AchievementDefinition(
        id="monthly_marathon",
        title="Monthly Marathon",
        description="Keep your streak going for 30 days",
        threshold=30,
        metric=lambda stats: stats.current_streak(),
    ),
    AchievementDefinition(
        id="perfectionist",
        title="Perfectionist",
        description="Have 10 perfect days in the last 30",
        threshold=10,
        metric=lambda stats: stats.perfect_days_count(30),
    ),
    AchievementDefinition(
        id="explorer",
        title="Explorer",
        description="Track habits in 3 different categories",
        threshold=3,
        metric=lambda stats: stats.category_variety(),
    ),
]
