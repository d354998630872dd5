"""Calendar heat-map renderer."""

import calendar
import logging
from pathlib import Path
from typing import Optional

from PIL import Image, ImageDraw, ImageFont

from habitflow.engine.models import DayStats, MonthlyCalendarStats

logger = logging.getLogger(__name__)

LEVEL_COLORS = {
    "none": "#F3F4F6",
    "low": "#FEE2E2",
    "medium": "#FEF3C7",
    "high": "#D1FAE5",
}
FUTURE_COLOR = "white"
TODAY_OUTLINE = "#2563EB"
WEEKDAY_LABELS = ["S", "M", "T", "W", "T", "F", "S"]


class CalendarRenderer:
    """Renders a month of completion rates to a PNG heat-map."""

    def __init__(self, output_dir: str = "static/calendars"):
        """
        Initialize renderer.

        Args:
            output_dir: Directory to save generated images
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

        # Try to load fonts, fall back to default
        self.fonts = self._load_fonts()

    def _load_fonts(self) -> dict:
        """Load fonts for rendering."""
        fonts = {}

        font_paths = [
            "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
            "/System/Library/Fonts/Helvetica.ttc",  # macOS
        ]

        try:
            for path in font_paths:
                if Path(path).exists():
                    fonts["header"] = ImageFont.truetype(path, 24)
                    fonts["normal"] = ImageFont.truetype(path, 16)
                    fonts["small"] = ImageFont.truetype(path, 12)
                    logger.info(f"Loaded fonts from {path}")
                    break
        except OSError as e:
            logger.warning(f"Could not load TrueType fonts: {e}, using default")
            fonts = {}

        if not fonts:
            default_font = ImageFont.load_default()
            fonts["header"] = default_font
            fonts["normal"] = default_font
            fonts["small"] = default_font

        return fonts

    def render(
        self,
        stats: MonthlyCalendarStats,
        today: Optional[str] = None,
        cell_size: int = 60,
    ) -> tuple[str, str]:
        """
        Render a month heat-map.

        Args:
            stats: Monthly calendar stats from the engine
            today: Day key to outline, if it falls in the month
            cell_size: Square cell size in pixels

        Returns:
            Tuple of (filename, file_path)
        """
        weeks = calendar.Calendar(firstweekday=calendar.SUNDAY).monthdayscalendar(
            stats.year, stats.month
        )
        by_day = {int(d.date[8:10]): d for d in stats.days}

        margin = 20
        header_height = 80
        footer_height = 40
        width = margin * 2 + cell_size * 7
        height = header_height + cell_size * len(weeks) + footer_height

        logger.info(f"Rendering calendar {stats.year}-{stats.month:02d} ({len(stats.days)} days)")

        image = Image.new("RGB", (width, height), "white")
        draw = ImageDraw.Draw(image)

        self._draw_header(draw, stats, width, cell_size, margin)

        for row, week in enumerate(weeks):
            for col, day_number in enumerate(week):
                if not day_number:
                    continue
                x = margin + col * cell_size
                y = header_height + row * cell_size
                self._draw_day(draw, x, y, cell_size, day_number, by_day.get(day_number), today)

        self._draw_footer(draw, stats, height, margin)

        filename = f"calendar-{stats.year}-{stats.month:02d}"
        file_path = self.output_dir / f"{filename}.png"
        image.save(file_path, "PNG")
        logger.info(f"Saved calendar to {file_path}")

        return filename, str(file_path)

    def _draw_header(
        self, draw: ImageDraw, stats: MonthlyCalendarStats, width: int, cell_size: int, margin: int
    ):
        """Draw month title and weekday labels."""
        title = f"{calendar.month_name[stats.month]} {stats.year}"
        draw.text((margin, 12), title, fill="black", font=self.fonts["header"])

        for col, label in enumerate(WEEKDAY_LABELS):
            bbox = draw.textbbox((0, 0), label, font=self.fonts["normal"])
            text_width = bbox[2] - bbox[0]
            x = margin + col * cell_size + (cell_size - text_width) // 2
            draw.text((x, 52), label, fill="#6B7280", font=self.fonts["normal"])

    def _draw_day(
        self,
        draw: ImageDraw,
        x: int,
        y: int,
        size: int,
        day_number: int,
        stats: Optional[DayStats],
        today: Optional[str],
    ):
        """Draw one day cell with its heat-map color and completion bar."""
        fill = LEVEL_COLORS[stats.level] if stats else FUTURE_COLOR
        is_today = stats is not None and stats.date == today
        outline = TODAY_OUTLINE if is_today else "#E5E7EB"

        draw.rectangle(
            [x + 2, y + 2, x + size - 2, y + size - 2],
            fill=fill,
            outline=outline,
            width=3 if is_today else 1,
        )
        draw.text((x + 8, y + 6), str(day_number), fill="black", font=self.fonts["small"])

        # Completion bar along the bottom of the cell
        if stats and stats.rate > 0:
            bar_width = int((size - 12) * stats.rate)
            draw.rectangle(
                [x + 6, y + size - 10, x + 6 + bar_width, y + size - 6],
                fill="#16A34A",
            )

    def _draw_footer(self, draw: ImageDraw, stats: MonthlyCalendarStats, height: int, margin: int):
        """Draw the month's average completion rate."""
        percentage = int(round(stats.average_rate * 100))
        draw.text(
            (margin, height - 30),
            f"Average completion: {percentage}%",
            fill="black",
            font=self.fonts["normal"],
        )


async def demo_render():
    """Demo: render this month's calendar from the configured server."""
    from habitflow.config import settings
    from habitflow.tracker import HabitTracker

    tracker = HabitTracker.from_settings(settings)
    await tracker.init()

    try:
        engine = tracker.stats()
        year, month = int(engine.today[:4]), int(engine.today[5:7])
        stats = engine.monthly_calendar_stats(year, month)

        renderer = CalendarRenderer(settings.calendar_output_dir)
        _, file_path = renderer.render(stats, today=engine.today)

        print(f"\nCalendar saved to: {file_path}")

    finally:
        await tracker.dispose()


if __name__ == "__main__":
    import asyncio

    logging.basicConfig(level=logging.INFO)
    asyncio.run(demo_render())
