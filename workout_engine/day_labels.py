import datetime


def format_day(day: datetime.date | str, today: datetime.date | None = None) -> str:
    """Return ``Today``/``Yesterday`` for recent days, ISO ``YYYY-MM-DD`` otherwise."""
    if isinstance(day, datetime.datetime):
        day = day.date()
    elif isinstance(day, str):
        day = datetime.date.fromisoformat(day[:10])
    today = today or datetime.date.today()
    if day == today:
        return "Today"
    if day == today - datetime.timedelta(days=1):
        return "Yesterday"
    return day.isoformat()
