"""Holiday and health-awareness context for the opening hook."""

from __future__ import annotations

from datetime import date

# month -> {day: name}
MAJOR_HOLIDAYS: dict[int, dict[int, str]] = {
    1: {1: "New Year's Day"},
    2: {14: "Valentine's Day"},
    3: {17: "St. Patrick's Day"},
    7: {4: "Independence Day"},
    10: {31: "Halloween"},
    11: {11: "Veterans Day"},
    12: {25: "Christmas Day", 31: "New Year's Eve"},
}

# month -> (month-long observances, {day: awareness day})
HEALTH_CALENDAR: dict[int, tuple[list[str], dict[int, str]]] = {
    1: (["Cervical Health Awareness", "Glaucoma Awareness", "Thyroid Awareness"], {}),
    2: (["American Heart Month", "Cancer Prevention Month"], {4: "World Cancer Day", 14: "National Donor Day", 28: "Rare Disease Day"}),
    3: (["National Kidney Month", "National Nutrition Month"], {14: "World Sleep Day", 24: "World Tuberculosis Day"}),
    4: (["Parkinson's Awareness", "Donate Life Month"], {7: "World Health Day", 11: "World Parkinson's Day"}),
    5: (["Mental Health Awareness", "Stroke Awareness"], {17: "World Hypertension Day", 30: "World MS Day"}),
    6: (["Men's Health Month", "Alzheimer's & Brain Awareness"], {14: "World Blood Donor Day"}),
    7: (["UV Safety Month"], {11: "World Brain Day", 28: "World Hepatitis Day"}),
    8: (["National Immunization Awareness"], {1: "World Lung Cancer Day"}),
    9: (["Healthy Aging Month", "Prostate Cancer Awareness"], {21: "World Alzheimer's Day", 29: "World Heart Day"}),
    10: (["Breast Cancer Awareness", "Mental Health Awareness"], {10: "World Mental Health Day", 12: "World Arthritis Day", 22: "World Stroke Day"}),
    11: (["American Diabetes Month", "Alzheimer's Awareness"], {14: "World Diabetes Day", 20: "Great American Smokeout"}),
    12: (["Impaired Driving Prevention Month"], {1: "World AIDS Day"}),
}

LOOKAHEAD_DAYS = 7


def _upcoming(events: dict[int, str], today: date) -> list[str]:
    month = today.strftime("%B")
    return [
        f"{name} ({month} {day})"
        for day, name in sorted(events.items())
        if today.day < day <= today.day + LOOKAHEAD_DAYS
    ]


def hook_context(today: date) -> str:
    """Describe what the opening hook should anchor on for ``today``.

    Holidays win over awareness days, which win over the month's observance.
    """
    holidays = MAJOR_HOLIDAYS.get(today.month, {})
    observances, days = HEALTH_CALENDAR.get(today.month, ([], {}))

    if today.day in holidays:
        return f"TODAY IS: {holidays[today.day]}. This is the top priority for your hook."
    upcoming_holidays = _upcoming(holidays, today)
    if upcoming_holidays:
        return f"UPCOMING HOLIDAY: {upcoming_holidays[0]}. Prioritize this."
    if today.day in days:
        return f"TODAY IS: {days[today.day]}. Feature this health awareness day."
    upcoming_days = _upcoming(days, today)[:2]
    if upcoming_days:
        return f"UPCOMING: {', '.join(upcoming_days)}. Consider mentioning."
    month_theme = observances[0] if observances else "seasonal content"
    return f"This month: {month_theme}. Focus on timely, relatable observations."
