"""
Scheduling Worker

Google Calendar-shaped payload:
    {"events": [{id, summary, description, htmlLink,
                 start: {dateTime | date}, end: {dateTime | date}}, ...]}

Day boundaries and working hours are taken in the timezone of "now".
"""

from datetime import datetime, time, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from ..common.ids import parse_timestamp
from ..common.schemas import (
    ActionItem,
    Domain,
    Effort,
    Findings,
    Priority,
    PriorityItem,
    Urgency,
)
from .base import SpecialistWorker, truncate

IMPORTANT_KEYWORDS = (
    "review", "presentation", "demo", "client", "customer",
    "board", "leadership", "architecture", "decision",
)
LOOKAHEAD = timedelta(days=7)
BACK_TO_BACK_GAP = timedelta(minutes=15)
LONG_MEETING_MINUTES = 120
HEAVY_DAY_MEETINGS = 6
MIN_FOCUS_BLOCK_MINUTES = 30
LIMITED_FOCUS_MINUTES = 120
WORKDAY_START = time(9, 0)
WORKDAY_END = time(17, 0)


def _event_time(field: Any, tz) -> Optional[datetime]:
    if not isinstance(field, dict):
        return None
    ts = parse_timestamp(field.get("dateTime") or field.get("date"))
    return ts.astimezone(tz) if ts else None


def focus_blocks(
    meetings: List[Tuple[datetime, datetime]], day: datetime
) -> List[Tuple[datetime, datetime, float]]:
    """Gaps of at least 30 minutes between meetings inside working hours."""
    tz = day.tzinfo
    work_start = datetime.combine(day.date(), WORKDAY_START, tzinfo=tz)
    work_end = datetime.combine(day.date(), WORKDAY_END, tzinfo=tz)

    inside = sorted(
        (start, end) for start, end in meetings
        if work_start <= start <= work_end
    )

    blocks = []
    last_end = work_start
    for start, end in inside:
        if start > last_end:
            gap = (start - last_end).total_seconds() / 60
            if gap >= MIN_FOCUS_BLOCK_MINUTES:
                blocks.append((last_end, start, gap))
        last_end = max(last_end, end)

    if last_end < work_end:
        gap = (work_end - last_end).total_seconds() / 60
        if gap >= MIN_FOCUS_BLOCK_MINUTES:
            blocks.append((last_end, work_end, gap))
    return blocks


class SchedulingWorker(SpecialistWorker):
    domain = Domain.SCHEDULING
    role = "calendar"
    focus = [
        "Important meetings today and tomorrow (reviews, demos, client and leadership meetings)",
        "Meetings that need preparation or lack an agenda",
        "Back-to-back and overly long meetings",
        "Double-booked time slots",
        "Available focus time for deep work",
    ]

    def quick_analysis(self, payload: Dict[str, Any], now: datetime) -> Findings:
        events = payload.get("events")
        tz = now.tzinfo or timezone.utc
        now = now.astimezone(tz)
        today_end = datetime.combine(now.date(), time.max, tzinfo=tz)
        tomorrow_start = datetime.combine(now.date() + timedelta(days=1), time.min, tzinfo=tz)
        tomorrow_end = tomorrow_start + timedelta(days=1)
        week_end = now + LOOKAHEAD

        priority_items = []
        action_items = []
        insights = []
        today_count = 0
        focus_minutes = 0
        conflicts = 0

        if events is not None:
            upcoming = []
            for index, event in enumerate(events):
                start = _event_time(event.get("start"), tz)
                end = _event_time(event.get("end"), tz)
                if start is None or not (now < start < week_end):
                    continue
                upcoming.append((start, end or start, index, event))
            upcoming.sort(key=lambda e: e[0])

            previous_end = None
            for start, end, index, event in upcoming:
                event_id = str(event.get("id") or f"event-{index}")
                title = event.get("summary") or "Untitled Meeting"
                description = event.get("description") or ""
                is_today = start <= today_end
                is_tomorrow = tomorrow_start <= start < tomorrow_end
                text = f"{title} {description}".lower()
                is_important = any(k in text for k in IMPORTANT_KEYWORDS)

                if is_important and (is_today or is_tomorrow):
                    priority_items.append(PriorityItem(
                        id=event_id,
                        title=f"Meeting: {title}",
                        description=truncate(description),
                        priority=Priority.CRITICAL if is_today else Priority.HIGH,
                        domain=self.domain,
                        url=event.get("htmlLink"),
                        deadline="today" if is_today else "tomorrow",
                    ))
                    action_items.append(ActionItem(
                        id=f"prep-{event_id}",
                        title=f"Prepare for {title}",
                        description="Review agenda and prepare materials",
                        effort=Effort.MEDIUM,
                        urgency=Urgency.IMMEDIATE if is_today else Urgency.TODAY,
                    ))

                if previous_end is not None and start - previous_end < BACK_TO_BACK_GAP:
                    insights.append(f"Back-to-back meetings: {title} starts immediately after previous meeting")

                duration = (end - start).total_seconds() / 60
                if duration > LONG_MEETING_MINUTES:
                    insights.append(f"Long meeting: {title} is {round(duration)} minutes")

                if is_important and not description:
                    if is_today:
                        urgency = Urgency.IMMEDIATE
                    elif is_tomorrow:
                        urgency = Urgency.TODAY
                    else:
                        urgency = Urgency.THIS_WEEK
                    action_items.append(ActionItem(
                        id=f"agenda-{event_id}",
                        title=f"Request agenda for {title}",
                        description="Important meeting lacks agenda or description",
                        effort=Effort.QUICK,
                        urgency=urgency,
                    ))

                previous_end = end if previous_end is None else max(previous_end, end)

            today_meetings = [(s, e) for s, e, _, _ in upcoming if s <= today_end]
            today_count = len(today_meetings)
            if today_count > HEAVY_DAY_MEETINGS:
                insights.append(f"Heavy meeting day: {today_count} meetings scheduled for today")

            blocks = focus_blocks(today_meetings, now)
            focus_minutes = round(sum(b[2] for b in blocks))
            if not blocks:
                insights.append("No focus time blocks available today - consider rescheduling non-critical meetings")
            elif focus_minutes < LIMITED_FOCUS_MINUTES:
                insights.append(f"Limited focus time today: only {focus_minutes} minutes of uninterrupted time")
            else:
                insights.append(
                    f"Focus time available: {round(focus_minutes / 60)} hours in {len(blocks)} blocks"
                )

            for i in range(len(upcoming) - 1):
                current, following = upcoming[i], upcoming[i + 1]
                if current[1] > following[0]:
                    conflicts += 1
                    first = current[3].get("summary") or "Untitled Meeting"
                    second = following[3].get("summary") or "Untitled Meeting"
                    priority_items.append(PriorityItem(
                        id=f"conflict-{i}",
                        title="Meeting Conflict Detected",
                        description=f"{first} conflicts with {second}",
                        priority=Priority.CRITICAL,
                        domain=self.domain,
                        deadline="immediate",
                        blocking_impact="Double-booked: one of the meetings must move",
                    ))

        return Findings(
            domain=self.domain,
            timestamp=now,
            summary=f"Found {len(priority_items)} priority meetings and {len(action_items)} action items",
            priority_items=priority_items,
            action_items=action_items,
            insights=insights,
            metadata={
                "totalEvents": len(events or []),
                "todayMeetings": today_count,
                "conflictsFound": conflicts,
                "focusMinutes": focus_minutes,
            },
        )
