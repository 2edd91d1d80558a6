"""
Messaging Worker

Gmail-shaped payload:
    {"messages": [{id, labelIds, payload: {headers: [{name, value}],
                   parts: [{mimeType, body: {data}}], body: {data}}}, ...]}

Flat messages ({id, subject, from, date, body, unread}) are accepted too.
"""

import base64
import binascii
from datetime import datetime
from typing import Any, Dict, Tuple

from ..common.schemas import (
    ActionItem,
    Domain,
    Effort,
    Findings,
    Priority,
    PriorityItem,
    Urgency,
)
from .base import SpecialistWorker, hours_since

URGENCY_SIGNALS = ("urgent", "asap", "immediate", "critical", "emergency", "deadline")
ACTION_SIGNALS = ("please review", "need your input", "can you help", "waiting for", "follow up")
MEETING_SUBJECT_SIGNALS = ("meeting", "calendar")
MEETING_BODY_SIGNALS = ("agenda", "meeting invite")

FRESH_HOURS = 24
RESPOND_WITHIN_HOURS = 72
LONG_BODY_CHARS = 500
UNREAD_TRIAGE_THRESHOLD = 10
URGENT_THRESHOLD = 3
HEAVY_DAY_THRESHOLD = 5


def _decode_body(data: str) -> str:
    try:
        padded = data + "=" * (-len(data) % 4)
        return base64.urlsafe_b64decode(padded).decode("utf-8", errors="replace")
    except (binascii.Error, ValueError):
        return ""


def parse_message(message: Dict[str, Any]) -> Tuple[str, str, Any, str, bool]:
    """Returns (subject, sender, date, body, unread)"""
    unread = "UNREAD" in (message.get("labelIds") or []) or bool(message.get("unread"))
    payload = message.get("payload")
    if not isinstance(payload, dict):
        return (
            message.get("subject") or "No Subject",
            message.get("from") or "Unknown Sender",
            message.get("date"),
            message.get("body") or message.get("snippet") or "",
            unread,
        )

    headers = {h.get("name"): h.get("value") for h in payload.get("headers") or []}
    body = ""
    parts = payload.get("parts")
    if parts:
        for part in parts:
            if part.get("mimeType") == "text/plain" and (part.get("body") or {}).get("data"):
                body = _decode_body(part["body"]["data"])
                break
    elif (payload.get("body") or {}).get("data"):
        body = _decode_body(payload["body"]["data"])

    return (
        headers.get("Subject") or "No Subject",
        headers.get("From") or "Unknown Sender",
        headers.get("Date"),
        body or message.get("snippet") or "",
        unread,
    )


class MessagingWorker(SpecialistWorker):
    domain = Domain.MESSAGING
    role = "messaging"
    focus = [
        "Messages with urgency signals (urgent, asap, deadline)",
        "Requests for review, input or help that are waiting on the user",
        "Unread threads from the last day",
        "Meeting invitations and agenda discussions",
        "External stakeholders and customers",
    ]

    def __init__(self, *args, company_domain: str = "", **kwargs):
        super().__init__(*args, **kwargs)
        self.company_domain = company_domain.lower()

    def quick_analysis(self, payload: Dict[str, Any], now: datetime) -> Findings:
        messages = payload.get("messages") or []

        priority_items = []
        action_items = []
        insights = []
        unread_count = 0
        external_count = 0

        for index, message in enumerate(messages):
            message_id = str(message.get("id") or f"message-{index}")
            subject, sender, date, body, unread = parse_message(message)
            lower_subject = subject.lower()
            lower_body = body.lower()

            is_urgent = any(s in lower_subject or s in lower_body for s in URGENCY_SIGNALS)
            needs_action = any(s in lower_body for s in ACTION_SIGNALS)
            hours_old = hours_since(date, now)
            if hours_old is None:
                hours_old = 0
            if unread:
                unread_count += 1

            if is_urgent or (unread and hours_old < FRESH_HOURS):
                priority_items.append(PriorityItem(
                    id=message_id,
                    title=f"Email: {subject}",
                    description=f"From: {sender}\n{body[:200]}",
                    priority=Priority.CRITICAL if is_urgent else Priority.HIGH,
                    domain=self.domain,
                    url=message.get("url") or f"https://mail.google.com/mail/u/0/#inbox/{message_id}",
                    deadline="today" if is_urgent else None,
                ))

            if needs_action or (unread and hours_old < RESPOND_WITHIN_HOURS):
                if is_urgent:
                    urgency = Urgency.IMMEDIATE
                elif hours_old < FRESH_HOURS:
                    urgency = Urgency.TODAY
                else:
                    urgency = Urgency.THIS_WEEK
                action_items.append(ActionItem(
                    id=f"respond-{message_id}",
                    title=f"Respond to: {subject}",
                    description=f"Reply to {sender}",
                    effort=Effort.MEDIUM if len(body) > LONG_BODY_CHARS else Effort.QUICK,
                    urgency=urgency,
                ))

            if (any(s in lower_subject for s in MEETING_SUBJECT_SIGNALS)
                    or any(s in lower_body for s in MEETING_BODY_SIGNALS)):
                insights.append(f"Meeting-related email from {sender}: {subject}")

            if self.company_domain and self.company_domain not in sender.lower():
                external_count += 1
                insights.append(f"External communication: {subject} from {sender}")

        if unread_count > UNREAD_TRIAGE_THRESHOLD:
            insights.append(f"High unread email count ({unread_count}) - consider email triage")

        urgent_count = sum(1 for p in priority_items if p.priority == Priority.CRITICAL)
        if urgent_count > URGENT_THRESHOLD:
            insights.append(f"Multiple urgent emails ({urgent_count}) require immediate attention")

        immediate = sum(1 for a in action_items if a.urgency == Urgency.IMMEDIATE)
        today = sum(1 for a in action_items if a.urgency == Urgency.TODAY)
        if immediate:
            insights.append(f"{immediate} emails need immediate response")
        if today > HEAVY_DAY_THRESHOLD:
            insights.append("Heavy email response workload for today - consider batching responses")

        return Findings(
            domain=self.domain,
            timestamp=now,
            summary=f"Found {len(priority_items)} priority emails and {len(action_items)} action items",
            priority_items=priority_items,
            action_items=action_items,
            insights=insights,
            metadata={
                "totalEmails": len(messages),
                "unreadCount": unread_count,
                "urgentCount": urgent_count,
                "externalEmails": external_count,
            },
        )
