"""
Brief Text Templates

Renders Brief and Findings records to Markdown for the CLI and MCP surfaces.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .brief import Brief, BriefItem
    from .findings import Findings


BRIEF_TEMPLATE = """# Work Brief
ID: {id}
Generated: {generated_at}
{error_line}
{sections_block}

## Overall Insights
Hidden tasks found: {hidden_tasks}

### Critical Correlations
{critical_correlations}

### Work Patterns
{work_patterns}

### Recommendations
{recommendations}
"""

FINDINGS_TEMPLATE = """# Findings: {domain}
Timestamp: {timestamp}

{summary}

## Priority Items
{priority_items}

## Action Items
{action_items}

## Insights
{insights}
"""


def _value(field) -> str:
    return field.value if hasattr(field, 'value') else str(field)


def _format_bullets(values: list) -> str:
    """Format a plain list of strings"""
    if not values:
        return "- (none)"
    return "\n".join(f"- {v}" for v in values)


def _format_item(item: "BriefItem") -> str:
    """Format one brief item with its tags and correlations"""
    tags = []
    if item.priority:
        tags.append(_value(item.priority))
    if item.deadline:
        tags.append(f"due {item.deadline}")
    if item.effort:
        tags.append(f"effort {_value(item.effort)}")
    if item.domain:
        tags.append(item.domain)

    line = f"- **{item.title}**"
    if tags:
        line += f" [{', '.join(tags)}]"
    lines = [line]
    if item.description:
        lines.append(f"  {item.description}")
    if item.blocking_impact:
        lines.append(f"  Blocking: {item.blocking_impact}")
    if item.url:
        lines.append(f"  {item.url}")
    for ref in item.correlations:
        lines.append(f"  ↔ {ref.related_id} ({ref.related_domain}, {ref.confidence:.2f}): {ref.reason}")
    return "\n".join(lines)


def render_brief_text(brief: "Brief") -> str:
    """Render a Brief to Markdown, sections in their stored order."""
    blocks = []
    for section in brief.sections:
        block = [f"## {section.title}"]
        if section.section_insight:
            block.append(f"_{section.section_insight}_")
        block.extend(_format_item(item) for item in section.items)
        blocks.append("\n".join(block))

    insights = brief.overall_insights
    text = BRIEF_TEMPLATE.format(
        id=brief.id,
        generated_at=brief.generated_at.isoformat(),
        error_line=f"Error: {brief.error}\n" if brief.error else "",
        sections_block="\n\n".join(blocks) if blocks else "(nothing needs attention)",
        hidden_tasks=insights.hidden_tasks_found,
        critical_correlations=_format_bullets(insights.critical_correlations),
        work_patterns=_format_bullets(insights.work_patterns),
        recommendations=_format_bullets(insights.recommendations),
    )

    while "\n\n\n" in text:
        text = text.replace("\n\n\n", "\n\n")
    return text.strip()


def render_findings_text(findings: "Findings") -> str:
    """Render a single Findings record to Markdown"""
    priority_lines = [
        f"- [{_value(p.priority)}] {p.id}: {p.title}" + (f" (due {p.deadline})" if p.deadline else "")
        for p in findings.priority_items
    ]
    action_lines = [
        f"- [{_value(a.urgency)}/{_value(a.effort)}] {a.id}: {a.title}"
        for a in findings.action_items
    ]

    text = FINDINGS_TEMPLATE.format(
        domain=_value(findings.domain),
        timestamp=findings.timestamp.isoformat(),
        summary=findings.summary or "(no summary)",
        priority_items="\n".join(priority_lines) or "- (none)",
        action_items="\n".join(action_lines) or "- (none)",
        insights=_format_bullets(findings.insights),
    )
    return text.strip()
