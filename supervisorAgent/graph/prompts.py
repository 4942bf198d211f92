"""System prompts for the supervisor and its workers."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from supervisorAgent.workers.schema import PhaseSpec, WorkerCard


def get_current_datetime_tag() -> str:
    """Current date and time, e.g. "<current_datetime>2025-01-24 15:30:45 UTC</current_datetime>"."""
    now = datetime.now(timezone.utc)
    return f"<current_datetime>{now.strftime('%Y-%m-%d %H:%M:%S UTC')}</current_datetime>"


SUPERVISOR_SYSTEM_PROMPT = """You are the supervisor of a team of specialist workers.

Decide, turn by turn, how to move the user's request forward:
- answer directly when no specialist is needed;
- call transfer_to_worker to hand a task to one worker, with a complete task description;
- request any other available action when you need its result.

Hand off to at most one worker per turn, and do not request other actions in
the same turn as a handoff. Results of actions run by the user interface may
arrive later; wait for them instead of repeating the request.

{team_catalog}"""


WORKER_SYSTEM_PROMPT = """{instructions}

You are working as the **{name}** worker on behalf of a supervisor.

## Current phase: {phase}
{phase_description}

Actions allowed in this phase: {allowed}

{signal_help}"""


def _signal_help(phase: PhaseSpec) -> str:
    if phase.is_terminal:
        return "Your work is done. Call report_completion with a summary of the result."
    return (
        "Call advance_phase when this phase is finished. "
        "Call report_completion when your task is done or cannot continue."
    )


def build_task_context(
    active_task: Optional[Dict[str, Any]],
    worker_phases: Optional[Dict[str, Dict[str, Any]]] = None,
    created_items: Optional[List[Dict[str, Any]]] = None,
) -> str:
    """Summarize the task in progress so every model call sees why work is happening."""
    sections: List[str] = []

    if active_task:
        lines = [
            "## Current Task",
            "",
            f"**Original User Request:** {active_task.get('original_request', '')}",
            f"**Current Goal:** {active_task.get('current_goal', '')}",
            f"**Assigned Worker:** {active_task.get('assigned_worker', '')}",
            f"**Started:** {active_task.get('started_at', '')}",
        ]
        if active_task.get("worker_instructions"):
            lines.append(f"**Instructions:** {active_task['worker_instructions']}")
        progress = active_task.get("progress") or []
        if progress:
            lines.append("")
            lines.append("**Progress Made:**")
            lines.extend(f"- {note}" for note in progress)
        sections.append("\n".join(lines))

    if created_items:
        recent = created_items[-5:]
        lines = [f"## Created Items ({len(created_items)})", ""]
        lines.extend(f"- {item.get('title') or item.get('item_id')} (via {item.get('action')})" for item in recent)
        sections.append("\n".join(lines))

    for record in (worker_phases or {}).values():
        lines = [
            "## Current Work State",
            "",
            f"**Worker:** {record.get('worker')}",
            f"**Phase:** {record.get('phase')}",
        ]
        if record.get("pending_action"):
            lines.append(f"**Waiting On:** {record['pending_action']}")
        if record.get("allowed_actions"):
            lines.append(f"**Allowed Actions:** {', '.join(record['allowed_actions'])}")
        sections.append("\n".join(lines))

    return "\n\n".join(sections)


def build_supervisor_prompt(team_catalog: str, task_context: str = "") -> str:
    parts = [SUPERVISOR_SYSTEM_PROMPT.format(team_catalog=team_catalog)]
    if task_context:
        parts.append(task_context)
    parts.append(get_current_datetime_tag())
    return "\n\n".join(parts)


def build_worker_prompt(card: WorkerCard, phase: PhaseSpec, task_context: str = "") -> str:
    allowed = ", ".join(sorted(phase.allowed_actions)) or "none"
    parts = [
        WORKER_SYSTEM_PROMPT.format(
            instructions=card.instructions or card.description,
            name=card.name,
            phase=phase.name,
            phase_description=phase.description,
            allowed=allowed,
            signal_help=_signal_help(phase),
        )
    ]
    if task_context:
        parts.append(task_context)
    parts.append(get_current_datetime_tag())
    return "\n\n".join(parts)
