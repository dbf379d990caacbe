"""
Prompt construction for task suggestions.

Builds a context block from the task, picks one instruction from the
urgency, status and type template families, and appends a tone/length
instruction keyed by urgency.
"""
import math
import random
import time
from typing import Callable, List, Optional

from taskpulse.schemas.suggestion import SuggestionRequest, UrgencyLevel

SYSTEM_PROMPT = (
    "You are a helpful assistant that provides motivational and engaging suggestions for task "
    "completion. Keep responses short, positive, and actionable. Vary between fun facts, "
    "productivity tips, and motivational messages. Always provide unique and varied responses."
)

URGENCY_PROMPTS = {
    "overdue": [
        "This task is OVERDUE: {context}. Provide urgent motivation to tackle it NOW.",
        "Give powerful encouragement to handle this overdue task: {context}. Focus on getting back on track.",
        "Share strategies for catching up on: {context}. Make it action-oriented.",
    ],
    "urgent": [
        "This task is due very soon: {context}. Provide focused motivation to complete it quickly.",
        "Give time-sensitive encouragement for: {context}. Focus on efficient completion.",
        "Share sprint-mode advice for: {context}. Keep it energizing.",
    ],
    "soon": [
        "This task is due soon: {context}. Provide steady motivation to stay on track.",
        "Give deadline-aware encouragement for: {context}. Balance pace and quality.",
        "Share planning wisdom for: {context}. Include time management tips.",
    ],
    "normal": [
        "Provide thoughtful motivation for: {context}. Focus on sustainable progress.",
        "Share quality-focused encouragement for: {context}. Balance excellence and progress.",
        "Give strategic advice for: {context}. Include long-term thinking.",
    ],
}

STATUS_PROMPTS = {
    "pending": [
        "Give me motivation to start working on this task: {context}. Focus on getting started.",
        "Share a kickstart strategy for: {context}. Make it energizing.",
        "What's a good first step approach for: {context}? Be encouraging.",
    ],
    "in-progress": [
        "Help me stay focused on this ongoing task: {context}. Provide momentum tips.",
        "Give me encouragement to push through: {context}. Focus on persistence.",
        "Share a progress-boosting strategy for: {context}. Keep it motivational.",
    ],
    "completed": [
        "Celebrate the completion of: {context}. Share insights about this achievement.",
        "Reflect on the success of completing: {context}. What can be learned?",
        "Acknowledge the accomplishment: {context}. Provide future motivation.",
    ],
}

TYPE_PROMPTS = {
    "task": [
        "Provide unique motivation for: {context}. Make it inspiring and actionable.",
        "Share a productivity insight about: {context}. Keep it engaging.",
        "Give creative encouragement for: {context}. Be original.",
        "What's a smart approach to: {context}? Include a motivational twist.",
    ],
    "bug": [
        "Give debugging motivation for: {context}. Include problem-solving mindset.",
        "Share a detective approach to: {context}. Make it engaging.",
        "Provide bug-fixing encouragement for: {context}. Focus on resilience.",
        "What's the silver lining in fixing: {context}? Be uplifting.",
    ],
    "feature": [
        "Inspire me to build: {context}. Focus on user impact and vision.",
        "Share development motivation for: {context}. Make it innovative.",
        "Give creative building energy for: {context}. Include success vision.",
        "What's exciting about creating: {context}? Be visionary.",
    ],
    "improvement": [
        "Motivate me to enhance: {context}. Focus on growth and efficiency.",
        "Share optimization wisdom for: {context}. Make it actionable.",
        "Give refinement encouragement for: {context}. Include benefits.",
        "What's the hidden value in improving: {context}? Be compelling.",
    ],
}

URGENCY_INSTRUCTIONS = {
    "overdue": "(Be urgent, direct, and action-focused in under 80 words.)",
    "urgent": "(Be focused and time-aware in under 80 words.)",
    "soon": "(Be motivating and pace-conscious in under 80 words.)",
    "normal": "(Be thoughtful and encouraging in under 80 words.)",
}
DEFAULT_INSTRUCTION = "(Be concise, creative and original in under 80 words.)"


def _urgency_key(request: SuggestionRequest) -> Optional[str]:
    if request.urgency_level is None:
        return None
    return UrgencyLevel(request.urgency_level).value


def _format_due_date(value: str) -> str:
    return value[:10]


def build_context(request: SuggestionRequest) -> str:
    """Textual description of the task handed to every template."""
    lines = [f'Task: "{request.task_name}"']
    if request.task_description:
        lines.append(f'Description: "{request.task_description}"')
    lines.append(f"Type: {request.task_type or 'task'}")
    lines.append(f"Status: {request.task_status or 'pending'}")

    if request.due_date:
        lines.append(f"Due Date: {_format_due_date(request.due_date)}")

    urgency = _urgency_key(request)
    if urgency:
        lines.append(f"Urgency: {urgency}")

    if request.days_since_created is not None and request.days_since_created >= 0:
        lines.append(f"Age: {request.days_since_created} day(s) old")

    if request.days_until_due is not None:
        if request.days_until_due < 0:
            lines.append(f"Overdue by {abs(request.days_until_due)} day(s)")
        elif request.days_until_due == 0:
            lines.append("Due TODAY")
        else:
            lines.append(f"Due in {request.days_until_due} day(s)")

    return "\n".join(lines)


def candidate_prompts(request: SuggestionRequest, context: str) -> List[str]:
    """All applicable templates; urgency templates count twice when overdue or urgent."""
    urgency = _urgency_key(request)
    urgency_prompts = URGENCY_PROMPTS.get(urgency, []) if urgency else []
    status_prompts = STATUS_PROMPTS.get(request.task_status or "", [])
    type_prompts = TYPE_PROMPTS.get(request.task_type or "", TYPE_PROMPTS["task"])

    if urgency in ("overdue", "urgent"):
        pool = urgency_prompts + urgency_prompts + status_prompts + type_prompts
    else:
        pool = urgency_prompts + status_prompts + type_prompts
    return [template.format(context=context) for template in pool]


def build_prompt(
    request: SuggestionRequest,
    rng: Callable[[], float] = random.random,
    clock: Callable[[], float] = time.time,
) -> str:
    """
    Build the user prompt for a suggestion.

    The candidate index mixes a random draw with the current time in
    milliseconds, so rapid successive calls land on different templates
    even with a weak random source.
    """
    context = build_context(request)
    pool = candidate_prompts(request, context)

    now_ms = int(clock() * 1000)
    index = (math.floor(rng() * len(pool) * 100) + now_ms) % len(pool)

    instruction = URGENCY_INSTRUCTIONS.get(_urgency_key(request) or "", DEFAULT_INSTRUCTION)
    return f"{pool[index]} {instruction}"
