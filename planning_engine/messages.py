"""Notification message templates keyed by motivation style."""

from __future__ import annotations

import random
from string import Formatter

MOTIVATION_STYLES = ("encouraging", "neutral", "challenging")

_TEMPLATES: dict[str, dict[str, list[str]]] = {
    "suggestion": {
        "encouraging": [
            'Perfect timing for "{task_name}"! You have a {success_rate}% success rate with these. You\'ve got this!',
            'How about tackling "{task_name}" now? {reason}.',
            'I believe in you! "{task_name}" is a great next step. {reason}.',
        ],
        "neutral": [
            'Suggested task: "{task_name}". Confidence: {success_rate}%.',
            '"{task_name}" recommended. Reason: {reason}.',
        ],
        "challenging": [
            '"{task_name}" is waiting. Time to step up.',
            'I\'m suggesting "{task_name}". Confidence is {success_rate}%. Prove you can do better.',
        ],
    },
    "streak": {
        "encouraging": [
            "Your {streak_count}-day streak is worth protecting! One small task keeps it alive.",
            "Don't let {streak_count} days of progress slip away. You can do this!",
        ],
        "neutral": [
            "Streak status: {streak_count} days. No task completed yet today.",
        ],
        "challenging": [
            "{streak_count} days in a row. Are you really going to break it now?",
        ],
    },
    "completion": {
        "encouraging": [
            'Nice work on "{task_name}"! That makes {tasks_completed} today.',
            'You finished "{task_name}"! Keep that momentum going!',
            '"{task_name}" is done. Your {streak_count}-day streak is safe!',
        ],
        "neutral": [
            '"{task_name}" completed. Tasks completed today: {tasks_completed}.',
            'Task finished: "{task_name}".',
        ],
        "challenging": [
            '"{task_name}" done. {tasks_completed} today. Don\'t slow down now.',
            "One task down. You have finished harder ones faster. Keep pushing.",
        ],
    },
    "struggle": {
        "encouraging": [
            'Tough stretch? That\'s okay. Try something small first, then come back to "{task_name}".',
            "Feeling stuck? One small task at a time. You've done this before.",
        ],
        "neutral": [
            'Several suggestions dismissed. Consider splitting "{task_name}" into smaller steps.',
            "Output below your usual pattern. Starting with a quick task may help.",
        ],
        "challenging": [
            'You keep putting off "{task_name}". Do it or drop it.',
            "Your past self did better than this. Find that person again.",
        ],
    },
}


class MessageGenerator:
    """Fills style-specific templates; template choice is random."""

    def __init__(self, style: str = "encouraging", rng: random.Random | None = None) -> None:
        self.style = style if style in MOTIVATION_STYLES else "encouraging"
        self._rng = rng or random.Random()

    def _templates(self, context: str) -> list[str]:
        templates = _TEMPLATES.get(context)
        if not templates:
            raise ValueError(f"Unknown message context '{context}'")
        return templates[self.style]

    def generate(self, context: str, **variables) -> str:
        return _fill(self._rng.choice(self._templates(context)), variables)

    def generate_variations(self, context: str, count: int = 3, **variables) -> list[str]:
        """Up to ``count`` distinct messages, fewer when the style has fewer templates."""

        templates = self._templates(context)
        picked = self._rng.sample(templates, min(count, len(templates)))
        messages: list[str] = []
        for template in picked:
            message = _fill(template, variables)
            if message not in messages:
                messages.append(message)
        return messages


def _fill(template: str, variables: dict) -> str:
    # Placeholders without a value are left readable rather than raising.
    names = {name for _, name, _, _ in Formatter().parse(template) if name}
    values = {name: variables.get(name, "") for name in names}
    return template.format(**values).strip()
