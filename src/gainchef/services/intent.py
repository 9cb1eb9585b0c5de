"""Rule-based intent classification for tool exposure.

The model still picks and fills the tool call. This module narrows the offer
only when it recognises the turn: an explicit request exposes its one tool,
while suggestions ("give me a meal idea") and acknowledgements expose none.
Anything it does not recognise keeps every tool available.
"""

import re
from dataclasses import dataclass

from gainchef.domain.chat import ChatMessage
from gainchef.domain.plans import ProgressQuery
from gainchef.services.tools import (
    GET_PROGRESS,
    LOG_MEAL,
    SAVE_MEAL_PLAN,
    SAVE_SHOPPING_LIST,
    UPDATE_PROFILE,
)

RECENT_USER_MESSAGES = 3

_SHOPPING_LIST = re.compile(
    r"\b(generate|create|make|build|save)\b.*\b(shopping|grocery)\s+list\b"
)
_MEAL_PLAN = re.compile(r"\b(create|save|build|make)\b.*\bplan\b")
_PROGRESS = re.compile(
    r"\b(show|check|see|view)\b.*\b(progress|stats|totals)\b"
    r"|\bhow am i doing\b|\bmy progress\b"
)
_PROFILE = re.compile(
    r"\b(set|update|change)\b.*"
    r"\b(goals?|weight|targets?|profile|macros|height|age|timezone|name|activity)\b"
    r"|\bmy name is\b"
)
_LOG_MEAL = re.compile(
    r"\b(i|we)\s+(just\s+)?(ate|had|consumed|finished|drank|grabbed)\b"
    r"|^\s*(just\s+)?(ate|had|finished|drank|grabbed)\b"
    r"|\bjust\s+(ate|had|finished|drank)\b"
    r"|^\s*log\b|\blog (my|this|that)\b"
)
_SUGGESTION = re.compile(
    r"\bwhat should i eat\b|\bgive me\b|\bsuggest\w*\b|\bideas?\b|\brecommend\w*\b"
    r"|\bi want\b|\bwhat'?s a good\b|\bwhat is a good\b"
)
_ACKNOWLEDGEMENT = re.compile(
    r"^(?:(?:ok|okay|k|thanks|thank|you|thx|ty|cool|great|nice|perfect|awesome"
    r"|got|it|sounds|good|that's|thats|all|bye|cheers|alright|much|no)\b[\s,.!]*)+$"
)
_DETAIL = re.compile(
    r"\d|\b(protein|carbs?|fats?|calories|cals?|kcal|grams?|oz|cups?|lbs?"
    r"|breakfast|lunch|dinner|snack)\b"
)
_HISTORY_DAYS = re.compile(r"\b(?:last|past)\s+(\d{1,3})\s+days?\b")


@dataclass(frozen=True)
class IntentDecision:
    """Which tools a turn may use, with pre-validated arguments when known."""

    action: str | None
    arguments: dict[str, object] | None = None
    offers_tools: bool = True

    def tool_names(self, available: list[str]) -> list[str]:
        """Tools to expose for this turn out of ``available``."""
        if self.action:
            return [self.action]
        return list(available) if self.offers_tools else []


NO_ACTION = IntentDecision(action=None, offers_tools=False)
UNCLASSIFIED = IntentDecision(action=None)


def classify_intent(messages: list[ChatMessage]) -> IntentDecision:
    """Classify the conversation's latest request.

    A latest message that only carries details (numbers, macro words) is read
    as an answer to the assistant and inherits the most recent explicit action
    among the last few user messages.
    """
    user_texts = [
        message.text().strip().lower()
        for message in messages
        if message.role == "user" and message.text().strip()
    ]
    recent = list(reversed(user_texts[-RECENT_USER_MESSAGES:]))
    if not recent:
        return UNCLASSIFIED

    latest = classify_text(recent[0])
    if latest.action is not None or not latest.offers_tools:
        return latest
    if _DETAIL.search(recent[0]):
        for text in recent[1:]:
            earlier = classify_text(text)
            if earlier.action is not None:
                return earlier
    return UNCLASSIFIED


def classify_text(text: str) -> IntentDecision:
    """Classify one lowercased user message."""
    if _SHOPPING_LIST.search(text):
        return IntentDecision(action=SAVE_SHOPPING_LIST)
    if _MEAL_PLAN.search(text):
        return IntentDecision(action=SAVE_MEAL_PLAN)
    if _PROGRESS.search(text):
        return IntentDecision(action=GET_PROGRESS, arguments=_progress_arguments(text))
    if _PROFILE.search(text):
        return IntentDecision(action=UPDATE_PROFILE)
    if _LOG_MEAL.search(text):
        return IntentDecision(action=LOG_MEAL)
    if _SUGGESTION.search(text) or _ACKNOWLEDGEMENT.match(text):
        return NO_ACTION
    return UNCLASSIFIED


def _progress_arguments(text: str) -> dict[str, object]:
    match = _HISTORY_DAYS.search(text)
    days = int(match.group(1)) if match else 3
    query = ProgressQuery(days=min(max(days, 1), 30))
    return query.model_dump()
