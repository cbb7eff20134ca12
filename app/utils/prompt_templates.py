# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Reflect - AI Journal Companion project.
# Licensed under the MIT License - see the LICENSE file for details.

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from app.models.user import AIStyle
from app.utils.tier_logic import RequestKind


@dataclass(frozen=True)
class Personality:
    style: AIStyle
    description: str
    tone: Tuple[str, ...]
    summary_focus: str


COACH = Personality(
    style=AIStyle.coach,
    description="Strategic and direct. Helps you spot patterns and take action. 3 sentences max.",
    tone=("Strategic", "Action-oriented and direct"),
    summary_focus="focus on patterns and actions",
)

REFLECTOR = Personality(
    style=AIStyle.reflector,
    description="Thoughtful and curious. Gives you space to process and think clearly. 3 sentences max.",
    tone=("Processing-focused and gentle", "Creates space for reflection", "Validates feelings"),
    summary_focus="focus on feelings and processing",
)


@dataclass(frozen=True)
class Prompt:
    kind: RequestKind
    system: str
    user: str


def get_personality(style) -> Personality:
    style = AIStyle(style) if not isinstance(style, AIStyle) else style
    if style == AIStyle.coach:
        return COACH
    if style == AIStyle.reflector:
        return REFLECTOR
    raise ValueError(f"Unhandled AI style: {style}")


def _content_of(item) -> str:
    if isinstance(item, str):
        return item
    if isinstance(item, dict):
        return item.get("content") or ""
    return getattr(item, "content", "") or ""


def _role_of(item) -> str:
    if isinstance(item, dict):
        return item.get("role", "user")
    return getattr(item, "role", "user")


def _focus_section(user_preferences) -> str:
    if user_preferences is None:
        return ""
    if isinstance(user_preferences, dict):
        focus_areas = user_preferences.get("focus_areas")
    else:
        focus_areas = getattr(user_preferences, "focus_areas", None)
    if not focus_areas:
        return ""
    return f"\n\nUser's focus areas: {', '.join(focus_areas)}"


def _persona_header(personality: Personality) -> str:
    return f"You are a {personality.style.value}. Your personality is: {', '.join(personality.tone)}."


# -------------------------
# Insight
# -------------------------

def build_insight_prompt(
    entry: str,
    mood_rating: Optional[int],
    recent_entries: Sequence = (),
    user_preferences=None,
    is_premium: bool = False,
    style=AIStyle.reflector,
) -> Prompt:
    personality = get_personality(style)

    context_section = ""
    if recent_entries:
        recent_context = "\n".join(
            f"- {_content_of(e)[:100]}..." for e in list(recent_entries)[:3]
        )
        context_section = f"\n\nRecent journal context:\n{recent_context}"

    length_rule = (
        "Keep responses focused: 3-4 sentences maximum, and connect to their recent context where it helps."
        if is_premium
        else "Keep responses concise: 2-3 concise constructive sentences maximum."
    )

    system = f"""{_persona_header(personality)}

{length_rule}{_focus_section(user_preferences)}{context_section}

Respond with JSON in this exact format:
{{
  "insight": "Your {personality.style.value}-style insight (1-2 sentences max)",
  "followUpQuestion": "A thoughtful question to deepen their reflection",
  "confidence": 0.0-1.0
}}"""

    mood_line = f"\nMood rating: {mood_rating}/5" if mood_rating else ""
    user = f"""Journal entry: "{entry}"{mood_line}

Provide a {personality.style.value}-style insight."""

    return Prompt(kind=RequestKind.insight, system=system, user=user)


# -------------------------
# Chat
# -------------------------

def build_chat_prompt(
    entry_content: str,
    history: Sequence,
    message: str,
    user_preferences=None,
    style=AIStyle.reflector,
) -> Prompt:
    personality = get_personality(style)

    context_section = f'\n\nCurrent journal entry: "{entry_content}"' if entry_content else ""

    history_section = ""
    if history:
        lines = "\n".join(
            f"{'User' if _role_of(m) == 'user' else 'AI'}: {_content_of(m)}" for m in history
        )
        history_section = f"\n\nConversation history:\n{lines}"

    system = f"""{_persona_header(personality)}

Respond in 1-2 sentences. Be concise and direct.{_focus_section(user_preferences)}{context_section}{history_section}

Respond naturally and conversationally while maintaining {personality.style.value} voice."""

    return Prompt(kind=RequestKind.chat, system=system, user=message)


# -------------------------
# Summary
# -------------------------

def build_summary_prompt(
    entry_content: str,
    chat_history: Sequence = (),
    style=AIStyle.reflector,
) -> Prompt:
    personality = get_personality(style)

    conversation_section = ""
    if chat_history:
        lines = "\n".join(
            f"{_role_of(m)}: {_content_of(m)[:100]}" for m in list(chat_history)[-3:]
        )
        conversation_section = f"\n\nRelated conversation:\n{lines}"

    system = f"""Summarise this journal entry and chat in bullet points.

- Do not begin with "Summary:" or any other preamble.
- Begin directly with the content - no labels, no headers, no prefixes.
- Keep it concise and to the point (3-5 bullet points).
- Use {personality.style.value} voice: {personality.summary_focus}
- Make it useful for quick scanning later{conversation_section}"""

    return Prompt(kind=RequestKind.summary, system=system, user=entry_content)
