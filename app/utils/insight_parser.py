# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Reflect - AI Journal Companion project.
# Licensed under the MIT License - see the LICENSE file for details.

import json
import logging
import re
from dataclasses import dataclass

from app.services.errors import InvalidResponse

logger = logging.getLogger(__name__)

DEFAULT_FOLLOW_UP = "What would you like to explore further about this reflection?"
JSON_CONFIDENCE = 0.85
TEXT_CONFIDENCE = 0.8

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)
_SENTENCE_RE = re.compile(r"[^.!?]+[.!?]*")


@dataclass(frozen=True)
class ParsedInsight:
    insight_text: str
    follow_up_question: str
    confidence: float


def _clamp(value) -> float:
    try:
        return min(1.0, max(0.0, float(value)))
    except (TypeError, ValueError):
        return JSON_CONFIDENCE


def parse_insight(raw: str) -> ParsedInsight:
    """
    Reads the model's JSON insight. Plain prose is accepted too: the last
    sentence becomes the follow-up when it is a question.
    """
    text = (raw or "").strip()
    if not text:
        raise InvalidResponse("Empty insight reply")

    try:
        parsed = json.loads(_FENCE_RE.sub("", text))
    except json.JSONDecodeError:
        parsed = None

    if isinstance(parsed, dict) and parsed.get("insight") and parsed.get("followUpQuestion"):
        return ParsedInsight(
            insight_text=str(parsed["insight"]).strip(),
            follow_up_question=str(parsed["followUpQuestion"]).strip(),
            confidence=_clamp(parsed.get("confidence", JSON_CONFIDENCE)),
        )

    logger.warning("🤖 Insight JSON parsing failed, using text fallback")
    sentences = [s.strip() for s in _SENTENCE_RE.findall(text) if s.strip()]
    if len(sentences) > 1 and sentences[-1].endswith("?"):
        return ParsedInsight(
            insight_text=" ".join(sentences[:-1]),
            follow_up_question=sentences[-1],
            confidence=TEXT_CONFIDENCE,
        )
    return ParsedInsight(insight_text=text, follow_up_question=DEFAULT_FOLLOW_UP, confidence=TEXT_CONFIDENCE)
