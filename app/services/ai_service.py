# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Reflect - AI Journal Companion project.
# Licensed under the MIT License - see the LICENSE file for details.

import json
import logging
from dataclasses import dataclass

import anthropic

from app.config import ANTHROPIC_API_KEY, AI_REQUEST_TIMEOUT, AI_TEMPERATURE
from app.services.errors import (
    AuthFailure,
    GenerationError,
    GenerationTimeout,
    InvalidResponse,
    RateLimited,
)
from app.utils.prompt_templates import Prompt
from app.utils.tier_logic import RequestKind

# ---------------------------
# ✅ Logger Setup
# ---------------------------

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationResult:
    text: str
    model: str
    source: str  # "claude" or "fallback"


# ---------------------------
# ✅ Anthropic Messages API
# ---------------------------

class AnthropicGenerationClient:
    """
    Sends an assembled prompt to Claude and returns the text reply.
    SDK retries are disabled: the orchestrator owns the retry policy.
    """

    source = "claude"

    def __init__(self, api_key: str = None, timeout: float = AI_REQUEST_TIMEOUT, client=None):
        self.client = client or anthropic.Anthropic(
            api_key=api_key or ANTHROPIC_API_KEY,
            timeout=timeout,
            max_retries=0,
        )

    def generate(self, prompt: Prompt, model: str, max_tokens: int) -> GenerationResult:
        try:
            response = self.client.messages.create(
                model=model,
                max_tokens=max_tokens,
                temperature=AI_TEMPERATURE,
                system=prompt.system,
                messages=[{"role": "user", "content": prompt.user}],
            )
        except (anthropic.AuthenticationError, anthropic.PermissionDeniedError) as e:
            raise AuthFailure(str(e), status_code=e.status_code) from e
        except anthropic.RateLimitError as e:
            raise RateLimited(str(e), status_code=e.status_code) from e
        except anthropic.APITimeoutError as e:
            raise GenerationTimeout(str(e)) from e
        except anthropic.APIConnectionError as e:
            raise GenerationTimeout(f"Connection error: {e}") from e
        except anthropic.APIStatusError as e:
            if e.status_code >= 500:
                # 5xx / 529 overloaded: provider capacity, back off and retry
                raise RateLimited(str(e), status_code=e.status_code) from e
            raise GenerationError(str(e), status_code=e.status_code) from e

        text = "".join(
            block.text for block in (response.content or []) if getattr(block, "type", None) == "text"
        ).strip()
        if not text:
            raise InvalidResponse("No text content in Claude response")

        logger.info(f"🤖 Claude reply received: id={getattr(response, 'id', None)} usage={getattr(response, 'usage', None)}")
        return GenerationResult(text=text, model=getattr(response, "model", None) or model, source=self.source)


# ---------------------------
# ✅ Offline fallback
# ---------------------------

FALLBACK_REPLIES = {
    RequestKind.insight: json.dumps({
        "insight": "Your reflections reveal important patterns about your emotional landscape. "
                   "This awareness is the first step toward meaningful growth.",
        "followUpQuestion": "What patterns are you noticing in your recent experiences?",
        "confidence": 0.75,
    }),
    RequestKind.chat: "That's a valuable insight. What might this reveal about what matters most to you right now?",
    RequestKind.summary: "• Reflected on personal experiences and emotional patterns\n"
                         "• Explored themes of growth and self-awareness\n"
                         "• Considered future goals and next steps",
}


class FallbackGenerationClient:
    """Canned replies used when no Anthropic key is configured."""

    source = "fallback"

    def generate(self, prompt: Prompt, model: str, max_tokens: int) -> GenerationResult:
        return GenerationResult(text=FALLBACK_REPLIES[prompt.kind], model="internal", source=self.source)


def get_generation_client():
    if not ANTHROPIC_API_KEY:
        logger.warning("⚠️ ANTHROPIC_API_KEY not configured - AI replies will use fallback responses")
        return FallbackGenerationClient()
    return AnthropicGenerationClient()
