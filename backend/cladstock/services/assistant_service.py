# Overview: AI helpers over the Anthropic Messages API; vision counts, inventory Q&A, chat and count logs.

"""
AI assistant

Two calls go out to the Anthropic Messages API, both single request/response
with the configured timeout and no retry:

- estimate_count: photo of bundled extrusion ends -> {count, confidence, notes}
- answer_question: free-text question over an inventory snapshot

Without ANTHROPIC_API_KEY the vision count returns a random demo result so the
counting flow can be exercised; the Q&A call raises AssistantNotConfigured.
"""

from __future__ import annotations

import json
import logging
import random
import re
from typing import Any, Iterable

import httpx
from flask import current_app

from ..models import AICountLog, ChatMessage, User
from ..storage import get_storage
from ..time_utils import utcnow
from .item_service import new_id

logger = logging.getLogger(__name__)

ANTHROPIC_VERSION = "2023-06-01"
VISION_MAX_TOKENS = 1024
CHAT_MAX_TOKENS = 2048

CHAT_ROLES = ("user", "assistant")

DEMO_MESSAGE = "Demo mode - add ANTHROPIC_API_KEY for real AI counting"
NOT_CONFIGURED_ANSWER = (
    "Sorry, the AI assistant is not configured. "
    "Please add ANTHROPIC_API_KEY to your environment variables."
)

COUNT_PROMPT = """You are analyzing an image of extrusion bundle ends for inventory counting.

Count the number of distinct extrusion/profile ends visible in this image. These are typically circular, square, or rectangular cross-sections of aluminum extrusions bundled together.

Instructions:
1. Look for the distinct end profiles of each extrusion
2. Count each separate extrusion end you can see
3. If ends are partially obscured, make your best estimate
4. Focus only on the extrusion ends, ignore any background elements

Respond with ONLY a JSON object in this exact format:
{"count": <number>, "confidence": "high" | "medium" | "low", "notes": "<brief observation>"}

Do not include any other text before or after the JSON."""

QUESTION_PROMPT = """You are an inventory management assistant for a facade and cladding installer. You have access to the current inventory data and can answer questions about it.

Current inventory data ({count} items):
{inventory}

User question: {question}

Please provide a helpful, concise answer based on the inventory data. If you're analyzing quantities, totals, or trends, be specific with numbers. If the question requires calculations, show your work."""

_DATA_URL = re.compile(r"^data:(image/\w+);base64,")


class AssistantError(Exception):
    """The AI service failed or answered with something unusable."""


class AssistantNotConfigured(AssistantError):
    """No API key configured."""


def _api_key() -> str | None:
    return current_app.config.get("ANTHROPIC_API_KEY") or None


def is_configured() -> bool:
    return _api_key() is not None


def http_client() -> httpx.Client:
    return httpx.Client(timeout=current_app.config.get("AI_TIMEOUT_SECONDS", 60))


def _send(messages: list[dict], max_tokens: int) -> str:
    """POST to the Messages API and return the first text block."""
    api_key = _api_key()
    if api_key is None:
        raise AssistantNotConfigured("API key not configured")

    payload = {
        "model": current_app.config.get("ANTHROPIC_MODEL"),
        "max_tokens": max_tokens,
        "messages": messages,
    }
    headers = {
        "x-api-key": api_key,
        "anthropic-version": ANTHROPIC_VERSION,
        "content-type": "application/json",
    }
    try:
        with http_client() as client:
            response = client.post(current_app.config.get("ANTHROPIC_API_URL"), headers=headers, json=payload)
            response.raise_for_status()
            data = response.json()
    except httpx.HTTPStatusError as exc:
        logger.error("Anthropic API error %s: %s", exc.response.status_code, exc.response.text[:500])
        raise AssistantError("Failed to get response from AI") from exc
    except (httpx.HTTPError, ValueError) as exc:
        logger.error("Anthropic API request failed: %s", exc)
        raise AssistantError("Failed to get response from AI") from exc

    for block in data.get("content") or []:
        if block.get("type") == "text":
            return block.get("text", "")
    raise AssistantError("No response from AI")


def split_data_url(image: str) -> tuple[str, str]:
    """(media_type, base64 payload). Bare base64 is assumed to be JPEG."""
    match = _DATA_URL.match(image)
    if not match:
        return "image/jpeg", image
    return match.group(1), image[match.end():]


def parse_count_reply(text: str) -> dict:
    """
    Read the model's count reply. Falls back to the first integer in the text
    with low confidence when the reply is not JSON.
    """
    try:
        result = json.loads(text)
        if isinstance(result, dict) and "count" in result:
            return result
    except ValueError:
        pass

    match = re.search(r"(\d+)", text)
    if match:
        return {
            "count": int(match.group(1)),
            "confidence": "low",
            "notes": "Extracted from non-JSON response",
        }
    raise AssistantError("Could not parse AI response")


def estimate_count(image: str) -> dict:
    """
    Count extrusion ends in a photo (data URL or bare base64).

    Raises:
        AssistantError: the API call failed or the reply had no number
    """
    if not is_configured():
        logger.info("No ANTHROPIC_API_KEY configured, returning demo count")
        return {"count": random.randint(5, 24), "confidence": "demo", "message": DEMO_MESSAGE}

    media_type, data = split_data_url(image)
    messages = [{
        "role": "user",
        "content": [
            {"type": "image", "source": {"type": "base64", "media_type": media_type, "data": data}},
            {"type": "text", "text": COUNT_PROMPT},
        ],
    }]
    return parse_count_reply(_send(messages, VISION_MAX_TOKENS))


def _field(item: Any, *keys: str):
    for key in keys:
        value = item.get(key) if isinstance(item, dict) else getattr(item, key, None)
        if value is not None:
            return value
    return None


def summarize_inventory(items: Iterable[Any]) -> list[dict]:
    """Compact per-item view sent with each question. Accepts Items or item dicts."""
    summary = []
    for item in items:
        unit_cost = _field(item, "unit_cost", "unitCost")
        summary.append({
            "name": _field(item, "name"),
            "category": _field(item, "category"),
            "quantity": _field(item, "quantity"),
            "location": _field(item, "location") or "N/A",
            "supplier": _field(item, "supplier") or "N/A",
            "sku": _field(item, "sku") or "N/A",
            "reorderLevel": _field(item, "reorder_level", "reorderLevel") or 0,
            "unitCost": float(unit_cost) if unit_cost else "N/A",
            "notes": _field(item, "notes") or "",
        })
    return summary


def answer_question(question: str, inventory: list[Any], history: list[dict] | None = None) -> str:
    """
    Raises:
        AssistantNotConfigured: no API key
        AssistantError: the API call failed
    """
    if not is_configured():
        raise AssistantNotConfigured(NOT_CONFIGURED_ANSWER)

    messages = [
        {"role": m["role"], "content": m["content"]}
        for m in history or []
        if m.get("role") in CHAT_ROLES and m.get("content")
    ]
    messages.append({
        "role": "user",
        "content": QUESTION_PROMPT.format(
            count=len(inventory),
            inventory=json.dumps(summarize_inventory(inventory), indent=2),
            question=question,
        ),
    })
    return _send(messages, CHAT_MAX_TOKENS)


# -- chat history --

def list_chat_messages(user_id: str | None = None) -> list[ChatMessage]:
    return get_storage().list_chat_messages(user_id=user_id)


def add_chat_message(actor: User, role: str, content: str) -> ChatMessage:
    if role not in CHAT_ROLES:
        raise ValueError(f"role must be one of: {', '.join(CHAT_ROLES)}")
    return get_storage().add_chat_message(ChatMessage(
        id=new_id(),
        user_id=actor.id,
        user_name=actor.name,
        role=role,
        content=content,
        created_at=utcnow(),
    ))


def clear_chat_messages(user_id: str) -> int:
    return get_storage().clear_chat_messages(user_id)


# -- AI count logs --

def log_ai_count(
    *,
    image_url: str,
    ai_count: int,
    confirmed_count: int,
    actor: User,
    item_id: str | None = None,
    profile_name: str | None = None,
) -> AICountLog:
    """Keep the model's estimate next to what the counter confirmed."""
    return get_storage().add_ai_count_log(AICountLog(
        id=new_id(),
        item_id=item_id,
        image_url=image_url,
        ai_count=ai_count,
        confirmed_count=confirmed_count,
        user_id=actor.id,
        user_name=actor.name,
        profile_name=profile_name,
        created_at=utcnow(),
    ))


def list_ai_count_logs(item_id: str | None = None) -> list[AICountLog]:
    return get_storage().list_ai_count_logs(item_id=item_id)
