"""Centralized OpenAI client — forced single tool call.

Structured extraction MUST go through `call_openai_tool_async()`.
This ensures:
  - Model, temperature, timeout, and token limits are read from env.
  - Exactly one declared tool is offered and forced via tool_choice.
  - 1 retry on failure (HTTP error, timeout, or missing tool call),
    then return None.
  - Consistent logging.
"""

from __future__ import annotations

import logging
import os
import time
from typing import Any, Dict, List, Optional

import httpx
from dotenv import load_dotenv

from .http_client import get_client, get_timeout

load_dotenv()

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants: all read from environment with safe defaults
# ---------------------------------------------------------------------------
_OPENAI_API_URL = "https://api.openai.com/v1/chat/completions"


def _env_float(key: str, default: float) -> float:
    try:
        return float(os.getenv(key, str(default)))
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    try:
        return int(os.getenv(key, str(default)))
    except ValueError:
        return default


def get_openai_key() -> str:
    """Read OPENAI_API_KEY from the environment. Raises EnvironmentError if missing."""
    key = os.getenv("OPENAI_API_KEY", "").strip()
    if not key:
        logger.warning("[OPENAI] API key missing (OPENAI_API_KEY)")
        raise EnvironmentError("OPENAI_API_KEY environment variable not set")
    return key


def is_openai_available() -> bool:
    return bool(os.getenv("OPENAI_API_KEY", "").strip())


def get_openai_model() -> str:
    """Read OPENAI_MODEL from the environment (default: gpt-4.1)."""
    return os.getenv("OPENAI_MODEL", "gpt-4.1").strip()


def _get_temperature() -> float:
    return _env_float("OPENAI_TEMPERATURE", 0.2)


def _get_default_max_tokens() -> int:
    return _env_int("OPENAI_MAX_COMPLETION_TOKENS", 8000)


def build_payload(
    *,
    model: str,
    messages: List[Dict[str, str]],
    tool: Dict[str, Any],
    max_completion_tokens: int,
    temperature: float,
) -> Dict[str, Any]:
    """Build a chat completions payload that forces a call to *tool*."""
    tool_name = tool["function"]["name"]
    return {
        "model": model,
        "messages": messages,
        "max_tokens": max_completion_tokens,
        "temperature": temperature,
        "tools": [tool],
        "tool_choice": {"type": "function", "function": {"name": tool_name}},
    }


def extract_tool_arguments(data: Dict[str, Any], tool_name: str) -> Optional[str]:
    """Return the raw JSON arguments of the first tool call named *tool_name*.

    Returns None when the response has no tool call, or the first tool call
    targets a different function.
    """
    try:
        tool_calls = data["choices"][0]["message"].get("tool_calls") or []
    except (KeyError, IndexError, TypeError, AttributeError):
        return None
    if not tool_calls:
        return None

    function = tool_calls[0].get("function") or {}
    if function.get("name") != tool_name:
        return None
    arguments = function.get("arguments")
    return arguments if isinstance(arguments, str) else None


async def call_openai_tool_async(
    *,
    messages: List[Dict[str, str]],
    tool: Dict[str, Any],
    max_completion_tokens: int = 0,
    api_key: Optional[str] = None,
    model: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> Optional[str]:
    """Call OpenAI chat completions forcing *tool*; return its raw arguments.

    Parameters
    ----------
    messages : list[dict]
        The messages array (system + user).
    tool : dict
        A single ``{"type": "function", "function": {...}}`` declaration.
    max_completion_tokens : int
        Token limit for the response. 0 = use env default.

    Returns
    -------
    str or None
        The tool call's JSON argument string, or None if all retries
        exhausted.  Parsing and validation belong to the caller.
    """
    if api_key is None:
        api_key = get_openai_key()
    if model is None:
        model = get_openai_model()
    if max_completion_tokens <= 0:
        max_completion_tokens = _get_default_max_tokens()

    tool_name = tool["function"]["name"]
    max_retries = 1
    http = client or await get_client()

    headers = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }
    payload = build_payload(
        model=model,
        messages=messages,
        tool=tool,
        max_completion_tokens=max_completion_tokens,
        temperature=_get_temperature(),
    )

    for attempt in range(max_retries + 1):
        t0 = time.time()
        try:
            logger.info("[OPENAI] Calling %s with tool %s (attempt %d/%d)",
                        model, tool_name, attempt + 1, max_retries + 1)
            response = await http.post(
                _OPENAI_API_URL,
                headers=headers,
                json=payload,
                timeout=get_timeout("openai"),
            )
        except httpx.TimeoutException:
            logger.warning("[OPENAI] Timeout after %.1fs", time.time() - t0)
            continue
        except httpx.HTTPError as exc:
            logger.warning("[OPENAI] Request failed: %s", exc)
            continue

        logger.info("[OPENAI] HTTP %s (%.1fs)", response.status_code, time.time() - t0)
        if response.status_code != 200:
            logger.warning("[OPENAI] Error response: %s", response.text[:400])
            continue

        try:
            data = response.json()
        except ValueError:
            logger.warning("[OPENAI] Response body is not valid JSON")
            continue

        usage = data.get("usage")
        if usage:
            logger.info(
                "[OPENAI] Tokens used: prompt=%s, completion=%s, total=%s",
                usage.get("prompt_tokens", "?"),
                usage.get("completion_tokens", "?"),
                usage.get("total_tokens", "?"),
            )

        arguments = extract_tool_arguments(data, tool_name)
        if arguments is None:
            logger.warning("[OPENAI] No valid %s tool call in response", tool_name)
            continue

        logger.info("[OPENAI] Tool call received (%d chars)", len(arguments))
        return arguments

    return None
