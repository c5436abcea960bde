"""LLM router: dispatches to Claude (Anthropic) or GPT (OpenAI) based on model ID.

Only the narrative collaborator calls this. Nothing on the decision path
waits on an LLM.
"""

from __future__ import annotations

import json
import logging
import re
import time

import anthropic
import openai

from alphagate.config import Settings, get_settings

logger = logging.getLogger(__name__)

# Cost per 1M tokens (USD): (input, output)
_MODEL_COSTS: dict[str, tuple[float, float]] = {
    "claude-haiku-4-5-20251001": (0.80, 4.0),
    "claude-sonnet-4-5-20250929": (3.0, 15.0),
    "gpt-5.2-nano": (0.10, 0.40),
    "gpt-5.2": (2.0, 8.0),
}

_FENCED_JSON = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL)


def _estimate_cost(model: str, tokens_in: int, tokens_out: int) -> float:
    costs = _MODEL_COSTS.get(model)
    if not costs:
        return 0.0
    return round(tokens_in / 1_000_000 * costs[0] + tokens_out / 1_000_000 * costs[1], 6)


def _try_parse_json(text: str | None) -> dict | None:
    """Parse a JSON object from raw text, a fenced block, or text with a prefix."""
    if not text:
        return None
    try:
        parsed = json.loads(text)
        return parsed if isinstance(parsed, dict) else None
    except json.JSONDecodeError:
        pass

    match = _FENCED_JSON.search(text)
    if match:
        try:
            return json.loads(match.group(1))
        except json.JSONDecodeError:
            pass

    start, end = text.find("{"), text.rfind("}")
    if 0 <= start < end:
        try:
            return json.loads(text[start:end + 1])
        except json.JSONDecodeError:
            return None
    return None


async def call_llm(
    model: str,
    system_prompt: str,
    user_prompt: str,
    max_tokens: int = 400,
    temperature: float = 0.3,
    json_output: bool = False,
    settings: Settings | None = None,
) -> dict:
    """Route one completion and return content, token counts, latency and cost."""
    settings = settings or get_settings()
    start = time.monotonic()

    if model.startswith("claude"):
        result = await _call_anthropic(
            model, system_prompt, user_prompt, max_tokens, temperature, settings
        )
    elif model.startswith("gpt") or model.startswith("o"):
        result = await _call_openai(
            model, system_prompt, user_prompt, max_tokens, temperature, json_output, settings
        )
    else:
        raise ValueError(f"Unknown model prefix: {model}")

    result["latency_ms"] = int((time.monotonic() - start) * 1000)
    result["model"] = model
    result["cost_usd"] = _estimate_cost(model, result["tokens_in"], result["tokens_out"])

    logger.info(
        "LLM call: model=%s, tokens_in=%d, tokens_out=%d, latency=%dms, cost=$%.4f",
        model, result["tokens_in"], result["tokens_out"], result["latency_ms"], result["cost_usd"],
    )
    return result


async def _call_anthropic(
    model: str,
    system_prompt: str,
    user_prompt: str,
    max_tokens: int,
    temperature: float,
    settings: Settings,
) -> dict:
    client = anthropic.AsyncAnthropic(api_key=settings.anthropic_api_key)
    response = await client.messages.create(
        model=model,
        max_tokens=max_tokens,
        temperature=temperature,
        system=system_prompt,
        messages=[{"role": "user", "content": user_prompt}],
    )
    content = response.content[0].text
    return {
        "content": _try_parse_json(content) or content,
        "raw": content,
        "tokens_in": response.usage.input_tokens,
        "tokens_out": response.usage.output_tokens,
    }


async def _call_openai(
    model: str,
    system_prompt: str,
    user_prompt: str,
    max_tokens: int,
    temperature: float,
    json_output: bool,
    settings: Settings,
) -> dict:
    client = openai.AsyncOpenAI(api_key=settings.openai_api_key)
    kwargs = {
        "model": model,
        "messages": [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ],
        "max_completion_tokens": max_tokens,
        "temperature": temperature,
    }
    if json_output:
        kwargs["response_format"] = {"type": "json_object"}

    response = await client.chat.completions.create(**kwargs)
    content = response.choices[0].message.content or ""
    return {
        "content": _try_parse_json(content) or content,
        "raw": content,
        "tokens_in": response.usage.prompt_tokens,
        "tokens_out": response.usage.completion_tokens,
    }
