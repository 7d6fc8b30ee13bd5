"""LLM-backed translation of a free-text question into a candidate query object.

The model is only allowed to produce **query JSON** matching a strict schema derived from the
canonical vocabulary. Its output is untrusted and must still pass `validate_query`.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from src.query.schema import CANON_FIELDS, CANONICAL_SCHEMA, CanonicalSchema


class LLMClientError(RuntimeError):
    """Raised when the LLM call fails or does not return a JSON object."""


@dataclass(frozen=True)
class LLMConfig:
    """Configuration for the OpenAI-style Chat Completions API call."""

    api_key: str
    model: str = "gpt-4.1-mini"
    api_base: str = "https://api.openai.com/v1"
    timeout_s: float = 30.0


def _load_prompt() -> str:
    prompt_path = Path(__file__).resolve().parent / "prompt_query_v1.md"
    template = prompt_path.read_text(encoding="utf-8")
    return template.replace("{fields}", ", ".join(CANON_FIELDS))


def _strip_code_fences(text: str) -> str:
    value = (text or "").strip()
    if value.startswith("```"):
        value = value.strip("`")
        value = value.removeprefix("json").strip()
    return value


def _chat_completions_url(api_base: str) -> str:
    return api_base.rstrip("/") + "/chat/completions"


def query_json_schema(schema: CanonicalSchema = CANONICAL_SCHEMA) -> dict[str, Any]:
    """Build the strict response schema for the model.

    Strict mode requires every property to be listed in `required`, so empty filters/grouping and
    a `0` limit are how the model says "not applicable".
    """

    scalar = [{"type": "string"}, {"type": "number"}, {"type": "boolean"}]
    return {
        "type": "object",
        "additionalProperties": False,
        "properties": {
            "intent": {"type": "string", "enum": sorted(schema.intents)},
            "entity": {"type": "string", "enum": sorted(schema.entities)},
            "filters": {
                "type": "array",
                "items": {
                    "type": "object",
                    "additionalProperties": False,
                    "properties": {
                        "field": {"type": "string", "enum": list(CANON_FIELDS)},
                        "op": {"type": "string", "enum": sorted(schema.operators)},
                        "value": {
                            "anyOf": [
                                *scalar,
                                {"type": "null"},
                                {"type": "array", "items": {"anyOf": scalar}},
                            ]
                        },
                    },
                    "required": ["field", "op", "value"],
                },
            },
            "group_by": {"type": "array", "items": {"type": "string"}},
            "limit": {"type": "number"},
        },
        "required": ["intent", "entity", "filters", "group_by", "limit"],
    }


def request_query_json(
        question: str,
        *,
        config: LLMConfig,
        context: Any = None,
) -> dict[str, Any]:
    """Ask the model for a structured query and return the decoded JSON object.

    The call is compatible with OpenAI-style `/v1/chat/completions` APIs.
    """

    payload = {
        "model": config.model,
        "temperature": 0,
        "messages": [
            {"role": "system", "content": _load_prompt()},
            {
                "role": "user",
                "content": json.dumps({"question": question, "context": context}, indent=2),
            },
        ],
        "response_format": {
            "type": "json_schema",
            "json_schema": {
                "name": "mapfluence_query",
                "schema": query_json_schema(),
                "strict": True,
            },
        },
    }

    req = Request(
        _chat_completions_url(config.api_base),
        method="POST",
        headers={
            "Authorization": f"Bearer {config.api_key}",
            "Content-Type": "application/json",
        },
        data=json.dumps(payload).encode(),
    )

    try:
        with urlopen(req, timeout=config.timeout_s) as resp:  # noqa: S310 (configured API base)
            body = resp.read()
    except HTTPError as exc:
        raise LLMClientError(f"LLM HTTP error: {exc.code}") from exc
    except URLError as exc:
        raise LLMClientError("LLM connection error") from exc

    try:
        decoded = json.loads(body)
        content = decoded["choices"][0]["message"]["content"]
    except (ValueError, KeyError, IndexError, TypeError) as exc:
        raise LLMClientError("Unexpected LLM response format") from exc

    try:
        obj = json.loads(_strip_code_fences(content))
    except (json.JSONDecodeError, TypeError) as exc:
        raise LLMClientError("LLM did not return valid JSON") from exc

    if not isinstance(obj, dict):
        raise LLMClientError("LLM did not return a JSON object")
    return obj
