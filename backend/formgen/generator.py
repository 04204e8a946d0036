"""
AI field generator.

Sends one chat-completions request to an OpenAI-compatible endpoint and
forces a `generate_form_fields` tool call, so the reply is structured JSON
rather than free text.

Environment (see config.Settings):
    OPENAI_API_KEY  - required; without it every call raises GeneratorNotConfigured
    AI_BASE_URL     - optional gateway URL, defaults to api.openai.com
    AI_MODEL        - model name
    AI_TIMEOUT      - request timeout in seconds
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

import openai
from openai import AsyncOpenAI
from pydantic import ValidationError

from formgen.config import settings
from formgen.errors import (
    CreditsExhausted,
    GeneratorNotConfigured,
    GeneratorUnavailable,
    InvalidAIResponse,
    RateLimited,
)
from formgen.schemas import FieldType, GeneratedField

logger = logging.getLogger(__name__)

TOOL_NAME = "generate_form_fields"

SYSTEM_PROMPT = (
    "You are a form builder expert. Generate appropriate form fields based on "
    "the form type provided. Return valid JSON only."
)

FIELDS_TOOL: Dict[str, Any] = {
    "type": "function",
    "function": {
        "name": TOOL_NAME,
        "description": "Generate form fields based on form type",
        "parameters": {
            "type": "object",
            "properties": {
                "fields": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "field_name": {"type": "string"},
                            "field_type": {"type": "string"},
                            "field_label": {"type": "string"},
                            "placeholder": {"type": "string"},
                            "required": {"type": "boolean"},
                            "options": {"type": "array", "items": {"type": "string"}},
                        },
                        "required": ["field_name", "field_type", "field_label", "required"],
                        "additionalProperties": False,
                    },
                }
            },
            "required": ["fields"],
            "additionalProperties": False,
        },
    },
}


def build_user_prompt(form_name: str) -> str:
    types = ", ".join(t.value for t in FieldType)
    return (
        f'Generate form fields for a "{form_name}" form. Use these field types: {types}. '
        "For each field provide: field_name (camelCase), field_type, field_label, "
        "placeholder (optional), required (boolean), and options (array for "
        "single_choice/multi_choice, omitted otherwise). Return 5-8 relevant fields."
    )


def _unique_name(name: str, taken: set) -> str:
    candidate, n = name, 2
    while candidate in taken:
        candidate = f"{name}_{n}"
        n += 1
    taken.add(candidate)
    return candidate


def parse_tool_arguments(arguments: str) -> List[GeneratedField]:
    """Turn the tool call's JSON arguments into validated fields."""
    try:
        payload = json.loads(arguments)
    except (TypeError, json.JSONDecodeError) as exc:
        raise InvalidAIResponse(f"Invalid AI response: arguments are not JSON ({exc})") from exc

    raw_fields = payload.get("fields") if isinstance(payload, dict) else None
    if not isinstance(raw_fields, list) or not raw_fields:
        raise InvalidAIResponse("Invalid AI response: no fields generated")

    fields: List[GeneratedField] = []
    taken: set = set()
    for raw in raw_fields:
        if not isinstance(raw, dict):
            raise InvalidAIResponse("Invalid AI response: field entry is not an object")
        try:
            field = GeneratedField(
                name=raw.get("field_name") or "",
                type=raw.get("field_type"),
                label=raw.get("field_label") or "",
                placeholder=raw.get("placeholder"),
                required=bool(raw.get("required", False)),
                options=raw.get("options") or None,
            )
        except ValidationError as exc:
            raise InvalidAIResponse(f"Invalid AI response: {exc.errors()[0]['msg']}") from exc
        field.name = _unique_name(field.name, taken)
        fields.append(field)
    return fields


class FieldGenerator:
    """Proposes fields for a form from its name."""

    def __init__(self, client: Optional[AsyncOpenAI] = None, model: Optional[str] = None):
        self.client = client
        self.model = model or settings.AI_MODEL

    @classmethod
    def from_settings(cls) -> "FieldGenerator":
        if not settings.OPENAI_API_KEY:
            return cls(client=None)
        client = AsyncOpenAI(
            api_key=settings.OPENAI_API_KEY,
            base_url=settings.AI_BASE_URL,
            timeout=settings.AI_TIMEOUT,
            max_retries=0,
        )
        return cls(client=client)

    async def generate(self, form_name: str) -> List[GeneratedField]:
        if self.client is None:
            logger.error("Field generation requested but OPENAI_API_KEY is not set")
            raise GeneratorNotConfigured()

        logger.info("Generating form fields for %r with %s", form_name, self.model)
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": build_user_prompt(form_name)},
                ],
                tools=[FIELDS_TOOL],
                tool_choice={"type": "function", "function": {"name": TOOL_NAME}},
            )
        except openai.RateLimitError as exc:
            logger.warning("AI rate limit exceeded: %s", exc)
            raise RateLimited() from exc
        except openai.APIStatusError as exc:
            if exc.status_code == 402:
                logger.warning("AI credits exhausted")
                raise CreditsExhausted() from exc
            logger.error("AI gateway error %s: %s", exc.status_code, exc.message)
            raise GeneratorUnavailable() from exc
        except openai.APIError as exc:
            # connection failures and timeouts
            logger.error("AI request failed: %s", exc)
            raise GeneratorUnavailable() from exc

        choices = response.choices or []
        message = choices[0].message if choices else None
        tool_calls = (message.tool_calls if message else None) or []
        if not tool_calls or tool_calls[0].function.name != TOOL_NAME:
            logger.error("Invalid AI response structure")
            raise InvalidAIResponse()

        fields = parse_tool_arguments(tool_calls[0].function.arguments)
        logger.info("Generated %d fields for %r", len(fields), form_name)
        return fields


def get_field_generator() -> FieldGenerator:
    return FieldGenerator.from_settings()
