"""Chat-completions client for OpenAI and OpenAI-compatible analysis providers."""

from typing import Any

import httpx
import openai

from cpadocs.classification.client_base import BaseAnalysisClient
from cpadocs.classification.exceptions import AnalysisError, AnalysisNetworkError

_CONNECT_TIMEOUT_SECONDS = 5.0


def json_schema_format(schema: dict[str, object], name: str) -> dict[str, object]:
    """response_format payload requesting strict structured output."""
    return {
        "type": "json_schema",
        "json_schema": {"name": name, "strict": True, "schema": schema},
    }


class OpenAIClientAdapter(BaseAnalysisClient):
    """Structured-output analysis call with SDK retries turned off.

    A failed call is not retried here: the analyzer falls back to keyword
    classification instead of holding the worker on a slow provider.
    """

    def __init__(
        self,
        *,
        api_key: str,
        timeout_seconds: int,
        base_url: str | None = None,
    ) -> None:
        self._client = openai.OpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=httpx.Timeout(
                timeout_seconds, connect=min(_CONNECT_TIMEOUT_SECONDS, timeout_seconds)
            ),
            max_retries=0,
        )

    def complete_json(
        self,
        *,
        model: str,
        temperature: float,
        system_prompt: str,
        user_prompt: str,
        json_schema: dict[str, object],
        schema_name: str,
    ) -> str:
        try:
            response = self._client.chat.completions.create(
                model=model,
                temperature=temperature,
                response_format=json_schema_format(json_schema, schema_name),
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
            )
        except (openai.APIConnectionError, httpx.TransportError) as exc:
            raise AnalysisNetworkError(f"AI provider network error: {exc}") from exc
        except openai.APIStatusError as exc:
            raise AnalysisNetworkError(
                f"AI provider API error {exc.status_code}: {exc.message}"
            ) from exc
        except openai.APIError as exc:
            raise AnalysisNetworkError(f"AI provider API error: {exc}") from exc
        return _message_content(response)


def _message_content(response: Any) -> str:
    if not response.choices:
        raise AnalysisError("AI returned no choices")
    choice = response.choices[0]
    if choice.message.refusal:
        raise AnalysisError(f"AI refused to analyse the document: {choice.message.refusal}")
    if choice.finish_reason == "length":
        raise AnalysisError("AI response was cut off before the JSON was complete")
    if not choice.message.content:
        raise AnalysisError("AI returned empty response")
    return choice.message.content
