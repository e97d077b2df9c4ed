"""HTTP client for the Eden AI document endpoints."""

from typing import Any

import httpx

from cpadocs.logging.logger import Log
from cpadocs.processors.exceptions import ProviderError

FINANCIAL_PARSER_PATH = "ocr/financial_parser"
IDENTITY_PROMPT_PATH = "prompts/identity-ocr-processing-api"
SUMMARIZE_PATH = "text/summarize"


class EdenAIClient:
    """Thin wrapper over the three provider endpoints used by the processors."""

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str,
        timeout_seconds: int,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._client = httpx.Client(
            base_url=base_url,
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=timeout_seconds,
            transport=transport,
        )

    def parse_financial_document(
        self,
        file_url: str,
        *,
        providers: list[str],
        fallback_providers: list[str],
    ) -> dict[str, Any]:
        return self._post(
            FINANCIAL_PARSER_PATH,
            {
                "providers": providers,
                "fallback_providers": fallback_providers,
                "file_url": file_url,
                "response_as_dict": True,
            },
        )

    def extract_identity(self, ocr_text: str) -> dict[str, Any]:
        return self._post(
            IDENTITY_PROMPT_PATH,
            {
                "promptContext": {"ocr_text": ocr_text},
                "params": {"temperature": 0.1},
            },
        )

    def summarize(self, text: str, *, provider: str) -> dict[str, Any]:
        return self._post(
            SUMMARIZE_PATH,
            {
                "providers": [provider],
                "text": text,
                "output_sentences": 1,
                "response_as_dict": True,
            },
        )

    def close(self) -> None:
        self._client.close()

    def _post(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        Log.info(f"Calling Eden AI {path}")
        try:
            response = self._client.post(path, json=body)
        except httpx.HTTPError as exc:
            raise ProviderError(f"Eden AI {path} unreachable: {exc}") from exc

        if response.is_error:
            raise ProviderError(
                f"Eden AI {path} failed: {response.status_code} - {response.text}",
                status_code=response.status_code,
                body=response.text,
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderError(
                f"Eden AI {path} returned invalid JSON",
                status_code=response.status_code,
                body=response.text,
            ) from exc
        if not isinstance(data, dict):
            raise ProviderError(
                f"Eden AI {path} returned a non-object response",
                status_code=response.status_code,
                body=response.text,
            )
        return data
