"""AI-powered document classifier with a deterministic keyword fallback."""

import json
from pathlib import Path

from cpadocs.classification.base import BaseDocumentAnalyzer
from cpadocs.classification.client_base import BaseAnalysisClient
from cpadocs.classification.exceptions import AnalysisError
from cpadocs.classification.keyword_classifier import classify_by_keywords
from cpadocs.classification.models import DocumentAnalysis
from cpadocs.classification.prompt_loader import load_analysis_prompt
from cpadocs.classification.validator import validate_and_build
from cpadocs.logging.logger import Log

_MAX_PROMPT_TEXT_CHARS = 12_000
ANALYSIS_SCHEMA_NAME = "document_analysis"


class DocumentAnalyzer(BaseDocumentAnalyzer):
    """Classifies documents with an AI provider, falling back to keyword rules.

    With client=None the analyzer never calls out and uses keyword rules only.
    """

    def __init__(
        self,
        *,
        client: BaseAnalysisClient | None,
        model: str,
        temperature: float = 0.0,
        prompt_template_path: Path | None = None,
        json_schema_path: Path | None = None,
        system_prompt: str = "You classify accounting documents and reply with JSON only.",
    ) -> None:
        self._client = client
        self._model = model
        self._temperature = max(0.0, min(0.2, temperature))
        self._system_prompt = system_prompt
        self._prompt = load_analysis_prompt(prompt_template_path, json_schema_path)

    def analyze(self, text: str, filename: str) -> DocumentAnalysis:
        if self._client is None:
            return classify_by_keywords(text, filename)

        try:
            analysis = self._analyze_with_ai(self._client, text, filename)
        except AnalysisError as exc:
            Log.warning(f"AI analysis failed for {filename}, using keyword rules: {exc}")
            return classify_by_keywords(text, filename)

        Log.info(
            f"AI analysis complete for {filename}: "
            f"{analysis.classification.value}, notice type {analysis.notice_type}"
        )
        return analysis

    def _analyze_with_ai(
        self,
        client: BaseAnalysisClient,
        text: str,
        filename: str,
    ) -> DocumentAnalysis:
        prompt = self._build_prompt(text, filename)
        Log.debug(f"Analysis prompt:\n{prompt}")

        raw_response = self._call_ai(client, prompt)
        Log.debug(f"AI raw response:\n{raw_response}")

        parsed = self._parse_json(raw_response)
        return validate_and_build(parsed)

    def _build_prompt(self, text: str, filename: str) -> str:
        return self._prompt.render(
            filename=filename,
            document_text=text[:_MAX_PROMPT_TEXT_CHARS],
        )

    def _call_ai(self, client: BaseAnalysisClient, prompt: str) -> str:
        return client.complete_json(
            model=self._model,
            temperature=self._temperature,
            system_prompt=self._system_prompt,
            user_prompt=prompt,
            json_schema=self._prompt.schema,
            schema_name=ANALYSIS_SCHEMA_NAME,
        )

    @staticmethod
    def _parse_json(raw: str) -> dict[str, object]:
        cleaned = raw.strip()
        if cleaned.startswith("```"):
            lines = cleaned.splitlines()
            if lines and lines[0].startswith("```"):
                lines = lines[1:]
            if lines and lines[-1].strip() == "```":
                lines = lines[:-1]
            cleaned = "\n".join(lines)

        try:
            parsed = json.loads(cleaned)
        except json.JSONDecodeError as exc:
            raise AnalysisError(f"Invalid JSON response: {exc}") from exc

        if not isinstance(parsed, dict):
            raise AnalysisError("JSON response must be an object")
        return parsed
