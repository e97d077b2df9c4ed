"""Bundled prompt and response schema for document analysis."""

import json
from dataclasses import dataclass
from pathlib import Path

from cpadocs.classification.exceptions import AnalysisError

PROMPT_DIR = Path(__file__).parent / "prompts"


@dataclass(frozen=True)
class AnalysisPrompt:
    template: str
    schema_text: str
    schema: dict[str, object]

    def render(self, *, filename: str, document_text: str) -> str:
        return self.template.format(
            filename=filename,
            document_text=document_text,
            json_schema=self.schema_text,
        )


def _read(path: Path, what: str) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise AnalysisError(f"Failed to load {what}: {exc}") from exc


def load_prompt_template(path: Path | None = None) -> str:
    """Read the user prompt; it must contain a {document_text} placeholder.

    Raises:
        AnalysisError: if the file is unreadable or lacks the placeholder.
    """
    path = path or PROMPT_DIR / "analysis_prompt.txt"
    template = _read(path, "prompt template")
    if "{document_text}" not in template:
        raise AnalysisError(f"Prompt template {path.name} has no {{document_text}} placeholder")
    return template


def load_json_schema(path: Path | None = None) -> str:
    """Read the response schema and check that it parses as a JSON object.

    Raises:
        AnalysisError: if the file is unreadable or not a JSON object.
    """
    path = path or PROMPT_DIR / "analysis_schema.json"
    text = _read(path, "JSON schema")
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as exc:
        raise AnalysisError(f"Invalid JSON schema in {path.name}: {exc}") from exc
    if not isinstance(parsed, dict):
        raise AnalysisError(f"JSON schema in {path.name} must be an object")
    return text


def load_analysis_prompt(
    template_path: Path | None = None,
    schema_path: Path | None = None,
) -> AnalysisPrompt:
    schema_text = load_json_schema(schema_path)
    return AnalysisPrompt(
        template=load_prompt_template(template_path),
        schema_text=schema_text,
        schema=json.loads(schema_text),
    )
