from abc import ABC, abstractmethod


class BaseAnalysisClient(ABC):
    """A chat model that answers with JSON constrained by a schema."""

    @abstractmethod
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
        """Return the model's raw answer. Parsing and validation are the caller's job.

        Raises:
            AnalysisNetworkError: if the provider cannot be reached or rejects the call.
            AnalysisError: if the provider answers without content.
        """
