from __future__ import annotations


class WebSearchError(Exception):
    """Base class for pipeline errors."""


class ConfigError(WebSearchError):
    """Configuration that cannot fall back to a default (unreadable config file)."""


class SearchError(WebSearchError):
    """Search backend unreachable, timed out, or returned unusable data. Fatal to a run."""

    def __init__(self, message: str, *, search_url: str | None = None):
        hint = (
            f" Check that the search backend is reachable at {search_url}."
            if search_url
            else " Check that the search backend is reachable."
        )
        super().__init__(message + hint)
        self.search_url = search_url


class FetchError(WebSearchError):
    """A single page could not be retrieved. Always recovered by the fetcher."""


class ExtractionError(WebSearchError):
    """Readable text could not be extracted, or was too short."""


class ModelError(WebSearchError):
    """One inference attempt failed."""

    def __init__(self, message: str, *, model: str | None = None):
        super().__init__(message)
        self.model = model


class AllModelsFailedError(ModelError):
    """Every model in the fallback chain failed."""

    HINTS = (
        "Make sure the Ollama service is running (ollama serve).",
        "Make sure at least one model is installed (ollama pull <model>).",
    )

    def __init__(self, attempted_models: list[str], last_error: BaseException | None):
        self.attempted_models = list(attempted_models)
        self.last_error = last_error
        tried = ", ".join(self.attempted_models) or "none"
        message = f"All models failed (tried: {tried}). Last error: {last_error}"
        super().__init__(message + "\n" + "\n".join(f"  - {hint}" for hint in self.HINTS))
