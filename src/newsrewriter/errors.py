"""Error kinds raised by the pipeline stages.

Each stage raises one of these exceptions instead of returning partial data.
:class:`~newsrewriter.services.pipeline.ContentPipeline` catches them at the
run boundary and reports them through :class:`~newsrewriter.models.RunOutcome`.
"""

from __future__ import annotations

__all__ = [
    "BadResponse",
    "ConfigError",
    "EmptyFinalContent",
    "EmptyResponse",
    "FetchFailure",
    "HttpError",
    "JsonParseError",
    "LogStoreCorrupted",
    "NoCandidates",
    "NoNewCandidates",
    "PipelineError",
    "ProviderError",
    "PublishFailed",
    "ScrapeFailed",
    "TransportError",
    "UnexpectedError",
]


class PipelineError(Exception):
    """Base class for every failure a pipeline run can report."""

    kind = "pipeline_error"
    #: Benign errors mean "nothing to do right now" rather than a fault.
    benign = False

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.__class__.__doc__ or self.kind)
        self.message = str(self.args[0])

    def __str__(self) -> str:
        return self.message


class ConfigError(PipelineError):
    """Campaign or provider configuration is missing or invalid."""

    kind = "config_error"


class FetchFailure(PipelineError):
    """A URL could not be fetched."""

    kind = "fetch_failure"

    def __init__(self, url: str, reason: str, status_code: int | None = None) -> None:
        self.url = url
        self.status_code = status_code
        super().__init__(f"Failed to fetch {url}: {reason}")


class NoCandidates(PipelineError):
    """No candidates found in source."""

    kind = "no_candidates"
    benign = True


class NoNewCandidates(PipelineError):
    """No new candidates to process for this campaign."""

    kind = "no_new_candidates"
    benign = True


class ScrapeFailed(PipelineError):
    """Failed to scrape article content."""

    kind = "scrape_failed"


class ProviderError(PipelineError):
    """The text-generation provider call or its response parsing failed."""

    kind = "provider_error"


class HttpError(ProviderError):
    """The provider answered with a non-2xx status."""

    kind = "http_error"
    SNIPPET_LENGTH = 200

    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body_snippet = (body or "")[: self.SNIPPET_LENGTH]
        super().__init__(f"Provider HTTP error {status_code}: {self.body_snippet}")


class TransportError(ProviderError):
    """The provider could not be reached."""

    kind = "transport_error"


class BadResponse(ProviderError):
    """Unexpected JSON response from the provider."""

    kind = "bad_response"


class EmptyResponse(ProviderError):
    """The provider returned empty text."""

    kind = "empty_response"


class JsonParseError(ProviderError):
    """No JSON object could be recovered from the provider text."""

    kind = "json_parse_error"

    def __init__(self, message: str = "", *, stage: str = "") -> None:
        self.stage = stage
        super().__init__(message)


class EmptyFinalContent(PipelineError):
    """Final content is empty after processing."""

    kind = "empty_final_content"


class PublishFailed(PipelineError):
    """The publisher collaborator rejected the article record."""

    kind = "publish_failed"


class LogStoreCorrupted(PipelineError):
    """The processed log exists but cannot be read."""

    kind = "log_store_corrupted"


class UnexpectedError(PipelineError):
    """A run failed with an exception outside the pipeline error kinds."""

    kind = "unexpected_error"
