"""Generation capability hooks.

The pipeline only needs two operations from a generative model: describe an
image, or write text from a prompt. Tests and offline runs use the no-op
client, which fails every request with a clear message; the application
installs a real client through ``configure_generation_client`` at start-up.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from airgen.core.errors import GenerationError
from airgen.domain import GroundingSource


@dataclass(slots=True)
class GenerationResult:
    """Container returned by :class:`GenerationClient` implementations."""

    text: str
    sources: list[GroundingSource] = field(default_factory=list)


class GenerationClient(Protocol):
    """Contract for generative model integrations."""

    def analyze_image(self, image_url: str, prompt: str) -> GenerationResult:
        """Describe the image at ``image_url`` following ``prompt``."""

    def generate_text(self, prompt: str) -> GenerationResult:
        """Write text following ``prompt``."""


class NoOpGenerationClient:
    """Fallback used when no model credentials are configured."""

    def analyze_image(self, image_url: str, prompt: str) -> GenerationResult:
        raise GenerationError("Generation client not configured")

    def generate_text(self, prompt: str) -> GenerationResult:
        raise GenerationError("Generation client not configured")


_client: GenerationClient = NoOpGenerationClient()


def configure_generation_client(client: GenerationClient) -> None:
    """Install the generation client used by the pipeline."""

    global _client
    _client = client


def get_generation_client() -> GenerationClient:
    """Return the currently configured generation client."""

    return _client
