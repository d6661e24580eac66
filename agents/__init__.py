"""PydanticAI-backed digest generation for the EdBrief pipeline.

DigestGenerator:
    Frames extracted documents into a prompt and calls the primary
    provider with retries, then the optional secondary provider once.

AgentProvider:
    Plain-text PydanticAI agent over a model string such as
    'google-gla:gemini-2.5-pro' or a local OpenAI-compatible endpoint.

Example:
    >>> from agents import AgentProvider, DigestGenerator
    >>> generator = DigestGenerator(AgentProvider(config.primary_model))
"""

from agents.summarizer import AgentProvider, DigestGenerator, GenerationError, build_prompt

__all__ = [
    "AgentProvider",
    "DigestGenerator",
    "GenerationError",
    "build_prompt",
]
