"""Digest generator: prompt assembly and provider orchestration.

This module turns extracted documents into the raw digest text returned by
a generative model. It owns the prompt (document framing and the output
contract) and the failure policy around the providers.

Generation Policy:
    1. The primary provider is tried up to ``retry.max_attempts`` times,
       pausing per the retry policy between attempts (default 3 attempts,
       3 minutes apart).
    2. If every primary attempt fails and a secondary provider is
       configured, it is tried once.
    3. If that also fails, GenerationError is raised.

    A provider error and an empty response both count as a failed attempt.
    Providers are constructed by the caller and passed in, so tests can
    substitute fakes.
"""

import asyncio
import logging
from typing import Protocol

from openai import AsyncOpenAI
from pydantic_ai import Agent
from pydantic_ai.models import Model
from pydantic_ai.models.openai import OpenAIModel
from pydantic_ai.profiles.openai import OpenAIModelProfile
from pydantic_ai.providers.openai import OpenAIProvider

from models.digest import DIGEST_SIZE
from models.source import ExtractedDocument
from tools.utils import RetryPolicy

logger = logging.getLogger(__name__)


DIGEST_SYSTEM_PROMPT = (
    "You are an expert EdTech analyst creating a briefing for education "
    "administrators. You only report facts found in the provided content."
)

DIGEST_INSTRUCTIONS = f"""Analyze the provided content and create exactly {DIGEST_SIZE} high-quality bullet points about education technology innovations and implementations.

STRICT REQUIREMENTS:
1. Create exactly {DIGEST_SIZE} bullet points - no more, no less
2. Each point must be from a different source URL
3. Each point must be 30-50 words long
4. Each point must include concrete information (technology names, stats, outcomes)
5. Format each point exactly like this:
* [Summary text with specific details about EdTech implementation or innovation]
  Source: [EXACT URL where this information was found]

CONTENT FOCUS AREAS:
- Classroom technology implementations
- Institutional EdTech solutions
- Learning management systems
- Educational data analytics
- Teacher training technologies
- Student engagement tools
- Cost-effective EdTech solutions
- Emerging education technologies

CONTENT TO ANALYZE:
"""


class GenerationError(Exception):
    """Raised when no provider produced a digest.

    This is terminal for the run: the pipeline has nothing to validate.
    """
    pass


class TextProvider(Protocol):
    """A generative model that maps a prompt to text."""

    name: str

    async def generate(self, prompt: str) -> str: ...


def _parse_local_model(model_str: str) -> tuple[str, str] | None:
    """Parse local model string into (model_name, base_url) or None if not local."""
    if model_str.startswith("openai:") and "@" in model_str:
        model_name, base_url = model_str[len("openai:"):].split("@", 1)
        return model_name, base_url
    return None


def _create_model(model_str: str) -> Model | str:
    """Create the appropriate model based on the model string.

    Supports:
    - OpenAI-compatible local servers: 'openai:{model_name}@http://127.0.0.1:8080/v1'
    - Remote models: 'google-gla:gemini-2.5-pro', 'anthropic:claude-3-haiku-20240307'
    """
    parsed = _parse_local_model(model_str)
    if parsed:
        model_name, base_url = parsed
        logger.info("Using local model | model=%s base_url=%s", model_name, base_url)
        # Local servers don't need authentication - use placeholder
        client = AsyncOpenAI(base_url=base_url, api_key="local-model")
        profile = OpenAIModelProfile(supports_json_object_output=False)
        return OpenAIModel(
            model_name=model_name,
            provider=OpenAIProvider(openai_client=client),
            profile=profile,
        )
    return model_str


class AgentProvider:
    """TextProvider backed by a PydanticAI agent with plain-text output.

    Example:
        >>> provider = AgentProvider("google-gla:gemini-2.5-pro")
        >>> text = await provider.generate(prompt)
    """

    def __init__(self, model: str | Model, name: str | None = None):
        """Initialize the provider.

        Args:
            model: PydanticAI model string or a Model instance
            name: Label used in logs (defaults to the model string)
        """
        if isinstance(model, str):
            self.name = name or model
            model = _create_model(model)
        else:
            self.name = name or model.model_name
        self._agent = Agent(
            model,
            output_type=str,
            system_prompt=DIGEST_SYSTEM_PROMPT,
        )

    async def generate(self, prompt: str) -> str:
        result = await self._agent.run(prompt)
        logger.debug("Provider call complete | provider=%s chars=%d", self.name, len(result.output))
        return result.output


def _frame_document(doc: ExtractedDocument, content_cap: int) -> str:
    content = doc.content
    if len(content) > content_cap:
        content = content[:content_cap] + "..."
    return (
        f"\n\n### SOURCE URL: {doc.url}\n"
        f"### TITLE: {doc.title}\n"
        f"### CONTENT:\n{content}\n\n"
        "---END OF SOURCE---\n"
    )


def build_prompt(documents: list[ExtractedDocument], content_cap: int = 4000) -> str:
    """Build the digest prompt: output contract followed by framed documents."""
    framed = "".join(_frame_document(doc, content_cap) for doc in documents)
    return DIGEST_INSTRUCTIONS + framed


class DigestGenerator:
    """Produces raw digest text from documents with retry and fallback.

    Example:
        >>> generator = DigestGenerator(
        ...     primary=AgentProvider("google-gla:gemini-2.5-pro"),
        ...     secondary=AgentProvider("anthropic:claude-3-haiku-20240307"),
        ... )
        >>> sent = generator.select(documents)
        >>> raw = await generator.generate(sent)
    """

    def __init__(
        self,
        primary: TextProvider,
        secondary: TextProvider | None = None,
        retry: RetryPolicy | None = None,
        max_documents: int = 10,
        content_cap: int = 4000,
    ):
        """Initialize the generator.

        Args:
            primary: Provider tried first, with retries
            secondary: Optional provider tried once after the primary is exhausted
            retry: Retry policy for the primary (default: 3 attempts, 180s apart)
            max_documents: Maximum documents included in the prompt
            content_cap: Characters kept per document before truncation
        """
        self.primary = primary
        self.secondary = secondary
        self.retry = retry or RetryPolicy(max_attempts=3, delay=180.0)
        self.max_documents = max_documents
        self.content_cap = content_cap

    def select(self, documents: list[ExtractedDocument]) -> list[ExtractedDocument]:
        """Return the documents that will be sent: the first ones with content."""
        return [doc for doc in documents if doc.ok][: self.max_documents]

    async def generate(self, documents: list[ExtractedDocument]) -> str:
        """Generate raw digest text.

        Args:
            documents: Extracted documents (empty ones are ignored)

        Returns:
            Raw provider output

        Raises:
            GenerationError: No documents with content, or every provider failed
        """
        selected = self.select(documents)
        if not selected:
            raise GenerationError("No documents with content to summarize")

        prompt = build_prompt(selected, self.content_cap)
        logger.info(
            "Generating digest | documents=%d prompt_chars=%d provider=%s",
            len(selected), len(prompt), self.primary.name,
        )

        attempts = self.retry.max_attempts
        last_error: Exception | None = None
        for attempt in range(1, attempts + 1):
            try:
                return await self._attempt(self.primary, prompt)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                last_error = e
                logger.warning(
                    "Generation attempt %d/%d failed | provider=%s error=%s (%s)",
                    attempt, attempts, self.primary.name, e, type(e).__name__,
                )
                if attempt < attempts:
                    pause = self.retry.delay_after(attempt)
                    logger.info("Retrying generation | pause=%.0fs", pause)
                    await asyncio.sleep(pause)

        if self.secondary is not None:
            logger.info("Falling back to secondary provider | provider=%s", self.secondary.name)
            try:
                return await self._attempt(self.secondary, prompt)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                last_error = e
                logger.warning(
                    "Secondary generation failed | provider=%s error=%s (%s)",
                    self.secondary.name, e, type(e).__name__,
                )

        raise GenerationError(f"Digest generation failed after all attempts: {last_error}")

    async def _attempt(self, provider: TextProvider, prompt: str) -> str:
        text = await provider.generate(prompt)
        if not text or not text.strip():
            raise ValueError("empty response")
        logger.info("Digest generated | provider=%s chars=%d", provider.name, len(text))
        return text
