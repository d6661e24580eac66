import unittest
from unittest import mock

from pydantic_ai.messages import ModelMessage, ModelResponse, TextPart
from pydantic_ai.models.function import AgentInfo, FunctionModel

from agents.summarizer import (
    AgentProvider,
    DigestGenerator,
    GenerationError,
    _parse_local_model,
    build_prompt,
)
from models.source import ExtractedDocument
from tools.utils import RetryPolicy

DIGEST_TEXT = "* Point one\n  Source: https://example.edu/0"


class FakeProvider:
    """Returns (or raises) scripted responses in order, repeating the last."""

    def __init__(self, name, *responses):
        self.name = name
        self.responses = list(responses)
        self.prompts = []

    async def generate(self, prompt):
        self.prompts.append(prompt)
        response = self.responses[min(len(self.prompts), len(self.responses)) - 1]
        if isinstance(response, Exception):
            raise response
        return response


def _docs(n, content="Some EdTech article text."):
    return [ExtractedDocument(url=f"https://example.edu/{i}", title=f"Title {i}", content=content) for i in range(n)]


def _generator(primary, secondary=None, attempts=3):
    return DigestGenerator(primary, secondary, retry=RetryPolicy(max_attempts=attempts, delay=0.0))


class TestBuildPrompt(unittest.TestCase):
    def test_frames_each_document(self):
        prompt = build_prompt(_docs(2))
        self.assertIn("exactly 8 high-quality bullet points", prompt)
        self.assertIn("### SOURCE URL: https://example.edu/0\n### TITLE: Title 0\n### CONTENT:\n", prompt)
        self.assertEqual(prompt.count("---END OF SOURCE---"), 2)

    def test_truncates_long_content(self):
        doc = ExtractedDocument(url="https://example.edu/long", title="Long", content="x" * 5000)
        prompt = build_prompt([doc], content_cap=4000)
        self.assertIn("x" * 4000 + "...", prompt)
        self.assertNotIn("x" * 4001, prompt)

    def test_short_content_not_marked_truncated(self):
        prompt = build_prompt(_docs(1, content="short"))
        self.assertIn("### CONTENT:\nshort\n", prompt)


class TestDigestGenerator(unittest.IsolatedAsyncioTestCase):
    async def test_primary_success(self):
        primary = FakeProvider("primary", DIGEST_TEXT)
        self.assertEqual(await _generator(primary).generate(_docs(3)), DIGEST_TEXT)
        self.assertEqual(len(primary.prompts), 1)

    async def test_primary_retried_until_success(self):
        primary = FakeProvider("primary", RuntimeError("503"), RuntimeError("503"), DIGEST_TEXT)
        self.assertEqual(await _generator(primary).generate(_docs(3)), DIGEST_TEXT)
        self.assertEqual(len(primary.prompts), 3)

    async def test_primary_always_fails_raises_after_bounded_attempts(self):
        primary = FakeProvider("primary", RuntimeError("quota exceeded"))
        with self.assertRaises(GenerationError):
            await _generator(primary).generate(_docs(3))
        self.assertEqual(len(primary.prompts), 3)

    async def test_secondary_tried_once_after_primary_exhausted(self):
        primary = FakeProvider("primary", RuntimeError("down"))
        secondary = FakeProvider("secondary", DIGEST_TEXT)
        self.assertEqual(await _generator(primary, secondary).generate(_docs(3)), DIGEST_TEXT)
        self.assertEqual(len(primary.prompts), 3)
        self.assertEqual(len(secondary.prompts), 1)

    async def test_both_providers_fail(self):
        primary = FakeProvider("primary", RuntimeError("down"))
        secondary = FakeProvider("secondary", RuntimeError("also down"))
        with self.assertRaises(GenerationError) as ctx:
            await _generator(primary, secondary).generate(_docs(3))
        self.assertIn("also down", str(ctx.exception))
        self.assertEqual(len(secondary.prompts), 1)

    async def test_empty_output_counts_as_failure(self):
        primary = FakeProvider("primary", "   \n", DIGEST_TEXT)
        self.assertEqual(await _generator(primary).generate(_docs(1)), DIGEST_TEXT)
        self.assertEqual(len(primary.prompts), 2)

    async def test_no_content_raises_without_calling_provider(self):
        primary = FakeProvider("primary", DIGEST_TEXT)
        with self.assertRaises(GenerationError):
            await _generator(primary).generate(_docs(3, content=""))
        self.assertEqual(primary.prompts, [])

    async def test_retry_pauses_follow_policy(self):
        primary = FakeProvider("primary", RuntimeError("down"))
        generator = DigestGenerator(primary, retry=RetryPolicy(max_attempts=3, delay=180.0))
        with mock.patch("agents.summarizer.asyncio.sleep", new=mock.AsyncMock()) as sleep:
            with self.assertRaises(GenerationError):
                await generator.generate(_docs(1))
        self.assertEqual(sleep.await_args_list, [mock.call(180.0), mock.call(180.0)])

    async def test_select_uses_first_documents_with_content(self):
        docs = _docs(14)
        docs[0] = ExtractedDocument(url="https://example.edu/empty", title="Empty")
        selected = _generator(FakeProvider("p", DIGEST_TEXT)).select(docs)
        self.assertEqual(len(selected), 10)
        self.assertEqual(selected[0].url, "https://example.edu/1")

    async def test_prompt_only_contains_selected_documents(self):
        primary = FakeProvider("primary", DIGEST_TEXT)
        await _generator(primary).generate(_docs(12))
        self.assertIn("https://example.edu/9\n", primary.prompts[0])
        self.assertNotIn("https://example.edu/10\n", primary.prompts[0])


class TestAgentProvider(unittest.IsolatedAsyncioTestCase):
    async def test_returns_model_text(self):
        def reply(messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
            return ModelResponse(parts=[TextPart(DIGEST_TEXT)])

        provider = AgentProvider(FunctionModel(reply), name="function")
        self.assertEqual(provider.name, "function")
        self.assertEqual(await provider.generate("prompt"), DIGEST_TEXT)

    async def test_model_error_propagates(self):
        def reply(messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
            raise RuntimeError("provider unavailable")

        provider = AgentProvider(FunctionModel(reply), name="function")
        with self.assertRaises(RuntimeError):
            await provider.generate("prompt")


class TestLocalModelParsing(unittest.TestCase):
    def test_local_model_string(self):
        self.assertEqual(
            _parse_local_model("openai:qwen3@http://127.0.0.1:8080/v1"),
            ("qwen3", "http://127.0.0.1:8080/v1"),
        )

    def test_remote_model_string(self):
        self.assertIsNone(_parse_local_model("google-gla:gemini-2.5-pro"))


if __name__ == "__main__":
    unittest.main()
