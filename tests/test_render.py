import unittest
from unittest import mock

from tools.render import PlaywrightRenderer, ResourcePolicy


def _route(resource_type):
    route = mock.MagicMock()
    route.request.resource_type = resource_type
    route.continue_ = mock.AsyncMock()
    route.abort = mock.AsyncMock()
    return route


class TestPlaywrightRenderer(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.page = mock.MagicMock()
        self.page.route = mock.AsyncMock()
        self.context = mock.MagicMock()
        self.context.new_page = mock.AsyncMock(return_value=self.page)
        self.browser = mock.MagicMock()
        self.browser.new_context = mock.AsyncMock(return_value=self.context)
        self.browser.close = mock.AsyncMock()

        self.renderer = PlaywrightRenderer(user_agent="edbrief-test")
        self.renderer._playwright = mock.MagicMock()
        self.renderer._playwright.chromium.launch = mock.AsyncMock(return_value=self.browser)

    async def test_open_requires_start(self):
        renderer = PlaywrightRenderer()
        with self.assertRaises(RuntimeError):
            async with renderer.open(ResourcePolicy()):
                pass

    async def test_browser_closed_after_session(self):
        async with self.renderer.open(ResourcePolicy()):
            self.browser.close.assert_not_awaited()
        self.browser.close.assert_awaited_once()
        self.browser.new_context.assert_awaited_once_with(user_agent="edbrief-test")

    async def test_browser_closed_when_body_raises(self):
        with self.assertRaises(ValueError):
            async with self.renderer.open(ResourcePolicy()):
                raise ValueError("navigation exploded")
        self.browser.close.assert_awaited_once()

    async def test_browser_closed_when_routing_fails(self):
        self.page.route.side_effect = RuntimeError("route setup failed")
        with self.assertRaises(RuntimeError):
            async with self.renderer.open(ResourcePolicy()):
                pass
        self.browser.close.assert_awaited_once()

    async def test_close_failure_is_logged(self):
        self.browser.close.side_effect = RuntimeError("already closed")
        with self.assertLogs("tools.render", level="WARNING"):
            async with self.renderer.open(ResourcePolicy()):
                pass

    async def test_route_handler_applies_policy(self):
        async with self.renderer.open(ResourcePolicy()):
            pattern, handler = self.page.route.await_args.args

        self.assertEqual(pattern, "**/*")

        image = _route("image")
        await handler(image)
        image.abort.assert_awaited_once()
        image.continue_.assert_not_awaited()

        document = _route("document")
        await handler(document)
        document.continue_.assert_awaited_once()
        document.abort.assert_not_awaited()


if __name__ == "__main__":
    unittest.main()
