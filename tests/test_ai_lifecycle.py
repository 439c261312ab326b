import asyncio
import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from gaptrack.ai.lifecycle import RequestLifecycle  # noqa: E402
from gaptrack.ai.types import ErrorKind, Success, transport_failure  # noqa: E402


class GatedGateway:
    """Gateway stand-in whose calls finish only when their gate is opened."""

    is_configured = True
    provider = "fake"

    def __init__(self):
        self.gates = {}
        self.results = {}
        self.cancelled = []

    def gate(self, key):
        return self.gates.setdefault(key, asyncio.Event())

    async def parse_resume(self, text):
        try:
            await self.gate(text).wait()
        except asyncio.CancelledError:
            self.cancelled.append(text)
            raise
        return self.results.get(text, Success(data={"text": text}))


async def _settle():
    for _ in range(3):
        await asyncio.sleep(0)


class RequestLifecycleTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.gateway = GatedGateway()
        self.lifecycle = RequestLifecycle(self.gateway)

    async def test_success_clears_processing(self):
        self.gateway.gate("a").set()
        result = await self.lifecycle.invoke("parse_resume", "a")
        self.assertEqual(result.data, {"text": "a"})
        self.assertFalse(self.lifecycle.is_processing)
        self.assertIsNone(self.lifecycle.error)

    async def test_new_call_supersedes_in_flight_call(self):
        first = asyncio.create_task(self.lifecycle.invoke("parse_resume", "a"))
        await _settle()
        second = asyncio.create_task(self.lifecycle.invoke("parse_resume", "b"))
        await _settle()

        first_result = await first
        self.assertTrue(first_result.cancelled)
        self.assertEqual(first_result.kind, ErrorKind.CANCELLED)
        self.assertEqual(self.gateway.cancelled, ["a"])
        # The stale call must not clear state owned by the newer one.
        self.assertTrue(self.lifecycle.is_processing)

        self.gateway.gate("b").set()
        second_result = await second
        self.assertEqual(second_result.data, {"text": "b"})
        self.assertFalse(self.lifecycle.is_processing)

    async def test_superseded_call_ignores_a_response_that_already_arrived(self):
        self.gateway.results["a"] = transport_failure("boom")
        first = asyncio.create_task(self.lifecycle.invoke("parse_resume", "a"))
        await _settle()
        self.gateway.gate("a").set()
        second = asyncio.create_task(self.lifecycle.invoke("parse_resume", "b"))
        await _settle()

        self.assertTrue((await first).cancelled)
        self.assertIsNone(self.lifecycle.error)

        self.gateway.gate("b").set()
        await second

    async def test_cancel_resets_processing_immediately(self):
        task = asyncio.create_task(self.lifecycle.invoke("parse_resume", "a"))
        await _settle()
        self.assertTrue(self.lifecycle.is_processing)

        self.lifecycle.cancel()
        self.assertFalse(self.lifecycle.is_processing)

        result = await task
        self.assertTrue(result.cancelled)
        self.assertEqual(result.to_dict()["cancelled"], True)
        self.assertIsNone(self.lifecycle.error)

        self.lifecycle.cancel()
        self.assertFalse(self.lifecycle.is_processing)

    async def test_failure_sets_error_until_next_dispatch(self):
        self.gateway.results["a"] = transport_failure("Rate limit exceeded.", "rate_limited")
        self.gateway.gate("a").set()
        result = await self.lifecycle.invoke("parse_resume", "a")
        self.assertFalse(result.success)
        self.assertEqual(self.lifecycle.error, "Rate limit exceeded.")

        task = asyncio.create_task(self.lifecycle.invoke("parse_resume", "b"))
        await _settle()
        self.assertIsNone(self.lifecycle.error)
        self.gateway.gate("b").set()
        await task

    async def test_clear_error(self):
        self.lifecycle.error = "old"
        self.lifecycle.clear_error()
        self.assertIsNone(self.lifecycle.error)

    async def test_caller_cancellation_propagates(self):
        task = asyncio.create_task(self.lifecycle.invoke("parse_resume", "a"))
        await _settle()
        task.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await task
        await _settle()
        self.assertEqual(self.gateway.cancelled, ["a"])
        self.assertFalse(self.lifecycle.is_processing)

    async def test_unknown_operation(self):
        with self.assertRaises(ValueError):
            await self.lifecycle.invoke("delete_everything")

    async def test_without_gateway(self):
        lifecycle = RequestLifecycle(None)
        result = await lifecycle.invoke("parse_resume", "a")
        self.assertFalse(lifecycle.is_configured)
        self.assertEqual(result.kind, ErrorKind.CONFIGURATION)
        self.assertEqual(result.error, "AI not configured")


if __name__ == "__main__":
    unittest.main()
