"""
Tests for ExecutorBackgroundContext.

Uses the thread backend for fast, deterministic checks and the process
backend for pickling, unpicklable jobs and worker death.
"""

import concurrent.futures
import os
import threading
import unittest

from FV_Libs.JobDispatchLib.background_context import ExecutorBackgroundContext
from FV_Libs.JobDispatchLib.job_messages import ApplyTextureRequest

from conftest import make_payload

WAIT_SECONDS = 30


def exiting_handler(message):
    raise SystemExit(3)


def failing_handler(message):
    raise ValueError("handler bug")


def dying_handler(message):
    os._exit(3)


class Collector:
    """Records callbacks and signals when the expected count arrives."""

    def __init__(self, expected=1):
        self.expected = expected
        self.messages = []
        self.crashes = []
        self.done = threading.Event()
        self._lock = threading.Lock()

    def _record(self, bucket, item):
        with self._lock:
            bucket.append(item)
            if len(self.messages) + len(self.crashes) >= self.expected:
                self.done.set()

    def on_message(self, message):
        self._record(self.messages, message)

    def on_crash(self, error):
        self._record(self.crashes, error)


class TestExecutorBackgroundContext(unittest.TestCase):
    """Test the concurrent.futures-backed context."""

    def _start(self, backend, collector, **kwargs):
        context = ExecutorBackgroundContext(backend, **kwargs)
        context.start(collector.on_message, collector.on_crash)
        self.addCleanup(context.shutdown)
        return context

    def test_invalid_backend(self):
        """Unknown backends are rejected."""
        with self.assertRaises(ValueError):
            ExecutorBackgroundContext("gpu")

    def test_post_before_start(self):
        """Posting requires a started context."""
        context = ExecutorBackgroundContext("thread")

        with self.assertRaises(RuntimeError):
            context.post({"type": "APPLY_TEXTURE", "id": "1", "payload": {}})

    def test_double_start(self):
        """A context starts once."""
        collector = Collector()
        context = self._start("thread", collector)

        with self.assertRaises(RuntimeError):
            context.start(collector.on_message, collector.on_crash)

    def test_thread_backend_replies(self):
        """Each posted request produces exactly one reply."""
        collector = Collector(expected=2)
        context = self._start("thread", collector)

        context.post(ApplyTextureRequest("a", make_payload(seed=1)).to_dict())
        context.post({"type": "APPLY_TEXTURE", "id": "b", "payload": {}})

        self.assertTrue(collector.done.wait(WAIT_SECONDS))
        by_id = {message["id"]: message for message in collector.messages}
        self.assertEqual(by_id["a"]["type"], "SUCCESS")
        self.assertEqual(by_id["b"]["type"], "ERROR")
        self.assertEqual(collector.crashes, [])
        self.assertTrue(context.is_running)

    def test_handler_escape_reports_crash_once(self):
        """An exception escaping the handler is a crash, reported once."""
        collector = Collector(expected=1)
        context = self._start("thread", collector, handler=exiting_handler)

        context.post({"id": "1"})
        context.post({"id": "2"})

        self.assertTrue(collector.done.wait(WAIT_SECONDS))
        context.shutdown(wait=True)
        self.assertEqual(len(collector.crashes), 1)
        self.assertIsInstance(collector.crashes[0], SystemExit)
        self.assertEqual(collector.messages, [])
        self.assertFalse(context.is_running)

    def test_unpicklable_job_is_answered_not_crashed(self):
        """A job that cannot reach the worker gets an ERROR reply; others still run."""
        collector = Collector(expected=3)
        context = self._start("process", collector)

        context.post(ApplyTextureRequest("before", make_payload(seed=1)).to_dict())
        context.post({"type": "APPLY_TEXTURE", "id": "bad", "payload": {"originalImage": lambda: 0}})
        context.post(ApplyTextureRequest("after", make_payload(seed=2)).to_dict())

        self.assertTrue(collector.done.wait(WAIT_SECONDS))
        by_id = {message["id"]: message for message in collector.messages}
        self.assertEqual(by_id["before"]["type"], "SUCCESS")
        self.assertEqual(by_id["bad"]["type"], "ERROR")
        self.assertTrue(by_id["bad"]["payload"])
        self.assertEqual(by_id["after"]["type"], "SUCCESS")
        self.assertEqual(collector.crashes, [])
        self.assertTrue(context.is_running)

    def test_handler_exception_is_an_error_reply(self):
        """Ordinary exceptions from a handler answer only their own job."""
        collector = Collector(expected=1)
        context = self._start("thread", collector, handler=failing_handler)

        context.post({"id": "7"})

        self.assertTrue(collector.done.wait(WAIT_SECONDS))
        self.assertEqual(
            collector.messages, [{"type": "ERROR", "id": "7", "payload": "handler bug"}]
        )
        self.assertEqual(collector.crashes, [])

    def test_worker_process_death_is_a_crash(self):
        """A worker process exiting breaks the pool and is reported as a crash."""
        collector = Collector(expected=1)
        context = self._start("process", collector, handler=dying_handler)

        context.post({"id": "1"})

        self.assertTrue(collector.done.wait(WAIT_SECONDS))
        context.shutdown(wait=True)
        self.assertEqual(len(collector.crashes), 1)
        self.assertIsInstance(collector.crashes[0], concurrent.futures.BrokenExecutor)
        self.assertEqual(collector.messages, [])
        self.assertFalse(context.is_running)

    def test_shutdown_stops_posting(self):
        """A stopped context refuses new work."""
        collector = Collector()
        context = self._start("thread", collector)
        context.shutdown(wait=True)

        with self.assertRaises(RuntimeError):
            context.post({"id": "1"})

    def test_process_backend_replies(self):
        """Jobs and results cross the process boundary intact."""
        collector = Collector(expected=1)
        context = self._start("process", collector)

        context.post(ApplyTextureRequest("p", make_payload(seed=2)).to_dict())

        self.assertTrue(collector.done.wait(WAIT_SECONDS))
        self.assertEqual(collector.messages[0]["type"], "SUCCESS")
        self.assertEqual(collector.messages[0]["payload"].size, (16, 12))


if __name__ == "__main__":
    unittest.main()
