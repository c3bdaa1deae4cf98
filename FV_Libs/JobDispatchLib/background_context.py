"""
Background execution contexts for compositing jobs.

A context accepts wire messages through post(), runs them somewhere other
than the caller's thread, and reports back through two callbacks:

    on_message(reply_dict)  - a reply produced by the handler
    on_crash(exception)     - the context itself failed (reported once)

A job that fails before reaching the handler, for example because its
message cannot be pickled, is answered with an ERROR reply. Only a broken
executor or a BaseException escaping the handler counts as a crash.

Callbacks may be invoked from any thread; the dispatcher is responsible for
moving them onto its own event loop.

Classes:
    BackgroundContext: Interface implemented by every context
    ExecutorBackgroundContext: Single-worker concurrent.futures context
"""

import concurrent.futures
import functools
import logging
import threading
from typing import Any, Callable, Dict, Optional

from FV_Libs.JobDispatchLib.job_messages import ErrorReply, peek_message_id
from FV_Libs.JobDispatchLib.job_worker import handle_message
from FV_Libs.constants import (
    BACKEND_PROCESS,
    BACKEND_THREAD,
    DEFAULT_BACKEND,
    SUPPORTED_BACKENDS,
    UNKNOWN_JOB_FAILURE,
)

logger = logging.getLogger(__name__)

MessageCallback = Callable[[Dict[str, Any]], None]
CrashCallback = Callable[[BaseException], None]
MessageHandler = Callable[[Dict[str, Any]], Dict[str, Any]]


class BackgroundContext:
    """Interface for an isolated unit of execution running compositing jobs."""

    def start(self, on_message: MessageCallback, on_crash: CrashCallback) -> None:
        raise NotImplementedError

    def post(self, message: Dict[str, Any]) -> None:
        raise NotImplementedError

    def shutdown(self, wait: bool = True) -> None:
        raise NotImplementedError

    @property
    def is_running(self) -> bool:
        raise NotImplementedError


class ExecutorBackgroundContext(BackgroundContext):
    """
    Runs the message handler on a single-worker executor.

    The "process" backend isolates pixel work in its own interpreter
    (ProcessPoolExecutor); the "thread" backend keeps it in-process
    (ThreadPoolExecutor). With one worker, jobs run one at a time in
    submission order, while any number may be queued.

    Args:
        backend: "process" or "thread"
        handler: Picklable callable mapping a request dict to a reply dict

    Raises:
        ValueError: If backend is unknown
    """

    def __init__(self, backend: str = DEFAULT_BACKEND, handler: MessageHandler = handle_message):
        if backend not in SUPPORTED_BACKENDS:
            raise ValueError(
                f"Invalid backend: {backend}. Use one of: {', '.join(sorted(SUPPORTED_BACKENDS))}"
            )
        self.backend = backend
        self._handler = handler
        self._executor: Optional[concurrent.futures.Executor] = None
        self._on_message: Optional[MessageCallback] = None
        self._on_crash: Optional[CrashCallback] = None
        self._crash_lock = threading.Lock()
        self._crash_reported = False

    @property
    def is_running(self) -> bool:
        return self._executor is not None and not self._crash_reported

    def start(self, on_message: MessageCallback, on_crash: CrashCallback) -> None:
        """
        Create the worker and register reply/crash callbacks.

        Raises:
            RuntimeError: If the context was already started
        """
        if self._executor is not None:
            raise RuntimeError("Background context already started")

        self._on_message = on_message
        self._on_crash = on_crash

        if self.backend == BACKEND_PROCESS:
            self._executor = concurrent.futures.ProcessPoolExecutor(max_workers=1)
        elif self.backend == BACKEND_THREAD:
            self._executor = concurrent.futures.ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="fv-compositor"
            )
        logger.info(f"Started {self.backend} background context")

    def post(self, message: Dict[str, Any]) -> None:
        """
        Queue a message for the handler.

        Raises:
            RuntimeError: If the context is not running (a BrokenProcessPool
                          from a dead worker is also a RuntimeError)
        """
        if self._executor is None:
            raise RuntimeError("Background context is not running")
        future = self._executor.submit(self._handler, message)
        future.add_done_callback(functools.partial(self._on_done, peek_message_id(message)))

    def _on_done(self, request_id: str, future: concurrent.futures.Future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is None:
            self._on_message(future.result())
        elif isinstance(error, concurrent.futures.BrokenExecutor) or not isinstance(error, Exception):
            self._report_crash(error)
        else:
            # the job never reached the handler (e.g. it could not be pickled)
            text = str(error) or UNKNOWN_JOB_FAILURE
            logger.warning(f"Background job {request_id or '<no id>'} could not run: {text}")
            self._on_message(ErrorReply(id=request_id, payload=text).to_dict())

    def _report_crash(self, error: BaseException) -> None:
        with self._crash_lock:
            if self._crash_reported:
                return
            self._crash_reported = True
        logger.error(f"{self.backend.capitalize()} background context crashed: {error!r}")
        self._on_crash(error)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting work. Jobs already queued still run and reply."""
        if self._executor is None:
            return
        executor = self._executor
        self._executor = None
        executor.shutdown(wait=wait)
        logger.info(f"Stopped {self.backend} background context")
