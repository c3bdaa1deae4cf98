"""
Texture Job Dispatcher.

Moves compositing work off the interactive thread. Each dispatch gets a
correlation id, is registered in the dispatcher's pending table, and is
posted to a single background context. Replies are matched by id alone, so
they may arrive in any order. If the context crashes, every pending request
is rejected with CrashError and the table is emptied; the context is not
restarted.

The pending table is only touched on the event loop thread: context
callbacks are forwarded with loop.call_soon_threadsafe.

Example:
    >>> async def preview(original, mask, tile):
    ...     async with TextureJobDispatcher() as dispatcher:
    ...         payload = ApplyTexturePayload(original, mask, tile)
    ...         return await dispatcher.dispatch(payload)
    >>> result = asyncio.run(preview(original, mask, tile))
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, fields
from typing import Any, Callable, Dict, List, Optional

from FV_Libs.ImageEditingLib.bitmap_models import Bitmap, Mask, TextureTile
from FV_Libs.JobDispatchLib.background_context import (
    BackgroundContext,
    ExecutorBackgroundContext,
)
from FV_Libs.JobDispatchLib.job_messages import (
    ApplyTexturePayload,
    ApplyTextureRequest,
    ErrorReply,
    SuccessReply,
    parse_reply,
)
from FV_Libs.constants import CRASH_MESSAGE, DEFAULT_BACKEND, SUPPORTED_BACKENDS
from FV_Libs.errors import CrashError, JobError, MalformedMessageError

logger = logging.getLogger(__name__)

MAX_ID_ATTEMPTS = 16


def generate_request_id() -> str:
    """Correlation id: epoch milliseconds plus a random suffix."""
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:12]}"


@dataclass
class DispatcherConfig:
    """Configuration for TextureJobDispatcher.

    Attributes:
        backend: Background context backend ('process' or 'thread')
    """
    backend: str = DEFAULT_BACKEND

    def __post_init__(self):
        """Validate backend."""
        if self.backend not in SUPPORTED_BACKENDS:
            raise ValueError(
                f"backend must be one of {sorted(SUPPORTED_BACKENDS)}, got {self.backend!r}"
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {"backend": self.backend}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DispatcherConfig":
        """Create from dictionary."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class CorrelatedRequest:
    """A dispatched request awaiting its reply.

    The job payload is not kept here: it was handed to the background
    context at dispatch time.
    """
    id: str
    future: asyncio.Future
    dispatched_at: float

    def resolve(self, value: Any) -> None:
        # the caller may have stopped waiting
        if not self.future.done():
            self.future.set_result(value)

    def reject(self, error: BaseException) -> None:
        if not self.future.done():
            self.future.set_exception(error)


class TextureJobDispatcher:
    """
    Correlated request/response layer around a background context.

    Args:
        context: Background context to run jobs on. Defaults to an
                 ExecutorBackgroundContext using config.backend.
        config: DispatcherConfig (default: process backend)
        id_factory: Callable producing correlation ids

    The context is started lazily by the first dispatch, and the
    dispatcher then stays bound to that event loop.
    """

    def __init__(
        self,
        context: Optional[BackgroundContext] = None,
        config: Optional[DispatcherConfig] = None,
        id_factory: Callable[[], str] = generate_request_id,
    ):
        self.config = config or DispatcherConfig()
        self._context = context
        self._id_factory = id_factory
        self._pending: Dict[str, CorrelatedRequest] = {}
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._started = False
        self._crashed = False
        self._closed = False

    @property
    def context(self) -> Optional[BackgroundContext]:
        return self._context

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def pending_ids(self) -> List[str]:
        return list(self._pending)

    @property
    def is_crashed(self) -> bool:
        return self._crashed

    @property
    def is_closed(self) -> bool:
        return self._closed

    def _ensure_started(self, loop: asyncio.AbstractEventLoop) -> None:
        if self._started:
            if loop is not self._loop:
                raise RuntimeError("TextureJobDispatcher is bound to a different event loop")
            return

        if self._context is None:
            self._context = ExecutorBackgroundContext(self.config.backend)
        self._loop = loop
        self._context.start(self._deliver_message, self._deliver_crash)
        self._started = True

    def _call_on_loop(self, callback: Callable[[Any], None], arg: Any) -> None:
        try:
            self._loop.call_soon_threadsafe(callback, arg)
        except RuntimeError:
            logger.warning("Event loop is closed; dropping background context event")

    def _deliver_message(self, message: Dict[str, Any]) -> None:
        self._call_on_loop(self._handle_message, message)

    def _deliver_crash(self, error: BaseException) -> None:
        self._call_on_loop(self._handle_crash, error)

    def _new_request_id(self) -> str:
        for _ in range(MAX_ID_ATTEMPTS):
            request_id = str(self._id_factory())
            if request_id and request_id not in self._pending:
                return request_id
        raise RuntimeError("Could not generate a unique request id")

    def submit(self, payload: ApplyTexturePayload) -> "asyncio.Future[Bitmap]":
        """
        Register and post a job; return a future for its result.

        Must be called from a running event loop.

        Raises:
            TypeError: If payload is not an ApplyTexturePayload
            CrashError: If the background context has already crashed
            RuntimeError: If the dispatcher is closed
        """
        if not isinstance(payload, ApplyTexturePayload):
            raise TypeError(f"Expected ApplyTexturePayload, got {type(payload)}")
        if self._closed:
            raise RuntimeError("TextureJobDispatcher is closed")
        if self._crashed:
            raise CrashError(CRASH_MESSAGE)

        loop = asyncio.get_running_loop()
        self._ensure_started(loop)

        request_id = self._new_request_id()
        future = loop.create_future()
        self._pending[request_id] = CorrelatedRequest(request_id, future, time.monotonic())
        logger.debug(f"Dispatching APPLY_TEXTURE request {request_id}")

        try:
            self._context.post(ApplyTextureRequest(request_id, payload).to_dict())
        except RuntimeError as e:
            self._handle_crash(e)

        return future

    async def dispatch(self, payload: ApplyTexturePayload) -> Bitmap:
        """
        Run a compositing job in the background context.

        Returns:
            The composited Bitmap

        Raises:
            JobError: If the background context reported a failure for this job
            CrashError: If the background context crashed before replying
        """
        return await self.submit(payload)

    async def apply_texture(
        self,
        original: Bitmap,
        mask: Mask,
        texture: Any,
        loader: Optional[Callable[[Any], TextureTile]] = None,
    ) -> Bitmap:
        """
        Fetch a texture (unless already a TextureTile) and dispatch a job.

        Args:
            original: Photograph to texture
            mask: Coverage aligned to the photograph
            texture: TextureTile, or a handle (URL or path) for the loader
            loader: Callable turning a handle into a TextureTile
                    (default: RemoteLib.texture_fetch.load_texture_tile)
        """
        if isinstance(texture, TextureTile):
            tile = texture
        else:
            if loader is None:
                from FV_Libs.RemoteLib.texture_fetch import load_texture_tile
                loader = load_texture_tile
            tile = await asyncio.get_running_loop().run_in_executor(None, loader, texture)

        return await self.dispatch(ApplyTexturePayload(original, mask, tile))

    def _handle_message(self, message: Dict[str, Any]) -> None:
        try:
            reply = parse_reply(message)
        except MalformedMessageError as e:
            logger.warning(f"Dropping malformed reply: {e}")
            return

        entry = self._pending.pop(reply.id, None)
        if entry is None:
            logger.warning(f"Dropping reply for unknown request id {reply.id}")
            return

        elapsed = time.monotonic() - entry.dispatched_at
        if isinstance(reply, SuccessReply):
            logger.debug(f"Request {reply.id} succeeded in {elapsed:.3f}s")
            entry.resolve(reply.payload)
        elif isinstance(reply, ErrorReply):
            logger.debug(f"Request {reply.id} failed in {elapsed:.3f}s: {reply.payload}")
            entry.reject(JobError(reply.payload, request_id=reply.id))
        else:
            raise TypeError(f"Unhandled reply type: {type(reply).__name__}")

    def _handle_crash(self, error: BaseException) -> None:
        self._crashed = True
        entries = list(self._pending.values())
        self._pending.clear()
        logger.error(
            f"Background context crashed ({error!r}); "
            f"rejecting {len(entries)} pending request(s)"
        )
        for entry in entries:
            crash = CrashError(CRASH_MESSAGE)
            crash.__cause__ = error
            entry.reject(crash)

    def close(self, wait: bool = False) -> None:
        """
        Stop the background context. Jobs already posted still reply
        while the event loop keeps running.
        """
        if self._closed:
            return
        self._closed = True
        if self._started and self._context is not None:
            self._context.shutdown(wait=wait)

    async def aclose(self) -> None:
        """Wait for outstanding requests to settle, then stop the context."""
        pending = [entry.future for entry in self._pending.values()]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self.close(wait=True)

    async def __aenter__(self) -> "TextureJobDispatcher":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
