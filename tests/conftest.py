"""
Pytest configuration and shared fixtures for Floor Visualizer tests.

This module provides shared test fixtures and configuration
used across multiple test modules.
"""

import numpy as np
import pytest

from FV_Libs.ImageEditingLib.bitmap_models import Bitmap, Mask, TextureTile
from FV_Libs.JobDispatchLib.background_context import BackgroundContext
from FV_Libs.JobDispatchLib.job_messages import ApplyTexturePayload


class FakeBackgroundContext(BackgroundContext):
    """
    In-memory background context.

    Records posted messages and lets a test decide when and in which
    order replies (or a crash) are delivered.
    """

    def __init__(self):
        self.posted = []
        self.on_message = None
        self.on_crash = None
        self.started = False
        self.stopped = False

    @property
    def is_running(self):
        return self.started and not self.stopped

    def start(self, on_message, on_crash):
        self.on_message = on_message
        self.on_crash = on_crash
        self.started = True

    def post(self, message):
        self.posted.append(message)

    def shutdown(self, wait=True):
        self.stopped = True

    def reply_success(self, message, bitmap):
        self.on_message({"type": "SUCCESS", "id": message["id"], "payload": bitmap})

    def reply_error(self, message, text):
        self.on_message({"type": "ERROR", "id": message["id"], "payload": text})

    def crash(self, error=None):
        self.on_crash(error or RuntimeError("worker terminated"))


def random_bitmap(width, height, seed=0, opaque=True):
    """Deterministic pseudo-random RGBA bitmap."""
    rng = np.random.default_rng(seed)
    pixels = rng.integers(0, 256, size=(height, width, 4), dtype=np.uint8)
    if opaque:
        pixels[:, :, 3] = 255
    return Bitmap(pixels)


def make_payload(width=16, height=12, seed=0):
    original = random_bitmap(width, height, seed=seed)
    tile = TextureTile(random_bitmap(3, 2, seed=seed + 100))
    return ApplyTexturePayload(original, Mask.full(width, height), tile)


@pytest.fixture
def fake_context():
    """Provide a fresh FakeBackgroundContext."""
    return FakeBackgroundContext()


@pytest.fixture
def room_bitmap():
    """A 200x200 opaque pseudo-random photograph stand-in."""
    return random_bitmap(200, 200, seed=7)


@pytest.fixture
def texture_tile():
    """A 5x4 opaque pseudo-random texture tile."""
    return TextureTile(random_bitmap(5, 4, seed=11))
