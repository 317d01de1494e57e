"""Pytest configuration and shared fixtures."""
import pytest
import numpy as np
from PIL import Image

import formstate.config as config_module
from formstate import ValueStore


class ManualScheduler:
    """Deterministic stand-in for timers: nothing fires until the test says so."""

    class Handle:
        def __init__(self, delay, fn):
            self.delay = delay
            self.fn = fn
            self.cancelled = False

        def cancel(self):
            self.cancelled = True

    def __init__(self):
        self.handles = []

    def __call__(self, delay, fn):
        handle = self.Handle(delay, fn)
        self.handles.append(handle)
        return handle

    @property
    def live(self):
        return [h for h in self.handles if not h.cancelled]

    def fire_all(self):
        """Run every live timer, as if the debounce windows elapsed."""
        fired = 0
        for handle in list(self.live):
            handle.cancelled = True
            handle.fn()
            fired += 1
        return fired


@pytest.fixture(autouse=True)
def reset_engine_config():
    """Restore the thread's engine config around each test."""
    original = config_module.get_engine_config()
    config_module.reset_engine_config()

    yield

    config_module.set_engine_config(original)


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def store():
    """Store holding a small order form with a repeated items array."""
    return ValueStore({
        "mode": "erp",
        "customer": {"name": "Ada", "vip": False},
        "items": [
            {"name": "bolt", "active": True, "qty": 10},
            {"name": "nut", "active": False, "qty": 5},
            {"name": "washer", "active": True, "qty": 1},
        ],
    })


class ContractStore:
    """Host store exposing only get_values, subscribe and set_value."""

    def __init__(self, initial=None):
        self._inner = ValueStore(initial)

    def get_values(self, path=None):
        return self._inner.get_values(path)

    def subscribe(self, paths, callback):
        return self._inner.subscribe(paths, callback)

    def set_value(self, path, value):
        self._inner.set_value(path, value)


@pytest.fixture
def contract_store():
    return ContractStore({"mode": "a", "name": "first", "items": [{"active": True}]})


@pytest.fixture
def quadrant_image():
    """4x2 RGB image: left half red, right half blue, top-left pixel white.

    Layout (row, col):
        (0,0)=White (0,1)=Red  (0,2)=Blue (0,3)=Blue
        (1,0)=Red   (1,1)=Red  (1,2)=Blue (1,3)=Blue
    """
    pixels = np.zeros((2, 4, 3), dtype=np.uint8)
    pixels[:, :2] = [255, 0, 0]
    pixels[:, 2:] = [0, 0, 255]
    pixels[0, 0] = [255, 255, 255]
    return Image.fromarray(pixels, mode="RGB")


PAGE_COLORS = [(255, 0, 0), (0, 255, 0), (0, 0, 255), (255, 255, 0)]


@pytest.fixture
def page_images():
    """Four 20x30 portrait pages, each a distinct solid color."""
    return [Image.new("RGB", (20, 30), color) for color in PAGE_COLORS]
