"""
Engine configuration.

Two layers, mirroring how global configuration is handled elsewhere:

- a thread-local base config (``set_engine_config`` / ``get_engine_config``)
- scoped overrides via ``engine_config_context(**overrides)`` (contextvars)

Sessions read their defaults from ``get_engine_config()`` at construction;
explicit constructor arguments always win.
"""

from contextlib import contextmanager
import contextvars
import dataclasses
from dataclasses import dataclass
import threading
from typing import Generator, Optional


@dataclass(frozen=True)
class EngineConfig:
    """Defaults for history sessions and exports."""
    max_history: int = 50
    form_debounce_ms: int = 500
    adjustment_debounce_ms: int = 150
    enable_keyboard_shortcuts: bool = True
    export_quality: float = 0.9
    default_image_format: str = "webp"

    def __post_init__(self):
        if self.max_history < 1:
            raise ValueError(f"max_history must be >= 1, got {self.max_history}")
        if self.form_debounce_ms < 0 or self.adjustment_debounce_ms < 0:
            raise ValueError("Debounce windows must be >= 0")
        if not 0.0 < self.export_quality <= 1.0:
            raise ValueError(f"export_quality must be in (0, 1], got {self.export_quality}")


DEFAULT_CONFIG = EngineConfig()

_base_config = threading.local()
_override_config: contextvars.ContextVar[Optional[EngineConfig]] = contextvars.ContextVar(
    'engine_config_override', default=None
)


def set_engine_config(config: EngineConfig) -> None:
    """Set the base config for the current thread."""
    _base_config.value = config


def reset_engine_config() -> None:
    _base_config.value = DEFAULT_CONFIG


def get_engine_config() -> EngineConfig:
    """Innermost ``engine_config_context`` override, else the thread's base config."""
    override = _override_config.get()
    if override is not None:
        return override
    return getattr(_base_config, 'value', DEFAULT_CONFIG)


@contextmanager
def engine_config_context(**overrides) -> Generator[EngineConfig, None, None]:
    """Temporarily override config fields.

    Example:
        with engine_config_context(max_history=10):
            session = PixelTransformSession(source)  # capped at 10 entries
    """
    config = dataclasses.replace(get_engine_config(), **overrides)
    token = _override_config.set(config)
    try:
        yield config
    finally:
        _override_config.reset(token)
