"""
Pixel-transform editing session.

State is a frozen ``ImageAdjustments`` value. Every committed adjustment
composes with the current state and pushes a new snapshot. Slider drags go
through ``preview()``: the preview state updates immediately and the history
push is debounced, so one drag becomes one history entry.

Export applies, in order: flip (in image space), clockwise rotation, then
brightness/contrast/saturation. Rotation by 90 or 270 degrees produces a raster
with width and height swapped; the pixels are physically rotated, not tagged
with an orientation.
"""

import dataclasses
from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Callable, Optional

from edithistory import raster
from edithistory.artifacts import ExportArtifact, ExportError
from edithistory.debounce import Debouncer, Scheduler
from edithistory.session import HistoryControls
from formstate.config import get_engine_config

logger = logging.getLogger(__name__)

ADJUSTMENT_RANGE = (-100, 100)
_ADJUSTABLE = ("brightness", "contrast", "saturation")


@dataclass(frozen=True)
class ImageAdjustments:
    """Non-destructive edit state of one image."""
    brightness: int = 0
    contrast: int = 0
    saturation: int = 0
    rotation: int = 0
    flipped_x: bool = False
    flipped_y: bool = False

    def __post_init__(self):
        low, high = ADJUSTMENT_RANGE
        for name in _ADJUSTABLE:
            value = getattr(self, name)
            if not low <= value <= high:
                raise ValueError(f"{name} must be in [{low}, {high}], got {value}")
        if self.rotation % 90 != 0 or not 0 <= self.rotation < 360:
            raise ValueError(f"rotation must be one of 0, 90, 180, 270, got {self.rotation}")

    @property
    def is_neutral(self) -> bool:
        return self == NEUTRAL

    @property
    def swaps_dimensions(self) -> bool:
        return self.rotation in (90, 270)

    def rotated(self, degrees: int) -> 'ImageAdjustments':
        if degrees % 90 != 0:
            raise ValueError(f"Rotation must be a multiple of 90 degrees, got {degrees}")
        return dataclasses.replace(self, rotation=(self.rotation + degrees) % 360)

    def output_size(self, width: int, height: int):
        return (height, width) if self.swaps_dimensions else (width, height)


NEUTRAL = ImageAdjustments()


def render_adjusted(image, adjustments: ImageAdjustments):
    """Apply ``adjustments`` to a Pillow image and return the result."""
    image = raster.flip(image, horizontal=adjustments.flipped_x, vertical=adjustments.flipped_y)
    image = raster.rotate_clockwise(image, adjustments.rotation)
    return raster.adjust_colors(
        image,
        brightness=adjustments.brightness,
        contrast=adjustments.contrast,
        saturation=adjustments.saturation,
    )


class PixelTransformSession(HistoryControls[ImageAdjustments]):
    """Brightness/contrast/saturation/rotation/flip editing with undo/redo.

    Example:
        session = PixelTransformSession("photo.jpg")
        session.rotate(90)
        session.adjust_brightness(20)
        session.undo()
        artifact = session.export_image("png")
    """

    def __init__(
        self,
        source: Optional[raster.ImageSource] = None,
        filename: Optional[str] = None,
        max_history: Optional[int] = None,
        debounce_ms: Optional[int] = None,
        scheduler: Optional[Scheduler] = None,
    ):
        config = get_engine_config()
        super().__init__(NEUTRAL, max_history=max_history)
        self._source = source
        self._filename = filename or self._default_filename(source)
        self._state = NEUTRAL
        self._preview: Optional[ImageAdjustments] = None
        self._debouncer = Debouncer(
            config.adjustment_debounce_ms if debounce_ms is None else debounce_ms,
            scheduler=scheduler,
            name="image-adjust",
        )

    @staticmethod
    def _default_filename(source) -> str:
        if isinstance(source, (str, Path)):
            return Path(source).name
        return "image"

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> ImageAdjustments:
        """Committed state (what history holds)."""
        return self._state

    @property
    def display_state(self) -> ImageAdjustments:
        """State to draw: the live preview while a drag is pending, else the committed state."""
        return self._preview if self._preview is not None else self._state

    @property
    def source(self):
        return self._source

    def set_source(self, source: Optional[raster.ImageSource], filename: Optional[str] = None) -> None:
        """Switch to a new image: neutral state and a single seed history entry."""
        with self._lock:
            self._debouncer.cancel()
            self._preview = None
            self._source = source
            self._filename = filename or self._default_filename(source)
            self._state = NEUTRAL
            self._history.init(NEUTRAL)
        logger.debug(f"Image session reset for {self._filename!r}")

    def _apply_state(self, state: ImageAdjustments) -> None:
        self._preview = None
        self._state = state

    def _seed_state(self) -> ImageAdjustments:
        # A pending slider drag lands in the state being reseeded
        self._debouncer.flush()
        return self._state

    def _before_navigate(self) -> None:
        self._debouncer.flush()

    def _commit(self, state: ImageAdjustments, label: str) -> None:
        with self._lock:
            self._debouncer.cancel()
            self._preview = None
            if state == self._state:
                return
            self._state = state
            self._record(state, label=label)

    def _update(self, change: Callable[[ImageAdjustments], ImageAdjustments], label: str) -> None:
        with self._lock:
            self._commit(change(self.display_state), label)

    # ------------------------------------------------------------------
    # Adjustments
    # ------------------------------------------------------------------

    def adjust_brightness(self, value: int) -> None:
        self._update(lambda s: dataclasses.replace(s, brightness=value), "brightness")

    def adjust_contrast(self, value: int) -> None:
        self._update(lambda s: dataclasses.replace(s, contrast=value), "contrast")

    def adjust_saturation(self, value: int) -> None:
        self._update(lambda s: dataclasses.replace(s, saturation=value), "saturation")

    def rotate(self, degrees: int = 90) -> None:
        """Rotate clockwise by a multiple of 90 degrees (modulo 360)."""
        self._update(lambda s: s.rotated(degrees), f"rotate {degrees}")

    def flip_x(self) -> None:
        self._update(lambda s: dataclasses.replace(s, flipped_x=not s.flipped_x), "flip x")

    def flip_y(self) -> None:
        self._update(lambda s: dataclasses.replace(s, flipped_y=not s.flipped_y), "flip y")

    def flip(self, direction: str) -> None:
        if direction == "x":
            self.flip_x()
        elif direction == "y":
            self.flip_y()
        else:
            raise ValueError(f"Flip direction must be 'x' or 'y', got {direction!r}")

    def reset_all(self) -> None:
        """Return to neutral as a new, undoable history entry."""
        self._commit(NEUTRAL, "reset")

    def preview(self, **changes) -> ImageAdjustments:
        """Update the live preview now and commit it after the debounce window.

        Only ``brightness``, ``contrast`` and ``saturation`` may be previewed.
        """
        unknown = set(changes) - set(_ADJUSTABLE)
        if unknown:
            raise ValueError(f"Cannot preview {sorted(unknown)}; use the dedicated methods")
        with self._lock:
            self._preview = dataclasses.replace(self.display_state, **changes)
            self._debouncer.call(self.commit_preview)
            return self._preview

    def commit_preview(self) -> None:
        """Push the pending preview state, if any."""
        with self._lock:
            if self._preview is not None:
                self._commit(self._preview, ", ".join(_ADJUSTABLE))

    def close(self) -> None:
        with self._lock:
            self._debouncer.cancel()
            self._preview = None
            super().close()

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def render(self):
        """Decode the source and apply the committed state (Pillow image)."""
        if self._source is None:
            raise ExportError("No image to export")
        try:
            image = raster.open_image(self._source)
            return render_adjusted(image, self._state)
        except (OSError, ValueError) as e:
            raise ExportError(f"Failed to render {self._filename!r}: {e}") from e

    def export_image(self, format: Optional[str] = None, quality: Optional[float] = None) -> ExportArtifact:
        """Encode the current state of the image.

        Args:
            format: Extension, MIME type or format name; defaults to the
                source's format, else the configured default (webp).
            quality: Lossy quality in (0, 1]; defaults to configuration.

        Raises:
            ExportError: If there is no source or decoding/encoding fails.
        """
        config = get_engine_config()
        fmt = format or raster.source_format(self._source) or config.default_image_format
        try:
            pil_format, mime, ext = raster.normalize_format(fmt)
        except ValueError as e:
            raise ExportError(str(e)) from e
        image = self.render()
        try:
            data = raster.encode(image, pil_format, quality=quality or config.export_quality)
        except (OSError, ValueError, KeyError) as e:
            raise ExportError(f"Failed to encode {self._filename!r} as {pil_format}: {e}") from e
        filename = f"{Path(self._filename).stem}.{ext}"
        logger.debug(f"Exported {filename} ({len(data)} bytes, rotation={self._state.rotation})")
        return ExportArtifact(data=data, mime_type=mime, filename=filename)
