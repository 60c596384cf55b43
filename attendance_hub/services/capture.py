# attendance_hub/services/capture.py
from __future__ import annotations

import asyncio
import logging
import mimetypes
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import cv2
import numpy as np

from attendance_hub.core.config import get_settings

logger = logging.getLogger(__name__)


class CaptureError(RuntimeError):
    """
    Raised (or reported in a DecodeResult) when a capture adapter cannot
    produce decoded text.
    """


class NoCodeFoundError(CaptureError):
    pass


class UnsupportedMediaError(CaptureError):
    pass


class ImageLoadError(CaptureError):
    pass


class CameraUnavailableError(CaptureError):
    pass


class CameraBusyError(CameraUnavailableError):
    pass


@dataclass(frozen=True)
class DecodeResult:
    """
    One item of an adapter's decode stream: decoded text or an error.
    """

    text: Optional[str] = None
    error: Optional[CaptureError] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.text is not None


def decode_qr_from_frame(frame: np.ndarray, detector: Any = None) -> Optional[str]:
    """
    Run one QR detection pass on a BGR/gray/BGRA frame.

    Returns the decoded text, or None when no code could be read.
    """
    if frame is None or frame.size == 0:
        return None

    # Normalize channels so the detector always sees 3-channel BGR.
    if frame.ndim == 2:
        frame = cv2.cvtColor(frame, cv2.COLOR_GRAY2BGR)
    elif frame.ndim == 3 and frame.shape[2] == 4:
        frame = cv2.cvtColor(frame, cv2.COLOR_BGRA2BGR)
    frame = np.ascontiguousarray(frame, dtype=np.uint8)

    detector = detector or cv2.QRCodeDetector()
    data, _points, _straight = detector.detectAndDecode(frame)
    return data or None


class CaptureAdapter(ABC):
    """
    Producer of raw decoded QR text.

    Consumers iterate `decode()`; each stream ends after the adapter pauses
    (live camera) or finishes (static image). `resume()` re-arms a paused
    adapter and `exhausted` tells whether another stream can be produced.
    """

    @abstractmethod
    def decode(self) -> AsyncIterator[DecodeResult]:
        raise NotImplementedError

    @property
    def exhausted(self) -> bool:
        return False

    def resume(self) -> None:
        return None

    async def close(self) -> None:
        return None


async def dispatch(
    adapter: CaptureAdapter,
    on_decoded: Callable[[str], Awaitable[Any]],
    on_error: Callable[[CaptureError], Awaitable[Any]],
) -> None:
    """
    Drive one decode stream of `adapter` into the callback contract.
    """
    async for result in adapter.decode():
        if result.ok:
            await on_decoded(result.text)
        else:
            await on_error(result.error or NoCodeFoundError("No QR code found"))


class ImageQRDecoder(CaptureAdapter):
    """
    Decodes a QR code from a single uploaded or dropped image.

    Never touches the camera; produces exactly one result.
    """

    def __init__(
        self,
        data: bytes,
        content_type: Optional[str] = None,
        filename: Optional[str] = None,
    ) -> None:
        self._data = data
        self._content_type = content_type
        self._filename = filename
        self._done = False

    @classmethod
    def from_path(cls, path: str | Path) -> "ImageQRDecoder":
        path = Path(path)
        return cls(path.read_bytes(), filename=path.name)

    @property
    def exhausted(self) -> bool:
        return self._done

    @property
    def media_type(self) -> Optional[str]:
        if self._content_type:
            return self._content_type
        if self._filename:
            return mimetypes.guess_type(self._filename)[0]
        return None

    def decode_once(self) -> str:
        """
        Run the single decode attempt synchronously.

        Raises
        ------
        UnsupportedMediaError
            The file is not an image.
        ImageLoadError
            The bytes could not be rendered to a raster.
        NoCodeFoundError
            The image holds no readable QR code.
        """
        media_type = self.media_type
        if not media_type or not media_type.startswith("image/"):
            raise UnsupportedMediaError("Please select an image file")

        buffer = np.frombuffer(self._data, dtype=np.uint8)
        image = cv2.imdecode(buffer, cv2.IMREAD_COLOR) if buffer.size else None
        if image is None:
            raise ImageLoadError("Failed to load image")

        text = decode_qr_from_frame(image)
        if text is None:
            raise NoCodeFoundError(
                "No QR code found in the image. Please try a clearer image."
            )
        return text

    async def decode(self) -> AsyncIterator[DecodeResult]:
        if self._done:
            return
        self._done = True
        try:
            text = self.decode_once()
        except CaptureError as exc:
            logger.info("Image decode failed: %s", exc)
            yield DecodeResult(error=exc)
            return
        yield DecodeResult(text=text)


# Device indices currently held by a CameraQRDecoder in this process.
_held_devices: set[int] = set()


class CameraQRDecoder(CaptureAdapter):
    """
    Samples a camera stream and decodes QR codes frame by frame.

    On the first successful decode exactly one result is emitted, the
    decoder pauses and the device is released. `resume()` re-arms it; the
    next `decode()` call re-acquires the device.
    """

    def __init__(
        self,
        device_index: Optional[int] = None,
        frame_interval: Optional[float] = None,
        capture_factory: Callable[[int], Any] = cv2.VideoCapture,
        detector: Any = None,
    ) -> None:
        settings = get_settings()
        self.device_index = (
            settings.CAMERA_DEVICE_INDEX if device_index is None else device_index
        )
        self.frame_interval = (
            settings.CAMERA_FRAME_INTERVAL_SECONDS
            if frame_interval is None
            else frame_interval
        )
        self._capture_factory = capture_factory
        self._detector = detector or cv2.QRCodeDetector()
        self._capture: Any = None
        self._paused = False
        self._closed = False

    @property
    def exhausted(self) -> bool:
        return self._closed

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def is_open(self) -> bool:
        return self._capture is not None

    def _acquire(self) -> None:
        if self._capture is not None:
            return
        if self.device_index in _held_devices:
            raise CameraBusyError(f"Camera {self.device_index} is already in use")

        capture = self._capture_factory(self.device_index)
        if not capture.isOpened():
            capture.release()
            raise CameraUnavailableError(f"Camera {self.device_index} could not be opened")

        _held_devices.add(self.device_index)
        self._capture = capture
        logger.info("Camera %s acquired", self.device_index)

    def _release(self) -> None:
        if self._capture is None:
            return
        try:
            self._capture.release()
        finally:
            self._capture = None
            _held_devices.discard(self.device_index)
            logger.info("Camera %s released", self.device_index)

    def pause(self) -> None:
        self._paused = True
        self._release()

    def resume(self) -> None:
        if not self._closed:
            self._paused = False

    async def close(self) -> None:
        self._closed = True
        self.pause()

    async def decode(self) -> AsyncIterator[DecodeResult]:
        if self._closed or self._paused:
            return
        try:
            self._acquire()
        except CameraUnavailableError as exc:
            # A device we cannot hold ends this decoder for good.
            self._closed = True
            yield DecodeResult(error=exc)
            return

        try:
            while not self._paused and not self._closed:
                ok, frame = self._capture.read()
                if not ok:
                    self._closed = True
                    self._release()
                    yield DecodeResult(
                        error=CameraUnavailableError("Failed to read a frame from the camera")
                    )
                    return

                text = decode_qr_from_frame(frame, self._detector)
                if text is not None:
                    # Pause before handing the result out so a held-still code
                    # is not decoded again while the consumer is busy.
                    self.pause()
                    yield DecodeResult(text=text)
                    return

                await asyncio.sleep(self.frame_interval)
        finally:
            self._release()
