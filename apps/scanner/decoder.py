"""Continuous camera QR decoding.

``CameraQrDecoder`` reads frames from an OpenCV capture device, decodes
them with pyzbar and reports each decoded text through ``on_success``.
Frames without a readable code go to ``on_frame_error`` and are otherwise
ignored.
"""
import asyncio
import logging

import cv2

logger = logging.getLogger(__name__)


class CameraError(Exception):
    """Raised when the capture device cannot be opened."""


def zbar_decode(image):
    # pyzbar loads the zbar shared library on import
    from pyzbar.pyzbar import decode
    return decode(image)


def crop_to_qrbox(frame, qrbox):
    """Centre square of ``qrbox`` pixels, or the whole frame if smaller."""
    if not qrbox:
        return frame
    height, width = frame.shape[:2]
    if height <= qrbox or width <= qrbox:
        return frame
    top = (height - qrbox) // 2
    left = (width - qrbox) // 2
    return frame[top:top + qrbox, left:left + qrbox]


def decode_frame(frame, qrbox=None):
    """Return the first QR text found in a BGR frame, or None.

    Codes whose bytes are not UTF-8 text are skipped.
    """
    region = crop_to_qrbox(frame, qrbox)
    gray = cv2.cvtColor(region, cv2.COLOR_BGR2GRAY)
    for obj in zbar_decode(gray):
        try:
            return obj.data.decode('utf-8')
        except UnicodeDecodeError:
            logger.debug(f"Skipping QR code with non UTF-8 data: {obj.data[:16]!r}")
    return None


def _release_opened(opening):
    if opening.cancelled() or opening.exception() is not None:
        return
    opening.result().release()


class CameraQrDecoder:
    """Decoder over a local camera; one frame at a time at a target fps."""

    def __init__(self, device_index=0):
        self.device_index = device_index
        self._capture = None
        self._task = None
        self._paused = False
        self._resumed = asyncio.Event()

    @property
    def is_scanning(self):
        return self._task is not None and not self._task.done()

    async def start(self, camera_config, scan_config, on_success, on_frame_error):
        if self.is_scanning:
            raise RuntimeError("Cannot start, scanner is already running")

        # Local cameras have no facing mode; the device index picks one
        device = self.device_index
        opening = asyncio.ensure_future(asyncio.to_thread(cv2.VideoCapture, device))
        try:
            capture = await asyncio.shield(opening)
        except asyncio.CancelledError:
            # The open keeps running in its thread; release whatever it returns
            opening.add_done_callback(_release_opened)
            raise

        try:
            if not capture.isOpened():
                raise CameraError(f"Could not open camera {device}")
            fps = scan_config.get('fps') or 10
            capture.set(cv2.CAP_PROP_FPS, fps)
        except BaseException:
            capture.release()
            raise

        self._capture = capture
        self._paused = False
        self._resumed.set()
        self._task = asyncio.create_task(
            self._run(1.0 / fps, scan_config.get('qrbox'), on_success, on_frame_error)
        )

    async def _run(self, interval, qrbox, on_success, on_frame_error):
        while True:
            await self._resumed.wait()
            try:
                await self._scan_frame(qrbox, on_success, on_frame_error)
            except Exception as exc:
                logger.warning(f"Frame skipped after error: {exc}")
                on_frame_error(str(exc))
            await asyncio.sleep(interval)

    async def _scan_frame(self, qrbox, on_success, on_frame_error):
        ok, frame = await asyncio.to_thread(self._capture.read)
        if not ok:
            on_frame_error('Frame capture failed')
        elif not self._paused:
            text = await asyncio.to_thread(decode_frame, frame, qrbox)
            if text is None:
                on_frame_error('No QR code found')
            else:
                on_success(text)

    async def pause(self, resume_later=True):
        if not self.is_scanning:
            raise RuntimeError("Cannot pause, scanner is not running")
        if not resume_later:
            await self.stop()
            return
        self._paused = True
        self._resumed.clear()

    async def resume(self):
        if not self.is_scanning or not self._paused:
            raise RuntimeError("Cannot resume, scanner is not paused")
        self._paused = False
        self._resumed.set()

    async def stop(self):
        if self._task is None:
            raise RuntimeError("Cannot stop, scanner is not running")
        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        finally:
            await asyncio.to_thread(self._capture.release)

    async def clear(self):
        if self.is_scanning:
            raise RuntimeError("Cannot clear while scan is ongoing")
        self._capture = None
        self._paused = False
