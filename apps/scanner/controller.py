"""Scanner session lifecycle.

A controller owns at most one decoder at a time and moves through::

    IDLE -> STARTING -> SCANNING <-> PAUSED
               |
               +-> FAILED

and into STOPPED from any state on unmount.

A decoded code pauses the decoder and is validated exactly once; the
operator's acknowledgement resumes decoding.
"""
import asyncio
import logging
from enum import Enum

from django.conf import settings

from apps.core.models import MealType, ScanOutcome, ScanResult
from apps.core.scan import UNKNOWN_ERROR_MESSAGE, evaluate_and_record_scan

logger = logging.getLogger(__name__)

CAMERA_FAILURE_MESSAGE = 'Failed to start camera. Ensure permissions are granted.'


class ScannerState(str, Enum):
    IDLE = 'idle'
    STARTING = 'starting'
    SCANNING = 'scanning'
    PAUSED = 'paused'
    FAILED = 'failed'
    STOPPED = 'stopped'


class MealSelection:
    """Latest meal chosen by the operator; read at the moment of use."""

    def __init__(self, meal=MealType.BREAKFAST):
        self._meal = MealType(meal)

    def get(self):
        return self._meal

    def set(self, meal):
        self._meal = MealType(meal)


class ScannerDisplay:
    """Where the controller puts results. Subclasses render them."""

    def is_attached(self):
        return True

    def show_result(self, result):
        pass

    def show_error(self, message):
        pass

    def dismiss(self):
        pass


def default_camera_config():
    scanner = settings.MESS_CONFIG['scanner']
    return {'facing_mode': scanner['facing_mode']}


def default_scan_config():
    scanner = settings.MESS_CONFIG['scanner']
    return {'fps': scanner['fps'], 'qrbox': scanner['qrbox'], 'aspect_ratio': scanner['aspect_ratio']}


class ScannerSessionController:
    def __init__(self, decoder_factory, display, meal_selection, validate=None,
                 start_delay=None, camera_config=None, scan_config=None,
                 on_restart_required=None):
        self.decoder_factory = decoder_factory
        self.display = display
        self.meal_selection = meal_selection
        self.validate = validate or evaluate_and_record_scan
        if start_delay is None:
            start_delay = settings.MESS_CONFIG['scanner']['start_delay_seconds']
        self.start_delay = start_delay
        self.camera_config = camera_config or default_camera_config()
        self.scan_config = scan_config or default_scan_config()
        self.on_restart_required = on_restart_required

        self.state = ScannerState.IDLE
        self._decoder = None
        self._scanning = False
        self._alive = False
        self._start_task = None
        self._pending = None

    @property
    def pending_validation(self):
        return self._pending

    def mount(self):
        """Schedule the camera start; call from inside the event loop."""
        if self._start_task is not None:
            return self._start_task
        self._alive = True
        self._start_task = asyncio.create_task(self._delayed_start())
        return self._start_task

    async def _delayed_start(self):
        await asyncio.sleep(self.start_delay)
        await self.start()

    async def start(self):
        if not self._alive or not self.display.is_attached():
            return

        if self._decoder is not None:
            await self._release_decoder()

        decoder = self.decoder_factory()
        self._decoder = decoder
        self.state = ScannerState.STARTING
        try:
            await decoder.start(
                self.camera_config,
                self.scan_config,
                self._on_decoded,
                self._on_frame_error,
            )
        except Exception as exc:
            if self._alive:
                logger.error(f"Camera start error: {exc}")
                self.state = ScannerState.FAILED
                self.display.show_error(CAMERA_FAILURE_MESSAGE)
            return

        self._scanning = True
        if not self._alive:
            # Unmounted while the camera was opening
            await self._release_decoder()
            return
        self.state = ScannerState.SCANNING

    def _on_frame_error(self, message):
        pass

    def _on_decoded(self, decoded_text):
        if self.state != ScannerState.SCANNING or self._decoder is None:
            return
        self.state = ScannerState.PAUSED
        self._pending = asyncio.create_task(self._handle_decoded(self._decoder, decoded_text))

    async def _handle_decoded(self, decoder, decoded_text):
        try:
            await decoder.pause(True)
        except Exception as exc:
            logger.warning(f"Pause failed: {exc}")

        if self._alive:
            self.display.show_result(ScanResult.loading())

        meal = self.meal_selection.get()
        try:
            result = await self.validate(decoded_text, meal)
        except Exception:
            logger.exception("Scan validation failed")
            result = ScanResult.error(ScanOutcome.STORE_FAILURE, UNKNOWN_ERROR_MESSAGE)

        if self._alive:
            self.display.show_result(result)
        return result

    async def acknowledge(self):
        """Operator dismissed the result; resume decoding.

        Returns False when the decoder could not be resumed and the caller
        has been asked to rebuild the scanner.
        """
        if self.state != ScannerState.PAUSED:
            return True
        if self._pending is not None and not self._pending.done():
            return True

        self._pending = None
        self.display.dismiss()
        try:
            await self._decoder.resume()
        except Exception as exc:
            logger.error(f"Resume failed: {exc}")
            self.state = ScannerState.FAILED
            if self.on_restart_required is not None:
                self.on_restart_required()
            return False

        self.state = ScannerState.SCANNING
        return True

    async def unmount(self):
        """Tear down; never raises."""
        self._alive = False
        if self._start_task is not None and not self._start_task.done():
            self._start_task.cancel()
        await self._release_decoder()
        self.state = ScannerState.STOPPED

    async def _release_step(self, step, action):
        try:
            await action()
        except Exception as exc:
            logger.debug(f"Scanner {step} error ignored: {exc}")

    async def _release_decoder(self):
        decoder = self._decoder
        if decoder is None:
            return
        try:
            if self._scanning:
                await self._release_step('stop', decoder.stop)
        finally:
            await self._release_step('clear', decoder.clear)
            self._decoder = None
            self._scanning = False
