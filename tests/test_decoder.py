import asyncio
import threading
from types import SimpleNamespace

import pytest

np = pytest.importorskip('numpy')
pytest.importorskip('cv2')

from apps.scanner import decoder as decoder_module  # noqa: E402
from apps.scanner.decoder import CameraError, CameraQrDecoder, crop_to_qrbox, decode_frame  # noqa: E402


class FakeCapture:
    def __init__(self, opened=True):
        self.opened = opened
        self.released = False
        self.props = {}

    def isOpened(self):
        return self.opened

    def set(self, prop, value):
        self.props[prop] = value

    def read(self):
        return True, np.zeros((480, 640, 3), dtype=np.uint8)

    def release(self):
        self.released = True


async def wait_for(condition, timeout=2.0):
    for _ in range(int(timeout / 0.01)):
        if condition():
            return True
        await asyncio.sleep(0.01)
    return condition()


def test_crop_to_qrbox_takes_centre_square():
    frame = np.zeros((480, 640, 3), dtype=np.uint8)

    region = crop_to_qrbox(frame, 250)

    assert region.shape == (250, 250, 3)


@pytest.mark.parametrize('qrbox', [None, 0, 480, 900])
def test_crop_to_qrbox_keeps_whole_frame(qrbox):
    frame = np.zeros((480, 640, 3), dtype=np.uint8)

    assert crop_to_qrbox(frame, qrbox) is frame


def test_decode_frame_returns_first_text(monkeypatch):
    found = [SimpleNamespace(data=b'studentID-1234'), SimpleNamespace(data=b'other')]
    monkeypatch.setattr(decoder_module, 'zbar_decode', lambda image: found)

    assert decode_frame(np.zeros((100, 100, 3), dtype=np.uint8)) == 'studentID-1234'


def test_decode_frame_without_code(monkeypatch):
    monkeypatch.setattr(decoder_module, 'zbar_decode', lambda image: [])

    assert decode_frame(np.zeros((100, 100, 3), dtype=np.uint8)) is None


def test_decode_frame_skips_binary_codes(monkeypatch):
    found = [SimpleNamespace(data=b'\xff\xfe'), SimpleNamespace(data=b'studentID-1234')]
    monkeypatch.setattr(decoder_module, 'zbar_decode', lambda image: found)

    assert decode_frame(np.zeros((100, 100, 3), dtype=np.uint8)) == 'studentID-1234'

    monkeypatch.setattr(decoder_module, 'zbar_decode', lambda image: found[:1])

    assert decode_frame(np.zeros((100, 100, 3), dtype=np.uint8)) is None


def test_decode_frame_reads_a_real_code():
    pytest.importorskip('pyzbar.pyzbar')
    import cv2
    import qrcode

    image = qrcode.make('studentID-1234').get_image().convert('RGB')
    frame = cv2.cvtColor(np.array(image), cv2.COLOR_RGB2BGR)

    assert decode_frame(frame) == 'studentID-1234'


@pytest.mark.asyncio
async def test_unopened_camera_raises(monkeypatch):
    capture = FakeCapture(opened=False)
    monkeypatch.setattr(decoder_module.cv2, 'VideoCapture', lambda index: capture)

    with pytest.raises(CameraError):
        await CameraQrDecoder(3).start({}, {'fps': 10}, print, print)

    assert capture.released is True


@pytest.mark.asyncio
async def test_lifecycle_reports_codes_and_releases(monkeypatch):
    capture = FakeCapture()
    indexes = []

    def open_capture(index):
        indexes.append(index)
        return capture

    monkeypatch.setattr(decoder_module.cv2, 'VideoCapture', open_capture)
    monkeypatch.setattr(decoder_module, 'decode_frame', lambda frame, qrbox: 'studentID-1234')
    decoded = []
    decoder = CameraQrDecoder(2)

    await decoder.start({'facing_mode': 'environment'}, {'fps': 100, 'qrbox': 250},
                        decoded.append, lambda message: None)
    assert await wait_for(lambda: decoded)
    await decoder.pause(True)
    with pytest.raises(RuntimeError):
        await decoder.clear()
    await decoder.resume()
    await decoder.stop()
    await decoder.clear()

    assert indexes == [2]
    assert decoded[0] == 'studentID-1234'
    assert capture.released is True
    assert not decoder.is_scanning
    with pytest.raises(RuntimeError):
        await decoder.resume()
    with pytest.raises(RuntimeError):
        await decoder.stop()


@pytest.mark.asyncio
async def test_bad_frame_does_not_stop_the_loop(monkeypatch):
    capture = FakeCapture()
    frames = iter([b'\xff\xfe', RuntimeError('camera hiccup'), b'studentID-1234'])

    def zbar(image):
        item = next(frames, b'studentID-1234')
        if isinstance(item, Exception):
            raise item
        return [SimpleNamespace(data=item)]

    monkeypatch.setattr(decoder_module.cv2, 'VideoCapture', lambda index: capture)
    monkeypatch.setattr(decoder_module, 'zbar_decode', zbar)
    decoded, errors = [], []
    decoder = CameraQrDecoder()

    await decoder.start({}, {'fps': 100}, decoded.append, errors.append)
    assert await wait_for(lambda: decoded)

    assert decoder.is_scanning
    assert decoded[0] == 'studentID-1234'
    assert 'No QR code found' in errors
    assert 'camera hiccup' in errors
    await decoder.stop()
    await decoder.clear()


@pytest.mark.asyncio
async def test_cancelled_start_releases_the_camera(monkeypatch):
    capture = FakeCapture()
    opened = threading.Event()

    def slow_open(index):
        opened.wait(5)
        return capture

    monkeypatch.setattr(decoder_module.cv2, 'VideoCapture', slow_open)
    decoder = CameraQrDecoder()

    starting = asyncio.create_task(decoder.start({}, {'fps': 10}, print, print))
    await asyncio.sleep(0.05)
    starting.cancel()
    opened.set()
    with pytest.raises(asyncio.CancelledError):
        await starting

    assert await wait_for(lambda: capture.released)
    assert not decoder.is_scanning
