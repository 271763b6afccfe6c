import asyncio

from django.conf import settings
from django.core.management.base import BaseCommand

from apps.core.models import MealType, ScanStatus
from apps.scanner.controller import MealSelection, ScannerDisplay, ScannerSessionController

MEAL_KEYS = {
    'b': MealType.BREAKFAST,
    'l': MealType.LUNCH,
    'd': MealType.DINNER,
}


class TerminalDisplay(ScannerDisplay):
    def __init__(self, stdout, style):
        self.stdout = stdout
        self.style = style

    def show_result(self, result):
        if result.status == ScanStatus.LOADING:
            self.stdout.write('Verifying...')
            return

        paint = {
            ScanStatus.SUCCESS: self.style.SUCCESS,
            ScanStatus.WARNING: self.style.WARNING,
        }.get(result.status, self.style.ERROR)
        self.stdout.write(paint(result.message))
        if result.student is not None:
            student = result.student
            self.stdout.write(f"  {student.name}  Room: {student.room}  "
                              f"Status: {'Paid' if student.has_paid else 'Unpaid'}")
        self.stdout.write('Press Enter to scan next.')

    def show_error(self, message):
        self.stdout.write(self.style.ERROR(message))

    def show_meal(self, meal):
        self.stdout.write(f"Tracking {meal.value}.")


class ScannerKiosk:
    """Operator loop around one ScannerSessionController at a time."""

    def __init__(self, display, meal_selection, decoder_factory):
        self.display = display
        self.meal_selection = meal_selection
        self.decoder_factory = decoder_factory
        self.controller = None
        self.restart_requested = False

    def build_controller(self):
        return ScannerSessionController(
            self.decoder_factory,
            self.display,
            self.meal_selection,
            on_restart_required=self.request_restart,
        )

    def request_restart(self):
        self.restart_requested = True

    def open(self):
        self.controller = self.build_controller()
        self.controller.mount()

    async def restart(self):
        self.restart_requested = False
        await self.controller.unmount()
        self.open()

    async def close(self):
        if self.controller is not None:
            await self.controller.unmount()

    async def handle_key(self, key):
        """Apply one operator key; False means quit."""
        key = key.strip().lower()
        if key == 'q':
            return False
        if key in MEAL_KEYS:
            self.meal_selection.set(MEAL_KEYS[key])
            self.display.show_meal(MEAL_KEYS[key])
        elif key == '':
            await self.controller.acknowledge()
        if self.restart_requested:
            await self.restart()
        return True

    async def run(self, read_key):
        self.open()
        try:
            while await self.handle_key(await read_key()):
                pass
        finally:
            await self.close()


async def read_stdin_key():
    try:
        return await asyncio.to_thread(input)
    except EOFError:
        return 'q'


class Command(BaseCommand):
    help = 'Scan student QR codes with a local camera and record meals'

    def add_arguments(self, parser):
        parser.add_argument(
            '--meal',
            choices=[meal.value for meal in MealType],
            default=MealType.BREAKFAST.value,
        )
        parser.add_argument(
            '--camera',
            type=int,
            default=settings.MESS_CONFIG['scanner']['camera_index'],
        )

    def handle(self, *args, **options):
        from apps.scanner.decoder import CameraQrDecoder

        display = TerminalDisplay(self.stdout, self.style)
        selection = MealSelection(options['meal'])
        camera = options['camera']
        kiosk = ScannerKiosk(display, selection, lambda: CameraQrDecoder(camera))

        self.stdout.write('Keys: Enter = scan next, b/l/d = breakfast/lunch/dinner, q = quit')
        display.show_meal(selection.get())
        asyncio.run(kiosk.run(read_stdin_key))
