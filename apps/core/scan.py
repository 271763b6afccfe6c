import logging

from django.conf import settings
from django.utils import timezone

from .models import MealType, ScanOutcome, ScanResult, Student
from .store import StoreError, get_store, meal_flag_path, meal_log_path, student_path

logger = logging.getLogger(__name__)

# Characters Firebase does not allow in a key
FORBIDDEN_KEY_CHARS = frozenset('.$#[]/')

MALFORMED_MESSAGE = 'Invalid QR Code format.'
STORE_FAILURE_MESSAGE = 'Database error. Please scan again.'
UNKNOWN_ERROR_MESSAGE = 'Unknown error occurred'


def today_local():
    """Today's calendar date in the configured TIME_ZONE as YYYY-MM-DD."""
    return timezone.localdate().isoformat()


def is_valid_student_id(student_id):
    """True when student_id can name a record under ``students/``."""
    if not student_id or len(student_id) > settings.MESS_CONFIG['max_student_id_length']:
        return False
    return not FORBIDDEN_KEY_CHARS.intersection(student_id)


def normalize_payload(raw_payload):
    """Return the student id carried by a decoded QR payload, or None."""
    prefix = settings.MESS_CONFIG['qr_payload_prefix']

    student_id = (raw_payload or '').strip()
    if student_id.startswith(prefix):
        student_id = student_id[len(prefix):]

    if not is_valid_student_id(student_id):
        return None
    return student_id


async def get_student(student_id, store=None):
    """Fetch ``students/<id>``; None when the record does not exist."""
    store = store or get_store()
    data = await store.read(student_path(student_id))
    if not isinstance(data, dict):
        return None
    return Student.from_record(student_id, data)


async def evaluate_and_record_scan(raw_payload, meal_type, store=None, today=None):
    """Decide whether a scanned student gets ``meal_type`` and record a grant.

    The checks run in order and the first failing one decides the result:
    lookup, payment, validity, duplicate. A grant writes the student's
    ``mealsToday`` flag and the ``mealLogs`` entry in one multi-path update.
    Nothing is raised; every failure comes back as an error ScanResult.
    """
    try:
        return await _evaluate_and_record(raw_payload, meal_type, store, today)
    except Exception:
        logger.exception(f"Scan of {raw_payload!r} for {meal_type} failed unexpectedly")
        return ScanResult.error(ScanOutcome.STORE_FAILURE, UNKNOWN_ERROR_MESSAGE)


async def _evaluate_and_record(raw_payload, meal_type, store, today):
    meal = MealType(meal_type)
    student_id = normalize_payload(raw_payload)
    if student_id is None:
        return ScanResult.error(ScanOutcome.MALFORMED_INPUT, MALFORMED_MESSAGE)

    today = today or today_local()

    try:
        store = store or get_store()
        student = await get_student(student_id, store)
        if student is None:
            return ScanResult.error(
                ScanOutcome.NOT_FOUND,
                f"Student ID '{student_id}' not found.",
            )

        # 1. Check if paid
        if not student.has_paid:
            return ScanResult.error(ScanOutcome.PAYMENT_REQUIRED, 'Fees NOT paid.', student)

        # 2. Check expiry
        if not student.is_valid_on(today):
            return ScanResult.error(
                ScanOutcome.EXPIRED,
                f"Expired on {student.valid_till}.",
                student,
            )

        # 3. Check the meal log, not the mealsToday cache
        already_taken = await store.read(meal_log_path(today, student_id, meal.value))
        if already_taken is True:
            return ScanResult.warning(
                ScanOutcome.ALREADY_GRANTED,
                f"Already took {meal.value}.",
                student,
            )
    except StoreError as exc:
        logger.error(f"Lookup failed for student {student_id}: {exc}")
        return ScanResult.error(ScanOutcome.STORE_FAILURE, STORE_FAILURE_MESSAGE)

    # 4. Grant
    updates = {
        meal_flag_path(student_id, meal.value): True,
        meal_log_path(today, student_id, meal.value): True,
    }
    try:
        await store.update(updates)
    except StoreError as exc:
        logger.error(f"Recording {meal.value} for student {student_id} failed: {exc}")
        return ScanResult.error(ScanOutcome.STORE_FAILURE, STORE_FAILURE_MESSAGE)

    logger.info(f"Granted {meal.value} to student {student_id} on {today}")
    return ScanResult.success('Allowed. Meal recorded.', student.with_meal_taken(meal))
