import logging
import secrets
from calendar import monthrange
from datetime import timedelta

from django.conf import settings
from django.utils import timezone

from apps.utils.qr_utils import generate_qr_payload

from .models import MealsToday, Student
from .store import StoreError, get_store, student_path

logger = logging.getLogger(__name__)

ADMIN_PASSWORD_PATH = 'adminPassword'
MAX_ID_ATTEMPTS = 20


def generate_credentials():
    """Return a fresh (student_id, password) pair of fixed-width digits."""
    config = settings.MESS_CONFIG
    id_digits = config['student_id_digits']
    password_digits = config['student_password_digits']
    student_id = str(10 ** (id_digits - 1) + secrets.randbelow(9 * 10 ** (id_digits - 1)))
    password = str(10 ** (password_digits - 1) + secrets.randbelow(9 * 10 ** (password_digits - 1)))
    return student_id, password


def add_months(day, months):
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    return day.replace(year=year, month=month, day=min(day.day, monthrange(year, month)[1]))


def preset_valid_till(days=0, months=0, start=None):
    """Validity end date ``days``/``months`` from today, as YYYY-MM-DD."""
    day = start or timezone.localdate()
    if months:
        day = add_months(day, months)
    return (day + timedelta(days=days)).isoformat()


async def create_student(name, room, valid_till, phone='', store=None):
    """Create a student with generated credentials; returns the Student.

    New students start unpaid with no meals taken. A generated id that is
    already taken is regenerated.
    """
    store = store or get_store()
    for _ in range(MAX_ID_ATTEMPTS):
        student_id, password = generate_credentials()
        if await store.read(student_path(student_id)) is None:
            break
        logger.info(f"Generated student id {student_id} already exists, retrying")
    else:
        raise StoreError("No free student id left")

    student = Student(
        id=student_id,
        name=name,
        room=room,
        phone=phone,
        has_paid=False,
        valid_till=valid_till,
        qr_data=generate_qr_payload(student_id),
        password=password,
        meals_today=MealsToday(),
    )
    await store.update({student_path(student_id): student.to_record()})
    logger.info(f"Created student {student_id}")
    return student


async def list_students(store=None):
    store = store or get_store()
    data = await store.read('students') or {}
    return [
        Student.from_record(student_id, record)
        for student_id, record in sorted(data.items())
        if isinstance(record, dict)
    ]


async def update_student_access(student_id, has_paid=None, valid_till=None, store=None):
    """Set ``hasPaid`` and/or ``validTill``; None when the student is unknown."""
    store = store or get_store()
    data = await store.read(student_path(student_id))
    if not isinstance(data, dict):
        return None

    updates = {}
    if has_paid is not None:
        updates[f"{student_path(student_id)}/hasPaid"] = has_paid
        data['hasPaid'] = has_paid
    if valid_till is not None:
        updates[f"{student_path(student_id)}/validTill"] = valid_till
        data['validTill'] = valid_till
    if updates:
        await store.update(updates)
        logger.info(f"Updated access for student {student_id}: {sorted(updates)}")
    return Student.from_record(student_id, data)


async def authenticate_student(student_id, password, store=None):
    """Plaintext password check against ``students/<id>/password``."""
    store = store or get_store()
    data = await store.read(student_path(student_id))
    if not isinstance(data, dict):
        return None
    if data.get('password') != password:
        return None
    return Student.from_record(student_id, data)


async def authenticate_admin(password, store=None):
    """Plaintext comparison with ``adminPassword`` or the configured default."""
    store = store or get_store()
    expected = await store.read(ADMIN_PASSWORD_PATH)
    if expected is None:
        expected = settings.ADMIN_DEFAULT_PASSWORD
    return password == expected


async def reset_meals_today(store=None):
    """Clear every student's mealsToday cache in one multi-path update.

    Returns the number of students reset. Meal logs are left untouched.
    """
    store = store or get_store()
    data = await store.read('students') or {}
    cleared = MealsToday().to_record()
    updates = {
        f"{student_path(student_id)}/mealsToday": dict(cleared)
        for student_id, record in data.items()
        if isinstance(record, dict)
    }
    if updates:
        await store.update(updates)
    return len(updates)
