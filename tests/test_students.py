from datetime import date

import pytest

from apps.core.students import (
    add_months, authenticate_admin, authenticate_student, create_student,
    generate_credentials, list_students, preset_valid_till, reset_meals_today,
    update_student_access,
)
from apps.core.store import StoreError

from .conftest import TODAY, student_record

pytestmark = pytest.mark.asyncio


async def test_generated_credentials_are_fixed_width_digits():
    for _ in range(50):
        student_id, password = generate_credentials()
        assert student_id.isdigit() and len(student_id) == 4
        assert password.isdigit() and len(password) == 6


@pytest.mark.parametrize('start, months, expected', [
    (date(2026, 1, 31), 1, date(2026, 2, 28)),
    (date(2026, 10, 19), 3, date(2027, 1, 19)),
    (date(2024, 1, 31), 1, date(2024, 2, 29)),
    (date(2026, 12, 1), 12, date(2027, 12, 1)),
])
async def test_add_months_clamps_to_month_end(start, months, expected):
    assert add_months(start, months) == expected


async def test_preset_valid_till():
    start = date(2026, 10, 19)

    assert preset_valid_till(days=30, start=start) == '2026-11-18'
    assert preset_valid_till(months=6, start=start) == '2027-04-19'


async def test_create_student_writes_full_record(store):
    student = await create_student('Dev', 'B-12', '2027-04-19', phone='9000000000', store=store)

    record = store.data['students'][student.id]
    assert record == {
        'name': 'Dev',
        'room': 'B-12',
        'phone': '9000000000',
        'hasPaid': False,
        'validTill': '2027-04-19',
        'qrData': f'studentID-{student.id}',
        'password': student.password,
        'mealsToday': {'breakfast': False, 'lunch': False, 'dinner': False},
    }
    assert len(store.writes) == 1


async def test_create_student_skips_taken_ids(store, monkeypatch):
    store.data['students']['1111'] = student_record()
    ids = iter([('1111', '123456'), ('2222', '654321')])
    monkeypatch.setattr('apps.core.students.generate_credentials', lambda: next(ids))

    student = await create_student('Dev', 'B-12', '2027-04-19', store=store)

    assert student.id == '2222'
    assert store.data['students']['1111']['name'] == 'Asha'


async def test_create_student_gives_up_when_ids_keep_colliding(store, monkeypatch):
    store.data['students']['1111'] = student_record()
    monkeypatch.setattr('apps.core.students.generate_credentials', lambda: ('1111', '123456'))

    with pytest.raises(StoreError):
        await create_student('Dev', 'B-12', '2027-04-19', store=store)

    assert store.writes == []


async def test_list_students_is_sorted(store):
    students = await list_students(store)

    assert [s.id for s in students] == ['S1', 'S2', 'S3']
    assert students[1].has_paid is False


async def test_list_students_empty_store():
    from apps.core.store import InMemoryStore

    assert await list_students(InMemoryStore()) == []


async def test_update_access_marks_paid_and_extends(store):
    student = await update_student_access('S2', has_paid=True, valid_till='2027-01-01', store=store)

    assert student.has_paid is True
    assert student.valid_till == '2027-01-01'
    assert store.writes == [{
        'students/S2/hasPaid': True,
        'students/S2/validTill': '2027-01-01',
    }]
    assert store.data['students']['S2']['name'] == 'Ben'


async def test_update_access_unknown_student(store):
    assert await update_student_access('S9', has_paid=True, store=store) is None
    assert store.writes == []


async def test_authenticate_student(store):
    assert (await authenticate_student('S1', '482913', store)).name == 'Asha'
    assert await authenticate_student('S1', 'wrong', store) is None
    assert await authenticate_student('S9', '482913', store) is None


async def test_authenticate_admin_default_password(store, settings):
    settings.ADMIN_DEFAULT_PASSWORD = 'admin123'

    assert await authenticate_admin('admin123', store) is True
    assert await authenticate_admin('nope', store) is False


async def test_authenticate_admin_stored_password_wins(store):
    store.data['adminPassword'] = 'k1tchen'

    assert await authenticate_admin('k1tchen', store) is True
    assert await authenticate_admin('admin123', store) is False


async def test_reset_meals_today_keeps_logs(store):
    store.data['students']['S1']['mealsToday'] = {'breakfast': True, 'lunch': True, 'dinner': False}
    store.data['mealLogs'] = {TODAY: {'S1': {'breakfast': True, 'lunch': True}}}

    count = await reset_meals_today(store)

    assert count == 3
    for record in store.data['students'].values():
        assert record['mealsToday'] == {'breakfast': False, 'lunch': False, 'dinner': False}
    assert store.data['mealLogs'][TODAY]['S1'] == {'breakfast': True, 'lunch': True}
    assert len(store.writes) == 1


async def test_reset_meals_today_without_students():
    from apps.core.store import InMemoryStore

    assert await reset_meals_today(InMemoryStore()) == 0
