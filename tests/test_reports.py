import pytest

from apps.core.models import MealType
from apps.core.reports import build_daily_report, meals_taken_on
from apps.core.scan import evaluate_and_record_scan

from .conftest import TODAY

pytestmark = pytest.mark.asyncio


async def test_meals_taken_on_reads_the_log(store):
    store.data['mealLogs'] = {TODAY: {'S1': {'breakfast': True, 'dinner': True}}}

    meals = await meals_taken_on('S1', TODAY, store)

    assert meals.to_record() == {'breakfast': True, 'lunch': False, 'dinner': True}
    assert store.reads == [f'mealLogs/{TODAY}/S1']


async def test_meals_taken_on_ignores_stale_cache(store):
    store.data['students']['S1']['mealsToday']['lunch'] = True

    meals = await meals_taken_on('S1', TODAY, store)

    assert meals.lunch is False


async def test_report_counts_grants_from_scans(store):
    for payload, meal in [('S1', MealType.BREAKFAST), ('S1', MealType.LUNCH),
                          ('S1', MealType.LUNCH), ('S2', MealType.LUNCH)]:
        await evaluate_and_record_scan(payload, meal, store=store, today=TODAY)

    report = await build_daily_report(TODAY, store)

    assert report.date == TODAY
    assert report.counts == {'breakfast': 1, 'lunch': 1, 'dinner': 0}
    assert [row.student_id for row in report.rows] == ['S1', 'S2', 'S3']
    assert report.rows[0].name == 'Asha'
    assert report.rows[0].meals.lunch is True
    assert report.rows[1].meals.lunch is False


async def test_report_lists_logged_students_without_record(store):
    store.data['mealLogs'] = {TODAY: {'0420': {'dinner': True, 'lunch': False}}}

    report = await build_daily_report(TODAY, store)

    row = report.rows[0]
    assert (row.student_id, row.name) == ('0420', '')
    assert report.counts == {'breakfast': 0, 'lunch': 0, 'dinner': 1}


async def test_report_for_empty_day(store):
    report = await build_daily_report('2026-01-01', store)

    assert report.counts == {'breakfast': 0, 'lunch': 0, 'dinner': 0}
    assert len(report.rows) == 3
    assert not any(row.meals.breakfast for row in report.rows)
