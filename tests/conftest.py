import pytest
from rest_framework.test import APIClient

from apps.core.store import InMemoryStore, StoreError

TODAY = '2026-10-19'


class RecordingStore(InMemoryStore):
    """InMemoryStore that records calls and can be told to fail."""

    def __init__(self, data=None):
        super().__init__(data)
        self.reads = []
        self.writes = []
        self.fail_reads = False
        self.fail_writes = False

    @property
    def calls(self):
        return len(self.reads) + len(self.writes)

    async def read(self, path):
        self.reads.append(path)
        if self.fail_reads:
            raise StoreError(f"read {path} failed")
        return await super().read(path)

    async def update(self, values):
        self.writes.append(dict(values))
        if self.fail_writes:
            raise StoreError("update failed")
        await super().update(values)


def student_record(name='Asha', has_paid=True, valid_till='2099-01-01', meals=None, password='482913'):
    return {
        'name': name,
        'room': '101',
        'phone': '9876543210',
        'hasPaid': has_paid,
        'validTill': valid_till,
        'qrData': '',
        'password': password,
        'mealsToday': meals or {'breakfast': False, 'lunch': False, 'dinner': False},
    }


@pytest.fixture(autouse=True)
def plain_http(settings):
    settings.SECURE_SSL_REDIRECT = False
    settings.SESSION_COOKIE_SECURE = False


@pytest.fixture
def store():
    return RecordingStore({
        'students': {
            'S1': student_record(name='Asha'),
            'S2': student_record(name='Ben', has_paid=False),
            'S3': student_record(name='Chitra', valid_till='2020-06-30'),
        },
    })


@pytest.fixture
def use_store(store, monkeypatch):
    monkeypatch.setattr('apps.api.views.get_store', lambda: store)
    return store


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def admin_client(api_client, use_store):
    response = api_client.post('/api/v1/auth/admin/login', {'password': 'admin123'})
    assert response.status_code == 200
    return api_client
