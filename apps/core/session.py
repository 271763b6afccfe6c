from dataclasses import dataclass
from datetime import datetime, timedelta

from django.conf import settings
from django.utils import timezone

SESSION_KEY = 'operator'

ROLE_ADMIN = 'admin'
ROLE_STUDENT = 'student'


@dataclass(frozen=True)
class OperatorSession:
    """Who is logged in, as what, and until when."""

    role: str
    subject: str
    expires_at: datetime

    is_authenticated = True

    @classmethod
    def start(cls, role, subject, ttl=None):
        ttl = ttl or timedelta(hours=settings.SESSION_TTL_HOURS)
        return cls(role=role, subject=subject, expires_at=timezone.now() + ttl)

    @classmethod
    def from_dict(cls, data):
        try:
            return cls(
                role=data['role'],
                subject=data['subject'],
                expires_at=datetime.fromisoformat(data['expires_at']),
            )
        except (KeyError, TypeError, ValueError):
            return None

    def to_dict(self):
        return {
            'role': self.role,
            'subject': self.subject,
            'expires_at': self.expires_at.isoformat(),
        }

    def is_expired(self, now=None):
        return (now or timezone.now()) >= self.expires_at

    @property
    def is_admin(self):
        return self.role == ROLE_ADMIN

    def may_view_student(self, student_id):
        return self.is_admin or (self.role == ROLE_STUDENT and self.subject == student_id)


def login(request, operator):
    request.session.flush()
    request.session[SESSION_KEY] = operator.to_dict()


def logout(request):
    request.session.flush()


def current_operator(request):
    """The request's OperatorSession, or None when absent or expired."""
    data = request.session.get(SESSION_KEY)
    if not data:
        return None
    operator = OperatorSession.from_dict(data)
    if operator is None or operator.is_expired():
        request.session.pop(SESSION_KEY, None)
        return None
    return operator
