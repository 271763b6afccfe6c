from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional


class MealType(str, Enum):
	BREAKFAST = 'breakfast'
	LUNCH = 'lunch'
	DINNER = 'dinner'

	@classmethod
	def parse(cls, value):
		"""Return the MealType for value (case-insensitive) or None."""
		try:
			return cls(str(value).strip().lower())
		except ValueError:
			return None


class ScanStatus(str, Enum):
	LOADING = 'loading'
	SUCCESS = 'success'
	ERROR = 'error'
	WARNING = 'warning'


class ScanOutcome(str, Enum):
	GRANTED = 'GRANTED'
	NOT_FOUND = 'NOT_FOUND'
	PAYMENT_REQUIRED = 'PAYMENT_REQUIRED'
	EXPIRED = 'EXPIRED'
	ALREADY_GRANTED = 'ALREADY_GRANTED'
	MALFORMED_INPUT = 'MALFORMED_INPUT'
	STORE_FAILURE = 'STORE_FAILURE'


@dataclass(frozen=True)
class MealsToday:
	breakfast: bool = False
	lunch: bool = False
	dinner: bool = False

	@classmethod
	def from_record(cls, data):
		data = data or {}
		return cls(
			breakfast=data.get('breakfast') is True,
			lunch=data.get('lunch') is True,
			dinner=data.get('dinner') is True,
		)

	def to_record(self):
		return {
			'breakfast': self.breakfast,
			'lunch': self.lunch,
			'dinner': self.dinner,
		}

	def taken(self, meal):
		return getattr(self, MealType(meal).value)

	def with_taken(self, meal):
		return replace(self, **{MealType(meal).value: True})


@dataclass(frozen=True)
class Student:
	"""A student record as stored at ``students/<id>``."""

	id: str
	name: str = ''
	room: str = ''
	phone: str = ''
	has_paid: bool = False
	valid_till: str = ''
	qr_data: str = ''
	password: Optional[str] = field(default=None, repr=False)
	meals_today: MealsToday = field(default_factory=MealsToday)

	@classmethod
	def from_record(cls, student_id, data):
		return cls(
			id=student_id,
			name=str(data.get('name') or ''),
			room=str(data.get('room') or ''),
			phone=str(data.get('phone') or ''),
			has_paid=data.get('hasPaid') is True,
			valid_till=str(data.get('validTill') or ''),
			qr_data=data.get('qrData') or '',
			password=data.get('password'),
			meals_today=MealsToday.from_record(data.get('mealsToday')),
		)

	def to_record(self):
		return {
			'name': self.name,
			'room': self.room,
			'phone': self.phone,
			'hasPaid': self.has_paid,
			'validTill': self.valid_till,
			'qrData': self.qr_data,
			'password': self.password,
			'mealsToday': self.meals_today.to_record(),
		}

	def with_meal_taken(self, meal):
		return replace(self, meals_today=self.meals_today.with_taken(meal))

	def is_valid_on(self, day):
		# validTill and day are both zero-padded YYYY-MM-DD strings
		return self.valid_till >= day

	def __str__(self):
		return f"{self.name} ({self.id})"


@dataclass(frozen=True)
class ScanResult:
	status: ScanStatus
	message: str
	student: Optional[Student] = None
	outcome: Optional[ScanOutcome] = None

	@classmethod
	def loading(cls):
		return cls(status=ScanStatus.LOADING, message='Processing...')

	@classmethod
	def success(cls, message, student):
		return cls(ScanStatus.SUCCESS, message, student, ScanOutcome.GRANTED)

	@classmethod
	def warning(cls, outcome, message, student=None):
		return cls(ScanStatus.WARNING, message, student, outcome)

	@classmethod
	def error(cls, outcome, message, student=None):
		return cls(ScanStatus.ERROR, message, student, outcome)

	@property
	def granted(self):
		return self.outcome == ScanOutcome.GRANTED
