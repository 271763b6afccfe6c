from rest_framework import serializers
from apps.core.models import MealType


class MealsSerializer(serializers.Serializer):
	breakfast = serializers.BooleanField()
	lunch = serializers.BooleanField()
	dinner = serializers.BooleanField()


class StudentSnapshotSerializer(serializers.Serializer):
	id = serializers.CharField()
	name = serializers.CharField()
	room = serializers.CharField()
	phone = serializers.CharField()
	has_paid = serializers.BooleanField()
	valid_till = serializers.CharField()
	meals_today = MealsSerializer()


class ScanResultSerializer(serializers.Serializer):
	status = serializers.CharField(source='status.value')
	result = serializers.SerializerMethodField()
	message = serializers.CharField()
	student_snapshot = StudentSnapshotSerializer(source='student', allow_null=True)

	def get_result(self, obj):
		return obj.outcome.value if obj.outcome else None


class ScanRequestSerializer(serializers.Serializer):
	qr_data = serializers.CharField(trim_whitespace=False, allow_blank=True)
	meal = serializers.ChoiceField(choices=[meal.value for meal in MealType])

	def to_internal_value(self, data):
		if isinstance(data.get('meal'), str):
			data = {**data, 'meal': data['meal'].lower()}
		return super().to_internal_value(data)


class AdminLoginSerializer(serializers.Serializer):
	password = serializers.CharField(trim_whitespace=False)


class StudentLoginSerializer(serializers.Serializer):
	# Store keys cannot contain . $ # [ ] or /
	student_id = serializers.RegexField(regex=r'^[^.$#\[\]/]{1,20}\Z')
	password = serializers.CharField(trim_whitespace=False)


class StudentCreateSerializer(serializers.Serializer):
	name = serializers.CharField(max_length=100)
	room = serializers.CharField(max_length=10)
	phone = serializers.RegexField(regex=r'^\+?\d{0,15}$', required=False, allow_blank=True, default='')
	valid_till = serializers.DateField(required=False)
	valid_for_days = serializers.IntegerField(required=False, min_value=1)
	valid_for_months = serializers.IntegerField(required=False, min_value=1)

	def validate(self, attrs):
		presets = [key for key in ('valid_till', 'valid_for_days', 'valid_for_months') if attrs.get(key)]
		if len(presets) != 1:
			raise serializers.ValidationError(
				'Give exactly one of valid_till, valid_for_days or valid_for_months.'
			)
		return attrs


class StudentAccessSerializer(serializers.Serializer):
	has_paid = serializers.BooleanField(required=False)
	valid_till = serializers.DateField(required=False)

	def validate(self, attrs):
		if not attrs:
			raise serializers.ValidationError('Nothing to update.')
		return attrs


class StudentCreatedSerializer(StudentSnapshotSerializer):
	password = serializers.CharField()
	qr_data = serializers.CharField()
	qr_image = serializers.SerializerMethodField()

	def get_qr_image(self, obj):
		return self.context.get('qr_image')


class StudentCardSerializer(serializers.Serializer):
	student = StudentSnapshotSerializer()
	valid_badge = serializers.CharField()
	qr_data = serializers.CharField()
	qr_image = serializers.CharField()
	meals_today = MealsSerializer()


class ReportRowSerializer(serializers.Serializer):
	id = serializers.CharField(source='student_id')
	name = serializers.CharField()
	breakfast = serializers.BooleanField(source='meals.breakfast')
	lunch = serializers.BooleanField(source='meals.lunch')
	dinner = serializers.BooleanField(source='meals.dinner')


class DailyMealReportSerializer(serializers.Serializer):
	date = serializers.CharField()
	counts = serializers.DictField(child=serializers.IntegerField())
	rows = ReportRowSerializer(many=True)


class ReportQuerySerializer(serializers.Serializer):
	date = serializers.DateField(input_formats=['%Y-%m-%d'])
