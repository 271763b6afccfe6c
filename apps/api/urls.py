# URLs for api app
from django.urls import path
from .views import (
	admin_login, student_login, logout, scanner_scan, student_card,
	admin_students, admin_student_access, admin_meal_report,
)

urlpatterns = [
	path('auth/admin/login', admin_login, name='admin_login'),
	path('auth/student/login', student_login, name='student_login'),
	path('auth/logout', logout, name='logout'),
	path('scanner/scan', scanner_scan, name='scanner_scan'),
	path('students/<str:student_id>/card', student_card, name='student_card'),
	path('admin/students', admin_students, name='admin_students'),
	path('admin/students/<str:student_id>', admin_student_access, name='admin_student_access'),
	path('admin/reports/meals', admin_meal_report, name='admin_meal_report'),
]
