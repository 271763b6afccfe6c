from rest_framework.authentication import BaseAuthentication
from rest_framework.permissions import BasePermission
from apps.core.session import current_operator


class OperatorSessionAuthentication(BaseAuthentication):
	"""Authenticate from the OperatorSession kept in the Django session"""

	def authenticate(self, request):
		session = getattr(request._request, 'session', None)
		if session is None:
			return None

		operator = current_operator(request._request)
		if operator is None:
			return None

		return (operator, operator)


class IsAdminOperator(BasePermission):
	"""Permission class for admin sessions"""

	def has_permission(self, request, view):
		return bool(request.user) and getattr(request.user, 'is_admin', False)


class IsCardViewer(BasePermission):
	"""Admins, or the student whose card is requested"""

	def has_permission(self, request, view):
		if not request.user:
			return False
		return request.user.may_view_student(view.kwargs.get('student_id'))
