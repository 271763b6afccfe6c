# Views for api app

import logging

from asgiref.sync import async_to_sync
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from apps.core import session as operator_session
from apps.core.models import MealType, ScanOutcome, ScanResult
from apps.core.reports import build_daily_report, meals_taken_on
from apps.core.scan import (
    UNKNOWN_ERROR_MESSAGE, evaluate_and_record_scan, get_student, is_valid_student_id, today_local,
)
from apps.core.store import StoreError, get_store
from apps.core.students import (
    authenticate_admin, authenticate_student, create_student, list_students,
    preset_valid_till, update_student_access,
)
from apps.utils.qr_utils import generate_qr_image, generate_qr_payload
from .serializers import (
    AdminLoginSerializer, DailyMealReportSerializer, ReportQuerySerializer, ScanRequestSerializer,
    ScanResultSerializer, StudentAccessSerializer, StudentCardSerializer,
    StudentCreateSerializer, StudentCreatedSerializer, StudentLoginSerializer,
    StudentSnapshotSerializer,
)
from .permissions import IsAdminOperator, IsCardViewer

logger = logging.getLogger(__name__)

STORE_UNAVAILABLE = {'error': 'Database unavailable. Please try again.'}


def store_unavailable():
    return Response(STORE_UNAVAILABLE, status=status.HTTP_503_SERVICE_UNAVAILABLE)


def not_found(student_id):
    return Response({'error': f"Student ID '{student_id}' not found."},
                    status=status.HTTP_404_NOT_FOUND)


@api_view(['POST'])
@permission_classes([AllowAny])
def admin_login(request):
    """Start an admin session"""
    serializer = AdminLoginSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    operator_session.logout(request._request)
    try:
        ok = async_to_sync(authenticate_admin)(serializer.validated_data['password'], get_store())
    except StoreError:
        return Response({'error': 'Login failed. Please check connection.'},
                        status=status.HTTP_503_SERVICE_UNAVAILABLE)

    if not ok:
        return Response({'error': 'Incorrect password'}, status=status.HTTP_401_UNAUTHORIZED)

    operator = operator_session.OperatorSession.start(operator_session.ROLE_ADMIN, 'admin')
    operator_session.login(request._request, operator)
    return Response({'role': operator.role, 'expires_at': operator.expires_at})


@api_view(['POST'])
@permission_classes([AllowAny])
def student_login(request):
    """Start a student session for self-service card access"""
    serializer = StudentLoginSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    student_id = serializer.validated_data['student_id']

    try:
        student = async_to_sync(authenticate_student)(
            student_id, serializer.validated_data['password'], get_store()
        )
    except StoreError:
        return Response({'error': 'Login failed. Check connection.'},
                        status=status.HTTP_503_SERVICE_UNAVAILABLE)

    if student is None:
        return Response({'error': 'Invalid student ID or password'},
                        status=status.HTTP_401_UNAUTHORIZED)

    operator = operator_session.OperatorSession.start(operator_session.ROLE_STUDENT, student.id)
    operator_session.login(request._request, operator)
    return Response({'role': operator.role, 'student_id': student.id,
                     'expires_at': operator.expires_at})


@api_view(['POST'])
@permission_classes([AllowAny])
def logout(request):
    operator_session.logout(request._request)
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAdminOperator])
def scanner_scan(request):
    """Handle QR code scanning"""
    serializer = ScanRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(
            {'error': 'Invalid request data', 'fields': serializer.errors},
            status=status.HTTP_400_BAD_REQUEST
        )

    qr_data = serializer.validated_data['qr_data']
    meal = MealType(serializer.validated_data['meal'])
    try:
        result = async_to_sync(evaluate_and_record_scan)(qr_data, meal, get_store())
    except Exception:
        logger.exception("Scan validation failed")
        result = ScanResult.error(ScanOutcome.STORE_FAILURE, UNKNOWN_ERROR_MESSAGE)

    return Response(ScanResultSerializer(result).data)


@api_view(['GET'])
@permission_classes([IsCardViewer])
def student_card(request, student_id):
    """Student ID card: profile, validity, QR code and today's meals"""
    if not is_valid_student_id(student_id):
        return not_found(student_id)

    store = get_store()
    today = today_local()
    try:
        student = async_to_sync(get_student)(student_id, store)
        if student is None:
            return not_found(student_id)
        meals = async_to_sync(meals_taken_on)(student_id, today, store)
    except StoreError:
        return store_unavailable()

    qr_data = generate_qr_payload(student.id)
    card = {
        'student': student,
        'valid_badge': f"Valid Till: {student.valid_till}" if student.has_paid else 'Fees Not Paid',
        'qr_data': qr_data,
        'qr_image': generate_qr_image(qr_data),
        'meals_today': meals,
    }
    return Response(StudentCardSerializer(card).data)


@api_view(['GET', 'POST'])
@permission_classes([IsAdminOperator])
def admin_students(request):
    """List students, or add one with generated credentials"""
    if request.method == 'GET':
        try:
            students = async_to_sync(list_students)(get_store())
        except StoreError:
            return store_unavailable()
        return Response(StudentSnapshotSerializer(students, many=True).data)

    serializer = StudentCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    if data.get('valid_till'):
        valid_till = data['valid_till'].isoformat()
    else:
        valid_till = preset_valid_till(
            days=data.get('valid_for_days', 0),
            months=data.get('valid_for_months', 0),
        )

    try:
        student = async_to_sync(create_student)(
            data['name'], data['room'], valid_till, data.get('phone', ''), get_store()
        )
    except StoreError:
        return Response({'error': 'Failed to save student to database.'},
                        status=status.HTTP_503_SERVICE_UNAVAILABLE)

    context = {'qr_image': generate_qr_image(student.qr_data)}
    return Response(StudentCreatedSerializer(student, context=context).data,
                    status=status.HTTP_201_CREATED)


@api_view(['PATCH'])
@permission_classes([IsAdminOperator])
def admin_student_access(request, student_id):
    """Admin sets payment status and/or validity end date"""
    serializer = StudentAccessSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    if not is_valid_student_id(student_id):
        return not_found(student_id)

    valid_till = data.get('valid_till')
    try:
        student = async_to_sync(update_student_access)(
            student_id,
            has_paid=data.get('has_paid'),
            valid_till=valid_till.isoformat() if valid_till else None,
            store=get_store(),
        )
    except StoreError:
        return store_unavailable()

    if student is None:
        return not_found(student_id)
    return Response(StudentSnapshotSerializer(student).data)


@api_view(['GET'])
@permission_classes([IsAdminOperator])
def admin_meal_report(request):
    """Daily meal report built from the meal log"""
    day = request.query_params.get('date') or today_local()
    serializer = ReportQuerySerializer(data={'date': day})
    if not serializer.is_valid():
        return Response({'error': 'date must be YYYY-MM-DD'}, status=status.HTTP_400_BAD_REQUEST)

    day = serializer.validated_data['date'].isoformat()
    try:
        report = async_to_sync(build_daily_report)(day, get_store())
    except StoreError:
        return store_unavailable()
    return Response(DailyMealReportSerializer(report).data)
