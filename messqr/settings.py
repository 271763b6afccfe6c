import os
from pathlib import Path
from dotenv import load_dotenv
from celery.schedules import crontab

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.getenv('DJANGO_SECRET_KEY', 'messqr-dev-secret-key')
DEBUG = os.getenv('DEBUG', 'False').lower() == 'true'
ALLOWED_HOSTS = os.getenv('ALLOWED_HOSTS', 'localhost').split(',')

INSTALLED_APPS = [
	'django.contrib.auth',
	'django.contrib.contenttypes',
	'django.contrib.sessions',
	'django.contrib.staticfiles',
	'rest_framework',
	'corsheaders',
	'apps.core',
	'apps.api',
	'apps.scanner',
]

MIDDLEWARE = [
	'corsheaders.middleware.CorsMiddleware',
	'django.middleware.security.SecurityMiddleware',
	'django.contrib.sessions.middleware.SessionMiddleware',
	'django.middleware.common.CommonMiddleware',
	'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'messqr.urls'

TEMPLATES = [
	{
		'BACKEND': 'django.template.backends.django.DjangoTemplates',
		'DIRS': [],
		'APP_DIRS': True,
		'OPTIONS': {
			'context_processors': [
				'django.template.context_processors.request',
			],
		},
	},
]

WSGI_APPLICATION = 'messqr.wsgi.application'

# All persistent data lives in the hosted document store
DATABASES = {}

# Sessions are signed cookies so no local database is needed
SESSION_ENGINE = 'django.contrib.sessions.backends.signed_cookies'
SESSION_COOKIE_HTTPONLY = True
SESSION_TTL_HOURS = int(os.getenv('SESSION_TTL_HOURS', '12'))

# Internationalization
LANGUAGE_CODE = 'en-us'
TIME_ZONE = os.getenv('TIMEZONE', 'Asia/Kolkata')
USE_I18N = True
USE_TZ = True

STATIC_URL = '/static/'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# REST Framework
REST_FRAMEWORK = {
	'DEFAULT_AUTHENTICATION_CLASSES': [
		'apps.api.permissions.OperatorSessionAuthentication',
	],
	'DEFAULT_PERMISSION_CLASSES': [
		'rest_framework.permissions.IsAuthenticated',
	],
	'DEFAULT_RENDERER_CLASSES': [
		'rest_framework.renderers.JSONRenderer',
	],
	'DEFAULT_PARSER_CLASSES': [
		'rest_framework.parsers.JSONParser',
	],
	'UNAUTHENTICATED_USER': None,
	'TEST_REQUEST_DEFAULT_FORMAT': 'json',
}

# Celery Configuration
CELERY_BROKER_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')
CELERY_RESULT_BACKEND = os.getenv('REDIS_URL', 'redis://localhost:6379/0')
CELERY_ACCEPT_CONTENT = ['json']
CELERY_TASK_SERIALIZER = 'json'
CELERY_RESULT_SERIALIZER = 'json'
CELERY_TIMEZONE = TIME_ZONE
CELERY_BEAT_SCHEDULE = {
	'reset-meals-today': {
		'task': 'apps.core.tasks.reset_meals_today_cache',
		'schedule': crontab(hour=0, minute=0),
	},
}

# Document store (Firebase Realtime Database or in-process memory)
_firebase_timeout = os.getenv('FIREBASE_TIMEOUT')
DOCUMENT_STORE = {
	'BACKEND': os.getenv('STORE_BACKEND', 'firebase'),
	'DATABASE_URL': os.getenv('FIREBASE_DATABASE_URL', ''),
	'AUTH_TOKEN': os.getenv('FIREBASE_AUTH_TOKEN'),
	'TIMEOUT': float(_firebase_timeout) if _firebase_timeout else None,
}

ADMIN_DEFAULT_PASSWORD = os.getenv('ADMIN_DEFAULT_PASSWORD', 'admin123')

# Custom Settings
MESS_CONFIG = {
	'meals': ['breakfast', 'lunch', 'dinner'],
	'qr_payload_prefix': 'studentID-',
	'max_student_id_length': 20,
	'student_id_digits': 4,
	'student_password_digits': 6,
	'qr_box_size': 10,
	'scanner': {
		'camera_index': int(os.getenv('SCANNER_CAMERA_INDEX', '0')),
		'facing_mode': 'environment',
		'fps': 10,
		'qrbox': 250,
		'aspect_ratio': 1.0,
		'start_delay_seconds': 0.3,
	},
}

# CORS Settings
CORS_ALLOWED_ORIGINS = [
	origin.strip()
	for origin in os.getenv('CORS_ALLOWED_ORIGINS', 'http://localhost:3000,http://127.0.0.1:3000').split(',')
	if origin.strip()
]
CORS_ALLOW_CREDENTIALS = True

LOGGING = {
	'version': 1,
	'disable_existing_loggers': False,
	'formatters': {
		'standard': {
			'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
		},
	},
	'handlers': {
		'console': {
			'class': 'logging.StreamHandler',
			'formatter': 'standard',
		},
	},
	'root': {
		'handlers': ['console'],
		'level': os.getenv('LOG_LEVEL', 'INFO'),
	},
}

# Security Settings
if not DEBUG:
	SECURE_SSL_REDIRECT = os.getenv('SECURE_SSL_REDIRECT', 'True').lower() == 'true'
	SESSION_COOKIE_SECURE = True
	CSRF_COOKIE_SECURE = True
	SECURE_CONTENT_TYPE_NOSNIFF = True
