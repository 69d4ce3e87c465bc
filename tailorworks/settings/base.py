"""
Base settings for tailorworks project.
Shared between local (branch) and cloud deployments.
"""

from pathlib import Path
import os

from django.urls import reverse_lazy

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent.parent


# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = os.getenv('SECRET_KEY', 'django-insecure-tw-3q9k!v0c6^m2@x8r$hb7n_zj5p1u+e4s(d)a&l=yf0wg')

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = os.getenv('DEBUG', 'True').lower() == 'true'

ALLOWED_HOSTS = os.getenv('ALLOWED_HOSTS', '*').split(',')


# Application definition
INSTALLED_APPS = [
    "unfold",
    "unfold.contrib.filters",
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'workshop',
    'corsheaders',
    'rest_framework',
    'drf_spectacular',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'tailorworks.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [
            BASE_DIR / 'templates',
        ],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'tailorworks.wsgi.application'


# Password validation
AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator'},
]


# Internationalization
LANGUAGE_CODE = 'en-us'
TIME_ZONE = os.getenv('TIME_ZONE', 'Asia/Qatar')
USE_I18N = True
USE_TZ = True


# Static files
STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'


# CORS
CORS_ALLOW_ALL_ORIGINS = True


# Default primary key field type
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


# =============================================================================
# WORKFLOW
# =============================================================================
# Write-conflict retries for stage advancement and payments
WORKFLOW_TRANSACTION_RETRIES = int(os.getenv('WORKFLOW_TRANSACTION_RETRIES', '3'))
WORKFLOW_RETRY_BACKOFF_SECONDS = float(os.getenv('WORKFLOW_RETRY_BACKOFF_SECONDS', '0.05'))

# Work order codes: <PREFIX>-YYYYMMDD-NNNNNN
ORDER_CODE_PREFIX = os.getenv('ORDER_CODE_PREFIX', 'TW')
ORDER_CODE_RETRIES = int(os.getenv('ORDER_CODE_RETRIES', '5'))


# Unfold Admin Configuration
UNFOLD = {
    "SITE_TITLE": "TailorWorks Admin",
    "SITE_HEADER": "TailorWorks",
    "SITE_URL": "/",
    "SITE_SYMBOL": "content_cut",

    "DASHBOARD_CALLBACK": "workshop.dashboard.dashboard_callback",

    "SIDEBAR": {
        "show_search": True,
        "show_all_applications": True,
        "navigation": [
            {
                "title": "Dashboard",
                "separator": False,
                "items": [
                    {
                        "title": "Dashboard",
                        "icon": "dashboard",
                        "link": reverse_lazy("admin:index"),
                    },
                ],
            },
            {
                "title": "Production",
                "separator": True,
                "items": [
                    {
                        "title": "Work Orders",
                        "icon": "assignment",
                        "link": reverse_lazy("admin:workshop_workorder_changelist"),
                    },
                    {
                        "title": "Production Tasks",
                        "icon": "precision_manufacturing",
                        "link": reverse_lazy("admin:workshop_productiontask_changelist"),
                    },
                    {
                        "title": "Payments",
                        "icon": "payments",
                        "link": reverse_lazy("admin:workshop_payment_changelist"),
                    },
                ],
            },
            {
                "title": "Catalog",
                "separator": True,
                "items": [
                    {
                        "title": "Customers",
                        "icon": "people",
                        "link": reverse_lazy("admin:workshop_customer_changelist"),
                    },
                    {
                        "title": "Measurements",
                        "icon": "straighten",
                        "link": reverse_lazy("admin:workshop_measurementprofile_changelist"),
                    },
                    {
                        "title": "Fabrics",
                        "icon": "texture",
                        "link": reverse_lazy("admin:workshop_fabric_changelist"),
                    },
                ],
            },
            {
                "title": "Logistics",
                "separator": True,
                "items": [
                    {
                        "title": "Branches",
                        "icon": "store",
                        "link": reverse_lazy("admin:workshop_branch_changelist"),
                    },
                    {
                        "title": "Shipments",
                        "icon": "local_shipping",
                        "link": reverse_lazy("admin:workshop_shipment_changelist"),
                    },
                ],
            },
        ],
    },
}

REST_FRAMEWORK = {
    'DEFAULT_SCHEMA_CLASS': 'drf_spectacular.openapi.AutoSchema',

    'DEFAULT_AUTHENTICATION_CLASSES': [],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.AllowAny',
    ],

    'DEFAULT_RENDERER_CLASSES': [
        'rest_framework.renderers.JSONRenderer',
    ],
}


SPECTACULAR_SETTINGS = {
    'TITLE': 'TailorWorks',
    'DESCRIPTION': 'TailorWorks operations API',
    'VERSION': '1.0.0',
}
