# igreja_eventos/settings.py: configuração única (dev/produção via variáveis de ambiente)
from pathlib import Path
import os
from decimal import Decimal

BASE_DIR = Path(__file__).resolve().parent.parent


def _env_bool(nome: str, padrao: bool = False) -> bool:
    valor = os.environ.get(nome)
    if valor is None:
        return padrao
    return valor.strip().lower() in ("1", "true", "yes", "on", "sim")


# ------------------------------------------------------------------------------
# Segurança
# ------------------------------------------------------------------------------
SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'dev-only-troque-em-producao')
DEBUG = _env_bool('DJANGO_DEBUG', False)

SITE_URL = os.environ.get('SITE_URL', 'http://localhost:8000').rstrip('/')

ALLOWED_HOSTS = [h.strip() for h in os.environ.get('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1,testserver').split(',') if h.strip()]

if SITE_URL.startswith('https://'):
    SECURE_PROXY_SSL_HEADER = ('HTTP_X_FORWARDED_PROTO', 'https')
    SESSION_COOKIE_SECURE = True
    CSRF_COOKIE_SECURE    = True
    CSRF_TRUSTED_ORIGINS  = [SITE_URL]

# ------------------------------------------------------------------------------
# Apps
# ------------------------------------------------------------------------------
INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',

    'inscricoes',
    'pagamentos',
]

# ------------------------------------------------------------------------------
# Middleware
# ------------------------------------------------------------------------------
MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',

    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',

    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',

    'inscricoes.middleware.UserActivityLoggingMiddleware',
]

ROOT_URLCONF = 'igreja_eventos.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'igreja_eventos.wsgi.application'

# ------------------------------------------------------------------------------
# Banco de Dados: SQLite em dev; Postgres/MySQL em produção via DB_ENGINE
# ------------------------------------------------------------------------------
DB_ENGINE = os.environ.get('DB_ENGINE', 'django.db.backends.sqlite3')

if DB_ENGINE.endswith('sqlite3'):
    DATABASES = {
        'default': {
            'ENGINE': DB_ENGINE,
            'NAME': os.environ.get('DB_NAME', str(BASE_DIR / 'db.sqlite3')),
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': DB_ENGINE,
            'NAME': os.environ.get('DB_NAME', 'igreja_eventos'),
            'USER': os.environ.get('DB_USER', ''),
            'PASSWORD': os.environ.get('DB_PASSWORD', ''),
            'HOST': os.environ.get('DB_HOST', 'localhost'),
            'PORT': os.environ.get('DB_PORT', ''),
        }
    }

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# ------------------------------------------------------------------------------
# Auth
# ------------------------------------------------------------------------------
AUTH_USER_MODEL = 'inscricoes.User'

AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator', 'OPTIONS': {'min_length': 6}},
]

# ------------------------------------------------------------------------------
# i18n / TZ
# ------------------------------------------------------------------------------
LANGUAGE_CODE = 'pt-br'
TIME_ZONE = 'America/Sao_Paulo'
USE_I18N = True
USE_TZ = True

STATIC_URL  = '/static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

# ------------------------------------------------------------------------------
# E-mail (SMTP em produção; console em dev)
# ------------------------------------------------------------------------------
EMAIL_BACKEND        = os.environ.get('EMAIL_BACKEND', 'django.core.mail.backends.console.EmailBackend')
EMAIL_HOST           = os.environ.get('EMAIL_HOST', 'smtp.gmail.com')
EMAIL_PORT           = int(os.environ.get('EMAIL_PORT', '587'))
EMAIL_USE_TLS        = _env_bool('EMAIL_USE_TLS', True)
EMAIL_HOST_USER      = os.environ.get('EMAIL_HOST_USER', '')
EMAIL_HOST_PASSWORD  = os.environ.get('EMAIL_HOST_PASSWORD', '')
DEFAULT_FROM_EMAIL   = os.environ.get('DEFAULT_FROM_EMAIL', EMAIL_HOST_USER or 'nao-responda@localhost')

# ------------------------------------------------------------------------------
# Mercado Pago
# ------------------------------------------------------------------------------
MERCADO_PAGO_ACCESS_TOKEN = os.environ.get('MERCADO_PAGO_ACCESS_TOKEN', '')
MERCADO_PAGO_PUBLIC_KEY   = os.environ.get('MERCADO_PAGO_PUBLIC_KEY', '')
MERCADO_PAGO_TIMEOUT      = float(os.environ.get('MERCADO_PAGO_TIMEOUT', '5'))

# ------------------------------------------------------------------------------
# Cloudinary (upload de banners)
# ------------------------------------------------------------------------------
CLOUDINARY_CLOUD_NAME = os.environ.get('CLOUDINARY_CLOUD_NAME', '')
CLOUDINARY_API_KEY    = os.environ.get('CLOUDINARY_API_KEY', '')
CLOUDINARY_API_SECRET = os.environ.get('CLOUDINARY_API_SECRET', '')
CLOUDINARY_PASTA      = os.environ.get('CLOUDINARY_PASTA', 'event-remir/events')

# ------------------------------------------------------------------------------
# Logging
# ------------------------------------------------------------------------------
LOG_DIR = Path(os.environ.get('LOG_DIR', BASE_DIR / 'logs'))
LOG_DIR.mkdir(exist_ok=True)

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {"format": "{asctime} | {levelname} | {name} | {message}", "style": "{"},
    },
    "handlers": {
        "file": {
            "level": "INFO",
            "class": "logging.FileHandler",
            "filename": LOG_DIR / "eventos.log",
            "formatter": "verbose",
        },
        "console": {
            "level": "INFO",
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "loggers": {
        "django":          {"handlers": ["file", "console"], "level": "INFO", "propagate": True},
        "django.security": {"handlers": ["file"], "level": "WARNING", "propagate": False},
        "inscricoes":      {"handlers": ["file", "console"], "level": "INFO", "propagate": False},
        "pagamentos":      {"handlers": ["file", "console"], "level": "INFO", "propagate": False},
        "integracoes":     {"handlers": ["file", "console"], "level": "INFO", "propagate": False},
    },
}

# ------------------------------------------------------------------------------
# Regras de pagamento
# ------------------------------------------------------------------------------
PAGAMENTO_VALOR_MINIMO_PARCELA = Decimal("5.00")
PREFERENCIA_EXPIRACAO_MINUTOS = 30
TAXAS_CACHE_TTL = 24 * 60 * 60
