import os
from pathlib import Path

import structlog

BASE_DIR = Path(__file__).resolve().parent.parent


def _env_bool(nombre, default):
    valor = os.environ.get(nombre)
    if valor is None:
        return default
    return valor.strip().lower() in ("1", "true", "yes", "si", "on")


SECRET_KEY = os.environ.get("CANTERA_SECRET_KEY", "django-insecure-cantera-dev-key")
DEBUG = _env_bool("CANTERA_DEBUG", True)
ALLOWED_HOSTS = [h for h in os.environ.get("CANTERA_ALLOWED_HOSTS", "*").split(",") if h]


INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    "django_filters",
    "simple_history",
    "drf_spectacular",
    "core",
    "catalogo",
    "pedidos",
    "despachos",
    "evidencias",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
    "simple_history.middleware.HistoryRequestMiddleware",
]

ROOT_URLCONF = "cantera_back.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "cantera_back.wsgi.application"


# Base de datos: SQLite por defecto, cualquier motor de Django por variables de entorno
DATABASES = {
    "default": {
        "ENGINE": os.environ.get("DATABASE_ENGINE", "django.db.backends.sqlite3"),
        "NAME": os.environ.get("DATABASE_NAME", str(BASE_DIR / "db.sqlite3")),
        "USER": os.environ.get("DATABASE_USER", ""),
        "PASSWORD": os.environ.get("DATABASE_PASSWORD", ""),
        "HOST": os.environ.get("DATABASE_HOST", ""),
        "PORT": os.environ.get("DATABASE_PORT", ""),
        "ATOMIC_REQUESTS": False,
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "es"
TIME_ZONE = os.environ.get("CANTERA_TIME_ZONE", "America/Caracas")
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
MEDIA_URL = "/uploads/"
MEDIA_ROOT = os.environ.get("CANTERA_MEDIA_ROOT", str(BASE_DIR / "uploads"))


REST_FRAMEWORK = {
    "DEFAULT_FILTER_BACKENDS": ["django_filters.rest_framework.DjangoFilterBackend"],
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
    "EXCEPTION_HANDLER": "core.handlers.exception_handler",
    "DEFAULT_PARSER_CLASSES": [
        "rest_framework.parsers.JSONParser",
        "rest_framework.parsers.MultiPartParser",
        "rest_framework.parsers.FormParser",
    ],
}

SPECTACULAR_SETTINGS = {
    "TITLE": "Cantera ERP",
    "DESCRIPTION": "Pedidos, despachos y control de patio/salida de la cantera",
    "VERSION": "1.0.0",
}


# --- Pedidos ---
PEDIDOS_PREFIJO_NUMERO = os.environ.get("CANTERA_PREFIJO_PEDIDO", "ORD")
PEDIDOS_DIGITOS_SUFIJO = int(os.environ.get("CANTERA_DIGITOS_SUFIJO", "3"))
PEDIDOS_REINTENTOS_NUMERO = int(os.environ.get("CANTERA_REINTENTOS_NUMERO", "10"))

# --- Evidencias fotográficas ---
FOTO_REQUERIDA_EN_CARGA = _env_bool("CANTERA_FOTO_REQUERIDA_EN_CARGA", False)
FOTO_REQUERIDA_EN_SALIDA = _env_bool("CANTERA_FOTO_REQUERIDA_EN_SALIDA", True)
EVIDENCIAS_DIRECTORIO = os.environ.get("CANTERA_EVIDENCIAS_DIRECTORIO", "despachos")
EVIDENCIAS_TAMANO_MAXIMO = int(os.environ.get("CANTERA_EVIDENCIAS_TAMANO_MAXIMO", str(10 * 1024 * 1024)))


# --- Logging (structlog sobre el logging de Django) ---
_procesadores_comunes = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso"),
]

structlog.configure(
    processors=_procesadores_comunes + [
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ],
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=True,
)

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "consola": {
            "()": structlog.stdlib.ProcessorFormatter,
            "processor": structlog.dev.ConsoleRenderer() if DEBUG else structlog.processors.JSONRenderer(),
            "foreign_pre_chain": _procesadores_comunes,
        },
    },
    "handlers": {
        "consola": {
            "class": "logging.StreamHandler",
            "formatter": "consola",
        },
    },
    "root": {
        "handlers": ["consola"],
        "level": os.environ.get("CANTERA_LOG_LEVEL", "INFO"),
    },
    "loggers": {
        "django.db.backends": {"level": "WARNING"},
    },
}
