import os
from pathlib import Path

import dj_database_url
from dotenv import load_dotenv

from .logging_config import get_logging_config

BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / ".env")

SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "changeme")
DEBUG = os.getenv("DJANGO_DEBUG", "False") == "True"
ALLOWED_HOSTS = os.getenv("DJANGO_ALLOWED_HOSTS", "127.0.0.1,localhost,testserver").split(",")

INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "books_core.apps.BooksCoreConfig",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
    "books_core.middleware.SessionTokenMiddleware",
]

ROOT_URLCONF = "cb_project.urls"

DATABASES = {
    "default": dj_database_url.config(
        env="DATABASE_URL",
        default=f"sqlite:///{BASE_DIR / 'db.sqlite3'}",
        conn_max_age=600,
    )
}

AUTH_USER_MODEL = "books_core.User"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

MEDIA_ROOT = Path(os.getenv("MEDIA_ROOT", BASE_DIR / "media"))
MEDIA_URL = "/media/"

# Session token lookup (Authorization: Bearer <token> or this cookie)
BOOKS_SESSION_COOKIE = os.getenv("BOOKS_SESSION_COOKIE", "SessionId")
BOOKS_SESSION_TTL_HOURS = int(os.getenv("BOOKS_SESSION_TTL_HOURS", "24"))

LOGGING = get_logging_config(DEBUG)
