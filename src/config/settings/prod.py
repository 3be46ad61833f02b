"""Production settings: HTTPS behind a reverse proxy, strict secrets."""
from django.core.exceptions import ImproperlyConfigured

from .base import *  # noqa: F401,F403

DEBUG = False
ENABLE_DJANGO_ADMIN = env.bool("ENABLE_DJANGO_ADMIN", default=False)  # noqa: F405

SESSION_COOKIE_SECURE = True
CSRF_COOKIE_SECURE = True
CSRF_TRUSTED_ORIGINS = env.list("CSRF_TRUSTED_ORIGINS", default=[])  # noqa: F405

SECURE_SSL_REDIRECT = env.bool("SECURE_SSL_REDIRECT", default=True)  # noqa: F405
SECURE_HSTS_SECONDS = env.int("SECURE_HSTS_SECONDS", default=60 * 60 * 24 * 365)  # noqa: F405
SECURE_HSTS_INCLUDE_SUBDOMAINS = True
SECURE_HSTS_PRELOAD = True
USE_X_FORWARDED_HOST = env.bool("USE_X_FORWARDED_HOST", default=True)  # noqa: F405
if env.bool("USE_X_FORWARDED_PROTO", default=True):  # noqa: F405
    SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")

STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {"BACKEND": "django.contrib.staticfiles.storage.ManifestStaticFilesStorage"},
}


def _check_production_settings():
    problems = []
    if (
        len(SECRET_KEY) < 50  # noqa: F405
        or len(set(SECRET_KEY)) < 5  # noqa: F405
        or SECRET_KEY.startswith("django-insecure-")  # noqa: F405
    ):
        problems.append("SECRET_KEY doit etre une cle longue et aleatoire.")
    if not JWT_AUTH_COOKIE_SECURE:  # noqa: F405
        problems.append("JWT_AUTH_COOKIE_SECURE doit etre active.")
    if not CORS_ALLOWED_ORIGINS:  # noqa: F405
        problems.append("CORS_ALLOWED_ORIGINS doit lister les origines du client web.")
    if problems:
        raise ImproperlyConfigured("Configuration de production invalide : " + " ".join(problems))


_check_production_settings()
