"""Local development settings."""
from .base import *  # noqa: F401,F403

DEBUG = True
ENABLE_DJANGO_ADMIN = True
JWT_AUTH_COOKIE_SECURE = False
CORS_ALLOW_ALL_ORIGINS = True

REST_FRAMEWORK["DEFAULT_RENDERER_CLASSES"] = [  # noqa: F405
    "rest_framework.renderers.JSONRenderer",
    "rest_framework.renderers.BrowsableAPIRenderer",
]

# django-debug-toolbar is optional in development.
try:
    import debug_toolbar  # noqa: F401
    INSTALLED_APPS += ["debug_toolbar"]  # noqa: F405
    MIDDLEWARE.insert(0, "debug_toolbar.middleware.DebugToolbarMiddleware")  # noqa: F405
    INTERNAL_IPS = ["127.0.0.1"]
except ImportError:
    pass

LOGGING["root"]["level"] = "DEBUG"  # noqa: F405
LOGGING["loggers"]["commissions"]["level"] = "DEBUG"  # noqa: F405
