"""Login, token refresh, logout and profile endpoints.

Tokens are delivered as HttpOnly cookies. They are only echoed in the body
when ``JWT_RETURN_TOKENS_IN_BODY`` is set, for non-browser clients.
"""

import logging

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.middleware import csrf
from django.utils.decorators import method_decorator
from django.views.decorators.csrf import ensure_csrf_cookie
from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from api.v1.serializers import LoginSerializer, MeSerializer

logger = logging.getLogger("tracker")

FALLBACK_AUTH_RATE = "5/min"


class SafeScopedRateThrottle(ScopedRateThrottle):
    """Scoped throttle which never runs unthrottled.

    A scope missing from ``DEFAULT_THROTTLE_RATES`` gets a strict rate
    instead of raising at request time.
    """

    def get_rate(self):
        try:
            return super().get_rate()
        except ImproperlyConfigured:
            logger.warning("Throttle scope %r has no rate, using %s.", self.scope, FALLBACK_AUTH_RATE)
            return FALLBACK_AUTH_RATE


def _access_cookie_name():
    return getattr(settings, "JWT_AUTH_COOKIE", "access_token")


def _refresh_cookie_name():
    return getattr(settings, "JWT_AUTH_REFRESH_COOKIE", "refresh_token")


def _cookie_scope():
    return {
        "path": getattr(settings, "JWT_AUTH_COOKIE_PATH", "/"),
        "domain": getattr(settings, "JWT_AUTH_COOKIE_DOMAIN", None),
    }


def token_response(body, *, access, refresh=None):
    """Build a 200 response carrying the tokens as cookies."""
    if getattr(settings, "JWT_RETURN_TOKENS_IN_BODY", False):
        body = {**body, "access": access}
        if refresh:
            body["refresh"] = refresh
    response = Response(body, status=status.HTTP_200_OK)

    lifetimes = settings.SIMPLE_JWT
    cookies = [(_access_cookie_name(), access, lifetimes["ACCESS_TOKEN_LIFETIME"])]
    if refresh:
        cookies.append((_refresh_cookie_name(), refresh, lifetimes["REFRESH_TOKEN_LIFETIME"]))
    for name, value, lifetime in cookies:
        response.set_cookie(
            name,
            value,
            max_age=int(lifetime.total_seconds()),
            httponly=True,
            secure=getattr(settings, "JWT_AUTH_COOKIE_SECURE", not settings.DEBUG),
            samesite=getattr(settings, "JWT_AUTH_COOKIE_SAMESITE", "Lax"),
            **_cookie_scope(),
        )
    return response


class CookieTokenObtainPairView(TokenObtainPairView):
    """POST /api/auth/token/ - exchange e-mail and password for tokens."""

    serializer_class = LoginSerializer
    permission_classes = [permissions.AllowAny]
    throttle_classes = [SafeScopedRateThrottle]
    throttle_scope = "auth_burst"

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        logger.info("Connexion API de %s", data["user"]["email"])
        return token_response(
            {"user": data["user"]}, access=data["access"], refresh=data["refresh"],
        )


class CookieTokenRefreshView(TokenRefreshView):
    """POST /api/auth/token/refresh/ - the refresh token may come from the cookie."""

    permission_classes = [permissions.AllowAny]
    throttle_classes = [SafeScopedRateThrottle]
    throttle_scope = "auth_sustained"

    def post(self, request, *args, **kwargs):
        refresh = request.data.get("refresh") or request.COOKIES.get(_refresh_cookie_name())
        serializer = self.get_serializer(data={"refresh": refresh})
        try:
            serializer.is_valid(raise_exception=True)
        except TokenError as exc:
            # Expired, revoked or malformed refresh token: 401, not 500.
            raise InvalidToken(exc.args[0]) from exc
        data = serializer.validated_data
        # Without rotation the submitted refresh token stays valid.
        return token_response(
            {"detail": "Jeton renouvele."},
            access=data["access"],
            refresh=data.get("refresh", refresh),
        )


class LogoutAPIView(APIView):
    """POST /api/auth/logout/ - revoke the refresh token and drop both cookies."""

    permission_classes = [permissions.AllowAny]

    def post(self, request):
        refresh = request.data.get("refresh") or request.COOKIES.get(_refresh_cookie_name())
        if refresh:
            try:
                RefreshToken(refresh).blacklist()
            except TokenError as exc:
                logger.info("Deconnexion avec un jeton deja invalide: %s", exc)

        response = Response(status=status.HTTP_204_NO_CONTENT)
        for name in (_access_cookie_name(), _refresh_cookie_name()):
            response.delete_cookie(name, **_cookie_scope())
        return response


@method_decorator(ensure_csrf_cookie, name="dispatch")
class CSRFTokenAPIView(APIView):
    """GET /api/auth/csrf/ - set the CSRF cookie and return its token."""

    permission_classes = [permissions.AllowAny]

    def get(self, request):
        return Response({"csrfToken": csrf.get_token(request)})


class MeView(APIView):
    """
    GET /api/auth/me/ - profile of the authenticated user.
    PATCH /api/auth/me/ - update first_name, last_name and phone.
    """

    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        return Response(MeSerializer(request.user).data)

    def patch(self, request):
        serializer = MeSerializer(request.user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data)
