"""Authentication backend for the API."""

from django.conf import settings
from django.middleware.csrf import CsrfViewMiddleware
from rest_framework import exceptions
from rest_framework.request import Request
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError


class CookieJWTAuthentication(JWTAuthentication):
    """JWT auth reading the ``Authorization`` bearer header, then the access cookie.

    An invalid bearer token is rejected with 401. An invalid or expired cookie
    leaves the request anonymous so the refresh endpoint stays reachable.
    Cookie-authenticated requests go through the CSRF check.
    """

    def _enforce_csrf(self, request: Request) -> None:
        django_request = request._request
        check = CsrfViewMiddleware(lambda req: None)
        check.process_request(django_request)
        reason = check.process_view(django_request, None, (), {})
        if reason:
            raise exceptions.PermissionDenied(f"CSRF Failed: {reason}")

    def _authenticate_header(self, request: Request):
        header = self.get_header(request)
        if header is None:
            return None
        raw_token = self.get_raw_token(header)
        if raw_token is None:
            return None
        validated_token = self.get_validated_token(raw_token)
        return self.get_user(validated_token), validated_token

    def _authenticate_cookie(self, request: Request):
        raw_token = request.COOKIES.get(getattr(settings, "JWT_AUTH_COOKIE", "access_token"))
        if not raw_token:
            return None
        try:
            validated_token = self.get_validated_token(raw_token)
        except (InvalidToken, TokenError):
            return None
        self._enforce_csrf(request)
        return self.get_user(validated_token), validated_token

    def authenticate(self, request: Request):
        return self._authenticate_header(request) or self._authenticate_cookie(request)
