"""
HTTP middleware for studyroom.

- ApiKeyAuthMiddleware: requires X-API-KEY (or Authorization) to match
  AUTH_API_KEY for all endpoints except /health/ (when AUTH_API_KEY is set).
- HealthCheckAllowHttpMiddleware: keeps SECURE_SSL_REDIRECT from redirecting
  /health/ to HTTPS and opens it to any origin, so load balancer probes work.
"""

from __future__ import annotations

import hmac

from django.conf import settings
from django.http import JsonResponse


def _is_health_path(request) -> bool:
    path = (request.path or "").rstrip("/") or "/"
    return path == "/health"


def _provided_key(request) -> str:
    provided = (request.META.get("HTTP_X_API_KEY") or "").strip()
    if not provided:
        provided = (request.META.get("HTTP_AUTHORIZATION") or "").strip()
    return provided


class ApiKeyAuthMiddleware:
    """
    When AUTH_API_KEY is set, require the key for all requests except
    /health/ and CORS preflights. Returns 401 with a JSON body otherwise.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        if _is_health_path(request) or request.method == "OPTIONS":
            return self.get_response(request)

        auth_key = getattr(settings, "AUTH_API_KEY", None)
        if not auth_key:
            return self.get_response(request)

        provided = _provided_key(request)
        if not provided or not hmac.compare_digest(provided.encode("utf-8"), auth_key.encode("utf-8")):
            return JsonResponse(
                {"detail": "Missing or invalid API key. Use X-API-KEY header."},
                status=401,
            )
        return self.get_response(request)


class HealthCheckAllowHttpMiddleware:
    """
    Run before SecurityMiddleware. For requests to /health/:
    - Set proxy SSL header so Django does not redirect HTTP -> HTTPS (avoids 301).
    - In response, add permissive CORS.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        if _is_health_path(request):
            request.META["HTTP_X_FORWARDED_PROTO"] = "https"
            request.csrf_processing_done = True
        response = self.get_response(request)
        if _is_health_path(request):
            response["Access-Control-Allow-Origin"] = "*"
        return response
