"""Core middleware."""
from django.utils.cache import add_never_cache_headers

API_PREFIX = "/api/"


def no_store_api_middleware(get_response):
    """Mark every API response as uncacheable.

    Reports change as soon as a sales figure is edited, so neither the browser
    nor an intermediate proxy may keep a copy.
    """

    def middleware(request):
        response = get_response(request)
        if request.path.startswith(API_PREFIX):
            add_never_cache_headers(response)
            response["Pragma"] = "no-cache"
        return response

    return middleware
