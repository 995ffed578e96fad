"""
Custom middleware for API request logging.
"""
import logging
import time

from utils.mongo import log_api_request

logger = logging.getLogger(__name__)


class APILoggingMiddleware:
    """
    Middleware to log API requests to MongoDB.
    Logs train listing/search requests, which feed the route analytics.
    """

    # Endpoints to log (exact paths)
    LOGGED_ENDPOINTS = ['/api/trains/']

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        should_log = request.method == 'GET' and request.path in self.LOGGED_ENDPOINTS

        if should_log:
            start_time = time.perf_counter()

        response = self.get_response(request)

        if should_log:
            execution_time_ms = (time.perf_counter() - start_time) * 1000

            user_id = None
            if hasattr(request, 'user') and request.user.is_authenticated:
                user_id = request.user.id

            # Flatten single-value lists
            request_params = {
                k: v[0] if len(v) == 1 else v
                for k, v in request.GET.lists()
            }

            results_count = None
            if hasattr(response, 'data'):
                if isinstance(response.data, dict) and 'results' in response.data:
                    results_count = len(response.data['results'])
                elif isinstance(response.data, list):
                    results_count = len(response.data)

            try:
                log_api_request(
                    endpoint=request.path,
                    method=request.method,
                    user_id=user_id,
                    request_params=request_params,
                    response_status=response.status_code,
                    execution_time_ms=round(execution_time_ms, 2),
                    results_count=results_count
                )
            except Exception:
                # Logging must never affect the response
                logger.exception("Error logging API request")

        return response
