from starlette.middleware.base import BaseHTTPMiddleware

from .observability import correlation_context


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        with correlation_context(request.headers.get("x-request-id")) as correlation_id:
            request.state.correlation_id = correlation_id
            response = await call_next(request)
        response.headers["X-Request-ID"] = correlation_id
        return response
