# core/middleware.py
"""
Request middleware: current-user tracking for the audit signals and
no-cache headers for signed-in pages.
"""

import threading

from django.utils.cache import add_never_cache_headers

_thread_locals = threading.local()


def get_current_user():
    """Get the current user from thread-local storage"""
    return getattr(_thread_locals, 'user', None)


def set_current_user(user):
    _thread_locals.user = user


class AuditMiddleware:
    """Keeps the signed-in user in thread-local storage for the duration of a request"""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        user = getattr(request, 'user', None)
        set_current_user(user if user is not None and user.is_authenticated else None)
        try:
            return self.get_response(request)
        finally:
            set_current_user(None)


class NoCacheMiddleware:
    """
    Prevents browser caching of authenticated pages so the back button
    does not show clinic data after logout.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        response = self.get_response(request)

        if request.user.is_authenticated:
            add_never_cache_headers(response)
            response['Pragma'] = 'no-cache'
            response['Expires'] = '0'

        return response
