"""
Host canonicalization for the public site.
"""
from asgiref.sync import iscoroutinefunction
from django.http import HttpResponsePermanentRedirect
from django.utils.decorators import sync_and_async_middleware

WWW_PREFIX = 'www.'


def _canonical_redirect(request):
    host = request.get_host()
    if not host.lower().startswith(WWW_PREFIX):
        return None
    location = f'{request.scheme}://{host[len(WWW_PREFIX):]}{request.get_full_path()}'
    return HttpResponsePermanentRedirect(location)


@sync_and_async_middleware
def canonical_host_middleware(get_response):
    """Send ``www.`` requests to the same path on the bare host with a 301."""

    if iscoroutinefunction(get_response):
        async def middleware(request):
            redirect = _canonical_redirect(request)
            if redirect is not None:
                return redirect
            return await get_response(request)
    else:
        def middleware(request):
            redirect = _canonical_redirect(request)
            if redirect is not None:
                return redirect
            return get_response(request)

    return middleware
