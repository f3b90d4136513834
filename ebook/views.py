from django.http import HttpResponse, HttpResponseRedirect
from django.shortcuts import redirect, render
from django.utils.cache import patch_cache_control
from django.utils.html import escape
from django.views.decorators.http import require_GET

from ebook.context import get_context
from ebook.errors import ReaderError, UpstreamProviderError
from ebook.gate import is_unlocked, read_cover, read_page
from ebook.gateway import initiate_checkout, redeem_checkout

HTML_CONTENT_TYPE = 'text/html; charset=utf-8'
PNG_CONTENT_TYPE = 'image/png'
CONTENT_MAX_AGE_SECONDS = 3600


def error_response(error: ReaderError) -> HttpResponse:
    body = f'<p>{escape(error.message)}</p>'
    if isinstance(error, UpstreamProviderError) and error.provider_status is not None:
        body += (
            f'<p>Provider status: {error.provider_status}</p>'
            f'<pre>{escape(error.provider_payload)}</pre>'
        )
    return HttpResponse(body, status=error.status_code, content_type=HTML_CONTENT_TYPE)


def _png_response(content: bytes, **cache_control) -> HttpResponse:
    response = HttpResponse(content, content_type=PNG_CONTENT_TYPE)
    patch_cache_control(response, max_age=CONTENT_MAX_AGE_SECONDS, **cache_control)
    return response


def _session_token(request):
    return request.COOKIES.get(get_context().config.cookie_name)


@require_GET
async def reader(request):
    ctx = get_context()
    unlocked = await is_unlocked(ctx, _session_token(request))
    return render(
        request,
        'ebook/reader.html',
        {
            'title': ctx.config.title,
            'page_count': ctx.config.page_count,
            'unlocked': unlocked,
        },
        content_type=HTML_CONTENT_TYPE,
    )


@require_GET
async def buy(request):
    origin = f'{request.scheme}://{request.get_host()}'
    result = await initiate_checkout(get_context(), origin)
    if not result.ok:
        return error_response(result.error)
    return HttpResponseRedirect(result.redirect_url)


@require_GET
async def claim(request):
    ctx = get_context()
    result = await redeem_checkout(ctx, request.GET.get('cs'))
    if not result.ok:
        return error_response(result.error)

    response = redirect('ebook:reader')
    if result.credential is not None:
        response.set_cookie(
            ctx.config.cookie_name,
            result.credential.token,
            max_age=result.credential.max_age,
            path='/',
            secure=True,
            httponly=True,
            samesite='Lax',
        )
    return response


@require_GET
async def page(request, number):
    result = await read_page(get_context(), _session_token(request), number)
    if not result.ok:
        return error_response(result.error)
    return _png_response(result.content, private=True)


@require_GET
async def cover(request):
    result = await read_cover(get_context())
    if not result.ok:
        return error_response(result.error)
    return _png_response(result.content, public=True)
