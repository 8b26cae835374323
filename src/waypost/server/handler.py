"""ASGI handler — the per-request pipeline.

The only component that touches raw ASGI for HTTP requests. Converts
the scope to a typed ``Request``, then runs::

    match -> bind -> invoke -> write -> send

Every request produces exactly one ``DispatchResult`` and passes
through ``ResponseWriter.write`` exactly once, whichever stage ends it.
"""

import logging

from waypost._internal.asgi import Receive, Scope, Send
from waypost.binding import ParameterBinder
from waypost.config import AppConfig
from waypost.errors import BindingError, NoRoute
from waypost.http.request import Request
from waypost.http.response import Response, ResponseHandle
from waypost.routing.matcher import RequestMatcher
from waypost.server.invoker import DispatchResult, Invoker
from waypost.server.sender import send_response
from waypost.server.writer import ResponseWriter

logger = logging.getLogger("waypost.server")


async def dispatch(
    request: Request,
    *,
    matcher: RequestMatcher,
    binder: ParameterBinder,
    invoker: Invoker,
    writer: ResponseWriter,
    config: AppConfig,
) -> Response:
    """Run one request through the pipeline and return the written response."""
    handle = ResponseHandle()
    result = await _resolve(
        request,
        handle,
        matcher=matcher,
        binder=binder,
        invoker=invoker,
        config=config,
    )
    return writer.write(result, handle)


async def _resolve(
    request: Request,
    handle: ResponseHandle,
    *,
    matcher: RequestMatcher,
    binder: ParameterBinder,
    invoker: Invoker,
    config: AppConfig,
) -> DispatchResult:
    try:
        match = matcher.match(request.method, request.path)
    except NoRoute:
        logger.debug("404 %s %s", request.method, request.path)
        return DispatchResult.not_found(config.not_found_message)

    try:
        bound = await binder.bind(match, request, handle)
    except BindingError as exc:
        level = logging.WARNING if config.debug else logging.DEBUG
        logger.log(level, "400 %s %s: %s", request.method, request.path, exc)
        return DispatchResult.bad_request(str(exc))
    except Exception as exc:
        # A provider factory failed
        return await invoker.classify(exc, match.route, request)

    return await invoker.invoke(match.route, bound)


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    matcher: RequestMatcher,
    binder: ParameterBinder,
    invoker: Invoker,
    writer: ResponseWriter,
    config: AppConfig,
) -> None:
    """Process a single HTTP request through the full pipeline."""
    if scope["type"] != "http":
        return

    request = Request.from_asgi(scope, receive)
    response = await dispatch(
        request,
        matcher=matcher,
        binder=binder,
        invoker=invoker,
        writer=writer,
        config=config,
    )
    await send_response(response, send, method=request.method)
