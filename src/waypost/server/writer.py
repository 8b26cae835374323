"""Envelope serialization — the single exit of the dispatch pipeline.

Success::

    {"success": true, "data": ...}

Failure::

    {"success": false, "errorCode": "...", "errorMessage": "...", "userTip": "..."}

``userTip`` appears only when the domain error carried one. Transport
failures use the status number as their code.
"""

import logging

from waypost.codec import BodyCodec, JSONCodec
from waypost.config import AppConfig
from waypost.http.response import Response, ResponseHandle, validate_header, validate_headers
from waypost.server.invoker import DispatchResult, Outcome

logger = logging.getLogger("waypost.server")

STATUS_FOR_OUTCOME: dict[Outcome, int] = {
    Outcome.OK: 200,
    Outcome.NOT_FOUND: 404,
    Outcome.BAD_REQUEST: 400,
    # Business failures are a normal HTTP exchange
    Outcome.DOMAIN_ERROR: 200,
    Outcome.INTERNAL_ERROR: 500,
}


class ResponseWriter:
    """Turns a ``DispatchResult`` into the outgoing ``Response``."""

    __slots__ = ("_codec", "_config")

    def __init__(self, codec: BodyCodec | None = None, config: AppConfig | None = None) -> None:
        self._codec = codec or JSONCodec()
        self._config = config or AppConfig()

    def write(self, result: DispatchResult, handle: ResponseHandle | None = None) -> Response:
        response = self._build(result, handle)
        try:
            validate_header("content-type", response.content_type)
            validate_headers(response.headers)
        except ValueError:
            logger.exception("Cannot send the headers of a %s outcome", result.outcome.name)
            return self._internal_error()
        return response

    def _build(self, result: DispatchResult, handle: ResponseHandle | None) -> Response:
        if result.is_success and isinstance(result.payload, Response):
            return self._apply_handle(result.payload, handle)

        status = STATUS_FOR_OUTCOME[result.outcome]
        try:
            body = self._codec.encode(self.envelope(result))
        except (TypeError, ValueError):
            logger.exception("Cannot serialize the result of a %s outcome", result.outcome.name)
            return self._apply_handle(self._internal_error(), handle)

        response = Response(body=body, status=status, content_type=self._codec.content_type)
        return self._apply_handle(response, handle)

    def _internal_error(self) -> Response:
        """The generic 500 envelope."""
        result = DispatchResult.internal_error(self._config.internal_error_message)
        return Response(
            body=self._codec.encode(self.envelope(result)),
            status=STATUS_FOR_OUTCOME[Outcome.INTERNAL_ERROR],
            content_type=self._codec.content_type,
        )

    def envelope(self, result: DispatchResult) -> dict[str, object]:
        """The JSON-ready envelope for *result*."""
        if result.is_success:
            return {"success": True, "data": result.payload}

        if result.outcome is Outcome.DOMAIN_ERROR:
            code = result.code
        else:
            code = str(STATUS_FOR_OUTCOME[result.outcome])
        envelope: dict[str, object] = {
            "success": False,
            "errorCode": code,
            "errorMessage": result.message,
        }
        if result.user_tip:
            envelope["userTip"] = result.user_tip
        return envelope

    @staticmethod
    def _apply_handle(response: Response, handle: ResponseHandle | None) -> Response:
        if handle is None:
            return response
        if handle.content_type:
            response = response.with_content_type(handle.content_type)
        for name, value in handle.headers:
            response = response.with_header(name, value)
        return response
