# pylint: disable=E1101,I1101

import typing
from http.client import UNSUPPORTED_MEDIA_TYPE

import blacksheep
import orjson
from blacksheep import exceptions

from mintbot.codes import MintCode


class BadRequest(Exception):
    def __init__(
        self,
        message: str | None = None,
        details: typing.Any = None,
        status: int | None = None,
        code: MintCode = MintCode.VALIDATION_ERROR,
    ):
        super().__init__(message)
        self.message = message or "Bad request"
        self.status = status or 400
        self.details = details
        self.code = code


class UnsupportedMediaType(exceptions.HTTPException):  # pylint: disable=R0903
    def __init__(self, message: str = "Unsupported Media Type"):
        super().__init__(UNSUPPORTED_MEDIA_TYPE, message)


def json_response(status: int, body: dict[str, typing.Any]) -> blacksheep.Response:
    return blacksheep.Response(
        status,
        content=blacksheep.Content(
            content_type=b"application/json",
            data=orjson.dumps(body, default=str),
        ),
    )


async def error_400_handler(
    _self: typing.Any, _request: blacksheep.Request, exc: BadRequest
) -> blacksheep.Response:
    assert isinstance(exc, BadRequest)

    body: dict[str, typing.Any] = {
        "success": False,
        "msg": exc.message,
        "code": exc.code.value,
    }

    if exc.details is not None:
        body["details"] = exc.details

    return json_response(exc.status, body)


async def error_415_handler(
    _self: typing.Any, _request: blacksheep.Request, exc: UnsupportedMediaType
) -> blacksheep.Response:
    return json_response(
        exc.status,
        {
            "success": False,
            "msg": str(exc) or "Unsupported Media Type",
            "code": MintCode.VALIDATION_ERROR.value,
        },
    )
