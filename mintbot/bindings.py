"""
mintbot.bindings
~~~~~~~~~~~~~~~~

This module contains custom bindings. See:
https://www.neoteroi.dev/blacksheep/binders/
"""
import typing

import blacksheep
import pydantic
from blacksheep import exceptions
from blacksheep.server import bindings

from mintbot import errors, models


class FromMintRequest(bindings.BoundValue[bindings.T]):  # pylint: disable=R0903
    ...


class MintRequestBinder(bindings.Binder):

    handle = FromMintRequest

    async def get_value(self, request: blacksheep.Request) -> typing.Any:
        try:
            body = await request.json()
        except (exceptions.BadRequestFormat, ValueError) as decode_err:
            raise errors.BadRequest(
                "Request body must be valid JSON", details=str(decode_err)
            ) from decode_err

        if not isinstance(body, dict):
            raise errors.BadRequest("Request body must be a JSON object")

        try:
            return models.MintRequest(**body)
        except pydantic.ValidationError as validation_error:
            raise errors.BadRequest(
                "Invalid request body",
                details=validation_error.errors(include_url=False),
            ) from validation_error
