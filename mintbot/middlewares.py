import typing

import blacksheep

from mintbot import errors

JSON = b"application/json"


class MediaTypeValidator:  # pylint: disable=R0903
    """Reject request bodies that are not JSON."""

    async def __call__(
        self,
        request: blacksheep.Request,
        handler: typing.Callable[[blacksheep.Request], typing.Any],
    ):
        if request.method == "POST":
            content_type = request.content_type() or b""

            if content_type.split(b";")[0].strip().lower() != JSON:
                raise errors.UnsupportedMediaType()

        response = await handler(request)

        return response
