# pylint: disable=E1101
"""
mintbot.main
~~~~~~~~~~~~

This module contains the server startup logic.
"""
import asyncio
import platform

import blacksheep
import uvicorn
import uvloop

from mintbot import bindings, errors, events, middlewares, models, settings
from mintbot.codes import MintCode
from mintbot.dispatcher import MintDispatcher

if platform.system() == "Linux":
    asyncio.set_event_loop_policy(uvloop.EventLoopPolicy())

STATUS_BY_CODE = {
    MintCode.UNSUPPORTED_CHAIN.value: 400,
    MintCode.MINTING_ERROR.value: 500,
}

app_settings = settings.get_settings()

app = blacksheep.Application()

# Exception handlers
app.exceptions_handlers[errors.BadRequest] = errors.error_400_handler  # type: ignore
app.exceptions_handlers[  # type: ignore
    errors.UnsupportedMediaType
] = errors.error_415_handler

app.use_cors(allow_methods="*", allow_origins="*", allow_headers="*")
app.middlewares.append(middlewares.MediaTypeValidator())

# Dependencies
app.on_start += events.configure_logging(app_settings)
app.on_start += events.create_dispatcher(app_settings)
app.on_stop += events.dispose_log_service


def http_status(result: models.MintResult) -> int:
    """Dispatched outcomes are 200 whatever their success flag; see STATUS_BY_CODE."""
    if result.success or result.code is None:
        return 200

    return STATUS_BY_CODE.get(result.code, 200)


@app.router.get("/")
async def index() -> dict[str, str]:
    return {"message": "ok"}


@app.router.post("/mint")
async def mint(
    data: bindings.FromMintRequest[models.MintRequest],
    dispatcher: MintDispatcher,
) -> blacksheep.Response:
    result = await dispatcher.dispatch(data.value.chain, data.value.fields)

    return errors.json_response(http_status(result), result.to_json())


def run() -> None:
    uvicorn.run(
        "mintbot.main:app",
        host=app_settings.host,
        port=app_settings.port,
        log_level=app_settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
