import logging
import typing

import blacksheep

from mintbot import dispatcher, services, settings

EventHandler = typing.Callable[[blacksheep.Application], typing.Awaitable[None]]


def configure_logging(app_settings: settings.AppSettings) -> EventHandler:
    async def handler(_app: blacksheep.Application):
        logging.basicConfig(
            level=app_settings.log_level.upper(),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    return handler


def create_dispatcher(app_settings: settings.AppSettings) -> EventHandler:
    async def handler(app: blacksheep.Application):
        log_service = None

        if app_settings.log_endpoint is not None:
            log_service = services.LoggerService(
                endpoint_url=str(app_settings.log_endpoint),
                timezone=app_settings.timezone,
            )
            app.services.add_instance(log_service)  # type: ignore

        app.services.add_instance(  # type: ignore
            dispatcher.build_dispatcher(app_settings, log_service)
        )

    return handler


async def dispose_log_service(app: blacksheep.Application):
    minter: dispatcher.MintDispatcher = app.services.resolve(  # type: ignore
        dispatcher.MintDispatcher
    )

    if minter.log_service is not None:
        await minter.log_service.close()
