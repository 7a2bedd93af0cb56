# pylint: disable=E1101,I1101
import typing

import orjson
import pydantic
import pydantic_settings
from blacksheep.settings.json import json_settings


def serialize(value: typing.Any) -> str:
    return orjson.dumps(value).decode("utf8")


json_settings.use(  # type: ignore
    loads=orjson.loads,  # type: ignore
    dumps=serialize,  # type: ignore
)


class AppSettings(pydantic_settings.BaseSettings):
    # SUI is minted through the TradePort GraphQL indexer.
    indexer_endpoint: pydantic.AnyHttpUrl | None = None
    tradeport_api_user: str | None = None
    tradeport_api_key: str | None = None

    # Optional remote log aggregator; entries are only shipped when it is set.
    log_endpoint: pydantic.AnyHttpUrl | None = None
    log_level: str = "INFO"
    timezone: str = "UTC"

    confirmation_timeout: float = 300.0
    host: str = "0.0.0.0"
    port: int = 5000

    model_config = pydantic_settings.SettingsConfigDict(
        env_file=".env", validate_default=True, extra="ignore"
    )

    @pydantic.field_validator(
        "indexer_endpoint",
        "tradeport_api_user",
        "tradeport_api_key",
        "log_endpoint",
        mode="before",
    )
    @classmethod
    def blank_is_unset(cls, value: typing.Any) -> typing.Any:
        if isinstance(value, str) and not value.strip():
            return None

        return value


def get_settings() -> AppSettings:
    return AppSettings()
