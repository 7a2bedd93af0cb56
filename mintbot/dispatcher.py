"""
mintbot.dispatcher
~~~~~~~~~~~~~~~~~~

This module routes a mint request to the executor of its chain.
"""
import logging
import typing

import orjson

from mintbot import models, services
from mintbot.chains import evm, solana, sui
from mintbot.codes import MintCode

logger = logging.getLogger(__name__)

Executor = typing.Callable[[dict[str, typing.Any]], typing.Awaitable[models.MintResult]]

# Fields that never leave the process, not even in logs.
SECRET_FIELDS = frozenset({"privateKey"})


class MintDispatcher:
    """Select the executor for a chain tag and await its result.

    The dispatcher never retries; retries belong to the executors. Its only
    error handling is a last-resort conversion of an escaped exception into a
    ``MINTING_ERROR`` result.
    """

    def __init__(
        self,
        executors: typing.Mapping[models.Chain, Executor],
        log_service: services.LoggerService | None = None,
    ) -> None:
        self.executors = dict(executors)
        self.log_service = log_service

    async def dispatch(
        self, chain: typing.Any, fields: dict[str, typing.Any]
    ) -> models.MintResult:
        selected = models.Chain.parse(chain)
        executor = self.executors.get(selected) if selected is not None else None

        if executor is None:
            result = models.MintResult.fail(
                MintCode.UNSUPPORTED_CHAIN, "Unsupported chain"
            )
            await self._record(chain, fields, result)
            return result

        try:
            result = await executor(fields)
        except Exception as err:  # pylint: disable=W0703
            logger.exception("Minting error on %s", selected.value)
            result = models.MintResult.fail(
                MintCode.MINTING_ERROR, "Minting error", details=str(err) or None
            )

        await self._record(selected.value, fields, result)

        return result

    async def _record(
        self,
        chain: typing.Any,
        fields: dict[str, typing.Any],
        result: models.MintResult,
    ) -> None:
        if result.success:
            logger.info("%s mint succeeded: %s", chain, result.hash)
        else:
            logger.warning(
                "%s mint failed with %s: %s", chain, result.code, result.msg
            )

        if self.log_service is None:
            return

        request = {
            key: value for key, value in fields.items() if key not in SECRET_FIELDS
        }
        await self.log_service.add_log_entry(
            message=f"{chain} mint {'succeeded' if result.success else 'failed'}",
            raw=orjson.dumps(
                {"chain": str(chain), "request": request, "result": result.to_json()},
                default=str,
            ).decode(),
            level="info" if result.success else "error",
        )


def build_dispatcher(
    settings: typing.Any, log_service: services.LoggerService | None = None
) -> MintDispatcher:
    """Wire one executor per chain from the application settings."""
    timeout = settings.confirmation_timeout

    return MintDispatcher(
        {
            models.Chain.SUI: sui.SuiMintExecutor(sui.SuiConfig.from_settings(settings)),
            models.Chain.BASE: evm.EvmMintExecutor(
                evm.BASE_NETWORK, confirmation_timeout=timeout
            ),
            models.Chain.BSC: evm.EvmMintExecutor(
                evm.BSC_NETWORK, confirmation_timeout=timeout
            ),
            models.Chain.SOL: solana.SolanaMintExecutor(confirmation_timeout=timeout),
        },
        log_service=log_service,
    )
