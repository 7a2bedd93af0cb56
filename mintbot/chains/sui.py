# pylint: disable=R0911,E1101
"""
mintbot.chains.sui
~~~~~~~~~~~~~~~~~~

This module mints SUI NFTs through the TradePort GraphQL indexer. The indexer
signs, submits and confirms the transaction; we only issue the mutation and
interpret its answer.
"""
import asyncio
import dataclasses
import logging
import socket
import typing

import aiohttp
import orjson
import pydantic

from mintbot import models
from mintbot.codes import MintCode
from mintbot.utils import classify

logger = logging.getLogger(__name__)

MINT_MUTATION = """
mutation MintNFT($input: MintNFTInput!) {
  mintNFT(input: $input) {
    transactionBlockDigest
    success
    error {
      message
      code
    }
  }
}
"""

HTTP_FAILURES: dict[int, tuple[MintCode, str]] = {
    401: (MintCode.INVALID_CREDENTIALS, "Invalid API credentials"),
    403: (MintCode.ACCESS_FORBIDDEN, "Access forbidden. Check API permissions."),
    404: (MintCode.ENDPOINT_NOT_FOUND, "SUI indexer endpoint not found"),
    429: (
        MintCode.RATE_LIMITED,
        "Rate limited by SUI API. Please try again later.",
    ),
}

GRAPHQL_RULES = (
    classify.rule(
        "insufficient",
        code=MintCode.INSUFFICIENT_BALANCE,
        msg="Insufficient balance for minting",
    ),
    classify.rule(
        "not found",
        code=MintCode.COLLECTION_NOT_FOUND,
        msg="Collection not found or invalid collection ID",
    ),
    classify.rule(
        "unauthorized",
        code=MintCode.MINT_UNAUTHORIZED,
        msg="Unauthorized to mint from this collection",
    ),
    classify.rule(
        "sold out",
        "exceeds",
        code=MintCode.MINT_SOLD_OUT,
        msg="Mint quantity exceeds available supply",
    ),
    classify.rule(
        "not active",
        code=MintCode.MINT_STAGE_INACTIVE,
        msg="Mint stage is not currently active",
    ),
)


@dataclasses.dataclass(frozen=True)
class SuiConfig:
    indexer_endpoint: str | None
    api_user: str | None
    api_key: str | None
    request_timeout: float = 300.0
    max_attempts: int = 3
    backoff: float = 1.0

    @classmethod
    def from_settings(cls, settings: typing.Any) -> "SuiConfig":
        endpoint = settings.indexer_endpoint
        return cls(
            indexer_endpoint=str(endpoint) if endpoint is not None else None,
            api_user=settings.tradeport_api_user,
            api_key=settings.tradeport_api_key,
            request_timeout=settings.confirmation_timeout,
        )


def _transport_failure(err: BaseException) -> models.MintResult:
    if isinstance(err, asyncio.TimeoutError):
        return models.MintResult.fail(
            MintCode.REQUEST_TIMEOUT,
            "Request timed out. SUI network might be congested.",
            details=str(err) or None,
        )

    if isinstance(err, aiohttp.ClientConnectorError):
        if isinstance(err.os_error, socket.gaierror):
            return models.MintResult.fail(
                MintCode.NETWORK_UNREACHABLE,
                "Cannot reach SUI indexer endpoint. Check network connection.",
                details=str(err),
            )

        if isinstance(err.os_error, ConnectionRefusedError):
            return models.MintResult.fail(
                MintCode.CONNECTION_REFUSED,
                "SUI indexer endpoint refused connection.",
                details=str(err),
            )

    return models.MintResult.fail(
        MintCode.CONNECTION_FAILED,
        "Failed to connect to SUI network after multiple attempts",
        details=str(err),
    )


class SuiMintExecutor:
    """Mint executor for SUI collections listed on the TradePort indexer."""

    def __init__(
        self,
        config: SuiConfig,
        session_factory: typing.Callable[..., aiohttp.ClientSession] = (
            aiohttp.ClientSession
        ),
    ) -> None:
        self.config = config
        self.session_factory = session_factory

    async def __call__(self, fields: dict[str, typing.Any]) -> models.MintResult:
        try:
            return await self.mint(fields)
        except Exception as err:  # pylint: disable=W0703
            logger.exception("Unexpected error in SUI mint handler")
            return models.MintResult.fail(
                MintCode.UNKNOWN_ERROR,
                "An unexpected error occurred during minting",
                details=str(err),
            )

    def _configuration_failure(self) -> models.MintResult | None:
        if not self.config.indexer_endpoint:
            return models.MintResult.fail(
                MintCode.MISSING_INDEXER_ENDPOINT,
                "SUI indexer endpoint not configured",
            )

        if not self.config.api_user or not self.config.api_key:
            return models.MintResult.fail(
                MintCode.MISSING_API_CREDENTIALS,
                "TradePort API credentials not configured",
            )

        return None

    async def _post(
        self,
        session: aiohttp.ClientSession,
        endpoint: str,
        payload: dict[str, typing.Any],
    ) -> tuple[int, bytes]:
        async with session.post(
            endpoint,
            data=orjson.dumps(payload),
            headers={
                "x-api-user": str(self.config.api_user),
                "x-api-key": str(self.config.api_key),
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
        ) as resp:
            # 5xx responses are transport trouble and get retried; 4xx do not.
            if resp.status >= 500:
                resp.raise_for_status()

            return resp.status, await resp.read()

    async def _send(
        self, endpoint: str, payload: dict[str, typing.Any]
    ) -> tuple[int, bytes] | models.MintResult:
        """POST the mutation, retrying transport failures with linear backoff."""
        last_error: BaseException | None = None
        timeout = aiohttp.ClientTimeout(total=self.config.request_timeout)

        async with self.session_factory(timeout=timeout) as session:
            for attempt in range(1, self.config.max_attempts + 1):
                logger.info(
                    "SUI mint attempt %d/%d", attempt, self.config.max_attempts
                )

                try:
                    return await self._post(session, endpoint, payload)
                except (aiohttp.ClientError, asyncio.TimeoutError) as network_err:
                    last_error = network_err
                    logger.warning(
                        "Network attempt %d failed: %s", attempt, network_err
                    )

                if attempt < self.config.max_attempts:
                    await asyncio.sleep(self.config.backoff * attempt)

        if last_error is None:
            return models.MintResult.fail(
                MintCode.CONNECTION_FAILED,
                "Failed to connect to SUI network after multiple attempts",
            )

        return _transport_failure(last_error)

    async def mint(self, fields: dict[str, typing.Any]) -> models.MintResult:
        try:
            params = models.SuiMintParams.model_validate(fields)
        except pydantic.ValidationError as validation_error:
            return models.SuiMintParams.failure(validation_error)

        if (misconfigured := self._configuration_failure()) is not None:
            return misconfigured

        payload = {
            "query": MINT_MUTATION,
            "variables": {
                "input": {
                    "collectionId": params.collection_id,
                    "quantity": params.mint_quantity,
                    "stage": params.mint_stage,
                    "signer": {"type": "KEYPAIR", "privateKey": params.private_key},
                }
            },
        }

        sent = await self._send(str(self.config.indexer_endpoint), payload)

        if isinstance(sent, models.MintResult):
            return sent

        status, raw = sent

        if status >= 400:
            if status in HTTP_FAILURES:
                code, message = HTTP_FAILURES[status]
                return models.MintResult.fail(code, message)

            return models.MintResult.fail(
                MintCode.HTTP_ERROR,
                f"SUI API error: HTTP {status}",
                details=raw.decode("utf8", errors="replace") or None,
            )

        if not raw.strip():
            return models.MintResult.fail(
                MintCode.EMPTY_RESPONSE, "Empty response from SUI API"
            )

        try:
            body = orjson.loads(raw)
        except orjson.JSONDecodeError as decode_err:
            return models.MintResult.fail(
                MintCode.INVALID_RESPONSE_STRUCTURE,
                "Invalid response structure from SUI API",
                details=str(decode_err),
            )

        if not body:
            return models.MintResult.fail(
                MintCode.EMPTY_RESPONSE, "Empty response from SUI API"
            )

        return self._interpret(body, params)

    def _interpret(
        self, body: typing.Any, params: models.SuiMintParams
    ) -> models.MintResult:
        if not isinstance(body, dict):
            return models.MintResult.fail(
                MintCode.INVALID_RESPONSE_STRUCTURE,
                "Invalid response structure from SUI API",
            )

        if errors := body.get("errors"):
            error = errors[0]
            message = error.get("message", "") if isinstance(error, dict) else ""
            logger.error("GraphQL Error: %s", error)

            return classify.classify(
                message or str(error),
                GRAPHQL_RULES,
                fallback_code=MintCode.GRAPHQL_ERROR,
                fallback_msg="GraphQL error occurred",
            )

        data = body.get("data")
        mint_result = data.get("mintNFT") if isinstance(data, dict) else None

        if not isinstance(mint_result, dict):
            return models.MintResult.fail(
                MintCode.INVALID_RESPONSE_STRUCTURE,
                "Invalid response structure from SUI API",
            )

        if not mint_result.get("success"):
            error = mint_result.get("error") or {}

            if not isinstance(error, dict):
                error = {"message": str(error)}

            return models.MintResult.fail(
                str(error.get("code") or MintCode.MINT_FAILED.value),
                f"Mint failed: {error.get('message') or 'Unknown mint error'}",
                details=orjson.dumps(error).decode("utf8") if error else None,
            )

        digest = mint_result.get("transactionBlockDigest")

        if not digest:
            return models.MintResult.fail(
                MintCode.MISSING_TRANSACTION_HASH,
                "Mint completed but no transaction hash returned",
            )

        logger.info("SUI NFT mint successful! Transaction: %s", digest)

        return models.MintResult.ok(
            msg=f"Successfully minted {params.mint_quantity} NFT(s)",
            transaction_hash=digest,
            quantity=params.mint_quantity,
            collection_id=params.collection_id,
        )
