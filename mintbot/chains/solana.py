# pylint: disable=R0911,E0401
"""
mintbot.chains.solana
~~~~~~~~~~~~~~~~~~~~~

This module mints SPL tokens to the payer's associated token account.
"""
import asyncio
import decimal
import logging
import typing

import aiohttp
import pydantic
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solana.rpc.types import TxOpts
from solders.keypair import Keypair  # type: ignore
from solders.message import Message  # type: ignore
from solders.pubkey import Pubkey  # type: ignore
from solders.transaction import Transaction  # type: ignore
from spl.token import instructions
from spl.token.constants import TOKEN_PROGRAM_ID

from mintbot import models
from mintbot.codes import MintCode
from mintbot.utils import classify, crypto, endpoints

logger = logging.getLogger(__name__)

SOLANA_RPC_URLS = (
    "https://api.mainnet-beta.solana.com",
    "https://solana-api.projectserum.com",
    "https://rpc.ankr.com/solana",
    "https://solana.drpc.org",
)
LAMPORTS_PER_SOL = 1_000_000_000
MIN_BALANCE = decimal.Decimal("0.01")
SEND_MAX_RETRIES = 3
DEFAULT_CONFIRMATION_TIMEOUT = 300.0

TRANSACTION_RULES = (
    classify.rule(
        "insufficient funds",
        code=MintCode.INSUFFICIENT_FUNDS,
        msg="Insufficient SOL for transaction fees",
    ),
    classify.rule(
        "custom program error: 0x1",
        code=MintCode.MINT_INSUFFICIENT_FUNDS,
        msg="Insufficient funds in mint account",
    ),
    classify.rule(
        "custom program error: 0x0",
        code=MintCode.MINT_AUTHORITY_ERROR,
        msg="Mint authority error - you don't have permission to mint",
    ),
    classify.rule(
        "InvalidAccountData",
        code=MintCode.INVALID_ACCOUNT_DATA,
        msg="Invalid account data - contract address may be incorrect",
    ),
    classify.rule(
        "AccountNotFound",
        code=MintCode.ACCOUNT_NOT_FOUND,
        msg="Account not found - invalid contract address",
    ),
    classify.rule(
        "timeout",
        "timed out",
        code=MintCode.TRANSACTION_TIMEOUT,
        msg="Transaction timed out. It may still be processing.",
    ),
    classify.rule(
        "blockhash not found",
        "block height exceeded",
        code=MintCode.BLOCKHASH_EXPIRED,
        msg="Transaction expired. Please try again.",
    ),
)

UNEXPECTED_RULES = (
    classify.rule(
        "429",
        "rate limit",
        code=MintCode.RATE_LIMITED,
        msg="Rate limited by Solana RPC. Please try again in a moment.",
    ),
)


def default_client(url: str) -> AsyncClient:
    return AsyncClient(url, commitment=Confirmed)


def _unexpected(err: Exception, **extra: typing.Any) -> models.MintResult:
    if isinstance(err, asyncio.TimeoutError):
        return models.MintResult.fail(
            MintCode.TIMEOUT,
            "Solana network request timed out. Please try again.",
            details=str(err) or None,
            **extra,
        )

    if isinstance(err, (aiohttp.ClientError, ConnectionError)):
        return models.MintResult.fail(
            MintCode.NETWORK_ERROR,
            "Network connection error. Please check your internet.",
            details=str(err) or None,
            **extra,
        )

    return classify.classify(
        str(err),
        UNEXPECTED_RULES,
        fallback_code=MintCode.UNKNOWN_ERROR,
        fallback_msg="Solana minting failed. Please verify your inputs and try again.",
        **extra,
    )


class SolanaMintExecutor:
    """Mint executor for SPL token mints the signer has authority over."""

    def __init__(
        self,
        rpc_urls: typing.Sequence[str] = SOLANA_RPC_URLS,
        client_factory: typing.Callable[[str], AsyncClient] = default_client,
        confirmation_timeout: float = DEFAULT_CONFIRMATION_TIMEOUT,
    ) -> None:
        self.rpc_urls = tuple(rpc_urls)
        self.client_factory = client_factory
        self.confirmation_timeout = confirmation_timeout

    async def __call__(self, fields: dict[str, typing.Any]) -> models.MintResult:
        try:
            return await self.mint(fields)
        except Exception as err:  # pylint: disable=W0703
            logger.exception("Solana Mint Error")
            return _unexpected(err)

    async def mint(self, fields: dict[str, typing.Any]) -> models.MintResult:
        try:
            params = models.SolMintParams.model_validate(fields)
        except pydantic.ValidationError as validation_error:
            return models.SolMintParams.failure(validation_error)

        try:
            url, client = await endpoints.connect_first(
                self.rpc_urls, self.client_factory, lambda client: client.get_version()
            )
        except endpoints.NoEndpointAvailable as unreachable:
            return models.MintResult.fail(
                MintCode.RPC_CONNECTION_FAILED,
                "Unable to connect to Solana network. All RPC endpoints are down.",
                details=str(unreachable),
            )

        logger.info("Connected to Solana RPC: %s", url)

        try:
            return await self._mint(client, params)
        finally:
            await client.close()

    async def _mint(
        self, client: AsyncClient, params: models.SolMintParams
    ) -> models.MintResult:
        try:
            keypair = crypto.parse_solana_keypair(params.private_key)
        except crypto.KeyLengthError as length_err:
            return models.MintResult.fail(
                MintCode.INVALID_PRIVATE_KEY_LENGTH, str(length_err)
            )
        except crypto.KeyFormatError as format_err:
            return models.MintResult.fail(
                MintCode.INVALID_PRIVATE_KEY_FORMAT,
                "Invalid private key format. Use base58, hex, or array format.",
                details=str(format_err) or None,
            )

        try:
            mint = Pubkey.from_string(params.contract_address)
        except ValueError as address_err:
            return models.MintResult.fail(
                MintCode.INVALID_ADDRESS_FORMAT,
                "Invalid Solana contract address format",
                details=str(address_err) or None,
            )

        if (unfunded := await self._check_balance(client, keypair)) is not None:
            return unfunded

        if (invalid := await self._check_mint(client, mint)) is not None:
            return invalid

        return await self._submit(client, keypair, mint, params.mint_quantity)

    async def _check_balance(
        self, client: AsyncClient, keypair: Keypair
    ) -> models.MintResult | None:
        try:
            lamports = (await client.get_balance(keypair.pubkey())).value
        except Exception as balance_err:  # pylint: disable=W0703
            return models.MintResult.fail(
                MintCode.BALANCE_CHECK_FAILED,
                "Failed to check wallet balance",
                details=str(balance_err) or None,
            )

        balance = decimal.Decimal(lamports) / LAMPORTS_PER_SOL

        if balance < MIN_BALANCE:
            return models.MintResult.fail(
                MintCode.INSUFFICIENT_BALANCE,
                f"Insufficient SOL balance. Current: {balance:.4f} SOL. "
                f"Minimum required: {MIN_BALANCE} SOL",
            )

        return None

    async def _check_mint(
        self, client: AsyncClient, mint: Pubkey
    ) -> models.MintResult | None:
        try:
            mint_info = (await client.get_account_info(mint)).value
        except Exception as mint_err:  # pylint: disable=W0703
            return models.MintResult.fail(
                MintCode.MINT_VERIFICATION_FAILED,
                "Failed to verify mint account",
                details=str(mint_err) or None,
            )

        if mint_info is None:
            return models.MintResult.fail(
                MintCode.MINT_NOT_FOUND,
                "Mint account not found. Invalid contract address.",
            )

        if mint_info.owner != TOKEN_PROGRAM_ID:
            return models.MintResult.fail(
                MintCode.INVALID_MINT_ACCOUNT,
                "Provided address is not a valid SPL token mint",
            )

        return None

    async def _submit(
        self, client: AsyncClient, keypair: Keypair, mint: Pubkey, quantity: int
    ) -> models.MintResult:
        owner = keypair.pubkey()
        associated_token_account = instructions.get_associated_token_address(
            owner, mint
        )

        try:
            account_info = (await client.get_account_info(associated_token_account)).value
            ixs = []

            if account_info is None:
                ixs.append(
                    instructions.create_associated_token_account(
                        payer=owner, owner=owner, mint=mint
                    )
                )

            ixs.append(
                instructions.mint_to(
                    instructions.MintToParams(
                        program_id=TOKEN_PROGRAM_ID,
                        mint=mint,
                        dest=associated_token_account,
                        mint_authority=owner,
                        amount=quantity,
                    )
                )
            )

            latest = (await client.get_latest_blockhash(Confirmed)).value
            txn = Transaction(
                [keypair], Message(ixs, owner), latest.blockhash
            )
            signature = (
                await client.send_raw_transaction(
                    bytes(txn),
                    opts=TxOpts(
                        skip_preflight=False,
                        preflight_commitment=Confirmed,
                        max_retries=SEND_MAX_RETRIES,
                    ),
                )
            ).value
        except Exception as txn_err:  # pylint: disable=W0703
            logger.error("Transaction Error: %s", txn_err)
            return classify.classify(
                str(txn_err),
                TRANSACTION_RULES,
                fallback_code=MintCode.TRANSACTION_ERROR,
                fallback_msg=(
                    "Solana transaction failed. "
                    "Please verify contract address and try again."
                ),
            )

        tx_hash = str(signature)
        logger.info("Transaction sent: %s", tx_hash)

        return await self._confirm(
            client,
            signature,
            tx_hash,
            latest.last_valid_block_height,
            str(associated_token_account),
            quantity,
        )

    async def _confirm(
        self,
        client: AsyncClient,
        signature: typing.Any,
        tx_hash: str,
        last_valid_block_height: int,
        associated_token_account: str,
        quantity: int,
    ) -> models.MintResult:
        try:
            confirmation = await asyncio.wait_for(
                client.confirm_transaction(
                    signature,
                    Confirmed,
                    last_valid_block_height=last_valid_block_height,
                ),
                timeout=self.confirmation_timeout,
            )
        except asyncio.TimeoutError:
            return models.MintResult.fail(
                MintCode.CONFIRMATION_TIMEOUT,
                "Transaction sent but confirmation timed out. "
                "Check transaction status manually.",
                tx_hash=tx_hash,
            )
        except Exception as confirm_err:  # pylint: disable=W0703
            logger.error("Confirmation of %s failed: %s", tx_hash, confirm_err)
            return classify.classify(
                str(confirm_err),
                TRANSACTION_RULES,
                fallback_code=MintCode.TRANSACTION_ERROR,
                fallback_msg="Solana transaction could not be confirmed.",
                tx_hash=tx_hash,
            )

        statuses = confirmation.value or []
        status = statuses[0] if statuses else None

        if status is not None and status.err is not None:
            return models.MintResult.fail(
                MintCode.TRANSACTION_FAILED,
                f"Transaction failed: {status.err}",
                details=str(status.err),
                tx_hash=tx_hash,
            )

        logger.info("Transaction confirmed: %s", tx_hash)

        return models.MintResult.ok(
            msg=f"Successfully minted {quantity} token(s)",
            tx_hash=tx_hash,
            associated_token_account=associated_token_account,
            quantity=quantity,
        )
