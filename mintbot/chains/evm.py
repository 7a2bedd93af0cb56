# pylint: disable=R0911,R0913,R0914
"""
mintbot.chains.evm
~~~~~~~~~~~~~~~~~~

This module mints NFTs on EVM chains (BASE, BSC) over JSON-RPC.

Contracts do not share a mint entry point, so the executor probes an ordered
list of common mint signatures and submits the first one whose gas estimation
passes.
"""
import asyncio
import dataclasses
import decimal
import logging
import typing

import aiohttp
import pydantic
from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import AsyncWeb3, Web3
from web3 import exceptions as web3_exceptions

from mintbot import models
from mintbot.codes import MintCode
from mintbot.utils import classify, endpoints

logger = logging.getLogger(__name__)

DEFAULT_CONFIRMATION_TIMEOUT = 300.0


@dataclasses.dataclass(frozen=True)
class MintCandidate:
    """One mint entry point a contract may expose."""

    name: str
    inputs: tuple[str, ...]

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(self.inputs)})"

    @property
    def selector(self) -> bytes:
        return bytes(Web3.keccak(text=self.signature)[:4])

    def args(self, sender: str, quantity: int) -> list[typing.Any]:
        if self.inputs and self.inputs[0] == "address":
            return [sender, quantity]

        return [quantity]

    def abi(self) -> dict[str, typing.Any]:
        names = ("to", "amount") if len(self.inputs) == 2 else ("amount",)
        return {
            "type": "function",
            "name": self.name,
            "stateMutability": "payable",
            "inputs": [
                {"name": name, "type": type_}
                for name, type_ in zip(names, self.inputs)
            ],
            "outputs": [],
        }


MINT = MintCandidate("mint", ("uint256",))
PUBLIC_MINT = MintCandidate("publicMint", ("uint256",))
BATCH_MINT = MintCandidate("batchMint", ("uint256",))
MINT_FOR = MintCandidate("mint", ("address", "uint256"))
MINT_TO = MintCandidate("mintTo", ("address", "uint256"))


@dataclasses.dataclass(frozen=True)
class EvmNetwork:
    name: str
    symbol: str
    rpc_urls: tuple[str, ...]
    min_balance: decimal.Decimal
    fallback_gas_price: int
    candidates: tuple[MintCandidate, ...]
    gas_margin: int = 50_000
    # Fixed budget used when estimation fails. None skips the candidate instead.
    fallback_gas_limit: int | None = None


BASE_NETWORK = EvmNetwork(
    name="BASE",
    symbol="ETH",
    rpc_urls=(
        "https://base.drpc.org/",
        "https://mainnet.base.org/",
        "https://base-mainnet.public.blastapi.io",
    ),
    min_balance=decimal.Decimal("0.001"),
    fallback_gas_price=Web3.to_wei(20, "gwei"),
    candidates=(MINT, PUBLIC_MINT, MINT_FOR, MINT_TO),
)

BSC_NETWORK = EvmNetwork(
    name="BSC",
    symbol="BNB",
    rpc_urls=(
        "https://bsc-dataseed.binance.org/",
        "https://bsc-dataseed1.defibit.io/",
        "https://bsc-dataseed1.ninicoin.io/",
        "https://bsc.drpc.org/",
    ),
    min_balance=decimal.Decimal("0.005"),
    fallback_gas_price=Web3.to_wei(5, "gwei"),
    candidates=(MINT, PUBLIC_MINT, BATCH_MINT, MINT_FOR, MINT_TO),
    fallback_gas_limit=300_000,
)


def submission_rules(symbol: str) -> tuple[classify.ErrorRule, ...]:
    return (
        classify.rule(
            "insufficient funds",
            code=MintCode.INSUFFICIENT_FUNDS,
            msg=f"Insufficient {symbol} for transaction + gas fees",
        ),
        classify.rule(
            "execution reverted",
            code=MintCode.TRANSACTION_REVERTED,
            msg=lambda text: f"Transaction reverted: {classify.revert_reason(text)}",
        ),
        classify.rule(
            "nonce too low",
            code=MintCode.NONCE_ERROR,
            msg="Transaction nonce error. Please try again.",
        ),
        classify.rule(
            "replacement transaction underpriced",
            code=MintCode.GAS_PRICE_LOW,
            msg="Gas price too low. Please try again with higher gas.",
        ),
        classify.rule(
            "intrinsic gas too low",
            code=MintCode.GAS_LIMIT_LOW,
            msg="Gas limit too low for this transaction",
        ),
        classify.rule(
            "max fee per gas less than block base fee",
            code=MintCode.GAS_FEE_TOO_LOW,
            msg="Gas fee too low for current network conditions",
        ),
    )


def unexpected_rules(symbol: str) -> tuple[classify.ErrorRule, ...]:
    return (
        classify.rule(
            "insufficient funds",
            code=MintCode.INSUFFICIENT_FUNDS,
            msg=f"Insufficient {symbol} to cover transaction and gas fees",
        ),
        classify.rule(
            "invalid address",
            "invalid contract",
            code=MintCode.INVALID_CONTRACT,
            msg="Invalid or non-existent contract address",
        ),
        classify.rule(
            "gas required exceeds allowance",
            code=MintCode.GAS_LIMIT_EXCEEDED,
            msg="Transaction requires more gas than available",
        ),
        classify.rule(
            "nonce",
            code=MintCode.NONCE_ERROR,
            msg="Transaction nonce error. Please try again.",
        ),
        classify.rule(
            "429",
            "rate limit",
            code=MintCode.RATE_LIMITED,
            msg="Rate limited by RPC provider. Please try again in a moment.",
        ),
    )


class Web3Node:
    """A single JSON-RPC endpoint, wrapped for the calls a mint needs."""

    def __init__(self, url: str) -> None:
        self.url = url
        self.w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(url))

    async def probe(self) -> int:
        return await self.w3.eth.chain_id

    async def get_balance(self, address: str) -> int:
        return await self.w3.eth.get_balance(address)  # type: ignore[arg-type]

    async def get_code(self, address: str) -> bytes:
        return bytes(await self.w3.eth.get_code(address))  # type: ignore[arg-type]

    async def gas_price(self) -> int:
        return await self.w3.eth.gas_price

    async def close(self) -> None:
        await self.w3.provider.disconnect()

    def _function(
        self, contract_address: str, candidate: MintCandidate, args: list[typing.Any]
    ):
        contract = self.w3.eth.contract(
            address=contract_address, abi=[candidate.abi()]  # type: ignore[arg-type]
        )
        return contract.get_function_by_signature(candidate.signature)(*args)

    async def estimate_gas(
        self,
        contract_address: str,
        candidate: MintCandidate,
        args: list[typing.Any],
        sender: str,
    ) -> int:
        function = self._function(contract_address, candidate, args)
        return await function.estimate_gas({"from": sender})

    async def send_transaction(
        self,
        contract_address: str,
        candidate: MintCandidate,
        args: list[typing.Any],
        account: LocalAccount,
        gas: int,
        gas_price: int,
    ) -> str:
        function = self._function(contract_address, candidate, args)
        txn = await function.build_transaction(
            {
                "from": account.address,
                "gas": gas,
                "gasPrice": gas_price,  # type: ignore[typeddict-item]
                "nonce": await self.w3.eth.get_transaction_count(
                    account.address, "pending"
                ),
                "chainId": await self.w3.eth.chain_id,
            }
        )
        signed = account.sign_transaction(txn)  # type: ignore[arg-type]
        tx_hash = await self.w3.eth.send_raw_transaction(signed.raw_transaction)
        return Web3.to_hex(tx_hash)

    async def wait_for_receipt(
        self, tx_hash: str, timeout: float
    ) -> typing.Mapping[str, typing.Any]:
        try:
            return await self.w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=timeout  # type: ignore[arg-type]
            )
        except web3_exceptions.TimeExhausted as exhausted:
            raise asyncio.TimeoutError(str(exhausted)) from exhausted


class EvmMintExecutor:
    """Mint executor for one EVM network."""

    def __init__(
        self,
        network: EvmNetwork,
        node_factory: typing.Callable[[str], typing.Any] = Web3Node,
        confirmation_timeout: float = DEFAULT_CONFIRMATION_TIMEOUT,
    ) -> None:
        self.network = network
        self.node_factory = node_factory
        self.confirmation_timeout = confirmation_timeout

    async def __call__(self, fields: dict[str, typing.Any]) -> models.MintResult:
        try:
            return await self.mint(fields)
        except Exception as err:  # pylint: disable=W0703
            logger.exception("%s Mint Error", self.network.name)
            return self._unexpected(err)

    def _unexpected(self, err: Exception, **extra: typing.Any) -> models.MintResult:
        if isinstance(err, asyncio.TimeoutError):
            return models.MintResult.fail(
                MintCode.TIMEOUT,
                f"Request timed out. {self.network.name} network might be congested.",
                details=str(err) or None,
                **extra,
            )

        if isinstance(err, (aiohttp.ClientError, ConnectionError)):
            return models.MintResult.fail(
                MintCode.NETWORK_ERROR,
                f"{self.network.name} network connection error. Please try again.",
                details=str(err) or None,
                **extra,
            )

        return classify.classify(
            str(err),
            unexpected_rules(self.network.symbol),
            fallback_code=MintCode.UNKNOWN_ERROR,
            fallback_msg=(
                f"{self.network.name} transaction failed. "
                "Please verify your inputs and try again."
            ),
            **extra,
        )

    def exposed(self, code: bytes) -> list[MintCandidate]:
        """Candidates whose selector appears in the deployed bytecode.

        Proxies carry none of the implementation's selectors; when no candidate
        is visible every candidate is kept and gas estimation decides.
        """
        visible = [
            candidate
            for candidate in self.network.candidates
            if candidate.selector in code
        ]

        return visible or list(self.network.candidates)

    async def _gas_price(self, node: typing.Any) -> int:
        try:
            price = await node.gas_price()
        except Exception as fee_err:  # pylint: disable=W0703
            logger.warning("Fee data unavailable, using fallback: %s", fee_err)
            return self.network.fallback_gas_price

        return price or self.network.fallback_gas_price

    async def _submit(
        self,
        node: typing.Any,
        contract_address: str,
        account: LocalAccount,
        quantity: int,
        code: bytes,
    ) -> str | models.MintResult:
        gas_price = await self._gas_price(node)
        send_error: Exception | None = None
        estimate_error: Exception | None = None

        for candidate in self.exposed(code):
            args = candidate.args(account.address, quantity)

            try:
                estimate = await node.estimate_gas(
                    contract_address, candidate, args, account.address
                )
                logger.info("Gas estimate for %s: %s", candidate.signature, estimate)
                gas = int(estimate) + self.network.gas_margin
            except Exception as gas_err:  # pylint: disable=W0703
                logger.warning(
                    "Gas estimation failed for %s: %s", candidate.signature, gas_err
                )
                estimate_error = gas_err

                if self.network.fallback_gas_limit is None:
                    continue

                gas = self.network.fallback_gas_limit

            try:
                tx_hash = await node.send_transaction(
                    contract_address, candidate, args, account, gas, gas_price
                )
            except Exception as send_err:  # pylint: disable=W0703
                logger.warning("Failed with %s: %s", candidate.signature, send_err)
                send_error = send_err
                continue

            logger.info("Transaction sent with %s: %s", candidate.signature, tx_hash)
            return tx_hash

        return classify.classify(
            str(send_error or estimate_error or ""),
            submission_rules(self.network.symbol),
            fallback_code=MintCode.MINT_FUNCTION_FAILED,
            fallback_msg="No compatible mint function found or all mint attempts failed",
        )

    async def _confirm(self, node: typing.Any, tx_hash: str, quantity: int):
        logger.info("Waiting for transaction confirmation...")

        try:
            receipt = await asyncio.wait_for(
                node.wait_for_receipt(tx_hash, self.confirmation_timeout),
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
            return self._unexpected(confirm_err, tx_hash=tx_hash)

        if receipt["status"] == 0:
            return models.MintResult.fail(
                MintCode.TRANSACTION_FAILED,
                "Transaction failed during execution",
                tx_hash=tx_hash,
            )

        logger.info("Transaction confirmed: %s", tx_hash)

        return models.MintResult.ok(
            msg=f"Successfully minted {quantity} NFT(s)",
            tx_hash=tx_hash,
            gas_used=str(receipt["gasUsed"]),
            block_number=receipt["blockNumber"],
            quantity=quantity,
        )

    async def mint(self, fields: dict[str, typing.Any]) -> models.MintResult:
        try:
            params = models.EvmMintParams.model_validate(fields)
        except pydantic.ValidationError as validation_error:
            return models.EvmMintParams.failure(validation_error)

        try:
            _, node = await endpoints.connect_first(
                self.network.rpc_urls, self.node_factory, lambda node: node.probe()
            )
        except endpoints.NoEndpointAvailable as unreachable:
            return models.MintResult.fail(
                MintCode.RPC_CONNECTION_FAILED,
                f"Unable to connect to {self.network.name} network. "
                "All RPC endpoints are down.",
                details=str(unreachable),
            )

        try:
            return await self._mint(node, params)
        finally:
            await node.close()

    async def _mint(
        self, node: typing.Any, params: models.EvmMintParams
    ) -> models.MintResult:
        try:
            account: LocalAccount = Account.from_key(params.private_key)
        except Exception as key_err:  # pylint: disable=W0703
            return models.MintResult.fail(
                MintCode.INVALID_PRIVATE_KEY,
                "Invalid private key format",
                details=str(key_err) or None,
            )

        try:
            wei = await node.get_balance(account.address)
        except Exception as balance_err:  # pylint: disable=W0703
            return models.MintResult.fail(
                MintCode.BALANCE_CHECK_FAILED,
                "Failed to check wallet balance",
                details=str(balance_err) or None,
            )

        balance = decimal.Decimal(Web3.from_wei(wei, "ether"))
        symbol = self.network.symbol

        if balance < self.network.min_balance:
            return models.MintResult.fail(
                MintCode.INSUFFICIENT_BALANCE,
                f"Insufficient {symbol} balance. Current: {balance:.4f} {symbol}. "
                f"Minimum required: {self.network.min_balance} {symbol}",
            )

        contract_address = Web3.to_checksum_address(params.contract_address)

        try:
            code = await node.get_code(contract_address)
        except Exception as code_err:  # pylint: disable=W0703
            return models.MintResult.fail(
                MintCode.CONTRACT_VERIFICATION_FAILED,
                "Failed to verify contract existence",
                details=str(code_err) or None,
            )

        if not code:
            return models.MintResult.fail(
                MintCode.CONTRACT_NOT_FOUND,
                "Contract not found at the provided address",
            )

        submitted = await self._submit(
            node, contract_address, account, params.mint_quantity, code
        )

        if isinstance(submitted, models.MintResult):
            return submitted

        return await self._confirm(node, submitted, params.mint_quantity)
