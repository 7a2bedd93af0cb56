"""
Pytest configuration and network fakes for mintbot tests.

No test opens a socket: every executor takes a factory for its network handle
and the fakes below stand in for the real clients.
"""
from __future__ import annotations

import asyncio
import typing
from types import SimpleNamespace
from unittest.mock import AsyncMock

import aiohttp
import base58
import orjson
import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.signature import Signature
from spl.token.constants import TOKEN_PROGRAM_ID

EVM_PRIVATE_KEY = "0x" + "11" * 32
EVM_CONTRACT = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
ONE_ETHER = 10**18


# ============ EVM ============


class FakeEvmNode:
    """Stands in for ``mintbot.chains.evm.Web3Node``."""

    def __init__(
        self,
        url: str,
        *,
        alive: bool = True,
        balance: int = ONE_ETHER,
        code: bytes = b"\x60\x80\x60\x40",
        gas_price: int | Exception = 1_000_000_000,
        estimates: dict[str, int | Exception] | None = None,
        send_errors: dict[str, Exception] | None = None,
        receipt: dict[str, typing.Any] | None = None,
        confirm_forever: bool = False,
    ) -> None:
        self.url = url
        self.alive = alive
        self.balance = balance
        self.code = code
        self._gas_price = gas_price
        self.estimates = estimates or {}
        self.send_errors = send_errors or {}
        self.receipt = receipt or {"status": 1, "gasUsed": 84_000, "blockNumber": 123}
        self.confirm_forever = confirm_forever
        self.probed = 0
        self.balance_calls = 0
        self.estimated: list[str] = []
        self.sent: list[dict[str, typing.Any]] = []
        self.closed = 0

    async def probe(self) -> int:
        self.probed += 1
        if not self.alive:
            raise aiohttp.ClientConnectionError(f"cannot reach {self.url}")
        return 8453

    async def get_balance(self, address: str) -> int:
        self.balance_calls += 1
        return self.balance

    async def get_code(self, address: str) -> bytes:
        return self.code

    async def gas_price(self) -> int:
        if isinstance(self._gas_price, Exception):
            raise self._gas_price
        return self._gas_price

    async def estimate_gas(self, contract_address, candidate, args, sender) -> int:
        self.estimated.append(candidate.signature)
        estimate = self.estimates.get(candidate.signature, 100_000)
        if isinstance(estimate, Exception):
            raise estimate
        return estimate

    async def send_transaction(
        self, contract_address, candidate, args, account, gas, gas_price
    ) -> str:
        if candidate.signature in self.send_errors:
            raise self.send_errors[candidate.signature]
        self.sent.append(
            {
                "signature": candidate.signature,
                "args": args,
                "gas": gas,
                "gas_price": gas_price,
                "from": account.address,
            }
        )
        return "0x" + "ab" * 32

    async def wait_for_receipt(self, tx_hash: str, timeout: float):
        if self.confirm_forever:
            await asyncio.Event().wait()
        return self.receipt

    async def close(self) -> None:
        self.closed += 1


class NodeFactory:
    """Hands out pre-built nodes by URL and records the order of requests."""

    def __init__(self, nodes: dict[str, FakeEvmNode] | None = None, **defaults):
        self.nodes = nodes or {}
        self.defaults = defaults
        self.requested: list[str] = []

    def __call__(self, url: str) -> FakeEvmNode:
        self.requested.append(url)
        if url not in self.nodes:
            self.nodes[url] = FakeEvmNode(url, **self.defaults)
        return self.nodes[url]

    @property
    def live(self) -> FakeEvmNode:
        return next(node for node in self.nodes.values() if node.alive)


@pytest.fixture
def evm_fields() -> dict[str, typing.Any]:
    return {
        "privateKey": EVM_PRIVATE_KEY,
        "contractAddress": EVM_CONTRACT,
        "mintQuantity": 2,
    }


# ============ Solana ============


@pytest.fixture
def sol_keypair() -> Keypair:
    return Keypair()


@pytest.fixture
def sol_mint() -> Pubkey:
    return Pubkey.new_unique()


@pytest.fixture
def sol_fields(sol_keypair: Keypair, sol_mint: Pubkey) -> dict[str, typing.Any]:
    return {
        "privateKey": base58.b58encode(bytes(sol_keypair)).decode(),
        "contractAddress": str(sol_mint),
        "mintQuantity": 3,
    }


def make_solana_client(
    *,
    balance: int = 2_000_000_000,
    mint_owner: Pubkey | None = TOKEN_PROGRAM_ID,
    ata_exists: bool = False,
) -> AsyncMock:
    client = AsyncMock()
    client.get_version.return_value = SimpleNamespace(value={"solana-core": "1.18"})
    client.get_balance.return_value = SimpleNamespace(value=balance)

    mint_info = None if mint_owner is None else SimpleNamespace(owner=mint_owner)
    ata_info = SimpleNamespace(owner=TOKEN_PROGRAM_ID) if ata_exists else None
    client.get_account_info.side_effect = [
        SimpleNamespace(value=mint_info),
        SimpleNamespace(value=ata_info),
    ]
    client.get_latest_blockhash.return_value = SimpleNamespace(
        value=SimpleNamespace(blockhash=Hash.default(), last_valid_block_height=1_000)
    )
    client.send_raw_transaction.return_value = SimpleNamespace(
        value=Signature.default()
    )
    client.confirm_transaction.return_value = SimpleNamespace(
        value=[SimpleNamespace(err=None)]
    )
    return client


# ============ SUI ============


class FakeResponse:
    def __init__(self, status: int = 200, body: typing.Any = b"") -> None:
        self.status = status
        if not isinstance(body, bytes):
            body = orjson.dumps(body)
        self.body = body

    async def read(self) -> bytes:
        return self.body

    def raise_for_status(self) -> None:
        if self.status >= 400:
            raise aiohttp.ClientError(f"HTTP {self.status}")


class _PostContext:
    def __init__(self, outcome: FakeResponse | BaseException) -> None:
        self.outcome = outcome

    async def __aenter__(self) -> FakeResponse:
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        return self.outcome

    async def __aexit__(self, *exc_info) -> bool:
        return False


class FakeSession:
    """Doubles as the session factory and the session it produces."""

    def __init__(self, *outcomes: FakeResponse | BaseException) -> None:
        self.outcomes = list(outcomes)
        self.opened = 0
        self.posts: list[dict[str, typing.Any]] = []

    def __call__(self, **kwargs) -> "FakeSession":
        self.opened += 1
        return self

    async def __aenter__(self) -> "FakeSession":
        return self

    async def __aexit__(self, *exc_info) -> bool:
        return False

    def post(self, url: str, data: bytes | None = None, headers=None) -> _PostContext:
        self.posts.append(
            {"url": url, "json": orjson.loads(data or b"null"), "headers": headers}
        )
        return _PostContext(self.outcomes.pop(0))
