"""Tests for the EVM executors (BASE, BSC)."""
import asyncio

import pytest
from eth_account import Account
from web3 import Web3

from conftest import EVM_CONTRACT, EVM_PRIVATE_KEY, ONE_ETHER, FakeEvmNode, NodeFactory
from mintbot.chains import evm
from mintbot.codes import ErrorKind, MintCode

TX_HASH = "0x" + "ab" * 32
SENDER = Account.from_key(EVM_PRIVATE_KEY).address


def bytecode(*candidates: evm.MintCandidate) -> bytes:
    return b"\x60\x80\x60\x40" + b"".join(c.selector + b"\x57" for c in candidates)


def base(factory: NodeFactory, **kwargs) -> evm.EvmMintExecutor:
    return evm.EvmMintExecutor(evm.BASE_NETWORK, node_factory=factory, **kwargs)


def bsc(factory: NodeFactory, **kwargs) -> evm.EvmMintExecutor:
    return evm.EvmMintExecutor(evm.BSC_NETWORK, node_factory=factory, **kwargs)


def test_candidate_signatures_and_selectors():
    assert evm.MINT.signature == "mint(uint256)"
    assert evm.MINT_FOR.signature == "mint(address,uint256)"
    assert evm.MINT.selector == bytes.fromhex("a0712d68")
    assert evm.MINT.args(SENDER, 4) == [4]
    assert evm.MINT_TO.args(SENDER, 4) == [SENDER, 4]


def test_bsc_knows_batch_mint_but_base_does_not():
    assert evm.BATCH_MINT in evm.BSC_NETWORK.candidates
    assert evm.BATCH_MINT not in evm.BASE_NETWORK.candidates


@pytest.mark.asyncio
async def test_mint_success(evm_fields):
    factory = NodeFactory()

    result = await base(factory)(evm_fields)

    assert result.success is True
    assert result.code == MintCode.MINT_SUCCESS.value
    assert result.to_json() == {
        "success": True,
        "msg": "Successfully minted 2 NFT(s)",
        "code": "MINT_SUCCESS",
        "txHash": TX_HASH,
        "gasUsed": "84000",
        "blockNumber": 123,
        "quantity": 2,
    }

    (sent,) = factory.live.sent
    assert sent["signature"] == "mint(uint256)"
    assert sent["args"] == [2]
    assert sent["gas"] == 100_000 + 50_000
    assert sent["from"] == SENDER


@pytest.mark.asyncio
async def test_only_exposed_entry_point_is_used(evm_fields):
    factory = NodeFactory(code=bytecode(evm.PUBLIC_MINT))

    result = await base(factory)(evm_fields)

    assert result.success is True
    assert factory.live.estimated == ["publicMint(uint256)"]
    assert factory.live.sent[0]["signature"] == "publicMint(uint256)"


@pytest.mark.asyncio
async def test_recipient_entry_point_gets_sender(evm_fields):
    factory = NodeFactory(code=bytecode(evm.MINT_TO))

    await base(factory)(evm_fields)

    assert factory.live.sent[0]["args"] == [SENDER, 2]


@pytest.mark.asyncio
async def test_opaque_bytecode_tries_candidates_in_order(evm_fields):
    factory = NodeFactory(
        estimates={
            "mint(uint256)": ValueError("execution reverted"),
            "publicMint(uint256)": ValueError("execution reverted"),
        }
    )

    result = await base(factory)(evm_fields)

    assert result.success is True
    assert factory.live.estimated == [
        "mint(uint256)",
        "publicMint(uint256)",
        "mint(address,uint256)",
    ]
    assert factory.live.sent[0]["signature"] == "mint(address,uint256)"


@pytest.mark.asyncio
async def test_invalid_input_makes_no_network_call(evm_fields):
    factory = NodeFactory()

    result = await base(factory)({**evm_fields, "contractAddress": "0x123"})

    assert result.code == MintCode.INVALID_ADDRESS_FORMAT.value
    assert result.kind is ErrorKind.VALIDATION
    assert factory.requested == []


@pytest.mark.asyncio
async def test_quantity_above_limit(evm_fields):
    factory = NodeFactory()

    result = await base(factory)({**evm_fields, "mintQuantity": 101})

    assert result.code == MintCode.QUANTITY_TOO_HIGH.value
    assert result.msg == "Mint quantity cannot exceed 100"
    assert factory.requested == []


@pytest.mark.asyncio
async def test_falls_back_to_next_endpoint(evm_fields):
    first, second = evm.BASE_NETWORK.rpc_urls[:2]
    factory = NodeFactory({first: FakeEvmNode(first, alive=False)})

    result = await base(factory)(evm_fields)

    assert result.success is True
    assert factory.requested == [first, second]
    assert factory.nodes[first].balance_calls == 0
    assert factory.nodes[second].sent


@pytest.mark.asyncio
async def test_all_endpoints_down(evm_fields):
    factory = NodeFactory(alive=False)

    result = await bsc(factory)(evm_fields)

    assert result.code == MintCode.RPC_CONNECTION_FAILED.value
    assert result.kind is ErrorKind.CONNECTIVITY
    assert factory.requested == list(evm.BSC_NETWORK.rpc_urls)
    assert all(node.balance_calls == 0 for node in factory.nodes.values())


@pytest.mark.asyncio
async def test_endpoint_order_is_stable_across_requests(evm_fields):
    first = evm.BASE_NETWORK.rpc_urls[0]
    factory = NodeFactory({first: FakeEvmNode(first, alive=False)})
    executor = base(factory)

    await executor(evm_fields)
    await executor(evm_fields)

    assert factory.requested == list(evm.BASE_NETWORK.rpc_urls[:2]) * 2


@pytest.mark.asyncio
async def test_insufficient_balance(evm_fields):
    factory = NodeFactory(balance=ONE_ETHER // 10_000)

    result = await base(factory)(evm_fields)

    assert result.code == MintCode.INSUFFICIENT_BALANCE.value
    assert result.kind is ErrorKind.PRECONDITION
    assert result.msg == (
        "Insufficient ETH balance. Current: 0.0001 ETH. Minimum required: 0.001 ETH"
    )
    assert factory.live.sent == []


@pytest.mark.asyncio
async def test_bsc_minimum_balance(evm_fields):
    factory = NodeFactory(balance=ONE_ETHER // 1_000)

    result = await bsc(factory)(evm_fields)

    assert result.code == MintCode.INSUFFICIENT_BALANCE.value
    assert "BNB" in result.msg
    assert "0.005" in result.msg


@pytest.mark.asyncio
async def test_contract_not_deployed(evm_fields):
    factory = NodeFactory(code=b"")

    result = await base(factory)(evm_fields)

    assert result.code == MintCode.CONTRACT_NOT_FOUND.value
    assert factory.live.estimated == []


@pytest.mark.asyncio
async def test_insufficient_funds_on_submission(evm_fields):
    funds = ValueError("insufficient funds for gas * price + value")
    factory = NodeFactory(
        send_errors={c.signature: funds for c in evm.BASE_NETWORK.candidates}
    )

    result = await base(factory)(evm_fields)

    assert result.code == MintCode.INSUFFICIENT_FUNDS.value
    assert result.msg == "Insufficient ETH for transaction + gas fees"
    assert result.kind is ErrorKind.PRECONDITION
    assert "insufficient funds" in result.details


@pytest.mark.asyncio
async def test_send_failure_outranks_later_estimation_failures(evm_fields):
    not_exposed = ValueError("execution reverted: not exposed")
    factory = NodeFactory(
        send_errors={
            "mint(uint256)": ValueError("insufficient funds for gas * price + value")
        },
        estimates={
            c.signature: not_exposed
            for c in evm.BASE_NETWORK.candidates
            if c is not evm.MINT
        },
    )

    result = await base(factory)(evm_fields)

    assert result.code == MintCode.INSUFFICIENT_FUNDS.value
    assert "insufficient funds" in result.details
    assert factory.live.estimated == [c.signature for c in evm.BASE_NETWORK.candidates]


@pytest.mark.asyncio
async def test_node_is_closed_after_mint(evm_fields):
    first = evm.BASE_NETWORK.rpc_urls[0]
    factory = NodeFactory({first: FakeEvmNode(first, alive=False)})

    await base(factory)(evm_fields)

    assert factory.nodes[first].closed == 1
    assert factory.live.closed == 1


@pytest.mark.asyncio
async def test_node_is_closed_after_failure(evm_fields):
    factory = NodeFactory(balance=0)

    result = await base(factory)(evm_fields)

    assert result.code == MintCode.INSUFFICIENT_BALANCE.value
    assert factory.live.closed == 1


@pytest.mark.asyncio
async def test_base_skips_candidates_whose_estimation_fails(evm_fields):
    reverted = ValueError("execution reverted: Sale not active")
    factory = NodeFactory(
        estimates={c.signature: reverted for c in evm.BASE_NETWORK.candidates}
    )

    result = await base(factory)(evm_fields)

    assert result.code == MintCode.TRANSACTION_REVERTED.value
    assert result.msg == "Transaction reverted: Sale not active"
    assert factory.live.sent == []


@pytest.mark.asyncio
async def test_bsc_uses_fixed_gas_limit_when_estimation_fails(evm_fields):
    factory = NodeFactory(
        estimates={"mint(uint256)": ValueError("execution reverted")}
    )

    result = await bsc(factory)(evm_fields)

    assert result.success is True
    assert factory.live.sent[0]["signature"] == "mint(uint256)"
    assert factory.live.sent[0]["gas"] == 300_000


@pytest.mark.asyncio
async def test_no_candidate_accepted(evm_fields):
    factory = NodeFactory(
        send_errors={
            c.signature: ValueError("socket hang up")
            for c in evm.BASE_NETWORK.candidates
        }
    )

    result = await base(factory)(evm_fields)

    assert result.code == MintCode.MINT_FUNCTION_FAILED.value
    assert result.details == "socket hang up"


@pytest.mark.asyncio
@pytest.mark.parametrize("gas_price", [ValueError("fee history unavailable"), 0])
async def test_gas_price_fallback(evm_fields, gas_price):
    factory = NodeFactory(gas_price=gas_price)

    result = await base(factory)(evm_fields)

    assert result.success is True
    assert factory.live.sent[0]["gas_price"] == Web3.to_wei(20, "gwei")


@pytest.mark.asyncio
async def test_confirmation_timeout_keeps_hash(evm_fields):
    factory = NodeFactory(confirm_forever=True)

    result = await base(factory, confirmation_timeout=0.01)(evm_fields)

    assert result.code == MintCode.CONFIRMATION_TIMEOUT.value
    assert result.kind is ErrorKind.TIMEOUT
    assert result.tx_hash == TX_HASH
    assert result.to_json()["txHash"] == TX_HASH


@pytest.mark.asyncio
async def test_reverted_receipt(evm_fields):
    factory = NodeFactory(receipt={"status": 0, "gasUsed": 21_000, "blockNumber": 9})

    result = await base(factory)(evm_fields)

    assert result.success is False
    assert result.code == MintCode.TRANSACTION_FAILED.value
    assert result.tx_hash == TX_HASH


@pytest.mark.parametrize(
    "err, code",
    [
        (asyncio.TimeoutError(), MintCode.TIMEOUT),
        (ConnectionError("reset"), MintCode.NETWORK_ERROR),
        (ValueError("nonce too low"), MintCode.NONCE_ERROR),
        (ValueError("429 Too Many Requests"), MintCode.RATE_LIMITED),
        (ValueError("something odd"), MintCode.UNKNOWN_ERROR),
    ],
)
def test_unexpected_errors(err, code):
    result = base(NodeFactory())._unexpected(err)

    assert result.code == code.value
