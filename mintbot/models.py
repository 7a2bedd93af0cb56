"""
mintbot.models
~~~~~~~~~~~~~~

This module contains pydantic validation schemas for the API.
"""
import enum
import re
import typing

import pydantic
from pydantic_core import PydanticCustomError

from mintbot.codes import ErrorKind, MintCode, kind_of
from mintbot.utils import crypto

INTEGER = re.compile(r"^[+-]?\d+$")


class Chain(str, enum.Enum):
    SUI = "SUI"
    BASE = "BASE"
    BSC = "BSC"
    SOL = "SOL"

    @classmethod
    def parse(cls, tag: typing.Any) -> "Chain | None":
        """Case-insensitive lookup; anything unknown yields None."""
        if not isinstance(tag, str):
            return None

        try:
            return cls(tag.strip().upper())
        except ValueError:
            return None


class MintResult(pydantic.BaseModel):
    """Normalized outcome of a mint invocation, whatever the chain."""

    model_config = pydantic.ConfigDict(populate_by_name=True)

    success: bool
    msg: str | None = None
    code: str | None = None
    tx_hash: str | None = pydantic.Field(default=None, alias="txHash")
    transaction_hash: str | None = pydantic.Field(
        default=None, alias="transactionHash"
    )
    gas_used: str | None = pydantic.Field(default=None, alias="gasUsed")
    block_number: int | None = pydantic.Field(default=None, alias="blockNumber")
    quantity: int | None = None
    collection_id: str | None = pydantic.Field(default=None, alias="collectionId")
    associated_token_account: str | None = pydantic.Field(
        default=None, alias="associatedTokenAccount"
    )
    details: str | None = None

    @pydantic.model_validator(mode="after")
    def outcome_is_consistent(self) -> "MintResult":
        if self.success and self.hash is None:
            raise ValueError("a successful mint must carry a transaction hash")

        if not self.success and not self.code:
            raise ValueError("a failed mint must carry a code")

        return self

    @property
    def hash(self) -> str | None:
        return self.tx_hash or self.transaction_hash

    @property
    def kind(self) -> ErrorKind | None:
        if self.success:
            return None

        return kind_of(self.code)

    @classmethod
    def ok(cls, msg: str | None = None, **extra: typing.Any) -> "MintResult":
        return cls(success=True, code=MintCode.MINT_SUCCESS.value, msg=msg, **extra)

    @classmethod
    def fail(
        cls,
        code: MintCode | str,
        msg: str,
        details: typing.Any = None,
        **extra: typing.Any,
    ) -> "MintResult":
        if isinstance(code, MintCode):
            code = code.value

        if details is not None and not isinstance(details, str):
            details = str(details)

        return cls(success=False, code=code, msg=msg, details=details, **extra)

    def to_json(self) -> dict[str, typing.Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class MintRequest(pydantic.BaseModel):
    """Inbound envelope: the chain tag plus whatever fields the chain needs."""

    model_config = pydantic.ConfigDict(extra="allow")

    chain: typing.Any = None

    @property
    def fields(self) -> dict[str, typing.Any]:
        return dict(self.model_extra or {})


def _missing(code: MintCode, message: str) -> PydanticCustomError:
    return PydanticCustomError(code.value, message)


class _MintParams(pydantic.BaseModel):
    """Validators shared by every chain's parameters.

    Validation errors are raised as ``PydanticCustomError`` whose type is the
    outcome code, so the first error of a ``ValidationError`` can be turned
    into a ``MintResult`` directly.
    """

    model_config = pydantic.ConfigDict(populate_by_name=True)

    max_quantity: typing.ClassVar[int] = 100
    missing: typing.ClassVar[dict[str, tuple[MintCode, str]]] = {
        "privateKey": (MintCode.MISSING_PRIVATE_KEY, "Private key is required"),
        "mintQuantity": (MintCode.INVALID_QUANTITY, "Mint quantity must be at least 1"),
    }

    @pydantic.field_validator(
        "private_key",
        "collection_id",
        "mint_stage",
        "contract_address",
        mode="before",
        check_fields=False,
    )
    @classmethod
    def required_text(cls, value: typing.Any, info: pydantic.ValidationInfo):
        if value is None or (isinstance(value, str) and not value.strip()):
            field = cls.model_fields[info.field_name]  # type: ignore[index]
            code, message = cls.missing[field.alias or info.field_name]  # type: ignore[index]
            raise _missing(code, message)

        return value

    @pydantic.field_validator("mint_quantity", mode="before", check_fields=False)
    @classmethod
    def quantity_is_integer(cls, value: typing.Any) -> int:
        invalid = PydanticCustomError(
            MintCode.INVALID_QUANTITY.value, "Mint quantity must be at least 1"
        )

        if isinstance(value, bool) or value is None:
            raise invalid

        if isinstance(value, str):
            if not INTEGER.match(value.strip()):
                raise invalid
            value = int(value.strip())
        elif isinstance(value, float):
            if not value.is_integer():
                raise invalid
            value = int(value)
        elif not isinstance(value, int):
            raise invalid

        if value < 1:
            raise invalid

        if value > cls.max_quantity:
            raise PydanticCustomError(
                MintCode.QUANTITY_TOO_HIGH.value,
                "Mint quantity cannot exceed {max_quantity}",
                {"max_quantity": cls.max_quantity},
            )

        return value

    @classmethod
    def failure(cls, validation_error: pydantic.ValidationError) -> MintResult:
        """Turn the first validation error into a failed ``MintResult``."""
        error = validation_error.errors()[0]
        field = str(error["loc"][0]) if error["loc"] else ""

        if error["type"] == "missing" and field in cls.missing:
            code, message = cls.missing[field]
            return MintResult.fail(code, message)

        if error["type"] in MintCode.__members__:
            return MintResult.fail(error["type"], error["msg"])

        return MintResult.fail(
            MintCode.VALIDATION_ERROR,
            "Validation error occurred",
            details=f"{field}: {error['msg']}",
        )


class SuiMintParams(_MintParams):
    missing: typing.ClassVar[dict[str, tuple[MintCode, str]]] = _MintParams.missing | {
        "collectionId": (MintCode.MISSING_COLLECTION_ID, "Collection ID is required"),
        "mintStage": (MintCode.MISSING_MINT_STAGE, "Mint stage is required"),
    }

    private_key: str = pydantic.Field(alias="privateKey")
    collection_id: str = pydantic.Field(alias="collectionId")
    mint_stage: str = pydantic.Field(alias="mintStage")
    mint_quantity: int = pydantic.Field(alias="mintQuantity")

    @pydantic.field_validator("private_key")
    @classmethod
    def private_key_long_enough(cls, value: str) -> str:
        if len(value) < 32:
            raise PydanticCustomError(
                MintCode.INVALID_PRIVATE_KEY_LENGTH.value,
                "Private key appears to be too short",
            )

        return value

    @pydantic.field_validator("collection_id")
    @classmethod
    def collection_id_is_hex(cls, value: str) -> str:
        if not crypto.is_hex_identifier(value):
            raise PydanticCustomError(
                MintCode.INVALID_COLLECTION_ID_FORMAT.value,
                "Invalid collection ID format",
            )

        return value


class EvmMintParams(_MintParams):
    missing: typing.ClassVar[dict[str, tuple[MintCode, str]]] = _MintParams.missing | {
        "contractAddress": (
            MintCode.MISSING_CONTRACT_ADDRESS,
            "Contract address is required",
        ),
    }

    private_key: str = pydantic.Field(alias="privateKey")
    contract_address: str = pydantic.Field(alias="contractAddress")
    mint_quantity: int = pydantic.Field(alias="mintQuantity")

    @pydantic.field_validator("private_key")
    @classmethod
    def private_key_is_hex(cls, value: str) -> str:
        if not crypto.is_evm_private_key(value):
            raise PydanticCustomError(
                MintCode.INVALID_PRIVATE_KEY.value, "Invalid private key format"
            )

        return value

    @pydantic.field_validator("contract_address")
    @classmethod
    def contract_address_is_evm(cls, value: str) -> str:
        if not crypto.is_evm_address(value):
            raise PydanticCustomError(
                MintCode.INVALID_ADDRESS_FORMAT.value,
                "Invalid contract address format",
            )

        return value


class SolMintParams(_MintParams):
    max_quantity: typing.ClassVar[int] = 10_000
    missing: typing.ClassVar[dict[str, tuple[MintCode, str]]] = _MintParams.missing | {
        "contractAddress": (
            MintCode.MISSING_CONTRACT_ADDRESS,
            "Contract address (Mint Address) is required",
        ),
    }

    private_key: str = pydantic.Field(alias="privateKey")
    contract_address: str = pydantic.Field(alias="contractAddress")
    mint_quantity: int = pydantic.Field(alias="mintQuantity")

    @pydantic.field_validator("contract_address")
    @classmethod
    def contract_address_is_base58(cls, value: str) -> str:
        if not crypto.is_base58_address(value):
            raise PydanticCustomError(
                MintCode.INVALID_ADDRESS_FORMAT.value,
                "Invalid Solana contract address format",
            )

        return value
