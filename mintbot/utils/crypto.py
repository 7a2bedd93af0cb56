import binascii
import re

import base58
import orjson
import solders.keypair as solders_keypair  # type: ignore # pylint: disable=E0401
from web3 import Web3

EVM_PRIVATE_KEY = re.compile(r"^(0x)?[0-9a-fA-F]{64}$")
BASE58_ADDRESS = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")
HEX_IDENTIFIER = re.compile(r"^[a-fA-F0-9]+$")
BASE58_SECRET = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{80,90}$")

SOLANA_SECRET_KEY_LENGTH = 64


class KeyFormatError(ValueError):
    """The private key is not in any supported encoding."""


class KeyLengthError(ValueError):
    """The private key decoded, but to the wrong number of bytes."""


def is_evm_private_key(value: str) -> bool:
    return bool(EVM_PRIVATE_KEY.match(value))


def is_evm_address(value: str) -> bool:
    return Web3.is_address(value)


def is_base58_address(value: str) -> bool:
    return bool(BASE58_ADDRESS.match(value))


def is_hex_identifier(value: str) -> bool:
    return bool(HEX_IDENTIFIER.match(value))


def decode_solana_secret(value: str) -> bytes:
    """Decode a Solana secret key from its textual encoding.

    Args:
        value (str): A JSON byte array (``[1,2,...]``), a 128 character hex
            string, or a base58 string.

    Raises:
        KeyFormatError: If the encoding is not recognized or is corrupted.
        KeyLengthError: If the decoded key is not 64 bytes long.

    Returns:
        bytes: The raw 64 byte secret key.
    """
    value = value.strip()

    try:
        if value.startswith("[") and value.endswith("]"):
            array = orjson.loads(value)

            if not all(isinstance(item, int) for item in array):
                raise KeyFormatError("byte array must only contain integers")

            secret = bytes(array)
        elif len(value) == 128:
            secret = bytes.fromhex(value)
        elif BASE58_SECRET.match(value):
            secret = base58.b58decode(value)
        else:
            raise KeyFormatError(
                "Invalid private key format. Use base58, hex, or array format."
            )
    except (orjson.JSONDecodeError, binascii.Error, ValueError) as decode_err:
        if isinstance(decode_err, KeyFormatError):
            raise

        raise KeyFormatError(str(decode_err)) from decode_err

    if len(secret) != SOLANA_SECRET_KEY_LENGTH:
        raise KeyLengthError("Private key must be 64 bytes long")

    return secret


def parse_solana_keypair(value: str) -> solders_keypair.Keypair:
    """Materialize a Solana keypair from any supported private key encoding.

    Raises:
        KeyFormatError: If the key cannot be decoded or is not a valid keypair.
        KeyLengthError: If the decoded key is not 64 bytes long.
    """
    secret = decode_solana_secret(value)

    try:
        return solders_keypair.Keypair.from_bytes(secret)
    except BaseException as base_err:  # pylint: disable=W0703
        # solders raises a pyo3 PanicException (a BaseException) on a corrupted key
        if isinstance(base_err, (KeyboardInterrupt, SystemExit)):
            raise

        raise KeyFormatError(str(base_err)) from base_err
