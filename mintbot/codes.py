"""
mintbot.codes
~~~~~~~~~~~~~

This module contains the outcome taxonomy shared by every chain executor.
"""
import enum


class ErrorKind(str, enum.Enum):
    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    CONNECTIVITY = "connectivity"
    AUTHENTICATION = "authentication"
    PRECONDITION = "precondition"
    SUBMISSION = "submission"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


class MintCode(str, enum.Enum):
    MINT_SUCCESS = "MINT_SUCCESS"

    # Validation
    MISSING_PRIVATE_KEY = "MISSING_PRIVATE_KEY"
    MISSING_COLLECTION_ID = "MISSING_COLLECTION_ID"
    MISSING_MINT_STAGE = "MISSING_MINT_STAGE"
    MISSING_CONTRACT_ADDRESS = "MISSING_CONTRACT_ADDRESS"
    INVALID_QUANTITY = "INVALID_QUANTITY"
    QUANTITY_TOO_HIGH = "QUANTITY_TOO_HIGH"
    INVALID_COLLECTION_ID_FORMAT = "INVALID_COLLECTION_ID_FORMAT"
    INVALID_ADDRESS_FORMAT = "INVALID_ADDRESS_FORMAT"
    INVALID_CONTRACT = "INVALID_CONTRACT"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNSUPPORTED_CHAIN = "UNSUPPORTED_CHAIN"

    # Configuration
    MISSING_INDEXER_ENDPOINT = "MISSING_INDEXER_ENDPOINT"
    MISSING_API_CREDENTIALS = "MISSING_API_CREDENTIALS"

    # Connectivity
    RPC_CONNECTION_FAILED = "RPC_CONNECTION_FAILED"
    CONNECTION_FAILED = "CONNECTION_FAILED"
    CONNECTION_REFUSED = "CONNECTION_REFUSED"
    NETWORK_UNREACHABLE = "NETWORK_UNREACHABLE"
    NETWORK_ERROR = "NETWORK_ERROR"
    ENDPOINT_NOT_FOUND = "ENDPOINT_NOT_FOUND"
    RATE_LIMITED = "RATE_LIMITED"
    HTTP_ERROR = "HTTP_ERROR"
    EMPTY_RESPONSE = "EMPTY_RESPONSE"
    INVALID_RESPONSE_STRUCTURE = "INVALID_RESPONSE_STRUCTURE"

    # Authentication
    INVALID_PRIVATE_KEY = "INVALID_PRIVATE_KEY"
    INVALID_PRIVATE_KEY_FORMAT = "INVALID_PRIVATE_KEY_FORMAT"
    INVALID_PRIVATE_KEY_LENGTH = "INVALID_PRIVATE_KEY_LENGTH"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    ACCESS_FORBIDDEN = "ACCESS_FORBIDDEN"
    MINT_UNAUTHORIZED = "MINT_UNAUTHORIZED"
    MINT_AUTHORITY_ERROR = "MINT_AUTHORITY_ERROR"

    # Precondition
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    BALANCE_CHECK_FAILED = "BALANCE_CHECK_FAILED"
    CONTRACT_NOT_FOUND = "CONTRACT_NOT_FOUND"
    CONTRACT_VERIFICATION_FAILED = "CONTRACT_VERIFICATION_FAILED"
    COLLECTION_NOT_FOUND = "COLLECTION_NOT_FOUND"
    MINT_NOT_FOUND = "MINT_NOT_FOUND"
    INVALID_MINT_ACCOUNT = "INVALID_MINT_ACCOUNT"
    MINT_VERIFICATION_FAILED = "MINT_VERIFICATION_FAILED"
    MINT_SOLD_OUT = "MINT_SOLD_OUT"
    MINT_STAGE_INACTIVE = "MINT_STAGE_INACTIVE"
    MINT_INSUFFICIENT_FUNDS = "MINT_INSUFFICIENT_FUNDS"
    INVALID_ACCOUNT_DATA = "INVALID_ACCOUNT_DATA"
    ACCOUNT_NOT_FOUND = "ACCOUNT_NOT_FOUND"

    # Submission
    MINT_FUNCTION_FAILED = "MINT_FUNCTION_FAILED"
    MINT_FAILED = "MINT_FAILED"
    TRANSACTION_REVERTED = "TRANSACTION_REVERTED"
    TRANSACTION_FAILED = "TRANSACTION_FAILED"
    TRANSACTION_ERROR = "TRANSACTION_ERROR"
    NONCE_ERROR = "NONCE_ERROR"
    GAS_PRICE_LOW = "GAS_PRICE_LOW"
    GAS_LIMIT_LOW = "GAS_LIMIT_LOW"
    GAS_FEE_TOO_LOW = "GAS_FEE_TOO_LOW"
    GAS_LIMIT_EXCEEDED = "GAS_LIMIT_EXCEEDED"
    BLOCKHASH_EXPIRED = "BLOCKHASH_EXPIRED"
    GRAPHQL_ERROR = "GRAPHQL_ERROR"
    MISSING_TRANSACTION_HASH = "MISSING_TRANSACTION_HASH"

    # Timeout
    CONFIRMATION_TIMEOUT = "CONFIRMATION_TIMEOUT"
    TRANSACTION_TIMEOUT = "TRANSACTION_TIMEOUT"
    REQUEST_TIMEOUT = "REQUEST_TIMEOUT"
    TIMEOUT = "TIMEOUT"

    # Unknown
    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    MINTING_ERROR = "MINTING_ERROR"


_KINDS: dict[ErrorKind, tuple[MintCode, ...]] = {
    ErrorKind.VALIDATION: (
        MintCode.MISSING_PRIVATE_KEY,
        MintCode.MISSING_COLLECTION_ID,
        MintCode.MISSING_MINT_STAGE,
        MintCode.MISSING_CONTRACT_ADDRESS,
        MintCode.INVALID_QUANTITY,
        MintCode.QUANTITY_TOO_HIGH,
        MintCode.INVALID_COLLECTION_ID_FORMAT,
        MintCode.INVALID_ADDRESS_FORMAT,
        MintCode.INVALID_CONTRACT,
        MintCode.VALIDATION_ERROR,
        MintCode.UNSUPPORTED_CHAIN,
    ),
    ErrorKind.CONFIGURATION: (
        MintCode.MISSING_INDEXER_ENDPOINT,
        MintCode.MISSING_API_CREDENTIALS,
    ),
    ErrorKind.CONNECTIVITY: (
        MintCode.RPC_CONNECTION_FAILED,
        MintCode.CONNECTION_FAILED,
        MintCode.CONNECTION_REFUSED,
        MintCode.NETWORK_UNREACHABLE,
        MintCode.NETWORK_ERROR,
        MintCode.ENDPOINT_NOT_FOUND,
        MintCode.RATE_LIMITED,
        MintCode.HTTP_ERROR,
        MintCode.EMPTY_RESPONSE,
        MintCode.INVALID_RESPONSE_STRUCTURE,
    ),
    ErrorKind.AUTHENTICATION: (
        MintCode.INVALID_PRIVATE_KEY,
        MintCode.INVALID_PRIVATE_KEY_FORMAT,
        MintCode.INVALID_PRIVATE_KEY_LENGTH,
        MintCode.INVALID_CREDENTIALS,
        MintCode.ACCESS_FORBIDDEN,
        MintCode.MINT_UNAUTHORIZED,
        MintCode.MINT_AUTHORITY_ERROR,
    ),
    ErrorKind.PRECONDITION: (
        MintCode.INSUFFICIENT_BALANCE,
        MintCode.INSUFFICIENT_FUNDS,
        MintCode.BALANCE_CHECK_FAILED,
        MintCode.CONTRACT_NOT_FOUND,
        MintCode.CONTRACT_VERIFICATION_FAILED,
        MintCode.COLLECTION_NOT_FOUND,
        MintCode.MINT_NOT_FOUND,
        MintCode.INVALID_MINT_ACCOUNT,
        MintCode.MINT_VERIFICATION_FAILED,
        MintCode.MINT_SOLD_OUT,
        MintCode.MINT_STAGE_INACTIVE,
        MintCode.MINT_INSUFFICIENT_FUNDS,
        MintCode.INVALID_ACCOUNT_DATA,
        MintCode.ACCOUNT_NOT_FOUND,
    ),
    ErrorKind.SUBMISSION: (
        MintCode.MINT_FUNCTION_FAILED,
        MintCode.MINT_FAILED,
        MintCode.TRANSACTION_REVERTED,
        MintCode.TRANSACTION_FAILED,
        MintCode.TRANSACTION_ERROR,
        MintCode.NONCE_ERROR,
        MintCode.GAS_PRICE_LOW,
        MintCode.GAS_LIMIT_LOW,
        MintCode.GAS_FEE_TOO_LOW,
        MintCode.GAS_LIMIT_EXCEEDED,
        MintCode.BLOCKHASH_EXPIRED,
        MintCode.GRAPHQL_ERROR,
        MintCode.MISSING_TRANSACTION_HASH,
    ),
    ErrorKind.TIMEOUT: (
        MintCode.CONFIRMATION_TIMEOUT,
        MintCode.TRANSACTION_TIMEOUT,
        MintCode.REQUEST_TIMEOUT,
        MintCode.TIMEOUT,
    ),
}

CODE_KINDS: dict[str, ErrorKind] = {
    code.value: kind for kind, codes in _KINDS.items() for code in codes
}


def kind_of(code: str | MintCode | None) -> ErrorKind:
    """Return the taxonomy kind of an outcome code.

    Codes reported verbatim by a remote API (e.g. the SUI indexer's own error
    codes) are not in the table and map to ``ErrorKind.UNKNOWN``.
    """
    if code is None:
        return ErrorKind.UNKNOWN

    if isinstance(code, MintCode):
        code = code.value

    return CODE_KINDS.get(code, ErrorKind.UNKNOWN)
