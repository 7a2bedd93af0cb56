"""
mintbot.utils.classify
~~~~~~~~~~~~~~~~~~~~~~

Best-effort mapping of raw SDK / RPC error text onto the outcome taxonomy.

SDKs report most failures as unstructured strings, so each executor keeps an
ordered table of ``ErrorRule`` entries. Rules are evaluated top to bottom and
the first rule with a matching substring wins. When nothing matches, the
caller-supplied fallback code is used and the raw text is kept in ``details``
so an operator can triage it.
"""
import dataclasses
import re
import typing

from mintbot.codes import MintCode
from mintbot.models import MintResult

REVERT_REASONS = (
    re.compile(r"reason string '(.+?)'"),
    re.compile(r"execution reverted: ([^\n\"']+)"),
)


@dataclasses.dataclass(frozen=True)
class ErrorRule:
    patterns: tuple[str, ...]
    code: MintCode
    msg: str | typing.Callable[[str], str]

    def matches(self, text: str) -> bool:
        lowered = text.lower()
        return any(pattern.lower() in lowered for pattern in self.patterns)

    def message(self, text: str) -> str:
        if callable(self.msg):
            return self.msg(text)

        return self.msg


def rule(*patterns: str, code: MintCode, msg: str | typing.Callable[[str], str]):
    return ErrorRule(patterns=patterns, code=code, msg=msg)


def revert_reason(text: str) -> str:
    for expression in REVERT_REASONS:
        if (found := expression.search(text)) is not None:
            return found.group(1).strip()

    return "Unknown reason"


def match(text: str, rules: typing.Sequence[ErrorRule]) -> ErrorRule | None:
    for candidate in rules:
        if candidate.matches(text):
            return candidate

    return None


def classify(
    text: str,
    rules: typing.Sequence[ErrorRule],
    fallback_code: MintCode = MintCode.UNKNOWN_ERROR,
    fallback_msg: str = "An unexpected error occurred during minting",
    **extra: typing.Any,
) -> MintResult:
    """Classify an error message into a failed ``MintResult``.

    Args:
        text (str): The raw error text.
        rules (Sequence[ErrorRule]): Rules, evaluated in order.
        fallback_code (MintCode): Code used when no rule matches.
        fallback_msg (str): Message used when no rule matches.
        **extra: Extra ``MintResult`` fields, e.g. a transaction hash.

    Returns:
        MintResult: The failure, always carrying ``text`` as ``details``.
    """
    details = text or None

    if (found := match(text, rules)) is not None:
        return MintResult.fail(found.code, found.message(text), details=details, **extra)

    return MintResult.fail(fallback_code, fallback_msg, details=details, **extra)
