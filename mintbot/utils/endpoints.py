import inspect
import logging
import typing

logger = logging.getLogger(__name__)

Handle = typing.TypeVar("Handle")


class NoEndpointAvailable(ConnectionError):
    """Every candidate endpoint failed its liveness probe."""

    def __init__(self, failures: dict[str, str]) -> None:
        super().__init__(
            "; ".join(f"{url}: {reason}" for url, reason in failures.items())
            or "no endpoints configured"
        )
        self.failures = failures


async def _discard(handle: typing.Any) -> None:
    close = getattr(handle, "close", None)

    if close is None:
        return

    try:
        closed = close()
        if inspect.isawaitable(closed):
            await closed
    except Exception as err:  # pylint: disable=W0703
        logger.debug("Failed to close handle %r: %s", handle, err)


async def connect_first(
    urls: typing.Sequence[str],
    factory: typing.Callable[[str], Handle],
    probe: typing.Callable[[Handle], typing.Awaitable[typing.Any]],
) -> tuple[str, Handle]:
    """Connect to the first endpoint that answers a liveness probe.

    Candidates are tried strictly in the given order, so identical inputs always
    select the same endpoint first.

    Args:
        urls (Sequence[str]): Candidate endpoints, most preferred first.
        factory (Callable[[str], Handle]): Builds a client handle for a URL.
        probe (Callable[[Handle], Awaitable]): Cheap identity/version query.

    Raises:
        NoEndpointAvailable: If every candidate fails.

    Returns:
        tuple[str, Handle]: The selected URL and its live handle.
    """
    failures: dict[str, str] = {}

    for url in urls:
        handle = None

        try:
            handle = factory(url)
            await probe(handle)
        except Exception as err:  # pylint: disable=W0703
            logger.warning("Failed to connect to %s: %s", url, err)
            failures[url] = str(err) or type(err).__name__

            if handle is not None:
                await _discard(handle)
            continue

        logger.info("Connected to %s", url)
        return url, handle

    raise NoEndpointAvailable(failures)
