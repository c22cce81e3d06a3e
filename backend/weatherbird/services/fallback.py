"""Ordered provider fallback.

A chain is a list of adapters sharing one capability (current conditions,
daily forecast). `run_chain` tries them in order; a provider that raises,
times out, or fails validation is skipped and the next one is tried. Adding a
provider means adding one adapter to a chain, never touching this control flow.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, TypeVar

from weatherbird.config import settings
from weatherbird.errors import NoProviderAvailable, ProviderUnavailable
from weatherbird.schemas.weather import ProviderName

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Returns a list of problems; empty means the payload is usable.
Validator = Callable[[Any], list[str]]


@dataclass(frozen=True)
class ProviderAdapter(Generic[T]):
    name: ProviderName
    fetch: Callable[..., Awaitable[T]]


async def run_single(
    adapter: ProviderAdapter[T],
    *args,
    timeout: float | None = None,
    validate: Validator | None = None,
) -> T:
    """Run one adapter with its own timeout. Every failure surfaces as ProviderUnavailable."""
    timeout = settings.provider_timeout_seconds if timeout is None else timeout
    try:
        result = await asyncio.wait_for(adapter.fetch(*args), timeout=timeout)
    except asyncio.TimeoutError as e:
        raise ProviderUnavailable(adapter.name.value, f"timed out after {timeout:g}s") from e
    except ProviderUnavailable:
        raise
    except Exception as e:
        raise ProviderUnavailable(adapter.name.value, str(e) or type(e).__name__) from e

    if validate is not None:
        problems = validate(result)
        if problems:
            raise ProviderUnavailable(adapter.name.value, "validation failed - " + ", ".join(problems))
    return result


async def run_chain(
    adapters: list[ProviderAdapter[T]],
    *args,
    timeout: float | None = None,
    validate: Validator | None = None,
    label: str = "weather",
) -> T:
    """Return the first valid result in priority order, or raise NoProviderAvailable."""
    attempts: dict[str, str] = {}
    for adapter in adapters:
        try:
            result = await run_single(adapter, *args, timeout=timeout, validate=validate)
        except ProviderUnavailable as e:
            attempts[adapter.name.value] = e.reason
            logger.warning("%s: %s failed (%s), trying next provider", label, adapter.name.value, e.reason)
            continue
        logger.info("%s: resolved by %s", label, adapter.name.value)
        return result

    logger.error("%s: all %d providers failed", label, len(adapters))
    raise NoProviderAvailable(attempts)
