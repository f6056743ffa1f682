import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from playwright.async_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeout

from errors import DriverError, StepTimeout
from locators import Locator, resolve

# Initial page-load conditions (login form after opening the site)
PAGE_LOAD_TIMEOUT_MS = 20000
# Conditions that follow an action or a navigation
ACTION_TIMEOUT_MS = 30000

VISIBLE = "visible"
ATTACHED = "attached"
HIDDEN = "hidden"
URL = "url"
TEXT = "text"

_ELEMENT_STATES = (VISIBLE, ATTACHED, HIDDEN)


@dataclass(frozen=True)
class WaitCondition:
    predicate: str
    timeout_ms: int
    locator: Locator | None = None
    url_pattern: Any = None
    expected: str | None = None

    def __post_init__(self) -> None:
        if self.predicate in _ELEMENT_STATES or self.predicate == TEXT:
            if self.locator is None:
                raise ValueError(f"'{self.predicate}' condition needs a locator")
        elif self.predicate == URL:
            if self.url_pattern is None:
                raise ValueError("'url' condition needs a url_pattern")
        else:
            raise ValueError(f"Unknown wait predicate: {self.predicate}")
        if self.timeout_ms <= 0:
            raise ValueError("timeout_ms must be positive")

    @classmethod
    def visible(cls, locator: Locator, timeout_ms: int = ACTION_TIMEOUT_MS) -> "WaitCondition":
        return cls(VISIBLE, timeout_ms, locator=locator)

    @classmethod
    def attached(cls, locator: Locator, timeout_ms: int = ACTION_TIMEOUT_MS) -> "WaitCondition":
        return cls(ATTACHED, timeout_ms, locator=locator)

    @classmethod
    def hidden(cls, locator: Locator, timeout_ms: int = ACTION_TIMEOUT_MS) -> "WaitCondition":
        return cls(HIDDEN, timeout_ms, locator=locator)

    @classmethod
    def url_matches(cls, pattern, timeout_ms: int = ACTION_TIMEOUT_MS) -> "WaitCondition":
        return cls(URL, timeout_ms, url_pattern=pattern)

    @classmethod
    def text_contains(cls, locator: Locator, expected: str, timeout_ms: int = ACTION_TIMEOUT_MS) -> "WaitCondition":
        return cls(TEXT, timeout_ms, locator=locator, expected=expected)

    def describe(self) -> str:
        if self.predicate == URL:
            pattern = getattr(self.url_pattern, "pattern", self.url_pattern)
            return f"URL matching {pattern}"
        if self.predicate == TEXT:
            return f"'{self.expected}' in {self.locator.name}"
        return f"{self.locator.name} to be {self.predicate}"


async def poll_until(
    probe: Callable[[], Awaitable[bool]],
    timeout_ms: int,
    description: str,
    interval_ms: int = 250,
) -> float:
    """Re-evaluate ``probe`` until it returns True or the deadline passes.

    Returns the elapsed seconds on success. The last sleep is clipped to the
    deadline, and the timeout is only raised once the deadline has elapsed.
    """
    loop = asyncio.get_running_loop()
    start = loop.time()
    deadline = start + timeout_ms / 1000
    while True:
        if await probe():
            return loop.time() - start
        remaining = deadline - loop.time()
        if remaining <= 0:
            break
        await asyncio.sleep(min(interval_ms / 1000, remaining))
    raise StepTimeout(description, timeout_ms, elapsed_ms=(loop.time() - start) * 1000)


async def wait_for(page, condition: WaitCondition, verbose: bool = False) -> float:
    """Block until ``condition`` holds on ``page``; return the elapsed seconds.

    Raises StepTimeout when the bound elapses and DriverError when the driver
    fails for any other reason. Timeouts are never retried here.
    """
    loop = asyncio.get_running_loop()
    start = loop.time()
    description = condition.describe()
    if verbose:
        print(f"→ Waiting up to {condition.timeout_ms}ms for {description}")
    try:
        if condition.predicate == URL:
            await page.wait_for_url(condition.url_pattern, timeout=condition.timeout_ms)
        elif condition.predicate == TEXT:
            target = resolve(page, condition.locator)

            async def text_present() -> bool:
                try:
                    content = await target.inner_text(timeout=250)
                except PlaywrightTimeout:
                    return False
                return condition.expected in (content or "")

            await poll_until(text_present, condition.timeout_ms, description)
        else:
            await resolve(page, condition.locator).wait_for(state=condition.predicate, timeout=condition.timeout_ms)
    except StepTimeout:
        raise
    except PlaywrightTimeout as exc:
        raise StepTimeout(description, condition.timeout_ms, elapsed_ms=(loop.time() - start) * 1000) from exc
    except PlaywrightError as exc:
        payload = {"condition": description}
        if condition.locator is not None:
            payload["selector"] = condition.locator.selector()
        raise DriverError(action="wait_for", payload=payload, message=str(exc)) from exc
    elapsed = loop.time() - start
    if verbose:
        print(f"✓ {description} after {elapsed * 1000:.0f}ms")
    return elapsed
