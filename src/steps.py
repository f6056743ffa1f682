import os
from dataclasses import dataclass, field

import pyotp
from playwright.async_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeout

from errors import DriverError, StepTimeout
from locators import Locator, locator_from_spec, resolve
from synchronizer import ACTION_TIMEOUT_MS, VISIBLE, WaitCondition, wait_for

NAVIGATE = "navigate"
SET_VIEWPORT = "set_viewport"
FILL = "fill"
FILL_TOTP = "fill_totp"
CLICK = "click"
WAIT_FOR = "wait_for"
SCREENSHOT = "screenshot"

ACTIONS = (NAVIGATE, SET_VIEWPORT, FILL, FILL_TOTP, CLICK, WAIT_FOR, SCREENSHOT)


@dataclass(frozen=True)
class Step:
    """One atomic driven action.

    ``value`` carries the URL for navigate, the text for fill, the TOTP
    secret for fill_totp and the file path for screenshot. When ``value`` is
    empty and ``env_var`` is set, the value is read from the environment as
    the step runs. ``timeout_ms`` bounds the implicit readiness wait before
    fill/click (0 disables it) and the driver call itself.
    """

    action: str
    locator: Locator | None = None
    value: str | None = None
    condition: WaitCondition | None = None
    width: int | None = None
    height: int | None = None
    full_page: bool = True
    timeout_ms: int = ACTION_TIMEOUT_MS
    label: str | None = None
    sensitive: bool = False
    env_var: str | None = None

    def __post_init__(self) -> None:
        if self.action not in ACTIONS:
            raise ValueError(f"Unknown step action: {self.action}")
        if self.action in (FILL, FILL_TOTP, CLICK) and self.locator is None:
            raise ValueError(f"'{self.action}' step needs a locator")
        if self.action == WAIT_FOR and self.condition is None:
            raise ValueError("'wait_for' step needs a condition")

    def describe(self) -> str:
        if self.label:
            return self.label
        if self.action == NAVIGATE:
            return f"navigate to {self.value}"
        if self.action == SET_VIEWPORT:
            return f"set viewport {self.width}x{self.height}"
        if self.action == FILL:
            shown = "******" if self.sensitive else self.value
            return f"fill {self.locator.name} with '{shown}'"
        if self.action == FILL_TOTP:
            return f"fill {self.locator.name} with one-time code"
        if self.action == CLICK:
            return f"click {self.locator.name}"
        if self.action == WAIT_FOR:
            return f"wait for {self.condition.describe()}"
        return f"screenshot {self.value}"


def navigate(url: str, label: str | None = None, timeout_ms: int = ACTION_TIMEOUT_MS) -> Step:
    return Step(NAVIGATE, value=url, label=label, timeout_ms=timeout_ms)


def set_viewport(width: int, height: int) -> Step:
    return Step(SET_VIEWPORT, width=width, height=height)


def fill(locator: Locator, value: str | None, sensitive: bool = False, timeout_ms: int = ACTION_TIMEOUT_MS, label: str | None = None, env_var: str | None = None) -> Step:
    return Step(FILL, locator=locator, value=value, sensitive=sensitive, timeout_ms=timeout_ms, label=label, env_var=env_var)


def fill_totp(locator: Locator, secret: str | None, timeout_ms: int = ACTION_TIMEOUT_MS, env_var: str | None = None) -> Step:
    return Step(FILL_TOTP, locator=locator, value=secret, sensitive=True, timeout_ms=timeout_ms, env_var=env_var)


def click(locator: Locator, timeout_ms: int = ACTION_TIMEOUT_MS, label: str | None = None) -> Step:
    return Step(CLICK, locator=locator, timeout_ms=timeout_ms, label=label)


def wait(condition: WaitCondition, label: str | None = None) -> Step:
    return Step(WAIT_FOR, condition=condition, label=label)


def screenshot(path: str, full_page: bool = True) -> Step:
    return Step(SCREENSHOT, value=str(path), full_page=full_page)


@dataclass
class StepResult:
    ok: bool = True
    completed: list[str] = field(default_factory=list)
    failed_index: int | None = None
    failed_step: str | None = None
    error: Exception | None = None
    # step in flight; left set if the run is cancelled part way
    current: str | None = None

    def raise_for_failure(self) -> None:
        if self.error is not None:
            raise self.error


def join_url(base_url: str, url: str) -> str:
    if not base_url or url.startswith("http") or url.startswith("about:"):
        return url
    return base_url.rstrip("/") + "/" + url.lstrip("/")


def _value(step: Step) -> str | None:
    if step.value or not step.env_var:
        return step.value
    value = os.environ.get(step.env_var)
    if not value:
        raise AssertionError(f"Missing required environment variable: {step.env_var}")
    return value


async def _execute(page, step: Step, ready: set, base_url: str, verbose: bool) -> None:
    action = step.action
    timeout = step.timeout_ms or ACTION_TIMEOUT_MS
    if action == NAVIGATE:
        await page.goto(join_url(base_url, step.value or "/"), timeout=timeout)
        ready.clear()
    elif action == SET_VIEWPORT:
        await page.set_viewport_size({"width": step.width, "height": step.height})
    elif action == WAIT_FOR:
        await wait_for(page, step.condition, verbose=verbose)
        if step.condition.locator is not None and step.condition.predicate == VISIBLE:
            ready.add(step.condition.locator)
    elif action in (FILL, FILL_TOTP, CLICK):
        value = _value(step)
        # Readiness is only trusted until the next navigation or click re-renders the page
        if step.timeout_ms and step.locator not in ready:
            await wait_for(page, WaitCondition.visible(step.locator, step.timeout_ms), verbose=verbose)
        target = resolve(page, step.locator)
        if action == CLICK:
            await target.click(timeout=timeout)
            ready.clear()
        elif action == FILL_TOTP:
            await target.fill(pyotp.TOTP(value).now(), timeout=timeout)
        else:
            await target.fill(value or "", timeout=timeout)
    elif action == SCREENSHOT:
        os.makedirs(os.path.dirname(os.path.abspath(step.value)), exist_ok=True)
        await page.screenshot(path=step.value, full_page=step.full_page)
        if verbose:
            print(f"📸 Screenshot saved: {step.value}")


async def run_steps(page, steps: list[Step], base_url: str = "", verbose: bool = False, result: StepResult | None = None) -> StepResult:
    """Execute ``steps`` in order against one page, stopping at the first failure.

    Pass ``result`` to observe progress from outside, e.g. after the caller
    cancels the run.
    """
    result = StepResult() if result is None else result
    ready: set = set()
    for idx, step in enumerate(steps):
        description = step.describe()
        result.current = description
        if verbose:
            print(f"→ Step {idx + 1}/{len(steps)}: {description}")
        try:
            await _execute(page, step, ready, base_url, verbose)
        except (StepTimeout, DriverError, AssertionError) as exc:
            return _failed(result, idx, description, exc)
        except PlaywrightTimeout as exc:
            # Actionability timeouts raised by the driver during click/fill
            timeout = StepTimeout(f"{description} to become actionable", step.timeout_ms or ACTION_TIMEOUT_MS)
            timeout.__cause__ = exc
            return _failed(result, idx, description, timeout)
        except PlaywrightError as exc:
            payload = {"step": idx, "selector": step.locator.selector() if step.locator else None, "value": step.value if not step.sensitive else "******"}
            error = DriverError(action=step.action, payload=payload, message=str(exc))
            error.__cause__ = exc
            return _failed(result, idx, description, error)
        except Exception as exc:
            return _failed(result, idx, description, exc)
        result.completed.append(description)
    result.current = None
    return result


def _failed(result: StepResult, idx: int, description: str, exc: Exception) -> StepResult:
    result.ok = False
    result.failed_index = idx
    result.failed_step = description
    result.error = exc
    print(f"✖ Step failed: {description} — {exc}")
    return result


def steps_from_specs(specs: list[dict], registry: dict[str, Locator] | None = None, env=None) -> list[Step]:
    """Parse the JSON step form used in journey files.

    ``fill_env`` and ``fill_totp`` read their value from an environment
    variable (``env`` / ``totp_env``) so secrets stay out of journey files.
    A variable missing from ``env`` is looked up again when the step runs
    and fails that step if it is still unset.
    """
    env = os.environ if env is None else env
    steps: list[Step] = []
    for spec in specs:
        action = spec.get("action")
        label = spec.get("label")
        timeout_ms = int(spec.get("timeout_ms", ACTION_TIMEOUT_MS))
        if action == NAVIGATE:
            steps.append(navigate(spec.get("url") or spec.get("target") or "/", label=label, timeout_ms=timeout_ms))
        elif action == SET_VIEWPORT:
            steps.append(set_viewport(int(spec["width"]), int(spec["height"])))
        elif action in (FILL, "fill_env"):
            loc = locator_from_spec(spec.get("target") or spec.get("selector"), registry)
            if action == "fill_env":
                name = spec["env"]
                steps.append(fill(loc, env.get(name), sensitive=True, timeout_ms=timeout_ms, label=label, env_var=name))
            else:
                steps.append(fill(loc, str(spec.get("value", "")), sensitive=bool(spec.get("sensitive")), timeout_ms=timeout_ms, label=label))
        elif action == FILL_TOTP:
            loc = locator_from_spec(spec.get("target") or spec.get("selector"), registry)
            name = spec.get("totp_env", "TOTP_SECRET")
            steps.append(fill_totp(loc, env.get(name), timeout_ms=timeout_ms, env_var=name))
        elif action == CLICK:
            loc = locator_from_spec(spec.get("target") or spec.get("selector"), registry)
            steps.append(click(loc, timeout_ms=timeout_ms, label=label))
        elif action == WAIT_FOR:
            if "url" in spec:
                condition = WaitCondition.url_matches(spec["url"], timeout_ms)
            else:
                loc = locator_from_spec(spec.get("target") or spec.get("selector"), registry)
                state = spec.get("state", VISIBLE)
                if "text" in spec:
                    condition = WaitCondition.text_contains(loc, spec["text"], timeout_ms)
                else:
                    condition = WaitCondition(state, timeout_ms, locator=loc)
            steps.append(wait(condition, label=label))
        elif action == SCREENSHOT:
            steps.append(screenshot(spec["path"], full_page=bool(spec.get("full_page", True))))
        else:
            raise ValueError(f"Unknown action in journey file: {action}")
    return steps
