import asyncio
from contextlib import asynccontextmanager
from enum import Enum
from pathlib import Path
from typing import AsyncIterator

from playwright.async_api import async_playwright

from artifacts import artifact_path, capture_on_failure, write_failure_record
from config import JourneyConfig, Viewport
from errors import DriverError, StepTimeout
from locators import resolve
from report import ScenarioResult, finalize_failed, finalize_passed, print_banner, snapshot_success
from steps import StepResult, navigate, run_steps, set_viewport
from synchronizer import VISIBLE, WaitCondition, wait_for


class JourneyState(str, Enum):
    NOT_STARTED = "not_started"
    NAVIGATING_ROOT = "navigating_root"
    LOGGING_IN = "logging_in"
    LOGGED_IN = "logged_in"
    EXECUTING_BODY = "executing_body"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATES = {JourneyState.COMPLETED, JourneyState.FAILED}

_TRANSITIONS = {
    JourneyState.NOT_STARTED: {JourneyState.NAVIGATING_ROOT},
    JourneyState.NAVIGATING_ROOT: {JourneyState.LOGGING_IN},
    JourneyState.LOGGING_IN: {JourneyState.LOGGED_IN},
    JourneyState.LOGGED_IN: {JourneyState.EXECUTING_BODY},
    JourneyState.EXECUTING_BODY: {JourneyState.COMPLETED},
}


class JourneyRunner:
    """Runs one journey (root → viewport → login → body) against one exclusively owned page.

    A runner is single-use: a failed journey is re-run with a fresh runner.
    """

    def __init__(self, config: JourneyConfig) -> None:
        self.config = config
        self.state = JourneyState.NOT_STARTED
        self.history: list[JourneyState] = [self.state]
        self.result = ScenarioResult(name=config.name)
        self._outcome: StepResult | None = None
        self._activity: str | None = None

    def _transition(self, new_state: JourneyState) -> None:
        allowed = _TRANSITIONS.get(self.state, set())
        # Failed is reachable from every non-terminal state
        if new_state is JourneyState.FAILED and self.state not in TERMINAL_STATES:
            allowed = {JourneyState.FAILED}
        if new_state not in allowed:
            raise RuntimeError(f"Illegal journey transition {self.state.value} -> {new_state.value}")
        self.state = new_state
        self.history.append(new_state)
        self.result.state = new_state.value
        if self.config.verbose:
            print(f"→ Journey '{self.config.name}' is now {new_state.value}")

    @property
    def success_path(self) -> Path:
        return Path(self.config.success_screenshot) if self.config.success_screenshot else artifact_path(self.config.artifacts_dir, self.config.name, "success")

    @property
    def failure_path(self) -> Path:
        return Path(self.config.failure_screenshot) if self.config.failure_screenshot else artifact_path(self.config.artifacts_dir, self.config.name, "failed")

    async def _sequence(self, page, steps) -> None:
        outcome = self._outcome = StepResult()
        try:
            await run_steps(page, steps, base_url=self.config.base_url, verbose=self.config.verbose, result=outcome)
        finally:
            self.result.steps.extend(outcome.completed)
        if not outcome.ok:
            self.result.failed_step = outcome.failed_step
        outcome.raise_for_failure()

    async def _confirm_login(self, page) -> None:
        cfg = self.config
        marker = WaitCondition(VISIBLE, cfg.timeouts.action_ms, locator=cfg.post_login_marker)
        self._activity = f"wait for {marker.describe()}"
        try:
            await wait_for(page, marker, verbose=cfg.verbose)
        except DriverError:
            self.result.failed_step = self._activity
            raise
        except StepTimeout as exc:
            self.result.failed_step = self._activity
            rejection = await self._login_rejection(page)
            if rejection is not None:
                raise AssertionError(f"Login rejected: {rejection}") from exc
            raise
        self._activity = None
        self.result.steps.append(f"confirmed login via {cfg.post_login_marker.name}")
        print("✓ Login successful")

    async def _login_rejection(self, page) -> str | None:
        if self.config.login_error_marker is None:
            return None
        try:
            alert = resolve(page, self.config.login_error_marker)
            if await alert.is_visible():
                return (await alert.inner_text()).strip() or "login error shown"
        except Exception as e:
            print(f"⚠️ Could not inspect login error marker: {e}")
        return None

    def _in_progress(self) -> str | None:
        if self._outcome is not None and self._outcome.current:
            return self._outcome.current
        return self._activity

    async def _drive(self, page) -> None:
        cfg = self.config
        self._transition(JourneyState.NAVIGATING_ROOT)
        print("Opening website...")
        await self._sequence(page, [navigate(cfg.base_url, timeout_ms=cfg.timeouts.page_load_ms), set_viewport(cfg.viewport.width, cfg.viewport.height)])

        self._transition(JourneyState.LOGGING_IN)
        missing = cfg.credentials.missing()
        if missing:
            self.result.failed_step = "check credentials"
            raise AssertionError(f"Missing credentials: {', '.join(missing)}. Set them before running journeys.")
        await self._sequence(page, cfg.login_steps)
        await self._confirm_login(page)
        self._transition(JourneyState.LOGGED_IN)

        self._transition(JourneyState.EXECUTING_BODY)
        await self._sequence(page, cfg.body_steps)

        self._activity = "success screenshot"
        path = await snapshot_success(page, self.success_path, delay_ms=cfg.screenshot_delay_ms, verbose=cfg.verbose)
        self.result.steps.append(f"screenshot {path}")

    async def run(self, page) -> ScenarioResult:
        if self.state is not JourneyState.NOT_STARTED:
            raise RuntimeError("JourneyRunner is single-use; create a new runner to re-run a journey")
        cfg = self.config
        print_banner(cfg.name, "STARTED")
        try:
            async with capture_on_failure(page, self.failure_path, verbose=cfg.verbose) as capture:
                try:
                    await asyncio.wait_for(self._drive(page), timeout=cfg.overall_timeout_ms / 1000)
                except StepTimeout:
                    raise
                except asyncio.TimeoutError as exc:
                    self.result.failed_step = self.result.failed_step or self._in_progress()
                    raise StepTimeout(f"journey '{cfg.name}' to finish", cfg.overall_timeout_ms) from exc
        except Exception as exc:
            self._transition(JourneyState.FAILED)
            finalize_failed(self.result, exc, capture.path)
            record = self.result.to_dict()
            record["url"] = _current_url(page)
            self.result.record_path = write_failure_record(self.failure_path.with_suffix(".json"), record)
            print_banner(cfg.name, "FAILED")
            print(f"Error: {exc}")
            return self.result
        self._transition(JourneyState.COMPLETED)
        finalize_passed(self.result, str(self.success_path))
        print_banner(cfg.name, "PASSED")
        return self.result


def _current_url(page) -> str:
    try:
        return page.url
    except Exception:
        return ""


async def run_journey(page, config: JourneyConfig) -> ScenarioResult:
    return await JourneyRunner(config).run(page)


@asynccontextmanager
async def open_browser(headless: bool = True) -> AsyncIterator:
    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=headless)
        try:
            yield browser
        finally:
            await browser.close()


@asynccontextmanager
async def open_page(browser, viewport: Viewport = Viewport()) -> AsyncIterator:
    """A fresh context and page, owned by one journey and closed when it ends."""
    context = await browser.new_context(viewport=viewport.as_dict())
    try:
        yield await context.new_page()
    finally:
        await context.close()


async def run_journeys(configs: list[JourneyConfig], headless: bool = True) -> list[ScenarioResult]:
    """Run journeys one after another, each in its own browser context."""
    results = []
    async with open_browser(headless=headless) as browser:
        for config in configs:
            async with open_page(browser, config.viewport) as page:
                results.append(await run_journey(page, config))
    return results
