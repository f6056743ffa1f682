import asyncio
import fnmatch
import re
import sys
from pathlib import Path

import pytest

SRC = Path(__file__).resolve().parents[1] / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from playwright.async_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeout

from config import Credentials, Timeouts
from scenarios import (
    ADD_BUTTON,
    ADMIN_MENU_LINK,
    ADMIN_TABLE_HEADER,
    FIRST_NAME_INPUT,
    LAST_NAME_INPUT,
    LOGIN_BUTTON,
    LOGIN_ERROR,
    PASSWORD_INPUT,
    PIM_MENU_LINK,
    PROFILE_MENU,
    SAVE_BUTTON,
    SIDE_PANEL,
    USERNAME_INPUT,
    build_journey,
)

BASE_URL = "https://hrm.test/"
FAST = Timeouts(page_load_ms=300, action_ms=300)


def _now() -> float:
    return asyncio.get_running_loop().time()


class FakeElement:
    def __init__(self, visible_at: float | None, text: str = "") -> None:
        self.visible_at = visible_at
        self.text = text


class FakeLocator:
    """Subset of playwright.async_api.Locator backed by FakePage.elements.

    Keys follow Locator.selector() so tests can register elements by it.
    """

    def __init__(self, page: "FakePage", key: str) -> None:
        self.page = page
        self.key = key

    def _child(self, key: str) -> "FakeLocator":
        return FakeLocator(self.page, f"{self.key} >> {key}")

    def locator(self, selector: str) -> "FakeLocator":
        return self._child(selector)

    def get_by_role(self, role: str, name: str | None = None, exact: bool = False) -> "FakeLocator":
        return self._child(_role_key(role, name))

    def get_by_test_id(self, testid: str) -> "FakeLocator":
        return self._child(f"data-testid={testid}")

    def get_by_text(self, text: str, exact: bool = False) -> "FakeLocator":
        return self._child(f"text={text}")

    def _holds(self, state: str) -> bool:
        element = self.page.elements.get(self.key)
        visible = element is not None and element.visible_at is not None and _now() >= element.visible_at
        if state == "visible":
            return visible
        if state == "attached":
            return element is not None
        return not visible

    async def wait_for(self, state: str = "visible", timeout: float = 30000) -> None:
        self.page.calls.append(("wait_for", self.key, state))
        self.page.check_open()
        deadline = _now() + timeout / 1000
        while not self._holds(state):
            if _now() >= deadline:
                raise PlaywrightTimeout(f"Locator.wait_for: Timeout {timeout}ms exceeded waiting for {self.key}")
            await asyncio.sleep(min(0.005, max(deadline - _now(), 0)))

    async def is_visible(self) -> bool:
        self.page.check_open()
        return self._holds("visible")

    async def inner_text(self, timeout: float = 30000) -> str:
        self.page.check_open()
        element = self.page.elements.get(self.key)
        if element is None:
            raise PlaywrightTimeout(f"Locator.inner_text: Timeout {timeout}ms exceeded")
        return element.text

    def _require_visible(self, action: str) -> None:
        self.page.check_open()
        if not self._holds("visible"):
            raise PlaywrightError(f"Locator.{action}: element is not visible: {self.key}")

    async def fill(self, value: str, timeout: float = 30000) -> None:
        self._require_visible("fill")
        self.page.timeouts.append(("fill", self.key, timeout))
        self.page.calls.append(("fill", self.key, value))
        self.page.filled[self.key] = value

    async def click(self, timeout: float = 30000) -> None:
        self._require_visible("click")
        self.page.timeouts.append(("click", self.key, timeout))
        self.page.calls.append(("click", self.key))
        self.page.clicks.append(self.key)
        hook = self.page.on_click.get(self.key)
        if hook is not None:
            hook(self.page)


def _role_key(role: str, name: str | None) -> str:
    return f"role={role}" + (f"[name=\"{name}\"]" if name is not None else "")


class FakePage:
    """Subset of playwright.async_api.Page with scripted elements and navigation."""

    def __init__(self) -> None:
        self.url = "about:blank"
        self.closed = False
        self.viewport: dict | None = None
        self.elements: dict[str, FakeElement] = {}
        self.on_click: dict = {}
        self.on_goto = None
        self.goto_error: Exception | None = None
        self.screenshot_error: Exception | None = None
        self.screenshots: list[str] = []
        self.filled: dict[str, str] = {}
        self.clicks: list[str] = []
        self.calls: list[tuple] = []
        self.timeouts: list[tuple] = []

    # scripting helpers
    def show(self, key: str, after: float = 0.0, text: str = "") -> None:
        self.elements[key] = FakeElement(_now() + after, text)

    def attach(self, key: str, text: str = "") -> None:
        self.elements[key] = FakeElement(None, text)

    def hide(self, key: str) -> None:
        self.elements.pop(key, None)

    def check_open(self) -> None:
        if self.closed:
            raise PlaywrightError("Target page, context or browser has been closed")

    # Page API
    def locator(self, selector: str) -> FakeLocator:
        return FakeLocator(self, selector)

    def get_by_role(self, role: str, name: str | None = None, exact: bool = False) -> FakeLocator:
        return FakeLocator(self, _role_key(role, name))

    def get_by_test_id(self, testid: str) -> FakeLocator:
        return FakeLocator(self, f"data-testid={testid}")

    def get_by_text(self, text: str, exact: bool = False) -> FakeLocator:
        return FakeLocator(self, f"text={text}")

    async def goto(self, url: str, timeout: float = 30000, **kwargs) -> None:
        self.check_open()
        self.calls.append(("goto", url))
        self.timeouts.append(("goto", url, timeout))
        if self.goto_error is not None:
            raise self.goto_error
        self.url = url
        if self.on_goto is not None:
            self.on_goto(self, url)

    async def set_viewport_size(self, size: dict) -> None:
        self.check_open()
        self.viewport = dict(size)

    def _url_matches(self, pattern) -> bool:
        if callable(pattern):
            return bool(pattern(self.url))
        if isinstance(pattern, re.Pattern):
            return bool(pattern.search(self.url))
        return fnmatch.fnmatch(self.url, pattern)

    async def wait_for_url(self, pattern, timeout: float = 30000) -> None:
        self.check_open()
        deadline = _now() + timeout / 1000
        while not self._url_matches(pattern):
            if _now() >= deadline:
                raise PlaywrightTimeout(f"Page.wait_for_url: Timeout {timeout}ms exceeded")
            await asyncio.sleep(0.005)

    async def screenshot(self, path: str | None = None, full_page: bool = False, **kwargs) -> bytes:
        self.check_open()
        if self.screenshot_error is not None:
            raise self.screenshot_error
        data = b"\x89PNG fake"
        if path:
            Path(path).write_bytes(data)
            self.screenshots.append(str(path))
        return data

    def is_closed(self) -> bool:
        return self.closed

    async def close(self) -> None:
        self.closed = True


def wire_orangehrm(page: FakePage, delay: float = 0.01, reachable: bool = True) -> FakePage:
    """Script the OrangeHRM flows used by the built-in journeys onto a FakePage."""

    def show_after(key: str, text: str = "") -> None:
        page.show(key, after=delay, text=text)

    def on_goto(p: FakePage, url: str) -> None:
        if reachable and url.rstrip("/") == BASE_URL.rstrip("/"):
            for loc in (USERNAME_INPUT, PASSWORD_INPUT, LOGIN_BUTTON):
                show_after(loc.selector())

    def on_login(p: FakePage) -> None:
        user = p.filled.get(USERNAME_INPUT.selector())
        password = p.filled.get(PASSWORD_INPUT.selector())
        if user == "Admin" and password == "admin123":
            p.url = BASE_URL + "web/index.php/dashboard/index"
            for loc in (PROFILE_MENU, ADMIN_MENU_LINK, PIM_MENU_LINK):
                show_after(loc.selector())
        else:
            show_after(LOGIN_ERROR.selector(), text="Invalid credentials")

    def on_admin(p: FakePage) -> None:
        p.url = BASE_URL + "web/index.php/admin/viewSystemUsers"
        show_after(ADMIN_TABLE_HEADER.selector())

    def on_pim(p: FakePage) -> None:
        p.url = BASE_URL + "web/index.php/pim/viewEmployeeList"
        show_after(ADD_BUTTON.selector())

    def on_add(p: FakePage) -> None:
        p.url = BASE_URL + "web/index.php/pim/addEmployee"
        for loc in (FIRST_NAME_INPUT, LAST_NAME_INPUT, SAVE_BUTTON):
            show_after(loc.selector())

    def on_save(p: FakePage) -> None:
        if p.filled.get(FIRST_NAME_INPUT.selector()) and p.filled.get(LAST_NAME_INPUT.selector()):
            p.url = BASE_URL + "web/index.php/pim/viewPersonalDetails/empNumber/7"
            show_after(SIDE_PANEL.selector())

    page.on_goto = on_goto
    page.on_click.update({
        LOGIN_BUTTON.selector(): on_login,
        ADMIN_MENU_LINK.selector(): on_admin,
        PIM_MENU_LINK.selector(): on_pim,
        ADD_BUTTON.selector(): on_add,
        SAVE_BUTTON.selector(): on_save,
    })
    return page


@pytest.fixture()
def page() -> FakePage:
    return FakePage()


@pytest.fixture()
def orangehrm_page() -> FakePage:
    return wire_orangehrm(FakePage())


@pytest.fixture()
def admin_credentials() -> Credentials:
    return Credentials("Admin", "admin123")


@pytest.fixture()
def make_journey(tmp_path, admin_credentials):
    """Build a built-in journey against the fake application with short timeouts."""

    def _make(name: str = "login", credentials: Credentials | None = None, **kwargs):
        kwargs.setdefault("timeouts", FAST)
        kwargs.setdefault("overall_timeout_ms", 5000)
        return build_journey(
            name,
            base_url=BASE_URL,
            credentials=credentials if credentials is not None else admin_credentials,
            artifacts_dir=tmp_path,
            **kwargs,
        )

    return _make
