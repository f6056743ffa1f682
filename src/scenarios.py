"""OrangeHRM locators and the built-in journeys.

Everything here is scenario data: selectors, labels and per-journey
deadlines. The harness itself lives in steps/synchronizer/journey.
"""
import os
from pathlib import Path

import steps as s
from config import Credentials, JourneyConfig, Timeouts, Viewport, screenshot_delay_from_env
from locators import Locator, by_attribute, by_class, by_css, by_role, locator_from_spec
from synchronizer import WaitCondition

DEFAULT_BASE_URL = "https://opensource-demo.orangehrmlive.com/"
# Public credentials of the OrangeHRM demo instance
DEMO_USERNAME = "Admin"
DEMO_PASSWORD = "admin123"

USERNAME_INPUT = by_attribute("username field", "name", "username", tag="input")
PASSWORD_INPUT = by_attribute("password field", "name", "password", tag="input")
LOGIN_BUTTON = by_attribute("login button", "type", "submit", tag="button")
PROFILE_MENU = by_class("profile indicator", "oxd-userdropdown-tab", tag="span")
LOGIN_ERROR = by_class("login error alert", "oxd-alert-content-text")
ADMIN_MENU_LINK = by_css("Admin menu link", 'a[href*="viewAdminModule"]')
ADMIN_TABLE_HEADER = by_class("Admin table header", "oxd-table-header")
PIM_MENU_LINK = by_css("PIM menu link", 'a[href*="viewPimModule"]')
ADD_BUTTON = by_role("Add button", "button", "Add")
SAVE_BUTTON = by_role("Save button", "button", "Save")
FIRST_NAME_INPUT = by_attribute("first name field", "name", "firstName", tag="input")
LAST_NAME_INPUT = by_attribute("last name field", "name", "lastName", tag="input")
SIDE_PANEL = by_class("side panel", "oxd-sidepanel")

PERSONAL_DETAILS_URL = "**/pim/viewPersonalDetails/**"

LOCATORS: dict[str, Locator] = {
    "username": USERNAME_INPUT,
    "password": PASSWORD_INPUT,
    "login-button": LOGIN_BUTTON,
    "profile-menu": PROFILE_MENU,
    "login-error": LOGIN_ERROR,
    "admin-menu-link": ADMIN_MENU_LINK,
    "admin-table-header": ADMIN_TABLE_HEADER,
    "pim-menu-link": PIM_MENU_LINK,
    "add-button": ADD_BUTTON,
    "save-button": SAVE_BUTTON,
    "first-name": FIRST_NAME_INPUT,
    "last-name": LAST_NAME_INPUT,
    "side-panel": SIDE_PANEL,
}

# Overall deadline per journey, sized to its expected end-to-end latency
JOURNEY_DEADLINES_MS = {
    "login": 60000,
    "admin": 120000,
    "pim-add-employee": 90000,
}


def login_steps(credentials: Credentials, timeouts: Timeouts = Timeouts()) -> list[s.Step]:
    return [
        s.wait(WaitCondition.visible(USERNAME_INPUT, timeouts.page_load_ms), label="Waiting for login form"),
        s.fill(USERNAME_INPUT, credentials.username, label="Typing username"),
        s.fill(PASSWORD_INPUT, credentials.password, sensitive=True, label="Typing password"),
        s.click(LOGIN_BUTTON, label="Clicking login button"),
    ]


def admin_steps(timeouts: Timeouts = Timeouts()) -> list[s.Step]:
    return [
        s.click(ADMIN_MENU_LINK, timeouts.action_ms, label="Opening Admin page"),
        s.wait(WaitCondition.visible(ADMIN_TABLE_HEADER, timeouts.action_ms), label="Waiting for Admin table"),
    ]


def pim_add_employee_steps(first_name: str = "Akshay", last_name: str = "Tester", timeouts: Timeouts = Timeouts()) -> list[s.Step]:
    return [
        s.click(PIM_MENU_LINK, timeouts.action_ms, label="Opening PIM module"),
        s.wait(WaitCondition.visible(ADD_BUTTON, timeouts.action_ms), label="Waiting for Add button"),
        s.click(ADD_BUTTON, timeouts.action_ms, label="Clicking Add button"),
        s.wait(WaitCondition.visible(FIRST_NAME_INPUT, timeouts.action_ms), label="Waiting for Add Employee form"),
        s.fill(FIRST_NAME_INPUT, first_name, label=f"Entering First Name: {first_name}"),
        s.fill(LAST_NAME_INPUT, last_name, label=f"Entering Last Name: {last_name}"),
        s.click(SAVE_BUTTON, timeouts.action_ms, label="Clicking Save"),
        # The new record's page has no marker that appears before the URL changes
        s.wait(WaitCondition.url_matches(PERSONAL_DETAILS_URL, timeouts.action_ms), label="Waiting for Personal Details URL"),
        s.wait(WaitCondition.visible(SIDE_PANEL, timeouts.page_load_ms), label="Waiting for sidebar before screenshot"),
    ]


def demo_credentials(env=None) -> Credentials:
    """Credentials from LOGIN_USERNAME/LOGIN_PASSWORD, falling back to the public demo account."""
    return Credentials.from_env(env=env, default_username=DEMO_USERNAME, default_password=DEMO_PASSWORD)


def build_journey(
    name: str,
    base_url: str = DEFAULT_BASE_URL,
    credentials: Credentials | None = None,
    artifacts_dir: Path = Path("."),
    timeouts: Timeouts | None = None,
    overall_timeout_ms: int | None = None,
    first_name: str = "Akshay",
    last_name: str = "Tester",
    verbose: bool = False,
) -> JourneyConfig:
    """Build one of the built-in journeys: ``login``, ``admin`` or ``pim-add-employee``."""
    if name not in JOURNEY_DEADLINES_MS:
        raise ValueError(f"Unknown journey '{name}'. Choose from: {', '.join(JOURNEY_DEADLINES_MS)}")
    credentials = credentials or demo_credentials()
    timeouts = timeouts or Timeouts.from_env()
    if name == "admin":
        body = admin_steps(timeouts)
    elif name == "pim-add-employee":
        body = pim_add_employee_steps(first_name, last_name, timeouts)
    else:
        body = []
    return JourneyConfig(
        name=name,
        base_url=base_url,
        credentials=credentials,
        post_login_marker=PROFILE_MENU,
        login_error_marker=LOGIN_ERROR,
        login_steps=login_steps(credentials, timeouts),
        body_steps=body,
        viewport=Viewport(1920, 1080),
        timeouts=timeouts,
        overall_timeout_ms=overall_timeout_ms or JOURNEY_DEADLINES_MS[name],
        artifacts_dir=Path(artifacts_dir),
        screenshot_delay_ms=screenshot_delay_from_env(),
        verbose=verbose,
    )


def journey_from_file(data: dict, artifacts_dir: Path = Path("."), base_url: str | None = None, env=None, verbose: bool = False) -> JourneyConfig:
    """Build a JourneyConfig from a loaded journey file (see config.load_journey_file)."""
    env = os.environ if env is None else env
    cred_spec = data.get("credentials") or {}
    credentials = Credentials.from_env(
        username_env=cred_spec.get("username_env", "LOGIN_USERNAME"),
        password_env=cred_spec.get("password_env", "LOGIN_PASSWORD"),
        totp_env=cred_spec.get("totp_env"),
        env=env,
    )
    timeouts = Timeouts.from_env(env)
    login = data.get("login")
    if isinstance(login, list):
        login_list = s.steps_from_specs(login, LOCATORS, env=env)
    else:
        login_list = login_steps(credentials, timeouts)
    viewport = data.get("viewport") or {}
    marker = data.get("post_login_marker")
    error_marker = data.get("login_error_marker")
    return JourneyConfig(
        name=data.get("name", "journey"),
        base_url=base_url or data.get("base_url") or DEFAULT_BASE_URL,
        credentials=credentials,
        post_login_marker=locator_from_spec(marker, LOCATORS) if marker else PROFILE_MENU,
        login_error_marker=locator_from_spec(error_marker, LOCATORS) if error_marker else LOGIN_ERROR,
        login_steps=login_list,
        body_steps=s.steps_from_specs(data.get("steps", []), LOCATORS, env=env),
        viewport=Viewport(int(viewport.get("width", 1920)), int(viewport.get("height", 1080))),
        timeouts=timeouts,
        overall_timeout_ms=int(data.get("timeout_ms", 60000)),
        artifacts_dir=Path(artifacts_dir),
        success_screenshot=Path(data["success_screenshot"]) if data.get("success_screenshot") else None,
        failure_screenshot=Path(data["failure_screenshot"]) if data.get("failure_screenshot") else None,
        screenshot_delay_ms=screenshot_delay_from_env(env),
        verbose=verbose,
    )
