"""Journey configuration.

Values come from three places, most specific first: command-line flags,
a JSON journey file, and environment variables. Credentials are only ever
read from the environment (or passed in by the caller); the harness never
writes them anywhere.
"""
import json
import os
from dataclasses import dataclass, field
from pathlib import Path

from locators import Locator
from synchronizer import ACTION_TIMEOUT_MS, PAGE_LOAD_TIMEOUT_MS


@dataclass(frozen=True)
class Credentials:
    username: str
    password: str = field(repr=False)
    totp_secret: str | None = field(default=None, repr=False)

    @classmethod
    def from_env(
        cls,
        username_env: str = "LOGIN_USERNAME",
        password_env: str = "LOGIN_PASSWORD",
        totp_env: str | None = None,
        env=None,
        default_username: str = "",
        default_password: str = "",
    ) -> "Credentials":
        env = os.environ if env is None else env
        return cls(
            username=env.get(username_env, "") or default_username,
            password=env.get(password_env, "") or default_password,
            totp_secret=(env.get(totp_env) or None) if totp_env else None,
        )

    def missing(self) -> list[str]:
        missing = []
        if not self.username:
            missing.append("username")
        if not self.password:
            missing.append("password")
        return missing


@dataclass(frozen=True)
class Viewport:
    width: int = 1920
    height: int = 1080

    def as_dict(self) -> dict:
        return {"width": self.width, "height": self.height}


@dataclass(frozen=True)
class Timeouts:
    page_load_ms: int = PAGE_LOAD_TIMEOUT_MS
    action_ms: int = ACTION_TIMEOUT_MS

    @classmethod
    def from_env(cls, env=None) -> "Timeouts":
        env = os.environ if env is None else env
        return cls(
            page_load_ms=_env_int(env, "JOURNEY_PAGE_LOAD_TIMEOUT_MS", PAGE_LOAD_TIMEOUT_MS),
            action_ms=_env_int(env, "JOURNEY_ACTION_TIMEOUT_MS", ACTION_TIMEOUT_MS),
        )


@dataclass
class JourneyConfig:
    name: str
    base_url: str
    credentials: Credentials
    post_login_marker: Locator
    login_steps: list = field(default_factory=list)
    body_steps: list = field(default_factory=list)
    viewport: Viewport = field(default_factory=Viewport)
    timeouts: Timeouts = field(default_factory=Timeouts)
    overall_timeout_ms: int = 60000
    login_error_marker: Locator | None = None
    artifacts_dir: Path = Path(".")
    success_screenshot: Path | None = None
    failure_screenshot: Path | None = None
    screenshot_delay_ms: int = 0
    verbose: bool = False

    def __post_init__(self) -> None:
        if self.overall_timeout_ms <= 0:
            raise ValueError("overall_timeout_ms must be positive")
        self.artifacts_dir = Path(self.artifacts_dir)
        if self.success_screenshot is not None:
            self.success_screenshot = Path(self.success_screenshot)
        if self.failure_screenshot is not None:
            self.failure_screenshot = Path(self.failure_screenshot)


def _env_int(env, name: str, default: int) -> int:
    try:
        return int(env.get(name, default))
    except (TypeError, ValueError):
        return default


def screenshot_delay_from_env(env=None) -> int:
    env = os.environ if env is None else env
    return max(0, _env_int(env, "SCREENSHOT_DELAY_MS", 0))


def headless_from_env(env=None) -> bool:
    env = os.environ if env is None else env
    return env.get("PLAYWRIGHT_HEADLESS", "true").lower() in {"true", "1"}


def load_journey_file(path) -> dict:
    """Read a JSON journey definition.

    Expected shape::

        {
          "name": "pim add employee",
          "base_url": "https://opensource-demo.orangehrmlive.com/",
          "timeout_ms": 90000,
          "viewport": {"width": 1920, "height": 1080},
          "credentials": {"username_env": "LOGIN_USERNAME", "password_env": "LOGIN_PASSWORD"},
          "post_login_marker": {"class": "oxd-userdropdown-tab", "tag": "span"},
          "login": [ ...steps... ],      # optional; the built-in login is used otherwise
          "steps": [ ...steps... ]
        }
    """
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"Journey file must hold a JSON object: {path}")
    if not isinstance(data.get("steps", []), list):
        raise ValueError(f"'steps' must be a list in {path}")
    return data
