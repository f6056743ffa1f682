import json
import re
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator


def sanitize_for_filename(text: str) -> str:
    """Sanitize text for use in filenames."""
    text = re.sub(r"[^\w\s-]", "", text)
    text = re.sub(r"[-\s]+", "_", text)
    return text.strip("_").lower()[:100]


def artifact_path(artifacts_dir: Path, journey_name: str, kind: str, extension: str = "png") -> Path:
    """Deterministic artifact path for a journey, e.g. ``login_failed.png``.

    Args:
        artifacts_dir: Directory the artifact is written to
        journey_name: Name of the journey
        kind: ``success`` or ``failed``
        extension: File extension (png or json)
    """
    slug = sanitize_for_filename(journey_name) or "journey"
    return Path(artifacts_dir) / f"{slug}_{kind}.{extension}"


def page_reachable(page) -> bool:
    try:
        return not page.is_closed()
    except Exception:
        return False


async def capture_failure(page, path: Path, verbose: bool = False) -> str | None:
    """Full-page snapshot of the failure state; returns the path or None.

    Never raises: a closed session is skipped and capture errors are logged,
    so the journey's original error stays the one reported.
    """
    if not page_reachable(page):
        print("⚠️ Page is closed; skipping failure screenshot")
        return None
    try:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        await page.screenshot(path=str(path), full_page=True)
    except Exception as e:
        print(f"⚠️ Could not save failure screenshot: {e}")
        return None
    if verbose:
        print(f"📸 Failure screenshot saved: {Path(path).name}")
    return str(path)


def write_failure_record(path: Path, record: dict) -> str | None:
    """Write the structured failure record as JSON next to the snapshot."""
    try:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        Path(path).write_text(json.dumps(record, indent=2), encoding="utf-8")
    except Exception as e:
        print(f"⚠️ Could not write failure record: {e}")
        return None
    return str(path)


@dataclass
class Capture:
    path: str | None = None
    error: Exception | None = None


@asynccontextmanager
async def capture_on_failure(page, path: Path, verbose: bool = False) -> AsyncIterator[Capture]:
    """Scope that snapshots the page when its body raises, then re-raises the original error."""
    capture = Capture()
    try:
        yield capture
    except Exception as exc:
        capture.error = exc
        capture.path = await capture_failure(page, path, verbose=verbose)
        raise
