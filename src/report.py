import asyncio
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

PASSED = "passed"
FAILED = "failed"


@dataclass
class ScenarioResult:
    """Outcome of one journey run. Owned by the runner invocation that created it."""

    name: str
    outcome: str | None = None
    state: str = "not_started"
    steps: list[str] = field(default_factory=list)
    error: Exception | None = None
    failed_step: str | None = None
    artifact_path: str | None = None
    record_path: str | None = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: datetime | None = None

    @property
    def passed(self) -> bool:
        return self.outcome == PASSED

    @property
    def duration_ms(self) -> float | None:
        if self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds() * 1000

    def raise_for_outcome(self) -> None:
        """Re-raise the journey's original error so a test runner marks it failed."""
        if self.outcome == FAILED:
            if self.error is not None:
                raise self.error
            raise AssertionError(f"Journey '{self.name}' failed")

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "status": self.outcome,
            "state": self.state,
            "steps": list(self.steps),
            "failed_step": self.failed_step,
            "error": str(self.error) if self.error is not None else "",
            "error_type": type(self.error).__name__ if self.error is not None else None,
            "screenshot": self.artifact_path or "",
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_ms": self.duration_ms,
        }


async def snapshot_success(page, path: Path, delay_ms: int = 0, verbose: bool = False) -> str:
    """Full-page snapshot of the successful end state. Errors propagate: no snapshot, no pass."""
    if delay_ms > 0:
        await asyncio.sleep(delay_ms / 1000)
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    await page.screenshot(path=str(path), full_page=True)
    if verbose:
        print(f"📸 Success screenshot saved: {Path(path).name}")
    return str(path)


def finalize_passed(result: ScenarioResult, artifact_path: str) -> ScenarioResult:
    result.outcome = PASSED
    result.artifact_path = artifact_path
    result.finished_at = datetime.now(timezone.utc)
    return result


def finalize_failed(result: ScenarioResult, error: Exception, artifact_path: str | None) -> ScenarioResult:
    result.outcome = FAILED
    result.error = error
    result.artifact_path = artifact_path
    result.finished_at = datetime.now(timezone.utc)
    return result


def print_banner(name: str, status: str) -> None:
    print("==============================")
    print(f"{name.upper()} TEST {status}")
    print("==============================")


def print_summary(results: list[ScenarioResult]) -> None:
    for r in results:
        if r.passed:
            print(f"✓ Passed: {r.name}")
        else:
            error = str(r.error) if r.error is not None else ""
            # Trim error for readability
            err_excerpt = error if len(error) < 300 else (error[:297] + "...")
            print(f"✖ Failed: {r.name} — {err_excerpt}")
    total = len(results)
    passed = sum(1 for r in results if r.passed)
    if total:
        print(f"✅ Done. Total: {total}, Passed: {passed}, Failed: {total - passed}")
    else:
        print("✅ Done. No journeys executed.")


def write_results(path: Path, results: list[ScenarioResult]) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump({"journeys": [r.to_dict() for r in results]}, f, indent=2)
    return path
