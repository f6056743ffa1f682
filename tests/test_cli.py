import json

import pytest

import journey
import run_journey
from conftest import BASE_URL, FakePage, wire_orangehrm
from report import ScenarioResult, finalize_failed, finalize_passed


def fake_runner(outcomes: dict, seen: list):
    async def _run(configs, headless=True):
        results = []
        for config in configs:
            seen.append(config)
            result = ScenarioResult(name=config.name)
            if outcomes.get(config.name, True):
                results.append(finalize_passed(result, str(config.artifacts_dir / f"{config.name}_success.png")))
            else:
                results.append(finalize_failed(result, AssertionError("boom"), None))
        return results

    return _run


def test_runs_built_in_journeys_and_writes_results(monkeypatch, tmp_path):
    monkeypatch.delenv("ORANGEHRM_BASE_URL", raising=False)
    seen = []
    monkeypatch.setattr(run_journey, "run_journeys", fake_runner({}, seen))
    code = run_journey.main(["--journey", "login", "--journey", "admin", "--run-dir", str(tmp_path), "--base-url", "https://hrm.test/"])

    assert code == 0
    assert [c.name for c in seen] == ["login", "admin"]
    assert all(c.base_url == "https://hrm.test/" for c in seen)
    assert seen[1].overall_timeout_ms == 120000
    data = json.loads((tmp_path / "results.json").read_text(encoding="utf-8"))
    assert [j["status"] for j in data["journeys"]] == ["passed", "passed"]


def test_exit_code_reflects_failure(monkeypatch, tmp_path):
    monkeypatch.setattr(run_journey, "run_journeys", fake_runner({"pim-add-employee": False}, []))
    code = run_journey.main(["--journey", "pim-add-employee", "--run-dir", str(tmp_path), "--timeout-ms", "1000"])
    assert code == 1


def test_journey_file_option(monkeypatch, tmp_path):
    journey_file = tmp_path / "j.json"
    journey_file.write_text(json.dumps({"name": "custom", "steps": [{"action": "click", "target": "pim-menu-link"}]}), encoding="utf-8")
    seen = []
    monkeypatch.setattr(run_journey, "run_journeys", fake_runner({}, seen))
    monkeypatch.setenv("LOGIN_USERNAME", "Admin")
    monkeypatch.setenv("LOGIN_PASSWORD", "admin123")
    code = run_journey.main(["--journey-file", str(journey_file), "--run-dir", str(tmp_path / "out"), "--timeout-ms", "7000"])

    assert code == 0
    assert seen[0].name == "custom"
    assert seen[0].overall_timeout_ms == 7000
    assert seen[0].artifacts_dir == tmp_path / "out" / "screenshots"


def test_requires_a_journey(tmp_path):
    with pytest.raises(SystemExit):
        run_journey.main(["--run-dir", str(tmp_path)])


def test_base_url_from_environment(monkeypatch, tmp_path):
    seen = []
    monkeypatch.setattr(run_journey, "run_journeys", fake_runner({}, seen))
    monkeypatch.setenv("ORANGEHRM_BASE_URL", "https://staging.hrm.test/")
    assert run_journey.main(["--journey", "login", "--run-dir", str(tmp_path)]) == 0
    assert seen[0].base_url == "https://staging.hrm.test/"


def test_unset_env_in_journey_file_is_reported_as_failed(monkeypatch, tmp_path):
    journey_file = tmp_path / "j.json"
    journey_file.write_text(json.dumps({
        "name": "custom",
        "login": [{"action": "fill_env", "target": "username", "env": "HRM_USER"}],
        "steps": [],
    }), encoding="utf-8")

    async def run_on_fake(configs, headless=True):
        return [await journey.run_journey(wire_orangehrm(FakePage()), config) for config in configs]

    monkeypatch.setattr(run_journey, "run_journeys", run_on_fake)
    monkeypatch.delenv("HRM_USER", raising=False)
    monkeypatch.setenv("LOGIN_USERNAME", "Admin")
    monkeypatch.setenv("LOGIN_PASSWORD", "admin123")
    code = run_journey.main(["--journey-file", str(journey_file), "--run-dir", str(tmp_path / "out"), "--base-url", BASE_URL])

    assert code == 1
    data = json.loads((tmp_path / "out" / "results.json").read_text(encoding="utf-8"))
    assert data["journeys"][0]["status"] == "failed"
    assert "HRM_USER" in data["journeys"][0]["error"]
    assert (tmp_path / "out" / "screenshots" / "custom_failed.png").exists()
