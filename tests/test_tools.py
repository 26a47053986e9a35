import json
import sys
from datetime import timedelta

import pytest

from pomodoro_flow.tools import TOOLS, call_tool, format_duration


@pytest.fixture
def run(data_dir, clock):
    def _run(name, **arguments):
        return call_tool(
            name,
            arguments,
            overrides={"data_directory": str(data_dir), "daily_goal": 4},
            clock=clock,
        )
    return _run


def status(run) -> dict:
    result = run("get_status")
    assert not result.is_error
    return json.loads(result.text)


def history(run, **arguments) -> list:
    result = run("get_history", **arguments)
    assert not result.is_error
    return json.loads(result.text)["pomodoros"]


@pytest.mark.parametrize("span, text", [
    (timedelta(minutes=25), "25:00"),
    (timedelta(seconds=61), "1:01"),
    (timedelta(seconds=5.9), "0:05"),
    (timedelta(minutes=90), "90:00"),
    (timedelta(seconds=-30), "0:00"),
])
def test_format_duration(span, text):
    assert format_duration(span) == text


def test_registry_has_every_tool():
    assert set(TOOLS) == {
        "start_pomodoro", "get_status", "finish_pomodoro", "cancel_pomodoro",
        "clear_pomodoro", "start_break", "repeat_pomodoro", "amend_pomodoro",
        "get_history", "get_settings",
    }
    for spec in TOOLS.values():
        assert spec.input_schema["type"] == "object"
    assert set(TOOLS["start_pomodoro"].input_schema["properties"]) == {"description", "duration", "tags"}


def test_start_finish_history_scenario(run, clock):
    result = run("start_pomodoro", description="write spec", duration=25, tags=["work"])
    assert result.text == "Pomodoro started: write spec (25:00)"

    assert status(run) == {
        "active": True,
        "done": False,
        "remaining": "25:00",
        "duration": "25:00",
        "description": "write spec",
        "tags": ["work"],
        "goal_complete": 0,
        "goal_total": 4,
    }

    clock.advance(minutes=12, seconds=5)
    assert run("finish_pomodoro").text == "Pomodoro finished after 12:05"

    assert status(run) == {"active": False, "done": False, "goal_complete": 1, "goal_total": 4}

    [entry] = history(run, limit=1)
    assert entry["description"] == "write spec"
    assert entry["duration"] == 25
    assert entry["tags"] == ["work"]


def test_status_reports_done(run, clock):
    run("start_pomodoro", description="short", duration=1)
    clock.advance(minutes=3)

    body = status(run)
    assert body["active"] is False
    assert body["done"] is True
    assert body["remaining"] == "0:00"


def test_goal_counts_todays_finished_pomodoros(run, clock):
    for i in range(3):
        run("start_pomodoro", description=f"p{i}")
        clock.advance(minutes=25)
        run("finish_pomodoro")

    body = status(run)
    assert (body["goal_complete"], body["goal_total"]) == (3, 4)


def test_finish_and_cancel_without_pomodoro(run):
    finish = run("finish_pomodoro")
    cancel = run("cancel_pomodoro")

    assert finish.is_error and finish.text == "no active pomodoro to finish"
    assert cancel.is_error and cancel.text == "no active pomodoro to cancel"
    assert finish.status_code == 409
    assert history(run) == []


def test_cancel_and_clear(run):
    run("start_pomodoro", description="x")
    assert run("cancel_pomodoro").text == "Pomodoro cancelled"
    assert run("clear_pomodoro").text == "Pomodoro cleared"
    assert run("clear_pomodoro").text == "Pomodoro cleared"
    assert history(run) == []


def test_amend_with_empty_history(run):
    result = run("amend_pomodoro", description="x")

    assert result.is_error
    assert result.text == "no pomodoro to amend"
    assert history(run) == []


def test_amend_and_repeat(run, clock):
    run("start_pomodoro", description="draft", duration=40, tags=["writing"])
    clock.advance(minutes=40)
    run("finish_pomodoro")

    assert run("amend_pomodoro", description="final draft").text == "Pomodoro amended: final draft"
    run("clear_pomodoro")

    assert run("repeat_pomodoro").text == "Pomodoro repeated: draft"
    body = status(run)
    assert body["duration"] == "25:00"
    assert body["tags"] == ["writing"]


def test_repeat_with_empty_history(run):
    result = run("repeat_pomodoro")
    assert result.is_error
    assert result.text == "no previous pomodoro to repeat"


def test_start_break(run):
    assert run("start_break").text == "Break started (5:00)"
    assert run("start_break", duration=10).text == "Break started (10:00)"
    assert status(run) == {"active": False, "done": False, "goal_complete": 0, "goal_total": 4}


def test_history_limit(run, clock):
    for i in range(4):
        run("start_pomodoro", description=f"p{i}")
        clock.advance(minutes=25)
        run("finish_pomodoro")

    assert [e["description"] for e in history(run, limit=2)] == ["p2", "p3"]
    assert [e["description"] for e in history(run, limit=0)] == ["p0", "p1", "p2", "p3"]
    assert len(history(run)) == 4


def test_get_settings(run, data_dir):
    (data_dir).mkdir(parents=True, exist_ok=True)
    (data_dir / "settings").write_text("default_break_duration=10\ndefault_tags=deep,work\n")

    body = json.loads(run("get_settings").text)

    assert body == {
        "data_directory": str(data_dir),
        "daily_goal": 4,
        "default_pomodoro_duration": 25,
        "default_break_duration": 10,
        "default_tags": ["deep", "work"],
    }


def test_unknown_tool(run):
    result = run("pause_pomodoro")
    assert result.is_error
    assert result.status_code == 404


def test_invalid_arguments(run):
    result = run("start_pomodoro", duration="soon")
    assert result.is_error
    assert result.status_code == 422
    assert "duration" in result.text


def test_unusable_data_directory(tmp_path, clock):
    blocker = tmp_path / "file"
    blocker.write_text("")

    result = call_tool("get_status", overrides={"data_directory": str(blocker)}, clock=clock)

    assert result.is_error
    assert result.text.startswith("failed to create client")
    assert result.status_code == 503


@pytest.mark.skipif(sys.platform == "win32", reason="hooks are shell scripts")
def test_hook_failure_is_reported_after_start_is_saved(run, data_dir):
    hooks_dir = data_dir / "hooks"
    hooks_dir.mkdir(parents=True)
    script = hooks_dir / "start"
    script.write_text("#!/bin/sh\nexit 1\n")
    script.chmod(0o755)

    result = run("start_pomodoro", description="saved anyway")

    assert result.is_error
    assert result.text.startswith("hook failed:")
    assert result.status_code == 502
    assert status(run)["description"] == "saved anyway"


@pytest.mark.parametrize("name, arguments", [
    ("start_pomodoro", {"duration": 1e13}),
    ("start_break", {"duration": 1e13}),
    ("amend_pomodoro", {"duration": 1e13}),
    ("start_pomodoro", {"duration": float("inf")}),
    ("start_break", {"duration": float("nan")}),
])
def test_out_of_range_duration_is_rejected(run, name, arguments):
    result = run(name, **arguments)

    assert result.is_error
    assert result.status_code == 422
    assert "duration" in result.text
    assert status(run)["active"] is False


def test_out_of_range_setting_is_an_init_failure(run, data_dir):
    data_dir.mkdir(parents=True, exist_ok=True)
    (data_dir / "settings").write_text("default_pomodoro_duration=1e13\n")

    result = run("get_settings")

    assert result.is_error
    assert result.status_code == 503
    assert result.text.startswith("failed to create client")
    assert "default_pomodoro_duration" in result.text


def test_history_limit_is_truncated(run, clock):
    for i in range(3):
        run("start_pomodoro", description=f"p{i}")
        clock.advance(minutes=25)
        run("finish_pomodoro")

    assert [e["description"] for e in history(run, limit=2.0)] == ["p1", "p2"]
    assert [e["description"] for e in history(run, limit=1.9)] == ["p2"]
    assert len(history(run, limit=0.5)) == 3
