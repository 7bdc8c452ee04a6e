# -*- coding: utf-8 -*-
"""Tests for the taskfeed command line."""
import json
from datetime import datetime, timedelta, timezone

import pytest
from click.testing import CliRunner

from orchestrator.run import main


def feed_file(tmp_path, due_in_hours: float = 20):
    due = (datetime.now(timezone.utc) + timedelta(hours=due_in_hours)).strftime("%Y%m%dT%H%M%SZ")
    path = tmp_path / "calendar.ics"
    path.write_text("\n".join([
        "BEGIN:VCALENDAR",
        "BEGIN:VEVENT",
        "UID:quiz-1",
        "SUMMARY:Chapter quiz",
        f"DUE:{due}",
        "END:VEVENT",
        "BEGIN:VEVENT",
        "UID:rally",
        "SUMMARY:Pep rally",
        f"DTSTART:{due}",
        "END:VEVENT",
        "END:VCALENDAR",
    ]), encoding="utf-8")
    return path


@pytest.fixture
def runner():
    return CliRunner()


def test_parse_lists_assignments(runner, tmp_path):
    result = runner.invoke(main, ["parse", str(feed_file(tmp_path))])

    assert result.exit_code == 0, result.output
    assert "Chapter quiz" in result.output
    assert "Pep rally" not in result.output


def test_parse_json_with_events(runner, tmp_path):
    result = runner.invoke(main, ["parse", str(feed_file(tmp_path)), "--all", "--json"])

    assert result.exit_code == 0, result.output
    assert [r["uid"] for r in json.loads(result.output)] == ["quiz-1", "rally"]


def test_parse_missing_file_exits_with_error(runner, tmp_path):
    result = runner.invoke(main, ["parse", str(tmp_path / "missing.ics")])
    assert result.exit_code == 1


def test_remind_then_snooze_and_complete(runner, tmp_path):
    state = tmp_path / "state.json"
    source = str(feed_file(tmp_path))

    result = runner.invoke(main, ["remind", source, "--state", str(state)])
    assert result.exit_code == 0, result.output
    assert "Reminders" in result.output
    stored = json.loads(state.read_text(encoding="utf-8"))
    # Printed reminders are delivered and not printed again
    assert "reminder_quiz-1_24h" in stored["fired"]
    assert "reminder_quiz-1_24h" not in stored["reminders"]

    result = runner.invoke(main, ["remind", source, "--state", str(state)])
    assert "No new reminders" in result.output

    result = runner.invoke(main, ["snooze", "reminder_quiz-1_24h", "--minutes", "15", "--state", str(state)])
    assert result.exit_code == 0, result.output

    result = runner.invoke(main, ["complete", "reminder_quiz-1_24h", "--state", str(state)])
    assert result.exit_code == 0, result.output

    stored = json.loads(state.read_text(encoding="utf-8"))
    assert "quiz-1" in stored["completed"]
    assert stored["reminders"] == {}


def test_remind_with_custom_intervals(runner, tmp_path):
    state = tmp_path / "state.json"
    result = runner.invoke(main, ["remind", str(feed_file(tmp_path)), "--state", str(state), "--interval", "2"])

    assert result.exit_code == 0, result.output
    stored = json.loads(state.read_text(encoding="utf-8"))
    assert list(stored["reminders"]) == ["reminder_quiz-1_2h"]
    assert stored["settings"]["intervals_hours"] == [2.0]
