"""Tests for the language table and prompt templates."""

import json

from ralph_cli.prd import parse_entries
from ralph_cli.templates import (
    COMPLETION_SENTINEL,
    DEFAULT_PRD,
    DEFAULT_PROGRESS,
    LANGUAGES,
    generate_prompt,
    prompt_variables,
    resolve_prompt_variables,
)


def test_language_keys() -> None:
    assert list(LANGUAGES.keys()) == ["bun", "node", "python", "go", "rust", "none"]


def test_generate_prompt_includes_commands_and_sentinel() -> None:
    prompt = generate_prompt("mypy .", "pytest")

    assert "Type/build check: mypy ." in prompt
    assert "Tests: pytest" in prompt
    assert COMPLETION_SENTINEL in prompt
    assert "$" not in prompt


def test_default_prd_is_valid_store() -> None:
    entries = parse_entries(json.loads(DEFAULT_PRD))
    assert len(entries) == 1
    assert entries[0].category == "setup"
    assert entries[0].passes is False


def test_default_progress() -> None:
    assert DEFAULT_PROGRESS == "# Progress Log\n"


def test_prompt_variables_for_known_language() -> None:
    values = prompt_variables("python", "mypy .", "pytest")
    assert values == {
        "language": "Python",
        "technologies": "Python, mypy, pytest",
        "checkCommand": "mypy .",
        "testCommand": "pytest",
    }


def test_prompt_variables_for_unknown_language() -> None:
    values = prompt_variables("kotlin", "gradle check", "gradle test", technologies=["Kotlin", "Gradle"])
    assert values["language"] == "kotlin"
    assert values["technologies"] == "Kotlin, Gradle"


def test_resolve_prompt_variables() -> None:
    template = "Use $language ($technologies). Check: $checkCommand. Test: ${testCommand}. Cost: $HOME"
    resolved = resolve_prompt_variables(template, prompt_variables("go", "go build ./...", "go test ./..."))

    assert resolved == "Use Go (Go). Check: go build ./.... Test: go test ./.... Cost: $HOME"


def test_resolve_prompt_variables_leaves_lone_dollar() -> None:
    assert resolve_prompt_variables("costs $5 and $", {}) == "costs $5 and $"
