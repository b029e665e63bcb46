from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from pydantic import BaseModel

from promptise.composition import PromptComponent, PromptComposition
from promptise.models import Schema
from promptise.registry import Promptise


class RulesInput(BaseModel):
    rules: list[str] | None = None


class FakeComposition:
    """Composition double with a fixed schema and an optional failure trigger."""

    def __init__(
        self,
        id: str,
        required: list[str] | None = None,
        optional: list[str] | None = None,
        fail_on: str | None = None,
    ):
        self.id = id
        self.required = required or []
        self.optional = optional or []
        self.fail_on = fail_on
        self.calls: list[dict[str, Any]] = []

    def get_schema(self) -> Schema:
        return Schema(required_fields=self.required, optional_fields=self.optional)

    def build(self, data: dict[str, Any]) -> str:
        self.calls.append(dict(data))
        if self.fail_on is not None and data.get(self.fail_on) == "boom":
            raise ValueError(f"cannot render {self.fail_on}")
        return "\n".join(f"{key}={data[key]}" for key in [*self.required, *self.optional] if key in data)


def fake_token_counter(text: str) -> int:
    return len(text.split())


@pytest.fixture
def security_review() -> PromptComposition:
    return PromptComposition(
        id="security-review",
        description="Security review prompt with markdown wrappers",
        components=[
            PromptComponent("role", "You are a {{role}}."),
            PromptComponent("task", "Your task: {{task}}"),
            PromptComponent(
                "rules",
                lambda values: "\n".join(f"- {rule}" for rule in values["rules"] or ["Be precise."]),
                schema=RulesInput,
            ),
        ],
        wrapper="markdown",
    )


@pytest.fixture
def complete_fixture() -> dict[str, Any]:
    return {
        "role": "senior application security engineer",
        "task": "Review authentication flow for bypass risks",
    }


@pytest.fixture
def registry(security_review, complete_fixture) -> Promptise:
    return Promptise(
        compositions=[
            {
                "composition": security_review,
                "fixtures": {
                    "complete": complete_fixture,
                    "partial": {"role": "x"},
                    "empty": {},
                },
            },
            FakeComposition("quick-prompt", required=["question"]),
            {
                "composition": FakeComposition("fragile-prompt", required=["topic"], fail_on="topic"),
                "fixtures": {"ok": {"topic": "caching"}, "broken": {"topic": "boom"}},
            },
        ]
    )
