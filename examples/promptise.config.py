"""Example registry: run ``promptise build --config examples/promptise.config.py``."""

from pydantic import BaseModel

from promptise.composition import PromptComponent, PromptComposition
from promptise.models import CostConfig
from promptise.registry import Promptise


class ContextInput(BaseModel):
    context: str | None = None


security_review = PromptComposition(
    id="security-review",
    description="Security review prompt with markdown wrappers",
    components=[
        PromptComponent("role", "You are a {{role}}."),
        PromptComponent("task", "{{task}}"),
        PromptComponent("context", lambda values: values["context"] or "No extra context.", schema=ContextInput),
    ],
    wrapper="markdown",
)

quick_prompt = PromptComposition(
    id="quick-prompt",
    components=[PromptComponent("question", "Answer briefly: {{question}}")],
)

registry = Promptise(
    compositions=[
        {
            "composition": security_review,
            "fixtures": {
                "complete": {
                    "role": "senior application security engineer",
                    "task": "Review authentication flow for bypass risks",
                },
                "partial": {"role": "senior application security engineer"},
                "placeholder": {},
            },
            "cost": CostConfig(input_token_price=0.0000025),
        },
        quick_prompt,
    ]
)
