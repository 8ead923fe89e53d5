"""Landing page generation request, prompt text and output checks."""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field

LEADING_MARKER = re.compile(r"^\s*<!doctype html>", re.IGNORECASE)
TRAILING_MARKER = re.compile(r"</html>\s*$", re.IGNORECASE)
_CODE_FENCE = re.compile(r"```(?:html|blade|php)?\s*\n(.*?)\n```", re.DOTALL | re.IGNORECASE)


@dataclass
class GenerationRequest:
    """Everything the worker needs to write one landing page."""

    app_name: str
    description: str
    brand_color: str
    has_subscriptions: bool = False
    subscription_plans: list[dict[str, str]] = field(default_factory=list)
    trial_days: int = 0
    auth_strategy: str = "otp_only"
    model: str = "claude-sonnet-4-5"
    max_tokens: int = 16000
    backend: str = "cli"

    def to_dict(self) -> dict[str, object]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "GenerationRequest":
        known = {name for name in cls.__dataclass_fields__}
        return cls(**{key: value for key, value in data.items() if key in known})


def build_prompt(request: GenerationRequest) -> str:
    lines = [
        f"Create a complete, production-ready landing page for a SaaS product called \"{request.app_name}\".",
        "",
        "Product description:",
        request.description or "A modern SaaS application.",
        "",
        "Requirements:",
        "- Output ONE self-contained HTML document that starts with <!DOCTYPE html> and ends with </html>.",
        "- Use Tailwind CSS from the CDN and Alpine.js for small interactions.",
        f"- Use {request.brand_color} as the primary brand colour for buttons, links and accents.",
        "- Include a hero section, a features grid, social proof and a footer.",
        "- Link the login button to /login and the sign-up button to /register.",
        "- Link the footer to /terms, /privacy and /cookies.",
        "- Be fully responsive and accessible.",
    ]
    if request.auth_strategy != "password_socialite":
        lines.append("- Mention passwordless sign-in with one-time codes as a benefit.")
    if request.has_subscriptions and request.subscription_plans:
        lines.append("")
        lines.append("Pricing plans (render a pricing table with these exact plans):")
        for plan in request.subscription_plans:
            lines.append(f"- {plan.get('name')}: ${plan.get('price')}/month, {plan.get('description', '')}")
        if request.trial_days:
            lines.append(f"Every plan includes a {request.trial_days}-day free trial.")
    lines.extend(
        [
            "",
            "Respond with the HTML document only. No explanations and no Markdown code fences.",
        ]
    )
    return "\n".join(lines)


def extract_document(text: str) -> str:
    """Strip Markdown fences and chatter around the HTML document."""
    fenced = _CODE_FENCE.search(text)
    if fenced:
        text = fenced.group(1)
    start = text.lower().find("<!doctype html>")
    end = text.lower().rfind("</html>")
    if start != -1 and end != -1 and end > start:
        return text[start:end + len("</html>")] + "\n"
    return text


def is_complete(content: str) -> bool:
    """True when both the leading and trailing document markers are present."""
    return bool(LEADING_MARKER.search(content)) and bool(TRAILING_MARKER.search(content))


__all__ = [
    "GenerationRequest",
    "build_prompt",
    "extract_document",
    "is_complete",
]
