"""Personalization token rendering for preview and send time."""

import re
from dataclasses import dataclass

FIRST_NAME = "First Name"
CURRENT_COMPANY = "Current Company"
COMPANY_NAME = "Company Name"
YOUR_NAME = "Your Name"

RECOGNIZED_TOKENS = (FIRST_NAME, CURRENT_COMPANY, COMPANY_NAME, YOUR_NAME)

TOKEN_PATTERN = re.compile(r"\{\{(" + "|".join(re.escape(t) for t in RECOGNIZED_TOKENS) + r")\}\}")


@dataclass(frozen=True)
class Recipient:
    """Person an email is rendered for: a preview persona or a real candidate."""
    name: str
    company: str

    @property
    def first_name(self) -> str:
        parts = self.name.split()
        return parts[0] if parts else ""


PREVIEW_PERSONAS = (
    Recipient("John Smith", "Memorial Healthcare"),
    Recipient("Sarah Johnson", "Baptist Health"),
    Recipient("Michael Brown", "Jackson Health System"),
    Recipient("Emily Davis", "Cleveland Clinic"),
)


def find_persona(name: str) -> Recipient:
    """Look up a preview persona by name, defaulting to the first."""
    for persona in PREVIEW_PERSONAS:
        if persona.name == name:
            return persona
    return PREVIEW_PERSONAS[0]


@dataclass(frozen=True)
class TokenContext:
    """Values substituted for each recognized token."""
    first_name: str
    current_company: str
    company_name: str
    your_name: str

    @classmethod
    def for_recipient(cls, recipient: Recipient, company_name: str, recruiter_name: str) -> "TokenContext":
        return cls(
            first_name=recipient.first_name,
            current_company=recipient.company,
            company_name=company_name,
            your_name=recruiter_name,
        )

    def value_for(self, token: str) -> str:
        return {
            FIRST_NAME: self.first_name,
            CURRENT_COMPANY: self.current_company,
            COMPANY_NAME: self.company_name,
            YOUR_NAME: self.your_name,
        }[token]


def render_tokens(text: str, context: TokenContext) -> str:
    """Replace every recognized {{Token}}; anything else is left as written."""
    return TOKEN_PATTERN.sub(lambda m: context.value_for(m.group(1)), text)
