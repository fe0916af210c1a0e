import logging
from typing import Dict, List, Optional

import requests
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .config import (
    NAME_SLOTS,
    REQUEST_TIMEOUT,
    SLOT_FIRST,
    SLOT_LAST,
    SLOT_MIDDLE,
    SUGGESTION_API_KEY,
    SUGGESTION_API_URL,
    SUGGESTION_COUNT,
    SUGGESTION_MODEL,
    SUGGESTION_TEMPERATURE,
)
from .names_parser import is_valid_name_syntax
from .state import AppState


logger = logging.getLogger(__name__)


class SuggestionError(Exception):
    pass


class SuggestionPreconditionError(SuggestionError):
    pass


class SuggestionServiceError(SuggestionError):
    pass


class SuggestionRateLimitError(SuggestionServiceError):
    pass


class SuggestionTimeoutError(SuggestionServiceError):
    pass


class NoValidSuggestionsError(SuggestionError):
    """Every candidate returned by the service failed the name syntax check."""


class NameSuggestions(BaseModel):
    model_config = ConfigDict(extra="forbid")

    suggestions: List[str] = Field(
        min_length=SUGGESTION_COUNT,
        max_length=SUGGESTION_COUNT,
        description=(
            "Exactly 5 name suggestions as plain strings without numbering or bullets. "
            "May use nickname syntax such as 'Alexander (Alex)'."
        ),
    )


_PROMPT_HEADER = """You are a baby name expert helping parents find names that go well together. Suggest exactly {count} {slot} names that complement the names below.

REQUIREMENTS:
- Names should flow well phonetically with the existing names
- Keep a similar style, origin and cultural background
- Avoid names that rhyme awkwardly or are too similar to the existing ones
- Mix popular and less common options

NICKNAME SYNTAX:
- Optionally add nicknames in exactly this form: "Full Name (Nickname1, Nickname2)"
- Examples: "Alexander", "Alexander (Alex)", "Alexander (Alex, Al)"
- Only add nicknames that are commonly used for the full name

EXISTING NAMES:"""

_PROMPT_FOOTER = """

Give exactly {count} suggestions that work well with these names, each as a clean string without numbers, bullets or extra formatting."""


def _slot_names(state: AppState) -> Dict[str, List[str]]:
    return {
        SLOT_FIRST: state.first_names,
        SLOT_MIDDLE: state.middle_names,
        SLOT_LAST: state.last_names,
    }


def check_preconditions(slot: str, state: AppState) -> None:
    """Suggestions for one slot need at least one name in each of the other two."""
    if slot not in NAME_SLOTS:
        raise SuggestionPreconditionError('Invalid name type. Must be "first", "middle", or "last".')
    names = _slot_names(state)
    missing = [other for other in NAME_SLOTS if other != slot and not names[other]]
    if missing:
        raise SuggestionPreconditionError(
            f"Need at least one {' name and one '.join(missing)} name to suggest {slot} names"
        )


def build_prompt(slot: str, state: AppState, count: int = SUGGESTION_COUNT) -> str:
    lines = []
    for name_slot, names in _slot_names(state).items():
        if not names:
            continue
        label = f"{name_slot.capitalize()} Names"
        if name_slot == slot:
            label = f"Existing {label}"
        lines.append(f"\n{label}: {', '.join(names)}")
    return _PROMPT_HEADER.format(count=count, slot=slot) + "".join(lines) + _PROMPT_FOOTER.format(count=count)


def filter_valid_suggestions(suggestions: List[str]) -> List[str]:
    valid = [s.strip() for s in suggestions if is_valid_name_syntax(s)]
    if not valid:
        logger.error("No valid suggestions in response: %s", suggestions)
        raise NoValidSuggestionsError("Unable to generate valid name suggestions. Please try again.")
    if len(valid) < len(suggestions):
        logger.warning(
            "Filtered %d invalid suggestions: %s",
            len(suggestions) - len(valid),
            [s for s in suggestions if not is_valid_name_syntax(s)],
        )
    return valid


class SuggestionClient:
    """Talks to an OpenAI-compatible chat completions endpoint."""

    def __init__(
        self,
        api_key: str = SUGGESTION_API_KEY,
        api_url: str = SUGGESTION_API_URL,
        model: str = SUGGESTION_MODEL,
        timeout: float = REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.api_url = api_url
        self.model = model
        self.timeout = timeout
        self.session = session or requests.Session()

    def request_suggestions(self, prompt: str) -> List[str]:
        if not self.api_key:
            raise SuggestionServiceError("Suggestion API key not configured")

        body = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "response_format": {
                "type": "json_schema",
                "json_schema": {"name": "name_suggestions", "schema": NameSuggestions.model_json_schema()},
            },
            "temperature": SUGGESTION_TEMPERATURE,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            r = self.session.post(self.api_url, json=body, headers=headers, timeout=self.timeout)
            if r.status_code == 429:
                raise SuggestionRateLimitError("Rate limit exceeded. Please try again in a moment.")
            r.raise_for_status()
            content = r.json()["choices"][0]["message"]["content"]
        except requests.Timeout as e:
            raise SuggestionTimeoutError("Request timed out. Please try again.") from e
        except (requests.RequestException, ValueError, KeyError, IndexError) as e:
            logger.error("Suggestion request failed: %s", e)
            raise SuggestionServiceError("Unable to generate name suggestions. Please try again.") from e

        if not content:
            raise SuggestionServiceError("No response from suggestion service")
        try:
            return NameSuggestions.model_validate_json(content).suggestions
        except ValidationError as e:
            logger.error("Suggestion response failed schema validation: %s", e)
            raise SuggestionServiceError("Invalid response structure from suggestion service") from e


def suggest_names(slot: str, state: AppState, client: SuggestionClient) -> List[str]:
    """Ask the service for names for ``slot`` and keep only well-formed ones."""
    check_preconditions(slot, state)
    suggestions = client.request_suggestions(build_prompt(slot, state))
    return filter_valid_suggestions(suggestions)
