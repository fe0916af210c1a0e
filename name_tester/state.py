import json
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Sequence

from .combinations import NameCombination, generate_combinations


# Wire keys of the serialized state, as shared and stored
_LIST_FIELDS = {
    "firstNames": "first_names",
    "middleNames": "middle_names",
    "lastNames": "last_names",
    "shortlistedCombinations": "shortlisted_combinations",
}
_FLAG_FIELDS = {
    "hideDuplicateMiddleLastNames": "hide_duplicate_middle_last_names",
    "showAlphabetical": "show_alphabetical",
    "useShortNames": "use_short_names",
}


@dataclass(frozen=True)
class AppState:
    first_names: List[str] = field(default_factory=list)
    middle_names: List[str] = field(default_factory=list)
    last_names: List[str] = field(default_factory=list)
    shortlisted_combinations: List[str] = field(default_factory=list)
    hide_duplicate_middle_last_names: bool = False
    show_alphabetical: bool = True
    use_short_names: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {key: list(getattr(self, attr)) for key, attr in _LIST_FIELDS.items()}
        data.update({key: getattr(self, attr) for key, attr in _FLAG_FIELDS.items()})
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: Any) -> "AppState":
        """Build a state from its wire form; missing keys take the defaults."""
        if not isinstance(data, dict):
            raise ValueError("Invalid data provided")

        kwargs: Dict[str, Any] = {}
        for key, attr in _LIST_FIELDS.items():
            if key not in data:
                continue
            value = data[key]
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                raise ValueError(f"{key} must be a list of strings")
            kwargs[attr] = list(value)
        for key, attr in _FLAG_FIELDS.items():
            if key not in data:
                continue
            if not isinstance(data[key], bool):
                raise ValueError(f"{key} must be a boolean")
            kwargs[attr] = data[key]
        return cls(**kwargs)

    @classmethod
    def from_json(cls, text: str) -> "AppState":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid state JSON: {e}") from e
        return cls.from_dict(data)

    def has_any_names(self) -> bool:
        return bool(self.first_names or self.middle_names or self.last_names)

    def combinations(self) -> List[NameCombination]:
        return generate_combinations(self.first_names, self.middle_names, self.last_names)


def update_names(
    state: AppState,
    first_names: Sequence[str],
    middle_names: Sequence[str],
    last_names: Sequence[str],
) -> AppState:
    """Replace the name lists and drop shortlisted ids that are no longer reachable."""
    reachable = {c.id for c in generate_combinations(first_names, middle_names, last_names)}
    return replace(
        state,
        first_names=list(first_names),
        middle_names=list(middle_names),
        last_names=list(last_names),
        shortlisted_combinations=[i for i in state.shortlisted_combinations if i in reachable],
    )


def toggle_shortlist(state: AppState, combination_id: str) -> AppState:
    if combination_id in state.shortlisted_combinations:
        return remove_from_shortlist(state, combination_id)
    return replace(state, shortlisted_combinations=[*state.shortlisted_combinations, combination_id])


def remove_from_shortlist(state: AppState, combination_id: str) -> AppState:
    return replace(
        state,
        shortlisted_combinations=[i for i in state.shortlisted_combinations if i != combination_id],
    )


def clear_shortlist(state: AppState) -> AppState:
    return replace(state, shortlisted_combinations=[])


def shortlisted_combinations(state: AppState, combinations: Sequence[NameCombination]) -> List[NameCombination]:
    """Resolve shortlisted ids to records, in generation order."""
    wanted = set(state.shortlisted_combinations)
    return [c for c in combinations if c.id in wanted]
