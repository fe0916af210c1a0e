import locale
import random
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from .config import COMBINATION_THRESHOLD, DEFAULT_SAMPLE_SIZE
from .names_parser import (
    get_nickname_variants,
    parse_name_with_nicknames,
    parse_names_with_nicknames,
)


_WHITESPACE = re.compile(r"\s+")
# Id components never contain "-" (the separator) or a literal "_" (stands for whitespace)
_ID_ESCAPES = str.maketrans({"%": "%25", "-": "%2d", "_": "%5f"})
_system_random = random.SystemRandom()


@dataclass(frozen=True)
class NameCombination:
    id: str
    first_name: str
    middle_name: str
    last_name: str
    full_name: str
    initials: str
    first_name_short: str
    middle_name_short: str
    last_name_short: str
    short_name: str
    short_initials: str


@dataclass(frozen=True)
class DisplayView:
    """What a presentation layer needs to render one page of combinations."""

    total: int
    matched: int
    items: List[NameCombination]
    sampled: bool


def _first_upper(text: str) -> str:
    return text[:1].upper()


def generate_initials(first_name: str, middle_names: Iterable[str], last_name: str) -> str:
    middle = "".join(_first_upper(token) for token in middle_names if token.strip())
    return f"{_first_upper(first_name)}{middle}{_first_upper(last_name)}"


def _id_part(text: str) -> str:
    return _WHITESPACE.sub("_", text.strip().lower().translate(_ID_ESCAPES))


def _combination_id(*parts: str) -> str:
    return "-".join(_id_part(p) for p in parts)


def generate_combinations(
    first_names: Sequence[str],
    middle_names: Sequence[str],
    last_names: Sequence[str],
) -> List[NameCombination]:
    """Expand first x middle x last entries into one record per nickname variant triple.

    The outer product runs over full-name triples in list order; within each
    triple the inner product runs over ``get_nickname_variants`` of each entry.
    Any empty slot yields an empty list.

    Ids are lowercase, so entries differing only by case (or repeated
    entries) share a base id; the second and later occurrences get a
    `-2`, `-3` ... suffix in generation order.
    """
    parsed_first = [parse_name_with_nicknames(n) for n in first_names if n.strip()]
    parsed_middle = [parse_name_with_nicknames(n) for n in middle_names if n.strip()]
    parsed_last = [parse_name_with_nicknames(n) for n in last_names if n.strip()]
    if not (parsed_first and parsed_middle and parsed_last):
        return []

    # Per-entry work hoisted out of the nested loops
    first_variants = [get_nickname_variants(p) for p in parsed_first]
    middle_entries = [
        (p.full, p.full.split(), [(v, v.split()) for v in get_nickname_variants(p)])
        for p in parsed_middle
    ]
    last_variants = [get_nickname_variants(p) for p in parsed_last]

    combinations: List[NameCombination] = []
    seen: Dict[str, int] = {}
    for pf, f_variants in zip(parsed_first, first_variants):
        first = pf.full
        for middle, middle_tokens, m_variants in middle_entries:
            for pl, l_variants in zip(parsed_last, last_variants):
                last = pl.full
                full_name = f"{first} {middle} {last}"
                initials = generate_initials(first, middle_tokens, last)
                for first_short in f_variants:
                    for middle_short, middle_short_tokens in m_variants:
                        for last_short in l_variants:
                            base_id = _combination_id(first, middle, last, first_short, middle_short, last_short)
                            seen[base_id] = occurrence = seen.get(base_id, 0) + 1
                            combinations.append(
                                NameCombination(
                                    id=base_id if occurrence == 1 else f"{base_id}-{occurrence}",
                                    first_name=first,
                                    middle_name=middle,
                                    last_name=last,
                                    full_name=full_name,
                                    initials=initials,
                                    first_name_short=first_short,
                                    middle_name_short=middle_short,
                                    last_name_short=last_short,
                                    short_name=f"{first_short} {middle_short} {last_short}",
                                    short_initials=generate_initials(first_short, middle_short_tokens, last_short),
                                )
                            )
    return combinations


def count_combinations(first_text: str, middle_text: str, last_text: str) -> int:
    """Number of records ``generate_combinations`` would produce, without building them."""
    total = 1
    for text in (first_text, middle_text, last_text):
        total *= sum(len(get_nickname_variants(p)) for p in parse_names_with_nicknames(text))
    return total


def filter_duplicate_middle_last_names(combinations: Sequence[NameCombination]) -> List[NameCombination]:
    """Drop records where any middle-name word repeats the last name (case-insensitive)."""
    kept = []
    for combination in combinations:
        last = combination.last_name.lower()
        if any(part.lower() == last for part in combination.middle_name.split()):
            continue
        kept.append(combination)
    return kept


def filter_combinations(combinations: Sequence[NameCombination], search_term: str) -> Sequence[NameCombination]:
    if not search_term.strip():
        return combinations

    term = search_term.lower()
    return [
        c
        for c in combinations
        if term in c.full_name.lower()
        or term in c.initials.lower()
        or term in c.short_name.lower()
        or term in c.short_initials.lower()
    ]


def _collation_key(combination: NameCombination):
    return locale.strxfrm(combination.full_name.casefold()), combination.full_name


def shuffle_combinations(
    combinations: Sequence[NameCombination], rng: Optional[random.Random] = None
) -> List[NameCombination]:
    """Return a new uniformly shuffled list; the input is left untouched."""
    shuffled = list(combinations)
    (rng or _system_random).shuffle(shuffled)
    return shuffled


def sort_combinations(
    combinations: Sequence[NameCombination], alphabetical: bool, rng: Optional[random.Random] = None
) -> List[NameCombination]:
    if alphabetical:
        return sorted(combinations, key=_collation_key)
    return shuffle_combinations(combinations, rng)


def sample_combinations(
    combinations: Sequence[NameCombination], sample_size: int, rng: Optional[random.Random] = None
) -> List[NameCombination]:
    """Pick ``sample_size`` records at random and return them alphabetised."""
    sampled = shuffle_combinations(combinations, rng)[:max(sample_size, 0)]
    return sorted(sampled, key=_collation_key)


def prepare_display(
    combinations: Sequence[NameCombination],
    search_term: str = "",
    hide_duplicates: bool = False,
    alphabetical: bool = True,
    show_all: bool = False,
    threshold: int = COMBINATION_THRESHOLD,
    sample_size: int = DEFAULT_SAMPLE_SIZE,
    rng: Optional[random.Random] = None,
) -> DisplayView:
    """Duplicate suppression, search, ordering, then sampling, in that order."""
    processed = combinations
    if hide_duplicates:
        processed = filter_duplicate_middle_last_names(processed)
    processed = filter_combinations(processed, search_term)
    ordered = sort_combinations(processed, alphabetical, rng)

    should_sample = len(ordered) > threshold and not show_all
    items = sample_combinations(ordered, sample_size, rng) if should_sample else ordered
    return DisplayView(total=len(combinations), matched=len(ordered), items=items, sampled=should_sample)
