import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple


# "Elizabeth (Liz, Beth)": full name, then an optional trailing nickname group
NICKNAME_ENTRY = re.compile(r"([^(]+)(?:\s*\(([^)]+)\))?")

# Grammar accepted from the suggestion service
NICKNAME_SYNTAX = re.compile(r"[A-Za-z\s'-]+(?:\s*\([A-Za-z\s,'-]+\))?")


@dataclass(frozen=True)
class ParsedName:
    full: str
    nicknames: Tuple[str, ...] = ()


def parse_names(text: str) -> List[str]:
    """Split multi-line input into trimmed, non-empty entries (order and duplicates kept)."""
    return [line.strip() for line in text.split("\n") if line.strip()]


def parse_name_with_nicknames(entry: str) -> ParsedName:
    """Parse ``Full (Nick1, Nick2)``.

    Anything that does not fit the pattern (unbalanced or nested parentheses,
    text after the group, an empty group) is kept whole as the full name.
    """
    entry = entry.strip()
    match = NICKNAME_ENTRY.fullmatch(entry)
    if not match:
        return ParsedName(full=entry)

    full = match.group(1).strip()
    group = match.group(2)
    if not group:
        return ParsedName(full=full)

    nicknames = tuple(nick.strip() for nick in group.split(",") if nick.strip())
    return ParsedName(full=full, nicknames=nicknames)


def parse_names_with_nicknames(text: str) -> List[ParsedName]:
    return [parse_name_with_nicknames(line) for line in parse_names(text)]


def get_nickname_variants(parsed: ParsedName) -> List[str]:
    """Nicknames if there are any, otherwise the full name alone. Never empty."""
    if parsed.nicknames:
        return list(parsed.nicknames)
    return [parsed.full]


def get_all_name_variants(parsed: ParsedName) -> List[str]:
    return [parsed.full, *parsed.nicknames]


def get_display_name(parsed: ParsedName, use_short: bool) -> str:
    if use_short and parsed.nicknames:
        return parsed.nicknames[0]
    return parsed.full


def is_valid_name_syntax(text: str) -> bool:
    return NICKNAME_SYNTAX.fullmatch(text.strip()) is not None


def load_names(names_file: Path) -> List[str]:
    with names_file.open("r", encoding="utf-8") as f:
        return parse_names(f.read())
