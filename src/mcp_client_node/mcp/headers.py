"""
Header and environment text parsing.

Credentials carry headers and environment overrides as newline-delimited
``NAME=VALUE`` text. The first ``=`` separates name from value, so values
may contain further ``=`` characters.
"""

from typing import Dict, Mapping, Optional


def parse_key_value_lines(text: Optional[str]) -> Dict[str, str]:
    """
    Parse newline-delimited ``NAME=VALUE`` lines into a dict.

    Lines without ``=`` or starting with ``=`` are skipped, as are lines
    whose name is blank after trimming. Later duplicates win.
    """
    entries: Dict[str, str] = {}
    if not text:
        return entries

    for line in text.split("\n"):
        equals_index = line.find("=")
        if equals_index <= 0:
            continue
        name = line[:equals_index].strip()
        if not name:
            continue
        entries[name] = line[equals_index + 1:].strip()
    return entries


def parse_headers(header_text: Optional[str]) -> Dict[str, str]:
    """Parse headers from newline-separated NAME=VALUE format."""
    return parse_key_value_lines(header_text)


def merge_headers(
    base: Mapping[str, str],
    overrides: Mapping[str, str],
) -> Dict[str, str]:
    """Merge two header mappings; keys in ``overrides`` take precedence."""
    return {**base, **overrides}
