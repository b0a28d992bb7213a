"""Glob pattern helpers shared by the glob, grep and ls tools."""

import re

BRACE_GROUP = re.compile(r"\{([^{}]*)\}")


def expand_braces(pattern: str) -> list[str]:
    """Expand ``{a,b}`` alternatives into separate patterns.

    Examples:
        >>> expand_braces("src/*.{ts,tsx}")
        ['src/*.ts', 'src/*.tsx']
        >>> expand_braces("*.py")
        ['*.py']
    """
    match = BRACE_GROUP.search(pattern)
    if not match or "," not in match.group(1):
        return [pattern]

    expanded = []
    for option in match.group(1).split(","):
        candidate = f"{pattern[: match.start()]}{option.strip()}{pattern[match.end() :]}"
        expanded.extend(expand_braces(candidate))
    return expanded


def glob_to_regex(pattern: str, case_sensitive: bool = False) -> re.Pattern:
    """Translate a glob into a regex matched against ``/``-separated relative paths.

    ``*`` and ``?`` stay inside one path segment, ``**/`` spans zero or more
    directories and a trailing ``**`` matches everything below.

    Examples:
        >>> bool(glob_to_regex("**/*.py").match("pkg/mod.py"))
        True
        >>> bool(glob_to_regex("*.py").match("pkg/mod.py"))
        False
    """
    parts = []
    i = 0
    while i < len(pattern):
        char = pattern[i]
        if pattern.startswith("**/", i):
            parts.append("(?:.*/)?")
            i += 3
            continue
        if pattern.startswith("**", i):
            parts.append(".*")
            i += 2
            continue
        if char == "*":
            parts.append("[^/]*")
        elif char == "?":
            parts.append("[^/]")
        elif char == "[" and (end := pattern.find("]", i + 1)) > i + 1:
            body = pattern[i + 1 : end].replace("\\", "\\\\")
            if body.startswith("!"):
                body = "^" + body[1:]
            parts.append(f"[{body}]")
            i = end + 1
            continue
        else:
            parts.append(re.escape(char))
        i += 1

    flags = 0 if case_sensitive else re.IGNORECASE
    return re.compile("".join(parts) + r"\Z", flags)


def compile_globs(pattern: str, case_sensitive: bool = False) -> list[re.Pattern]:
    """Brace-expand ``pattern`` and compile each alternative."""
    return [glob_to_regex(p, case_sensitive) for p in expand_braces(pattern)]


def matches_any(path: str, patterns: list[re.Pattern]) -> bool:
    return any(p.match(path) for p in patterns)
