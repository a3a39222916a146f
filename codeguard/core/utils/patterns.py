import re
from re import Pattern

_PATTERN_CACHE: dict[tuple[str, int], Pattern[str]] = {}

MAX_PATTERN_LENGTH = 1000

FLAG_NAMES: dict[str, re.RegexFlag] = {
    "ignorecase": re.IGNORECASE,
    "multiline": re.MULTILINE,
    "dotall": re.DOTALL,
    "verbose": re.VERBOSE,
    "ascii": re.ASCII,
}


def resolve_flags(names: list[str] | tuple[str, ...]) -> int:
    """Translate symbolic flag names into an ``re`` flag mask.

    Args:
        names: Flag names such as ``"ignorecase"`` or ``"multiline"``.

    Returns:
        The combined flag value.

    Raises:
        KeyError: If a flag name is unknown.
    """
    value = 0
    for name in names:
        value |= FLAG_NAMES[name.lower()]
    return value


def compile_pattern(regex: str, flags: int = 0) -> Pattern[str]:
    """Compile a regex, reusing previously compiled patterns.

    Args:
        regex: The regular expression source.
        flags: ``re`` flags.

    Returns:
        A compiled regex pattern object.
    """
    key = (regex, flags)
    cached = _PATTERN_CACHE.get(key)
    if cached:
        return cached

    compiled = re.compile(regex, flags)
    _PATTERN_CACHE[key] = compiled
    return compiled


def _read_quantifier(pattern: str, i: int) -> tuple[bool, bool, int]:
    """Read a quantifier starting at ``i``.

    A quantifier is variable when it can match a varying number of repetitions
    beyond one, e.g. ``+`` or ``{1,100}`` but not ``?`` or ``{3}``.

    Returns:
        ``(unbounded, variable, length)``; length is 0 when no quantifier starts at ``i``.
    """
    length = len(pattern)
    if i >= length:
        return False, False, 0

    char = pattern[i]
    if char in "*+":
        unbounded, variable, size = True, True, 1
    elif char == "?":
        unbounded, variable, size = False, False, 1
    elif char == "{":
        match = re.match(r"\{(\d*)(,?)(\d*)\}", pattern[i:])
        if not match or (not match.group(1) and not match.group(3)):
            # Not a repetition, "{" is a literal
            return False, False, 0
        unbounded = bool(match.group(2)) and not match.group(3)
        low = int(match.group(1) or 0)
        high = int(match.group(3)) if match.group(3) else low
        variable = unbounded or (bool(match.group(2)) and high > max(low, 1))
        size = match.end()
    else:
        return False, False, 0

    # Lazy or possessive suffix
    if i + size < length and pattern[i + size] in "?+":
        size += 1
    return unbounded, variable, size


def _skip_class(pattern: str, i: int) -> int:
    """Return the index just past a character class opening at ``i``."""
    length = len(pattern)
    j = i + 1
    if j < length and pattern[j] == "^":
        j += 1
    if j < length and pattern[j] == "]":
        j += 1
    while j < length and pattern[j] != "]":
        j += 2 if pattern[j] == "\\" else 1
    return j + 1


def _skip_group_prefix(pattern: str, i: int) -> int:
    """Return the index of the first atom inside a group whose "(" is at ``i - 1``."""
    length = len(pattern)
    if i >= length or pattern[i] != "?":
        return i
    nxt = pattern[i + 1] if i + 1 < length else ""
    if nxt == "P" and i + 2 < length and pattern[i + 2] == "<":
        end = pattern.find(">", i)
        return end + 1 if end != -1 else length
    if nxt == "<" and i + 2 < length and pattern[i + 2] in "=!":
        return i + 3
    if nxt in ":=!>#":
        return i + 2
    # Inline flags, optionally scoped: (?i) or (?i:...)
    j = i + 1
    while j < length and (pattern[j].isalpha() or pattern[j] == "-"):
        j += 1
    if j < length and pattern[j] == ":":
        j += 1
    return j


def find_nested_quantifier(pattern: str) -> str | None:
    """Find a group with a variable quantifier that is itself unboundedly repeated.

    This is a conservative structural check for catastrophic backtracking,
    rejecting shapes such as ``(a+)+``, ``(\\w*\\s)*``, ``(?:x+){2,}`` or ``(a{1,100})+``.

    Args:
        pattern: The regex source.

    Returns:
        The offending fragment, or None if the pattern looks safe.
    """
    # One entry per open group: (start index, contains a variable quantifier)
    stack: list[list] = []
    i = 0
    length = len(pattern)

    while i < length:
        char = pattern[i]
        if char == "\\":
            i += 2
            continue
        if char == "[":
            i = _skip_class(pattern, i)
            continue
        if char == "(":
            stack.append([i, False])
            i = _skip_group_prefix(pattern, i + 1)
            continue
        if char == ")":
            start, inner_variable = stack.pop() if stack else (0, False)
            i += 1
            unbounded, variable, size = _read_quantifier(pattern, i)
            if size and unbounded and inner_variable:
                return pattern[start : i + size]
            i += size
            if stack and (inner_variable or variable):
                stack[-1][1] = True
            continue

        _, variable, size = _read_quantifier(pattern, i)
        if size:
            if variable and stack:
                stack[-1][1] = True
            i += size
            continue
        i += 1

    return None


def check_pattern_safety(pattern: str) -> str | None:
    """Lint a regex before it is accepted into a rule.

    Args:
        pattern: The regex source.

    Returns:
        A human-readable problem description, or None if the pattern is acceptable.
    """
    if len(pattern) > MAX_PATTERN_LENGTH:
        return f"pattern longer than {MAX_PATTERN_LENGTH} characters"
    fragment = find_nested_quantifier(pattern)
    if fragment is not None:
        return f"nested unbounded quantifier in '{fragment}' can backtrack catastrophically"
    return None
