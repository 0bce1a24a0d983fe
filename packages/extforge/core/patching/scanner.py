"""Structural scanning of JavaScript source.

Just enough lexing to find statement boundaries in generated JavaScript:
string, template, regular-expression and comment literals are skipped so that
brackets and semicolons inside them are never mistaken for code.
"""

from __future__ import annotations

import re

_OPENERS = "([{"
_CLOSERS = {")": "(", "]": "[", "}": "{"}

# Characters after which a '/' starts a regular expression rather than a division.
_REGEX_PRECEDERS = frozenset("(,=:[!&|?{};+-*%<>~^")
_REGEX_KEYWORDS = frozenset(
    {"return", "typeof", "case", "do", "else", "in", "of", "void", "yield", "await",
     "delete", "new", "throw", "instanceof"}
)
_TRAILING_WORD = re.compile(r"[A-Za-z_$][\w$]*$")


class ScanError(ValueError):
    """The source could not be scanned (unterminated literal, unbalanced bracket)."""


def is_identifier_char(ch: str) -> bool:
    return ch.isalnum() or ch in "_$"


def skip_literal(text: str, i: int) -> int | None:
    """Skip a literal or comment starting at ``i``.

    Args:
        text: JavaScript source
        i: Current offset

    Returns:
        Offset just past the literal, or None if ``i`` does not start one

    Raises:
        ScanError: If the literal is unterminated
    """
    ch = text[i]
    if ch in "'\"":
        return _skip_string(text, i, ch)
    if ch == "`":
        return _skip_template(text, i)
    if ch == "/":
        nxt = text[i + 1] if i + 1 < len(text) else ""
        if nxt == "/":
            end = text.find("\n", i)
            return len(text) if end == -1 else end
        if nxt == "*":
            end = text.find("*/", i + 2)
            if end == -1:
                raise ScanError(f"Unterminated block comment at offset {i}")
            return end + 2
        if _regex_allowed(text, i):
            return _skip_regex(text, i)
    return None


def match_bracket(text: str, open_index: int) -> int:
    """Return the offset of the bracket closing the one at ``open_index``.

    Raises:
        ScanError: If brackets are mismatched or unbalanced
    """
    stack = [text[open_index]]
    j = open_index + 1
    while j < len(text):
        end = skip_literal(text, j)
        if end is not None:
            j = end
            continue
        ch = text[j]
        if ch in _OPENERS:
            stack.append(ch)
        elif ch in _CLOSERS:
            if stack[-1] != _CLOSERS[ch]:
                raise ScanError(f"Mismatched '{ch}' at offset {j}")
            stack.pop()
            if not stack:
                return j
        j += 1
    raise ScanError(f"Unbalanced '{text[open_index]}' at offset {open_index}")


def statement_end(text: str, start: int) -> int:
    """Find the end of the expression statement starting at ``start``.

    Scans to the first ``;`` outside any bracket. Stops before a closing
    bracket that belongs to an enclosing block, or at end of text.

    Returns:
        Offset just past the terminating ``;`` (or the stop offset)
    """
    j = start
    while j < len(text):
        end = skip_literal(text, j)
        if end is not None:
            j = end
            continue
        ch = text[j]
        if ch in _OPENERS:
            j = match_bracket(text, j) + 1
            continue
        if ch == ";":
            return j + 1
        if ch in _CLOSERS:
            return j
        j += 1
    return len(text)


def call_end(text: str, paren_index: int) -> int:
    """Find the end of a call whose argument list opens at ``paren_index``.

    Includes a trailing ``;`` when one follows (after optional whitespace).
    """
    close = match_bracket(text, paren_index)
    k = close + 1
    while k < len(text) and text[k] in " \t\r\n":
        k += 1
    if k < len(text) and text[k] == ";":
        return k + 1
    return close + 1


def _skip_string(text: str, i: int, quote: str) -> int:
    j = i + 1
    while j < len(text):
        ch = text[j]
        if ch == "\\":
            j += 2
            continue
        if ch == quote:
            return j + 1
        if ch == "\n":
            break
        j += 1
    raise ScanError(f"Unterminated string literal at offset {i}")


def _skip_template(text: str, i: int) -> int:
    j = i + 1
    while j < len(text):
        ch = text[j]
        if ch == "\\":
            j += 2
            continue
        if ch == "`":
            return j + 1
        if ch == "$" and text.startswith("${", j):
            j = match_bracket(text, j + 1) + 1
            continue
        j += 1
    raise ScanError(f"Unterminated template literal at offset {i}")


def _skip_regex(text: str, i: int) -> int:
    j = i + 1
    in_class = False
    while j < len(text):
        ch = text[j]
        if ch == "\\":
            j += 2
            continue
        if ch == "\n":
            break
        if ch == "[":
            in_class = True
        elif ch == "]":
            in_class = False
        elif ch == "/" and not in_class:
            j += 1
            while j < len(text) and text[j].isalpha():
                j += 1
            return j
        j += 1
    raise ScanError(f"Unterminated regular expression at offset {i}")


def _regex_allowed(text: str, i: int) -> bool:
    k = i - 1
    while k >= 0 and text[k].isspace():
        k -= 1
    if k < 0:
        return True
    ch = text[k]
    if ch in _REGEX_PRECEDERS:
        return True
    if is_identifier_char(ch):
        word = _TRAILING_WORD.search(text, max(0, k - 16), k + 1)
        return word is not None and word.group() in _REGEX_KEYWORDS
    return False
