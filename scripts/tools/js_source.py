#!/usr/bin/env python3
"""
String- and comment-aware scanning of plugin/theme source text

Every script that counts braces or looks for a method body goes through
these helpers so that a `{` inside a string literal or a comment never
shifts a block boundary. This is still plain text scanning: regex literals
are not recognised.
"""

import re
from typing import Dict, List, Optional, Tuple

QUOTES = ("'", '"', "`")

# Lines shaped like `name(args) {` at the start of a line
METHOD_DEF_RE = re.compile(
    r"^\s*(?:async\s+)?(?:static\s+)?(?:function\s+)?([A-Za-z_$][\w$]*)\s*\([^)]*\)\s*\{"
)

NOT_METHODS = {
    'if', 'for', 'while', 'switch', 'catch', 'function', 'return',
    'with', 'else', 'do', 'try', 'typeof', 'new',
}


def mask_code(text: str, css: bool = False) -> str:
    """
    Blank out string literals and comments.

    The result has the same length and the same newlines as the input, so
    offsets and line numbers stay valid. With css=True `//` is not treated
    as a comment and backticks are ordinary characters.
    """
    out = list(text)
    n = len(text)
    i = 0
    quotes = ("'", '"') if css else QUOTES

    def blank(start, stop):
        for k in range(start, stop):
            if out[k] != "\n":
                out[k] = " "

    while i < n:
        ch = text[i]

        if not css and text.startswith("//", i):
            stop = text.find("\n", i)
            stop = n if stop == -1 else stop
            blank(i, stop)
            i = stop
            continue

        if text.startswith("/*", i):
            stop = text.find("*/", i + 2)
            stop = n if stop == -1 else stop + 2
            blank(i, stop)
            i = stop
            continue

        if ch in quotes:
            j = i + 1
            while j < n:
                c = text[j]
                if c == "\\":
                    j += 2
                    continue
                if c == ch:
                    j += 1
                    break
                # '...' and "..." cannot span lines
                if c == "\n" and ch != "`":
                    break
                j += 1
            j = min(j, n)
            blank(i, j)
            i = j
            continue

        i += 1

    return "".join(out)


def masked_lines(lines: List[str], css: bool = False) -> List[str]:
    """Mask a list of lines (with or without line terminators)"""
    text = "\n".join(line.rstrip("\r\n") for line in lines)
    return mask_code(text, css=css).split("\n")


def delimiter_balance(text: str, css: bool = False) -> Dict[str, int]:
    """Opens minus closes for braces and parentheses outside strings/comments"""
    code = mask_code(text, css=css)
    return {
        "{}": code.count("{") - code.count("}"),
        "()": code.count("(") - code.count(")"),
    }


def count_braces(lines: List[str]) -> Tuple[int, int]:
    """Count open and close braces, ignoring strings and comments"""
    code = "\n".join(masked_lines(lines))
    return code.count("{"), code.count("}")


def find_block_end(lines: List[str], start: int, end: Optional[int] = None) -> Optional[int]:
    """
    Index of the line closing the first block opened at or after `start`.

    Returns None if the block never closes before `end`.
    """
    code = masked_lines(lines)
    stop = len(code) if end is None else min(end, len(code))
    depth = 0
    opened = False

    for i in range(start, stop):
        for ch in code[i]:
            if ch == "{":
                depth += 1
                opened = True
            elif ch == "}" and opened:
                depth -= 1
                if depth == 0:
                    return i

    return None


def find_function_definition(
    lines: List[str], func_name: str, start: int = 0, end: Optional[int] = None
) -> Optional[Tuple[int, int]]:
    """
    Find a complete function definition including its JSDoc comment.

    Returns (start_index, end_index) as a half-open slice of `lines`, or None.
    Blank lines above the doc comment and one trailing blank line are included
    so that deleting the slice leaves the surrounding spacing intact.
    """
    stop = len(lines) if end is None else min(end, len(lines))
    func_pattern = re.compile(
        rf"^\s*(?:async\s+)?(?:static\s+)?(?:function\s+)?{re.escape(func_name)}\s*\([^)]*\)\s*\{{"
    )

    func_start = None
    for i in range(start, stop):
        if func_pattern.match(lines[i]):
            func_start = i
            break

    if func_start is None:
        return None

    doc_start = func_start
    for i in range(func_start - 1, max(-1, func_start - 31), -1):
        stripped = lines[i].strip()
        if stripped.startswith("/**"):
            doc_start = i
            while doc_start > 0 and lines[doc_start - 1].strip() == "":
                doc_start -= 1
            break
        if stripped and not stripped.startswith("*") and not stripped.startswith("//"):
            break

    block_end = find_block_end(lines, func_start, stop)
    if block_end is None:
        return None

    func_end = block_end + 1
    if func_end < len(lines) and lines[func_end].strip() == "":
        func_end += 1

    return doc_start, func_end


def find_method_definitions(lines: List[str]) -> List[Tuple[str, int]]:
    """(name, 1-based line) for every line that looks like a method definition"""
    found = []
    for i, line in enumerate(masked_lines(lines), 1):
        match = METHOD_DEF_RE.match(line)
        if match and match.group(1) not in NOT_METHODS:
            found.append((match.group(1), i))
    return found


def find_duplicate_definitions(lines: List[str]) -> Dict[str, List[int]]:
    """Method names defined more than once, with every line they appear on"""
    seen: Dict[str, List[int]] = {}
    for name, line_no in find_method_definitions(lines):
        seen.setdefault(name, []).append(line_no)
    return {name: where for name, where in seen.items() if len(where) > 1}
