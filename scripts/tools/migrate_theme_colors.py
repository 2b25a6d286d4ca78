#!/usr/bin/env python3
"""
Migrate hardcoded colors in a theme to CSS variables

Replaces color literals (rgba(...), rgb(...), #hex) with var(--...)
references one named batch at a time. Only code is touched: literals inside
/* comments */ and quoted strings stay as they are. Every variable a batch
introduces must already be defined in the variables directory.

Usage:
    python migrate_theme_colors.py --theme themes/X.theme.css \
        --variables-dir themes/variables --batch black_alphas [--report] [--apply]
"""

import argparse
import json
import logging
import re
import sys
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple

from js_source import mask_code
from tool_common import backup_file, now_stamp, read_text, setup_logging, write_text

logger = logging.getLogger(__name__)

COLOR_LITERAL_RE = re.compile(
    r"rgba\(\s*\d+\s*,\s*\d+\s*,\s*\d+\s*,\s*[\d.]+\s*\)"
    r"|rgb\(\s*\d+\s*,\s*\d+\s*,\s*\d+\s*\)"
    r"|#[0-9a-fA-F]{6,8}(?![0-9a-fA-F_-])"
    r"|#[0-9a-fA-F]{3}(?![0-9a-fA-F_-])"
)
VAR_USE_RE = re.compile(r"var\(\s*(--[\w-]+)")


@dataclass(frozen=True)
class Replacement:
    old: str
    new: str
    label: str


def _alpha_batch(rgb: str, prefix: str, alphas: Iterable[str]) -> List[Replacement]:
    batch = []
    for alpha in alphas:
        pct = int(round(float(alpha) * 100))
        batch.append(Replacement(
            old=f"rgba({rgb}, {alpha})",
            new=f"var(--sl-color-{prefix}-alpha-{pct})",
            label=f"{prefix}-alpha-{pct}",
        ))
    return batch


def batch_bg_101015() -> List[Replacement]:
    return _alpha_batch("10, 10, 15", "bg", ["0.4", "0.5", "0.6", "0.7", "0.8", "0.82", "0.9", "0.95"])


def batch_black_alphas() -> List[Replacement]:
    return _alpha_batch("0, 0, 0", "black", ["0.2", "0.28", "0.3", "0.35", "0.4", "0.45", "0.5", "0.6"])


def batch_purple_alphas() -> List[Replacement]:
    return _alpha_batch("139, 92, 246", "purple", ["0.1", "0.2", "0.24", "0.3", "0.4", "0.5", "0.6", "0.8"])


def batch_hex_palette() -> List[Replacement]:
    return [
        Replacement("#0f0f1a", "var(--sl-color-bg-ink)", "bg-ink"),
        Replacement("#8b5cf6", "var(--sl-color-accent-purple-500)", "accent-purple-500"),
        Replacement("#a78bfa", "var(--sl-color-accent-purple-400)", "accent-purple-400"),
        Replacement("#c4b5fd", "var(--sl-color-accent-purple-300)", "accent-purple-300"),
        Replacement("#ef4444", "var(--sl-color-status-danger-500)", "danger-500"),
        Replacement("#22c55e", "var(--sl-color-status-success-500)", "success-500"),
    ]


def batch_text_whites() -> List[Replacement]:
    return [
        Replacement("rgba(255, 255, 255, 0.4)", "var(--sl-color-text-faint)", "text-faint"),
        Replacement("rgba(255, 255, 255, 0.7)", "var(--sl-color-text-muted)", "text-muted"),
        Replacement("rgba(255, 255, 255, 0.9)", "var(--sl-color-text-hover)", "text-hover"),
        Replacement("rgba(255, 255, 255, 0.95)", "var(--sl-color-text-primary)", "text-primary"),
        Replacement("rgba(255, 255, 255, 1)", "var(--sl-color-text-max)", "text-max"),
    ]


def batch_full() -> List[Replacement]:
    return (
        batch_bg_101015()
        + batch_black_alphas()
        + batch_purple_alphas()
        + batch_hex_palette()
        + batch_text_whites()
    )


BUILTIN_BATCHES = {
    "bg_101015": batch_bg_101015,
    "black_alphas": batch_black_alphas,
    "purple_alphas": batch_purple_alphas,
    "hex_palette": batch_hex_palette,
    "text_whites": batch_text_whites,
    "full": batch_full,
}


def load_batch_file(path) -> Dict[str, List[Replacement]]:
    """Extra batches from JSON: {"name": [{"old": ..., "new": ..., "label": ...}, ...]}"""
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected an object of batch names")
    batches = {}
    for name, entries in data.items():
        batches[name] = [Replacement(e["old"], e["new"], e.get("label", e["new"])) for e in entries]
    return batches


def get_batch(name: str, extra: Optional[Dict[str, List[Replacement]]] = None) -> List[Replacement]:
    extra = extra or {}
    if name in extra:
        return extra[name]
    if name not in BUILTIN_BATCHES:
        available = ", ".join(sorted(set(BUILTIN_BATCHES) | set(extra)))
        raise ValueError(f"Unknown batch: {name}. Available: {available}")
    return BUILTIN_BATCHES[name]()


def variables_defined(variables_dir: Path) -> Set[str]:
    """Every --custom-property declared in variables_dir/*.css"""
    defined = set()
    for path in sorted(Path(variables_dir).glob("*.css")):
        if not path.is_file():
            continue
        for line in read_text(path).splitlines():
            stripped = line.strip()
            if not stripped.startswith("--"):
                continue
            name, sep, _ = stripped.partition(":")
            if sep:
                defined.add(name.strip())
    return defined


def vars_used_in_replacements(replacements: Iterable[Replacement]) -> Set[str]:
    used = set()
    for replacement in replacements:
        used.update(VAR_USE_RE.findall(replacement.new))
    return used


def _literal_pattern(olds: Iterable[str]):
    parts = []
    for old in sorted(olds, key=len, reverse=True):
        piece = re.escape(old)
        if old.startswith("#"):
            piece += r"(?![0-9a-fA-F_-])"
        parts.append(piece)
    return re.compile("|".join(parts))


def replace_outside_comments_and_strings(
    text: str, replacements: List[Replacement]
) -> Tuple[str, Dict[str, int]]:
    """Apply a batch to code only; returns (new_text, label -> count)"""
    if not replacements:
        return text, {}

    by_old = {r.old: r for r in replacements}
    counts = {r.label: 0 for r in replacements}
    pattern = _literal_pattern(by_old)

    # masked text equals the original outside comments/strings
    code = mask_code(text, css=True)
    out = []
    last = 0
    for match in pattern.finditer(code):
        replacement = by_old[match.group(0)]
        out.append(text[last:match.start()])
        out.append(replacement.new)
        counts[replacement.label] += 1
        last = match.end()
    out.append(text[last:])

    return "".join(out), counts


def count_color_literals(text: str) -> Counter:
    code = mask_code(text, css=True)
    return Counter(m.group(0) for m in COLOR_LITERAL_RE.finditer(code))


def print_literal_report(original: str, updated: str, replacements: List[Replacement]):
    olds = {r.old for r in replacements}
    before = count_color_literals(original)
    print(f"color_literals_before: {sum(before.values())}")
    print(f"color_literals_mapped_by_batch: {sum(before.get(old, 0) for old in olds)}")
    unmapped = [item for item in before.most_common(30) if item[0] not in olds]
    for literal, count in unmapped[:20]:
        print(f"unmapped_before: {literal} = {count}")

    after = count_color_literals(updated)
    print(f"color_literals_after: {sum(after.values())}")
    for literal, count in after.most_common(20):
        print(f"top_after: {literal} = {count}")


def run(args: argparse.Namespace) -> int:
    theme_path = Path(args.theme).expanduser()
    variables_dir = Path(args.variables_dir).expanduser()

    if not theme_path.is_file():
        raise FileNotFoundError(str(theme_path))
    if not variables_dir.is_dir():
        raise FileNotFoundError(str(variables_dir))

    extra = load_batch_file(args.batch_file) if args.batch_file else None
    replacements = get_batch(args.batch, extra)

    missing = sorted(vars_used_in_replacements(replacements) - variables_defined(variables_dir))
    if missing:
        raise RuntimeError(f"Batch introduces undefined vars: {', '.join(missing)}")

    original = read_text(theme_path)
    updated, counts = replace_outside_comments_and_strings(original, replacements)
    changed = updated != original

    print(f"theme: {theme_path}")
    print(f"batch: {args.batch}")
    print(f"changed: {changed}")
    for label in sorted(counts):
        print(f"{label}: {counts[label]}")
    print(f"total_replacements: {sum(counts.values())}")

    if args.report:
        print_literal_report(original, updated, replacements)

    if not args.apply:
        logger.info("[DRY RUN] Pass --apply to write changes")
        return 0

    if not changed:
        return 0

    backup = backup_file(theme_path, suffix=f".py-migration-{now_stamp()}.bak")
    write_text(theme_path, updated)
    print(f"backup: {backup}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="migrate_theme_colors",
                                     description="Replace hardcoded theme colors with CSS variables")
    parser.add_argument("--theme", required=True, help="Path to theme .css file")
    parser.add_argument("--variables-dir", required=True,
                        help="Path to variables/ directory containing .css token files")
    parser.add_argument("--batch", required=True, help="Replacement batch name")
    parser.add_argument("--batch-file", help="JSON file with extra batches")
    parser.add_argument("--apply", action="store_true", help="Write changes (default is dry-run)")
    parser.add_argument("--report", action="store_true",
                        help="Print remaining hardcoded color literals (outside comments/strings)")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)
    try:
        return run(args)
    except FileNotFoundError as e:
        logger.error(f"[ERROR] Not found: {e}")
    except (RuntimeError, ValueError, KeyError) as e:
        logger.error(f"[ERROR] {e}")
    return 1


if __name__ == "__main__":
    sys.exit(main())
