#!/usr/bin/env python3
"""
Batch regex rewrites for plugin files

Rule sets:
    forloops       index/for-of loops -> Array.from / filter / direct addition
    debug-console  tagged console.log('... [TAG]' -> this.debugConsole(...)

Dry-run by default; --apply writes after a .bak backup.

Limits of the forloops rewrites (review the diff before --apply):
    - The accumulator rewrite adds the bound directly. A loop whose bound is
      negative runs zero times; the rewrite subtracts instead.
    - push(...Array.from(...)) spreads every element as an argument, which
      overflows the call stack for very large bounds.

Usage:
    python optimize_patterns.py plugins/SoloLevelingStats.plugin.js --rules forloops [--apply]
"""

import argparse
import logging
import os
import re
import sys
from dataclasses import dataclass
from typing import Dict, List, Tuple

from tool_common import backup_file, read_text, setup_logging, write_text

logger = logging.getLogger(__name__)

# for (let i = 0; i < count; i++) {
_INDEX_LOOP = r"for \(let (\w+) = 0; \1 < ([\w.]+); \1\+\+\) \{"


@dataclass(frozen=True)
class RewriteRule:
    label: str
    pattern: str
    replacement: str

    @property
    def regex(self):
        return re.compile(self.pattern)


FORLOOP_RULES = [
    RewriteRule(
        "Accumulator loop → direct addition",
        _INDEX_LOOP + r"\s*([\w.\[\]]+) = \(\3 \|\| 0\) \+ 1;\s*\}",
        r"\3 = (\3 || 0) + \2;",
    ),
    RewriteRule(
        "Repeated call → Array.from().forEach()",
        _INDEX_LOOP + r"\s*([\w.]+\(\));\s*\}",
        r"Array.from({ length: \2 }).forEach((_, \1) => \3);",
    ),
    RewriteRule(
        "Push loop → Array.from() generator",
        _INDEX_LOOP + r"\s*([\w.]+)\.push\(([^;{}]+)\);\s*\}",
        r"\3.push(...Array.from({ length: \2 }, (_, \1) => \4));",
    ),
    RewriteRule(
        "Filter-push loop → .filter()",
        r"for \(const (\w+) of ([\w.]+)\) \{\s*if \(([^{}]+)\) \{\s*([\w.]+)\.push\(\1\);\s*\}\s*\}",
        r"\4.push(...Array.from(\2).filter((\1) => \3));",
    ),
]

DEBUG_CONSOLE_RULES = [
    RewriteRule(
        "Tagged console.log → this.debugConsole",
        r"console\.log\((['\"`])([^'\"`\n]*?\[[A-Z][A-Z _-]*\])",
        r"this.debugConsole(\1\2",
    ),
]

RULE_SETS = {
    "forloops": FORLOOP_RULES,
    "debug-console": DEBUG_CONSOLE_RULES,
}


def get_rules(names: List[str]) -> List[RewriteRule]:
    rules = []
    for name in names:
        if name not in RULE_SETS:
            raise ValueError(f"Unknown rule set: {name}. Available: {', '.join(sorted(RULE_SETS))}")
        rules.extend(RULE_SETS[name])
    return rules


def apply_rules(content: str, rules: List[RewriteRule]) -> Tuple[str, Dict[str, int]]:
    """Apply each rule in order; returns (new_content, label -> substitutions)"""
    counts = {}
    for rule in rules:
        content, count = rule.regex.subn(rule.replacement, content)
        counts[rule.label] = count
        if count:
            logger.info(f"✅ Optimized: {rule.label} ({count})")
        else:
            logger.debug(f"No match: {rule.label}")
    return content, counts


def optimize_file(filename: str, rule_names: List[str], apply: bool = False) -> int:
    """Rewrite one file; returns the number of substitutions"""
    content = read_text(filename)
    new_content, counts = apply_rules(content, get_rules(rule_names))
    changes = sum(counts.values())

    if changes == 0:
        print("\n⚠️  No patterns matched - may need manual optimization")
        return 0

    print(f"\n✅ {changes} optimizations found")
    if not apply:
        print("[DRY RUN] Pass --apply to write changes")
        return changes

    backup_file(filename)
    write_text(filename, new_content)
    print(f"✅ Saved to {filename}")
    return changes


def main(argv=None):
    parser = argparse.ArgumentParser(description="Apply regex rewrite rules to a plugin file")
    parser.add_argument("file", help="Plugin file to rewrite")
    parser.add_argument("--rules", nargs="+", default=["forloops"], choices=sorted(RULE_SETS),
                        help="Rule sets to apply")
    parser.add_argument("--apply", action="store_true", help="Write changes (default is dry-run)")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")

    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    if not os.path.exists(args.file):
        logger.error(f"[ERROR] File not found: {args.file}")
        return 1

    print("=" * 70)
    print(f"OPTIMIZING: {', '.join(args.rules)}")
    print("=" * 70)
    optimize_file(args.file, args.rules, args.apply)
    return 0


if __name__ == "__main__":
    sys.exit(main())
