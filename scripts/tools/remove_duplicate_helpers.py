#!/usr/bin/env python3
"""
Remove duplicate helper functions from a later section of a plugin file

Helpers that were moved into an earlier section (e.g. SECTION 2) but still
have a stale copy further down are deleted from everything after the
banner line, together with their JSDoc comments.

Usage:
    python remove_duplicate_helpers.py plugins/CriticalHit.plugin.js \
        --functions normalizeMessageData,findMessagesInDOM [--dry-run]
"""

import argparse
import logging
import os
import sys
from typing import List, Optional, Tuple

from js_source import count_braces, find_function_definition
from tool_common import backup_file, setup_logging

logger = logging.getLogger(__name__)

DEFAULT_AFTER_MARKER = "SECTION 3: MAJOR OPERATIONS"


def find_banner(lines: List[str], marker: str, start: int = 0) -> Optional[int]:
    """Index of the first line containing the banner text"""
    for i in range(start, len(lines)):
        if marker in lines[i]:
            return i
    return None


def load_function_names(functions: Optional[str], functions_file: Optional[str]) -> List[str]:
    """Names from a comma-separated list and/or a one-per-line file"""
    names = []
    if functions:
        names.extend(name.strip() for name in functions.split(",") if name.strip())
    if functions_file:
        with open(functions_file, 'r', encoding='utf-8') as f:
            for line in f:
                line = line.split("#", 1)[0].strip()
                if line:
                    names.append(line)

    # keep order, drop repeats
    return list(dict.fromkeys(names))


def remove_functions(
    lines: List[str], names: List[str], region_start: int, region_end: Optional[int] = None
) -> Tuple[List[str], List[str], int]:
    """
    Delete each named function found inside [region_start, region_end).

    Names are processed in reverse order. Returns (new_lines, removed_names,
    total_lines_removed).
    """
    lines = list(lines)
    removed = []
    total_removed = 0
    end = region_end

    for func_name in reversed(names):
        func_def = find_function_definition(lines, func_name, region_start, end)
        if func_def is None:
            logger.info(f"Function {func_name} not found after line {region_start + 1}")
            continue

        start_idx, end_idx = func_def
        if start_idx < region_start:
            # only its doc comment reaches above the banner; keep the banner
            start_idx = region_start + 1

        removed_lines = end_idx - start_idx
        logger.info(f"Removing {func_name} (lines {start_idx + 1}-{end_idx})")
        del lines[start_idx:end_idx]
        removed.append(func_name)
        total_removed += removed_lines
        if end is not None:
            end -= removed_lines

    return lines, removed, total_removed


def remove_duplicate_functions(
    file_path: str,
    names: List[str],
    after_marker: str = DEFAULT_AFTER_MARKER,
    before_marker: Optional[str] = None,
    dry_run: bool = False,
) -> bool:
    """Remove duplicate helper functions after the banner line; True if the file changed"""
    with open(file_path, 'r', encoding='utf-8') as f:
        lines = f.readlines()

    region_start = find_banner(lines, after_marker)
    if region_start is None:
        logger.error(f"[ERROR] Could not find banner '{after_marker}'")
        return False

    region_end = None
    if before_marker:
        region_end = find_banner(lines, before_marker, region_start + 1)
        if region_end is None:
            logger.warning(f"[WARNING] End banner '{before_marker}' not found - scanning to end of file")

    logger.info(f"Found '{after_marker}' at line {region_start + 1}")

    open_braces, close_braces = count_braces(lines)
    print(f"Braces before: {open_braces} open, {close_braces} close (diff: {open_braces - close_braces})")

    new_lines, removed, total_removed = remove_functions(lines, names, region_start, region_end)

    if not removed:
        print("\nNo duplicate functions found to remove.")
        return False

    open_braces, close_braces = count_braces(new_lines)
    brace_diff = open_braces - close_braces
    print(f"Braces after: {open_braces} open, {close_braces} close (diff: {brace_diff})")

    print(f"\n✅ Removed {len(removed)} duplicate functions:")
    for func in removed:
        print(f"  - {func}")
    print(f"\nTotal lines removed: {total_removed}")

    if brace_diff != 0:
        print(f"⚠️  Braces unbalanced (diff: {brace_diff}) - manual inspection needed")

    if dry_run:
        print("\n[DRY RUN] No changes written")
        return True

    backup_file(file_path)
    with open(file_path, 'w', encoding='utf-8') as f:
        f.writelines(new_lines)
    logger.info(f"[OK] Updated: {file_path}")
    return True


def main(argv=None):
    parser = argparse.ArgumentParser(description="Remove duplicate helper functions after a section banner")
    parser.add_argument("file", help="Plugin file to clean")
    parser.add_argument("--functions", help="Comma-separated function names")
    parser.add_argument("--functions-file", help="File with one function name per line")
    parser.add_argument("--after-marker", default=DEFAULT_AFTER_MARKER,
                        help="Banner text; only definitions after it are removed")
    parser.add_argument("--before-marker", help="Optional banner text that ends the region")
    parser.add_argument("--dry-run", action="store_true", help="Report without writing")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")

    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    if not os.path.exists(args.file):
        logger.error(f"[ERROR] File not found: {args.file}")
        return 1

    try:
        names = load_function_names(args.functions, args.functions_file)
    except OSError as e:
        logger.error(f"[ERROR] Could not read function list: {e}")
        return 1

    if not names:
        logger.error("[ERROR] No function names given (use --functions or --functions-file)")
        return 1

    print("Removing duplicate helper functions...")
    print("=" * 60)

    if remove_duplicate_functions(args.file, names, args.after_marker, args.before_marker, args.dry_run):
        print("\n✅ Cleanup complete!")
        return 0

    print("\n⚠️  No changes made.")
    return 1


if __name__ == "__main__":
    sys.exit(main())
