#!/usr/bin/env python3
"""
Diagnose save conflicts in a large plugin file

Read-only checks that usually explain why an editor refuses to save or why
a plugin stops loading after a scripted edit: git status, leftover merge
conflict markers, permissions and locks, missing section banners, brace
balance and duplicated method definitions.

Usage:
    python diagnose_save_conflict.py plugins/CriticalHit.plugin.js [--section-marker "SECTION 2: ..."]
"""

import argparse
import logging
import os
import subprocess
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from js_source import count_braces, find_duplicate_definitions
from tool_common import describe_permissions, is_file_locked, setup_logging

logger = logging.getLogger(__name__)

CONFLICT_MARKERS = ("<<<<<<<", "=======", ">>>>>>>")
DEFAULT_SECTION_MARKERS = [
    "SECTION 1:",
    "SECTION 2: CONFIGURATION & HELPERS",
    "SECTION 3: MAJOR OPERATIONS",
    "SECTION 4:",
]


@dataclass
class DiagnosisResult:
    """Everything found for one file"""
    file: str
    git_status: Optional[str] = None
    conflicts: List[Tuple[int, str, str]] = field(default_factory=list)
    permissions: str = ""
    locked: bool = False
    missing_sections: List[str] = field(default_factory=list)
    open_braces: int = 0
    close_braces: int = 0
    duplicates: Dict[str, List[int]] = field(default_factory=dict)

    @property
    def brace_diff(self) -> int:
        return self.open_braces - self.close_braces

    @property
    def issues(self) -> int:
        return (
            len(self.conflicts)
            + int(self.locked)
            + len(self.missing_sections)
            + int(self.brace_diff != 0)
            + len(self.duplicates)
        )


def check_git_status(file_path: Path) -> Optional[str]:
    """Porcelain status of the file's directory, or None if git is unavailable"""
    try:
        result = subprocess.run(
            ["git", "status", "--porcelain"],
            cwd=str(file_path.parent),
            capture_output=True,
            text=True,
            timeout=15
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.warning(f"[WARNING] Could not run git status: {e}")
        return None

    if result.returncode != 0:
        logger.warning(f"[WARNING] git status failed: {result.stderr.strip()}")
        return None
    return result.stdout.strip()


def find_conflict_markers(lines: List[str]) -> List[Tuple[int, str, str]]:
    """(line, marker, text) for merge conflict markers at the start of a line"""
    found = []
    for line_num, line in enumerate(lines, 1):
        for marker in CONFLICT_MARKERS:
            if line.startswith(marker):
                found.append((line_num, marker, line.strip()))
                break
    return found


def find_missing_sections(content: str, markers: List[str]) -> List[str]:
    return [marker for marker in markers if marker not in content]


def diagnose(file_path: Path, section_markers: Optional[List[str]] = None, run_git: bool = True) -> DiagnosisResult:
    file_path = Path(file_path)
    if not file_path.exists():
        raise FileNotFoundError(str(file_path))

    content = file_path.read_text(encoding="utf-8")
    lines = content.split("\n")

    result = DiagnosisResult(str(file_path))
    if run_git:
        result.git_status = check_git_status(file_path)
    result.conflicts = find_conflict_markers(lines)
    result.permissions = describe_permissions(file_path)
    result.locked = is_file_locked(file_path)
    result.missing_sections = find_missing_sections(
        content, DEFAULT_SECTION_MARKERS if section_markers is None else section_markers
    )
    result.open_braces, result.close_braces = count_braces(lines)
    result.duplicates = find_duplicate_definitions(lines)
    return result


def print_diagnosis(result: DiagnosisResult):
    print("=" * 60)
    print("GIT STATUS CHECK")
    print("=" * 60)
    if result.git_status is None:
        print("ℹ️  git status not available")
    elif result.git_status:
        print("Git status shows changes:")
        print(result.git_status)
    else:
        print("✅ No uncommitted changes")

    print("\n" + "=" * 60)
    print("MERGE CONFLICT CHECK")
    print("=" * 60)
    if result.conflicts:
        print(f"❌ Found {len(result.conflicts)} conflict markers:")
        for line_num, marker, text in result.conflicts[:10]:
            print(f"  Line {line_num}: {marker} - {text[:80]}")
    else:
        print("✅ No merge conflict markers found")

    print("\n" + "=" * 60)
    print("FILE PERMISSIONS CHECK")
    print("=" * 60)
    print(f"File: {result.file}")
    print(f"Permissions: {result.permissions}")
    if result.locked:
        print("❌ File appears to be locked (cannot open in append mode)")
    else:
        print("✅ File is not locked (can open in append mode)")

    print("\n" + "=" * 60)
    print("STRUCTURE CHECK")
    print("=" * 60)
    for marker in result.missing_sections:
        print(f"⚠️  Section banner not found: {marker}")
    print(f"Braces: {result.open_braces} open, {result.close_braces} close (diff: {result.brace_diff})")
    if result.brace_diff == 0:
        print("✅ Braces are balanced")
    else:
        print("❌ Braces are unbalanced")

    if result.duplicates:
        print(f"⚠️  {len(result.duplicates)} methods defined more than once:")
        for name, where in sorted(result.duplicates.items()):
            print(f"  - {name}: lines {', '.join(str(n) for n in where)}")
    else:
        print("✅ No duplicate method definitions")

    print("\n" + "=" * 60)
    if result.issues:
        print(f"[WARNING] {result.issues} potential issues found")
    else:
        print("[OK] No issues found")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Diagnose save conflicts in a plugin file")
    parser.add_argument("file", type=Path, help="Plugin file to inspect")
    parser.add_argument("--section-marker", action="append", dest="section_markers",
                        help="Section banner expected in the file (repeatable)")
    parser.add_argument("--no-git", action="store_true", help="Skip the git status check")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")

    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    if not os.path.exists(args.file):
        logger.error(f"❌ File not found: {args.file}")
        return 1

    result = diagnose(args.file, args.section_markers, run_git=not args.no_git)
    print_diagnosis(result)
    return 0


if __name__ == "__main__":
    sys.exit(main())
