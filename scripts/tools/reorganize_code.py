#!/usr/bin/env python3
"""
Code Section Reorganizer with Guardrails

Moves blocks of a plugin or theme file that are delimited by marker comments:

    // MOVE START: lifecycle_methods
    // ... code here ...
    // MOVE END: lifecycle_methods
    // ... other code ...
    // MOVE HERE: lifecycle_methods

`/* MOVE START: name */` works too, so the same markers can be used in CSS.

Guardrails:
1. Each section needs exactly one START, one END and one HERE marker
2. START must come before END
3. HERE must be outside of START..END
4. The moved text must have balanced braces and parentheses
   (strings and comments are ignored)
5. A section may contain another section entirely, never half of one
6. Sections are moved one at a time; markers are re-scanned after each move

Usage:
    python reorganize_code.py <input_file> [output_file] [--dry-run] [--validate-syntax]
"""

import argparse
import logging
import os
import re
import subprocess
import sys
import tempfile
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from js_source import delimiter_balance, find_duplicate_definitions
from tool_common import backup_file, read_text, setup_logging, write_text

logger = logging.getLogger(__name__)

MARKER_RE = re.compile(r"(?://|/\*)\s*MOVE\s+(START|END|HERE)\s*:\s*(\w+)", re.IGNORECASE)
DOC_START_RE = re.compile(r"^\s*/\*\*")


@dataclass
class Marker:
    """One MOVE marker comment"""
    name: str
    kind: str
    line: int


@dataclass
class MarkerSet:
    """START/END/HERE line numbers found for one section name"""
    name: str
    start_line: Optional[int] = None
    end_line: Optional[int] = None
    here_line: Optional[int] = None
    errors: List[str] = field(default_factory=list)


@dataclass
class Section:
    """A validated block ready to be moved"""
    name: str
    start_line: int
    end_line: int
    here_line: int
    body: List[str]

    @property
    def content(self) -> str:
        return "\n".join(self.body)


@dataclass
class ValidationResult:
    name: str
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


@dataclass
class ReorganizeReport:
    moved: List[str] = field(default_factory=list)
    skipped: Dict[str, List[str]] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    syntax_ok: Optional[bool] = None
    syntax_error: str = ""


def scan_markers(lines: List[str]) -> List[Marker]:
    """Every marker in the buffer, in line order"""
    found = []
    for i, line in enumerate(lines, 1):
        match = MARKER_RE.search(line)
        if match:
            found.append(Marker(match.group(2), match.group(1).upper(), i))
    return found


def find_all_markers(lines: List[str]) -> Dict[str, MarkerSet]:
    """
    Group markers by section name.

    A repeated START/END/HERE for the same name is recorded as an error
    and the first occurrence is kept.
    """
    markers: Dict[str, MarkerSet] = {}
    attrs = {"START": "start_line", "END": "end_line", "HERE": "here_line"}

    for marker in scan_markers(lines):
        entry = markers.setdefault(marker.name, MarkerSet(marker.name))
        attr = attrs[marker.kind]
        first = getattr(entry, attr)
        if first is not None:
            entry.errors.append(
                f"Duplicate MOVE {marker.kind} found at line {marker.line} (first at line {first})"
            )
        else:
            setattr(entry, attr, marker.line)

    return markers


def is_css_file(file_path: str) -> bool:
    return str(file_path).lower().endswith(".css")


def check_code_structure(
    body: List[str], section_name: str, first_line: int = 1, css: bool = False
) -> Tuple[List[str], List[str]]:
    """
    Structural checks on the text that would be moved.

    Unbalanced braces/parens are errors; doc comments not followed by code
    are warnings. `first_line` is the file line number of body[0]. With
    `css=True`, `//` is not a comment (e.g. `url(https://...)`).
    """
    errors = []
    warnings = []

    balance = delimiter_balance("\n".join(body), css=css)
    if balance["{}"] != 0:
        errors.append(f"Section '{section_name}': Unbalanced braces (difference: {balance['{}']})")
    if balance["()"] != 0:
        errors.append(f"Section '{section_name}': Unbalanced parentheses (difference: {balance['()']})")

    for i, line in enumerate(body):
        if not DOC_START_RE.match(line):
            continue
        close = i
        while close < len(body) and "*/" not in body[close]:
            close += 1
        following = next((l.strip() for l in body[close + 1:] if l.strip()), None)
        if following is None or following.startswith("}"):
            warnings.append(
                f"Section '{section_name}': Possible orphaned docstring at line {first_line + i}"
            )

    return errors, warnings


def validate_section(
    lines: List[str], marker_set: MarkerSet, all_markers: Dict[str, MarkerSet], css: bool = False
) -> Tuple[Optional[Section], ValidationResult]:
    """Apply every guardrail to one section of the current buffer"""
    name = marker_set.name
    result = ValidationResult(name, errors=list(marker_set.errors))

    for kind, value in (("START", marker_set.start_line),
                        ("END", marker_set.end_line),
                        ("HERE", marker_set.here_line)):
        if value is None:
            result.errors.append(f"Section '{name}': Missing MOVE {kind} marker")

    start, end, here = marker_set.start_line, marker_set.end_line, marker_set.here_line
    if start is None or end is None:
        return None, result

    if start >= end:
        result.errors.append(
            f"Section '{name}': START (line {start}) must come before END (line {end})"
        )
        return None, result

    if here is not None and start <= here <= end:
        result.errors.append(
            f"Section '{name}': MOVE HERE (line {here}) is INSIDE "
            f"START-END range ({start}-{end}). MOVE HERE must be OUTSIDE."
        )

    for other in all_markers.values():
        if other.name == name:
            continue
        inside = [
            line for line in (other.start_line, other.end_line)
            if line is not None and start < line < end
        ]
        if len(inside) == 1:
            result.errors.append(
                f"Section '{name}': overlaps section '{other.name}' "
                f"(only one of its START/END is inside lines {start}-{end})"
            )

    body = lines[start:end - 1]
    errors, warnings = check_code_structure(body, name, first_line=start + 1, css=css)
    result.errors.extend(errors)
    result.warnings.extend(warnings)

    if not result.ok:
        return None, result

    return Section(name, start, end, here, body), result


def move_section(lines: List[str], section: Section) -> List[str]:
    """
    Cut a section (with its START/END lines) and put its body where HERE was.

    The HERE marker line is replaced by the body.
    """
    s = section.start_line - 1
    e = section.end_line - 1
    h = section.here_line - 1

    if h > e:
        return lines[:s] + lines[e + 1:h] + section.body + lines[h + 1:]
    return lines[:h] + section.body + lines[h + 1:s] + lines[e + 1:]


def check_duplicates(lines: List[str]) -> List[str]:
    """Possible duplicate method definitions after reorganization"""
    warnings = []
    for name, where in find_duplicate_definitions(lines).items():
        for line_no in where[1:]:
            warnings.append(
                f"Possible duplicate method '{name}' at line {line_no} (first seen at line {where[0]})"
            )
    return warnings


def validate_syntax(content: str, file_path: str, timeout: int = 10) -> Tuple[Optional[bool], str]:
    """
    Check JavaScript syntax with `node --check`.

    Returns (None, reason) when validation is not possible.
    """
    if not file_path.endswith(".js"):
        return None, "Syntax validation not available for this file type"

    with tempfile.NamedTemporaryFile(mode="w", suffix=".js", delete=False, encoding="utf-8") as f:
        f.write(content)
        temp_path = f.name

    try:
        result = subprocess.run(
            ["node", "--check", temp_path],
            capture_output=True,
            text=True,
            timeout=timeout
        )
    except FileNotFoundError:
        return None, "node not found in PATH - syntax validation not available"
    except subprocess.TimeoutExpired:
        return False, "node --check timed out"
    finally:
        os.unlink(temp_path)

    return result.returncode == 0, result.stderr.strip()


class CodeReorganizer:
    """Validates and moves marked sections of one source file"""

    def __init__(self, file_path: str):
        self.file_path = file_path
        self.css = is_css_file(file_path)
        self.content = ""
        self.sections: Dict[str, Section] = {}
        self.results: Dict[str, ValidationResult] = {}

    def read_file(self) -> str:
        self.content = read_text(self.file_path)
        return self.content

    @property
    def lines(self) -> List[str]:
        return self.content.split("\n")

    def find_all_markers(self) -> Dict[str, MarkerSet]:
        return find_all_markers(self.lines)

    def find_sections(self) -> Dict[str, Section]:
        """Validate every section of the current content"""
        lines = self.lines
        markers = find_all_markers(lines)
        self.sections = {}
        self.results = {}

        for name, marker_set in markers.items():
            section, result = validate_section(lines, marker_set, markers, css=self.css)
            self.results[name] = result
            if section is None:
                logger.warning(f"❌ Section '{name}' FAILED validation:")
                for error in result.errors:
                    logger.warning(f"   - {error}")
                continue
            self.sections[name] = section
            logger.info(f"✅ Section '{name}' passed all guardrails")

        return self.sections

    def reorganize(self, validate_syntax_after: bool = False) -> Tuple[str, ReorganizeReport]:
        """
        Move every valid section, one at a time.

        Markers are re-scanned and the next section re-validated after each
        move because line numbers shift. A failed section does not undo
        earlier moves.
        """
        report = ReorganizeReport()
        lines = self.lines
        markers = find_all_markers(lines)
        order = sorted(
            markers,
            key=lambda n: (markers[n].start_line is None, markers[n].start_line or 0)
        )

        for name in order:
            current = find_all_markers(lines)
            marker_set = current.get(name)
            if marker_set is None:
                report.skipped[name] = [f"Section '{name}': markers disappeared during reorganization"]
                continue

            section, result = validate_section(lines, marker_set, current, css=self.css)
            report.warnings.extend(result.warnings)
            if section is None:
                report.skipped[name] = result.errors
                logger.warning(f"❌ Skipping section '{name}'")
                continue

            logger.info(f"🔄 Processing section '{name}'...")
            logger.info(f"   - Removing from original location (lines {section.start_line}-{section.end_line})")
            logger.info(f"   - Inserting at MOVE HERE (line {section.here_line})")
            lines = move_section(lines, section)
            report.moved.append(name)
            logger.info(f"✅ Section '{name}' moved successfully")

        content = "\n".join(lines)
        if not self.css:
            report.warnings.extend(check_duplicates(lines))

        if validate_syntax_after:
            logger.info("🔍 Validating syntax...")
            report.syntax_ok, report.syntax_error = validate_syntax(content, self.file_path)
            if report.syntax_ok is None:
                logger.info(f"[INFO] {report.syntax_error}")
            elif report.syntax_ok:
                logger.info("✅ Syntax validation passed")
            else:
                logger.error(f"❌ Syntax validation failed:\n   {report.syntax_error}")
                report.warnings.append("Syntax validation failed - manual review required")

        return content, report

    def write_file(self, content: str, output_path: str):
        write_text(output_path, content)


def print_markers(markers: Dict[str, MarkerSet]):
    print(f"🔍 Found {len(markers)} sections with markers:")
    for name, marker_set in markers.items():
        print(f"   - {name}:")
        print(f"     START: line {marker_set.start_line}")
        print(f"     END: line {marker_set.end_line}")
        print(f"     HERE: line {marker_set.here_line}")


def print_summary(report: ReorganizeReport):
    print("\n📊 Reorganization Summary:")
    print(f"   ✅ Successfully moved: {len(report.moved)} sections")
    for name in report.moved:
        print(f"      - {name}")
    if report.skipped:
        print(f"   ❌ Failed to move: {len(report.skipped)} sections")
        for name, errors in report.skipped.items():
            print(f"      - {name}")
            for error in errors:
                print(f"          {error}")
    if report.warnings:
        print(f"\n⚠️  Total warnings: {len(report.warnings)}")
        for warning in report.warnings:
            print(f"   - {warning}")
        print("   Review warnings above and verify code manually")


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Reorganize code sections marked with MOVE START/END/HERE (with guardrails)"
    )
    parser.add_argument("input_file", help="Input file path")
    parser.add_argument("output_file", nargs="?", help="Output file path (defaults to the input file)")
    parser.add_argument("--dry-run", action="store_true", help="Show what would be done without writing")
    parser.add_argument("--validate-syntax", action="store_true",
                        help="Validate syntax after reorganization (requires node for .js files)")
    parser.add_argument("--no-backup", action="store_true", help="Do not write a .bak copy before overwriting")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--log-file", help="Also write the log to this file")

    args = parser.parse_args(argv)
    setup_logging(args.verbose, args.log_file)

    if not os.path.exists(args.input_file):
        logger.error(f"[ERROR] Input file not found: {args.input_file}")
        return 1

    output_file = args.output_file or args.input_file

    reorganizer = CodeReorganizer(args.input_file)
    reorganizer.read_file()

    markers = reorganizer.find_all_markers()
    if not markers:
        logger.error("❌ No MOVE markers found")
        return 1

    print_markers(markers)

    print("\n" + "=" * 60)
    print("VALIDATING SECTIONS (Guardrails)")
    print("=" * 60)
    sections = reorganizer.find_sections()

    if not sections:
        logger.error("❌ No valid sections found after validation - nothing written")
        return 1

    print(f"\n✅ Found {len(sections)} valid sections:")
    for name, section in sections.items():
        print(f"  - {name}: lines {section.start_line}-{section.end_line} ({len(section.body)} lines)")
        if args.dry_run:
            preview = section.content[:100].replace("\n", "\\n")
            print(f"    Preview: {preview}...")

    if args.dry_run:
        print("\n[DRY RUN] No changes written")
        return 0

    print("\n" + "=" * 60)
    print("REORGANIZING (One section at a time)")
    print("=" * 60)
    new_content, report = reorganizer.reorganize(validate_syntax_after=args.validate_syntax)
    print_summary(report)

    if not report.moved:
        logger.error("❌ No sections were moved - nothing written")
        return 1

    if output_file == args.input_file and not args.no_backup:
        backup_file(args.input_file)

    reorganizer.write_file(new_content, output_file)
    logger.info(f"✅ Output written to: {output_file}")

    if report.warnings:
        print(f"\n⚠️  Note: {len(report.warnings)} warnings were generated")
        print("   Please review the output file manually to ensure correctness")

    return 0


if __name__ == "__main__":
    sys.exit(main())
