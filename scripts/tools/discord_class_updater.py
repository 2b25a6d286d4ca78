#!/usr/bin/env python3
"""
Discord Class Updater for BetterDiscord Themes

Detects Discord CSS classes in a theme whose hash no longer exists in the
current DiscordClasses mapping and rewrites them to the current hash.

Usage:
    python discord_class_updater.py themes/SoloLeveling-ClearVision.theme.css [--dry-run] [--report]
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, Optional, Set, Tuple

import requests

from discord_classes import (
    DEFAULT_TIMEOUT,
    ClassMap,
    extract_theme_classes,
    fetch_class_map,
    load_class_map,
    replace_class,
    reverse_mapping,
    semantic_name,
)
from tool_common import backup_file, setup_logging

logger = logging.getLogger(__name__)


class DiscordClassUpdater:
    """Handles Discord class detection and updates in one theme"""

    def __init__(self, theme_path: Path, classes_json_path: Optional[Path] = None,
                 timeout: float = DEFAULT_TIMEOUT):
        self.theme_path = Path(theme_path)
        self.classes_json_path = Path(classes_json_path) if classes_json_path else None
        self.timeout = timeout
        self.discord_classes: ClassMap = {}
        self.reverse_mapping: Dict[str, str] = {}

    def fetch_discord_classes(self) -> ClassMap:
        if self.classes_json_path and self.classes_json_path.exists():
            return load_class_map(self.classes_json_path)
        return fetch_class_map(timeout=self.timeout)

    def build_class_mappings(self):
        """Build forward and reverse class mappings"""
        self.discord_classes = self.fetch_discord_classes()
        self.reverse_mapping = reverse_mapping(self.discord_classes)

        logger.info(f"Loaded {len(self.discord_classes)} module mappings")
        logger.info(f"Total class mappings: {len(self.reverse_mapping)}")

    def find_broken_classes(self, theme_classes: Set[str]) -> Dict[str, Tuple[str, str]]:
        """
        Classes used by the theme that are missing from the current mapping.

        Returns old_class -> (semantic_name, new_class). When several modules
        share a semantic name the first module id in sorted order wins.
        """
        broken = {}

        for old_class in sorted(theme_classes):
            if old_class in self.reverse_mapping:
                continue

            semantic = semantic_name(old_class)
            for _, class_names in sorted(self.discord_classes.items()):
                new_class = class_names.get(semantic)
                if new_class and new_class != old_class:
                    broken[old_class] = (semantic, new_class)
                    break
            else:
                logger.debug(f"No current class for '{old_class}' ({semantic})")

        return broken

    def update_theme(self, dry_run: bool = False) -> Tuple[str, Dict[str, Tuple[str, str]], int]:
        """
        Rewrite broken classes in the theme.

        Returns (updated_content, broken_classes, replacement_count).
        """
        content = self.theme_path.read_text(encoding="utf-8")

        theme_classes = extract_theme_classes(content)
        logger.info(f"Found {len(theme_classes)} Discord classes in theme")

        broken = self.find_broken_classes(theme_classes)
        if not broken:
            logger.info("✅ All classes are up to date!")
            return content, {}, 0

        logger.warning(f"⚠️  Found {len(broken)} broken classes")

        updated_content = content
        total = 0
        for old_class, (semantic, new_class) in broken.items():
            updated_content, count = replace_class(updated_content, old_class, new_class)
            total += count
            print(f"  {old_class} → {new_class} ({semantic}, {count} replacements)")

        if dry_run:
            logger.info("🔍 DRY RUN - No changes saved")
            return updated_content, broken, total

        if updated_content != content:
            backup_file(self.theme_path)
            self.theme_path.write_text(updated_content, encoding="utf-8")
            logger.info(f"✅ Theme updated: {self.theme_path.name}")

        return updated_content, broken, total

    def generate_report(self, broken: Dict[str, Tuple[str, str]]) -> str:
        """Report of class updates grouped by semantic name"""
        if not broken:
            return "All classes are up to date!"

        report = ["Discord Class Update Report", "=" * 50, ""]
        report.append(f"Total broken classes: {len(broken)}\n")

        by_semantic: Dict[str, list] = {}
        for old_class, (semantic, new_class) in broken.items():
            by_semantic.setdefault(semantic, []).append((old_class, new_class))

        report.append("Grouped by semantic name:")
        for semantic, updates in sorted(by_semantic.items()):
            report.append(f"\n{semantic}:")
            for old_class, new_class in updates:
                old_hash = old_class.split("_")[-1]
                new_hash = new_class.split("_")[-1]
                report.append(f"  {old_hash} → {new_hash}")

        return "\n".join(report)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Update broken Discord classes in BetterDiscord themes")
    parser.add_argument("theme", type=Path, help="Path to theme CSS file")
    parser.add_argument("--classes-json", type=Path,
                        help="Path to local discordclasses.json (downloads if not provided)")
    parser.add_argument("--dry-run", action="store_true", help="Show what would be updated without making changes")
    parser.add_argument("--report", action="store_true", help="Generate detailed update report")
    parser.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT, help="HTTP timeout in seconds")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")

    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    if not args.theme.exists():
        logger.error(f"[ERROR] Theme file not found: {args.theme}")
        return 1

    updater = DiscordClassUpdater(args.theme, args.classes_json, timeout=args.timeout)

    try:
        updater.build_class_mappings()
    except (requests.RequestException, ValueError, OSError) as e:
        logger.error(f"[ERROR] Could not load Discord classes: {e}")
        return 1

    _, broken, total = updater.update_theme(dry_run=args.dry_run)
    print(f"\nTotal replacements: {total}")

    if args.report and broken:
        print("\n" + updater.generate_report(broken))

    return 0


if __name__ == "__main__":
    sys.exit(main())
