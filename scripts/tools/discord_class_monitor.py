#!/usr/bin/env python3
"""
Automated Discord Class Monitor & Updater

Monitors the DiscordClasses mapping for changes and updates BetterDiscord
themes. Can be run manually or scheduled via cron/launchd.

- Fetches the latest DiscordClasses JSON
- Compares it with the cached copy (SHA-256 of the canonical JSON first)
- Extracts changed classes and rewrites them in every monitored theme
- Saves a timestamped report under the cache directory

Usage:
    python discord_class_monitor.py --check --themes my.theme.css
    python discord_class_monitor.py --update --themes a.theme.css b.theme.css
    python discord_class_monitor.py --setup-cron

The cache directory is ~/.cache/discord-class-monitor unless --cache-dir or
DISCORD_CLASS_MONITOR_CACHE say otherwise.
"""

import argparse
import hashlib
import json
import logging
import os
import subprocess
import sys
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import requests

from discord_classes import DEFAULT_TIMEOUT, DISCORDCLASSES_URL, ClassMap, fetch_class_map, replace_class
from tool_common import backup_file, setup_logging

logger = logging.getLogger(__name__)

CACHE_ENV_VAR = "DISCORD_CLASS_MONITOR_CACHE"
DEFAULT_CACHE_DIR = Path.home() / ".cache" / "discord-class-monitor"


def default_cache_dir() -> Path:
    override = os.environ.get(CACHE_ENV_VAR)
    return Path(override).expanduser() if override else DEFAULT_CACHE_DIR


def class_map_hash(data: ClassMap) -> str:
    data_str = json.dumps(data, sort_keys=True)
    return hashlib.sha256(data_str.encode("utf-8")).hexdigest()


class DiscordClassMonitor:
    """Monitors Discord class changes and updates themes"""

    def __init__(self, theme_paths: Optional[List[Path]] = None, cache_dir: Optional[Path] = None,
                 url: str = DISCORDCLASSES_URL, timeout: float = DEFAULT_TIMEOUT):
        self.theme_paths = [Path(p) for p in (theme_paths or [])]
        self.cache_dir = Path(cache_dir) if cache_dir else default_cache_dir()
        self.cache_file = self.cache_dir / "discordclasses.json"
        self.hash_file = self.cache_dir / "classes.sha256"
        self.report_dir = self.cache_dir / "reports"
        self.url = url
        self.timeout = timeout
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    def fetch_latest_classes(self) -> ClassMap:
        return fetch_class_map(self.url, self.timeout)

    def get_cached_classes(self) -> ClassMap:
        if not self.cache_file.exists():
            return {}
        with open(self.cache_file, 'r', encoding='utf-8') as f:
            return json.load(f)

    def get_cached_hash(self) -> Optional[str]:
        if not self.hash_file.exists():
            return None
        return self.hash_file.read_text(encoding="utf-8").strip()

    def save_cache(self, data: ClassMap):
        with open(self.cache_file, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2)
        self.hash_file.write_text(class_map_hash(data), encoding="utf-8")
        logger.debug(f"Cache saved to {self.cache_file}")

    def detect_changes(self, persist: bool = True) -> Tuple[bool, Dict]:
        """
        Compare the latest mapping with the cache.

        Returns (has_changes, {"added": ..., "removed": ..., "modified": ...}).
        The first run only seeds the cache. With persist=False the cache is
        left untouched, so a later update still sees the same changes.
        """
        latest = self.fetch_latest_classes()
        cached = self.get_cached_classes()

        if not cached:
            logger.info("No cache found - this is the first run")
            if persist:
                self.save_cache(latest)
            return False, {}

        if self.get_cached_hash() == class_map_hash(latest):
            return False, {}

        changes = {"added": {}, "removed": {}, "modified": {}}
        latest_modules = set(latest)
        cached_modules = set(cached)

        for module_id in latest_modules - cached_modules:
            changes["added"][module_id] = latest[module_id]

        for module_id in cached_modules - latest_modules:
            changes["removed"][module_id] = cached[module_id]

        for module_id in latest_modules & cached_modules:
            if latest[module_id] != cached[module_id]:
                changes["modified"][module_id] = {
                    "old": cached[module_id],
                    "new": latest[module_id],
                }

        # The hash file may be stale even when the modules compare equal
        if persist:
            self.save_cache(latest)

        has_changes = bool(changes["added"] or changes["removed"] or changes["modified"])
        return has_changes, changes

    def extract_class_changes(self, changes: Dict) -> List[Dict]:
        """Individual semantic-name hash changes inside modified modules"""
        class_changes = []

        for module_id, data in sorted(changes.get("modified", {}).items()):
            old_classes = data["old"]
            new_classes = data["new"]

            for semantic, old_hashed in old_classes.items():
                new_hashed = new_classes.get(semantic)
                if new_hashed and new_hashed != old_hashed:
                    class_changes.append({
                        "semantic": semantic,
                        "old": old_hashed,
                        "new": new_hashed,
                        "module": module_id,
                    })

        return class_changes

    def update_themes(self, class_changes: List[Dict]) -> Dict[str, int]:
        """Apply class changes to every monitored theme; theme name -> replacements"""
        results = {}

        for theme_path in self.theme_paths:
            if not theme_path.exists():
                logger.warning(f"⚠️  Theme not found: {theme_path}")
                continue

            content = theme_path.read_text(encoding="utf-8")
            updated_content = content
            update_count = 0

            for change in class_changes:
                updated_content, count = replace_class(updated_content, change["old"], change["new"])
                update_count += count

            if update_count > 0:
                backup_file(theme_path)
                theme_path.write_text(updated_content, encoding="utf-8")
                logger.info(f"✅ Updated {theme_path.name}: {update_count} changes")
            else:
                logger.info(f"ℹ️  No updates needed for {theme_path.name}")
            results[theme_path.name] = update_count

        return results

    def generate_report(self, changes: Dict, theme_results: Optional[Dict[str, int]] = None) -> str:
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")

        report = [
            "=" * 70,
            "Discord Class Change Report",
            "=" * 70,
            f"Generated: {timestamp}",
            "",
        ]

        if changes.get("added"):
            report.append(f"\n📦 New Modules: {len(changes['added'])}")

        if changes.get("removed"):
            report.append(f"🗑️  Removed Modules: {len(changes['removed'])}")

        if changes.get("modified"):
            report.append(f"✏️  Modified Modules: {len(changes['modified'])}")

            class_changes = self.extract_class_changes(changes)
            if class_changes:
                report.append(f"\n🔄 Class Changes: {len(class_changes)}")
                report.append("")
                for change in class_changes:
                    report.append(f"  {change['semantic']}:")
                    report.append(f"    {change['old']} → {change['new']}")

        if theme_results:
            report.append("\n📝 Theme Updates:")
            report.append("")
            for theme_name, count in theme_results.items():
                if count > 0:
                    report.append(f"  ✅ {theme_name}: {count} updates")
                else:
                    report.append(f"  ℹ️  {theme_name}: No updates needed")

        report.append("\n" + "=" * 70)
        return "\n".join(report)

    def save_report(self, report: str) -> Path:
        self.report_dir.mkdir(parents=True, exist_ok=True)
        report_file = self.report_dir / f"update_{datetime.now().strftime('%Y%m%d_%H%M%S')}.txt"
        report_file.write_text(report, encoding="utf-8")
        logger.info(f"💾 Report saved to {report_file}")
        return report_file

    def notify(self, message: str):
        """Desktop notification (macOS only)"""
        if sys.platform != "darwin":
            return
        try:
            subprocess.run(
                ["osascript", "-e", f'display notification "{message}" with title "Discord Class Monitor"'],
                check=True,
            )
        except (OSError, subprocess.CalledProcessError) as e:
            logger.warning(f"Failed to send notification: {e}")

    def run_check(self) -> bool:
        """Report upstream changes without touching themes or the cache"""
        has_changes, changes = self.detect_changes(persist=False)

        if not has_changes:
            logger.info("✅ No changes detected")
            return False

        logger.warning("⚠️  Changes detected!")
        print(self.generate_report(changes))

        class_changes = self.extract_class_changes(changes)
        if class_changes:
            self.notify(f"Discord class changes detected: {len(class_changes)} classes updated")

        return True

    def run_update(self) -> Dict[str, int]:
        """Detect changes and apply them; theme name -> replacements"""
        has_changes, changes = self.detect_changes()

        if not has_changes:
            logger.info("✅ No changes detected - themes are up to date")
            return {}

        class_changes = self.extract_class_changes(changes)
        if not class_changes:
            logger.info("ℹ️  Changes detected but no class updates needed")
            return {}

        logger.info(f"🔄 Applying {len(class_changes)} class changes...")
        theme_results = self.update_themes(class_changes)

        report = self.generate_report(changes, theme_results)
        print(report)
        self.save_report(report)

        self.notify(f"Themes updated: {sum(theme_results.values())} changes applied")
        return theme_results


def cron_entry(script_path: Optional[Path] = None) -> str:
    """Daily 3 AM crontab line running --update"""
    script_path = script_path or Path(__file__).resolve()
    return f"0 3 * * * {sys.executable} {script_path} --update >> ~/discord-class-monitor.log 2>&1"


def setup_cron():
    entry = cron_entry()
    print("Add this line to your crontab (crontab -e):")
    print(entry)
    print("\nOr run this command:")
    print(f'(crontab -l 2>/dev/null; echo "{entry}") | crontab -')


def main(argv=None):
    parser = argparse.ArgumentParser(description="Monitor and update Discord classes in BetterDiscord themes")
    parser.add_argument("--check", action="store_true", help="Check for updates without applying them")
    parser.add_argument("--update", action="store_true", help="Check for updates and apply them")
    parser.add_argument("--setup-cron", action="store_true",
                        help="Show instructions for setting up automated monitoring")
    parser.add_argument("--themes", nargs="+", type=Path, default=[], help="Paths to themes to monitor")
    parser.add_argument("--cache-dir", type=Path, help=f"Cache directory (default: ${CACHE_ENV_VAR} or {DEFAULT_CACHE_DIR})")
    parser.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT, help="HTTP timeout in seconds")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")

    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    if args.setup_cron:
        setup_cron()
        return 0

    if not args.check and not args.update:
        parser.print_help()
        return 0

    if args.update and not args.themes:
        logger.error("[ERROR] --update needs at least one theme (--themes ...)")
        return 1

    monitor = DiscordClassMonitor(args.themes, args.cache_dir, timeout=args.timeout)

    try:
        if args.check:
            monitor.run_check()
        else:
            monitor.run_update()
    except (requests.RequestException, ValueError, OSError) as e:
        logger.error(f"[ERROR] Monitor run failed: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
