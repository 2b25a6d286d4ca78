"""Tests for the DiscordClasses helpers, updater and monitor"""

import json

import pytest
import requests

import discord_classes
from discord_class_monitor import DiscordClassMonitor, class_map_hash, cron_entry, default_cache_dir
from discord_class_updater import DiscordClassUpdater
from discord_class_updater import main as updater_main
from discord_classes import extract_theme_classes, fetch_class_map, replace_class, reverse_mapping, semantic_name

CLASSES_V1 = {
    "1001": {"container": "container_111111", "title": "title_abcdef"},
    "1002": {"wrapper": "wrapper_aaaaaa"},
}
CLASSES_V2 = {
    "1001": {"container": "container_222222", "title": "title_abcdef"},
    "1002": {"wrapper": "wrapper_aaaaaa"},
    "1003": {"panel": "panel_bbbbbb"},
}

THEME = """.container_111111 { color: red; }
[class*="container_111111"] > .title_abcdef { margin: 0; }
.container_1111112 {}
.unknown_999999 {}
"""


class FakeResponse:
    def __init__(self, payload, status=200):
        self.payload = payload
        self.status = status

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status} error")

    def json(self):
        return self.payload


@pytest.fixture
def classes_json(tmp_path):
    path = tmp_path / "discordclasses.json"
    path.write_text(json.dumps(CLASSES_V2), encoding="utf-8")
    return path


@pytest.fixture
def theme(tmp_path):
    path = tmp_path / "SoloLeveling.theme.css"
    path.write_text(THEME, encoding="utf-8")
    return path


def test_extract_theme_classes():
    assert extract_theme_classes(THEME) == {"container_111111", "title_abcdef", "unknown_999999"}


def test_reverse_mapping_and_semantic_name():
    assert reverse_mapping(CLASSES_V1)["wrapper_aaaaaa"] == "wrapper"
    assert semantic_name("container_111111") == "container"


def test_replace_class_leaves_longer_names_alone():
    content, count = replace_class(THEME, "container_111111", "container_222222")
    assert count == 2
    assert ".container_222222 {" in content
    assert '[class*="container_222222"]' in content
    assert ".container_1111112 {}" in content


def test_fetch_class_map_uses_one_get(monkeypatch):
    calls = []

    def fake_get(url, timeout):
        calls.append((url, timeout))
        return FakeResponse(CLASSES_V1)

    monkeypatch.setattr(discord_classes.requests, "get", fake_get)
    assert fetch_class_map(timeout=5) == CLASSES_V1
    assert calls == [(discord_classes.DISCORDCLASSES_URL, 5)]


def test_fetch_class_map_raises_on_http_error(monkeypatch):
    monkeypatch.setattr(discord_classes.requests, "get", lambda url, timeout: FakeResponse({}, status=404))
    with pytest.raises(requests.HTTPError):
        fetch_class_map()


def test_updater_finds_and_fixes_broken_classes(theme, classes_json):
    updater = DiscordClassUpdater(theme, classes_json)
    updater.build_class_mappings()

    content, broken, total = updater.update_theme()

    assert broken == {"container_111111": ("container", "container_222222")}
    assert total == 2
    assert theme.read_text(encoding="utf-8") == content
    assert (theme.parent / "SoloLeveling.theme.css.bak").read_text(encoding="utf-8") == THEME


def test_updater_second_run_is_a_no_op(theme, classes_json):
    updater = DiscordClassUpdater(theme, classes_json)
    updater.build_class_mappings()
    updater.update_theme()
    first = theme.read_text(encoding="utf-8")

    _, broken, total = updater.update_theme()
    assert broken == {}
    assert total == 0
    assert theme.read_text(encoding="utf-8") == first


def test_updater_dry_run(theme, classes_json):
    updater = DiscordClassUpdater(theme, classes_json)
    updater.build_class_mappings()
    _, broken, total = updater.update_theme(dry_run=True)
    assert total == 2
    assert theme.read_text(encoding="utf-8") == THEME
    assert not (theme.parent / "SoloLeveling.theme.css.bak").exists()


def test_updater_report_groups_by_semantic_name():
    updater = DiscordClassUpdater("unused.theme.css")
    report = updater.generate_report({"container_111111": ("container", "container_222222")})
    assert "container:" in report
    assert "111111 → 222222" in report


def test_updater_main(theme, classes_json, tmp_path):
    assert updater_main([str(theme), "--classes-json", str(classes_json), "--report"]) == 0
    assert ".container_222222" in theme.read_text(encoding="utf-8")
    assert updater_main([str(tmp_path / "missing.theme.css")]) == 1


def test_updater_main_network_failure(theme, monkeypatch):
    def offline(url, timeout):
        raise requests.ConnectionError("offline")

    monkeypatch.setattr(discord_classes.requests, "get", offline)
    assert updater_main([str(theme)]) == 1
    assert theme.read_text(encoding="utf-8") == THEME


def test_class_map_hash_ignores_key_order():
    reordered = {"1002": {"wrapper": "wrapper_aaaaaa"},
                 "1001": {"title": "title_abcdef", "container": "container_111111"}}
    assert class_map_hash(reordered) == class_map_hash(CLASSES_V1)


def test_default_cache_dir_env_override(monkeypatch, tmp_path):
    monkeypatch.setenv("DISCORD_CLASS_MONITOR_CACHE", str(tmp_path / "cache"))
    assert default_cache_dir() == tmp_path / "cache"


def make_monitor(tmp_path, theme_paths, upstream):
    monitor = DiscordClassMonitor(theme_paths, cache_dir=tmp_path / "cache")
    monitor.fetch_latest_classes = lambda: upstream["data"]
    return monitor


def test_monitor_first_run_seeds_cache(tmp_path):
    upstream = {"data": CLASSES_V1}
    monitor = make_monitor(tmp_path, [], upstream)

    assert monitor.detect_changes() == (False, {})
    assert monitor.get_cached_classes() == CLASSES_V1
    assert monitor.get_cached_hash() == class_map_hash(CLASSES_V1)


def test_monitor_detects_module_changes(tmp_path):
    upstream = {"data": CLASSES_V1}
    monitor = make_monitor(tmp_path, [], upstream)
    monitor.detect_changes()

    upstream["data"] = CLASSES_V2
    has_changes, changes = monitor.detect_changes()

    assert has_changes
    assert list(changes["added"]) == ["1003"]
    assert changes["removed"] == {}
    assert list(changes["modified"]) == ["1001"]
    assert monitor.extract_class_changes(changes) == [
        {"semantic": "container", "old": "container_111111", "new": "container_222222", "module": "1001"}
    ]


def test_monitor_update_is_idempotent(tmp_path, theme):
    upstream = {"data": CLASSES_V1}
    monitor = make_monitor(tmp_path, [theme, tmp_path / "missing.theme.css"], upstream)
    monitor.detect_changes()

    upstream["data"] = CLASSES_V2
    assert monitor.run_update() == {"SoloLeveling.theme.css": 2}
    updated = theme.read_text(encoding="utf-8")
    assert ".container_222222" in updated
    assert (theme.parent / "SoloLeveling.theme.css.bak").read_text(encoding="utf-8") == THEME
    assert len(list((tmp_path / "cache" / "reports").glob("update_*.txt"))) == 1

    assert monitor.run_update() == {}
    assert theme.read_text(encoding="utf-8") == updated


def test_monitor_reapplying_changes_replaces_nothing(tmp_path, theme):
    monitor = make_monitor(tmp_path, [theme], {"data": CLASSES_V2})
    changes = [{"semantic": "container", "old": "container_111111", "new": "container_222222", "module": "1001"}]
    assert monitor.update_themes(changes) == {"SoloLeveling.theme.css": 2}
    assert monitor.update_themes(changes) == {"SoloLeveling.theme.css": 0}


def test_monitor_report_lists_changes(tmp_path):
    monitor = make_monitor(tmp_path, [], {"data": CLASSES_V2})
    changes = {"added": {"1003": {}}, "removed": {},
               "modified": {"1001": {"old": CLASSES_V1["1001"], "new": CLASSES_V2["1001"]}}}
    report = monitor.generate_report(changes, {"a.theme.css": 2, "b.theme.css": 0})
    assert "New Modules: 1" in report
    assert "container_111111 → container_222222" in report
    assert "a.theme.css: 2 updates" in report
    assert "b.theme.css: No updates needed" in report


def test_cron_entry_runs_update(tmp_path):
    entry = cron_entry(tmp_path / "discord_class_monitor.py")
    assert entry.startswith("0 3 * * * ")
    assert entry.endswith("--update >> ~/discord-class-monitor.log 2>&1")


def test_check_leaves_changes_for_update(tmp_path, theme):
    upstream = {"data": CLASSES_V1}
    monitor = make_monitor(tmp_path, [theme], upstream)
    monitor.detect_changes()

    upstream["data"] = CLASSES_V2
    assert monitor.run_check() is True
    assert monitor.get_cached_classes() == CLASSES_V1
    assert monitor.get_cached_hash() == class_map_hash(CLASSES_V1)

    assert monitor.run_update() == {"SoloLeveling.theme.css": 2}
    assert ".container_222222 {" in theme.read_text(encoding="utf-8")


def test_check_on_first_run_does_not_seed_cache(tmp_path):
    monitor = make_monitor(tmp_path, [], {"data": CLASSES_V1})
    assert monitor.run_check() is False
    assert not monitor.cache_file.exists()


def test_updater_prefers_lowest_module_id(tmp_path):
    classes_json = tmp_path / "classes.json"
    classes_json.write_text(json.dumps({
        "2000": {"container": "container_bbbbbb"},
        "1000": {"container": "container_aaaaaa"},
    }), encoding="utf-8")

    updater = DiscordClassUpdater(tmp_path / "unused.theme.css", classes_json)
    updater.build_class_mappings()
    assert updater.find_broken_classes({"container_111111"}) == {
        "container_111111": ("container", "container_aaaaaa"),
    }
