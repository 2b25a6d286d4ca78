"""Tests for the hardcoded-color to CSS-variable migration"""

import json

import pytest

from migrate_theme_colors import (
    Replacement,
    batch_black_alphas,
    count_color_literals,
    get_batch,
    load_batch_file,
    main,
    replace_outside_comments_and_strings,
    variables_defined,
    vars_used_in_replacements,
)

THEME = """/* rgba(0, 0, 0, 0.2) is the old shadow */
.a { background: rgba(0, 0, 0, 0.2); content: "rgba(0, 0, 0, 0.2)"; }
.b { color: #8b5cf6; border-color: #8b5cf6aa; }
.c { background: rgba(0, 0, 0, 0.28); }
"""


@pytest.fixture
def variables_dir(tmp_path):
    directory = tmp_path / "variables"
    directory.mkdir()
    lines = [":root {"]
    for replacement in batch_black_alphas():
        name = replacement.new[len("var("):-1]
        lines.append(f"  {name}: {replacement.old};")
    lines.append("}")
    (directory / "colors.css").write_text("\n".join(lines) + "\n", encoding="utf-8")
    return directory


@pytest.fixture
def theme(tmp_path):
    path = tmp_path / "SoloLeveling.theme.css"
    path.write_text(THEME, encoding="utf-8")
    return path


def test_replacement_skips_comments_and_strings():
    batch = [Replacement("rgba(0, 0, 0, 0.2)", "var(--shadow)", "shadow")]
    updated, counts = replace_outside_comments_and_strings(THEME, batch)
    assert counts == {"shadow": 1}
    assert "/* rgba(0, 0, 0, 0.2) is the old shadow */" in updated
    assert 'content: "rgba(0, 0, 0, 0.2)"' in updated
    assert "background: var(--shadow);" in updated


def test_hex_replacement_does_not_touch_longer_hex():
    batch = [Replacement("#8b5cf6", "var(--accent)", "accent")]
    updated, counts = replace_outside_comments_and_strings(THEME, batch)
    assert counts == {"accent": 1}
    assert "color: var(--accent);" in updated
    assert "border-color: #8b5cf6aa;" in updated


def test_count_color_literals_ignores_comments_and_strings():
    counts = count_color_literals(THEME)
    assert counts["rgba(0, 0, 0, 0.2)"] == 1
    assert counts["#8b5cf6"] == 1
    assert counts["#8b5cf6aa"] == 1
    assert counts["rgba(0, 0, 0, 0.28)"] == 1


def test_variables_defined(variables_dir):
    defined = variables_defined(variables_dir)
    assert "--sl-color-black-alpha-20" in defined
    assert "--sl-color-black-alpha-60" in defined


def test_vars_used_in_replacements():
    used = vars_used_in_replacements([Replacement("#fff", "var(--a, var(--b))", "x")])
    assert used == {"--a", "--b"}


def test_get_batch_unknown():
    with pytest.raises(ValueError):
        get_batch("nope")


def test_full_batch_contains_every_builtin():
    assert set(batch_black_alphas()) <= set(get_batch("full"))


def test_load_batch_file(tmp_path):
    path = tmp_path / "batches.json"
    path.write_text(json.dumps({"mine": [{"old": "#123456", "new": "var(--mine)", "label": "mine"}]}),
                    encoding="utf-8")
    batches = load_batch_file(path)
    assert get_batch("mine", batches) == [Replacement("#123456", "var(--mine)", "mine")]


def test_dry_run_does_not_write(theme, variables_dir):
    assert main(["--theme", str(theme), "--variables-dir", str(variables_dir),
                 "--batch", "black_alphas", "--report"]) == 0
    assert theme.read_text(encoding="utf-8") == THEME


def test_apply_writes_with_backup(theme, variables_dir, tmp_path):
    assert main(["--theme", str(theme), "--variables-dir", str(variables_dir),
                 "--batch", "black_alphas", "--apply"]) == 0

    updated = theme.read_text(encoding="utf-8")
    assert "background: var(--sl-color-black-alpha-20);" in updated
    assert "background: var(--sl-color-black-alpha-28);" in updated
    backups = list(tmp_path.glob("SoloLeveling.theme.css.py-migration-*.bak"))
    assert len(backups) == 1
    assert backups[0].read_text(encoding="utf-8") == THEME


def test_undefined_variables_abort(theme, variables_dir):
    assert main(["--theme", str(theme), "--variables-dir", str(variables_dir),
                 "--batch", "text_whites", "--apply"]) == 1
    assert theme.read_text(encoding="utf-8") == THEME


def test_missing_theme(tmp_path, variables_dir):
    assert main(["--theme", str(tmp_path / "nope.css"), "--variables-dir", str(variables_dir),
                 "--batch", "black_alphas"]) == 1
