"""Tests for duplicate helper removal"""

from remove_duplicate_helpers import (
    find_banner,
    load_function_names,
    main,
    remove_duplicate_functions,
)

PLUGIN = """class P {
  // SECTION 2: CONFIGURATION & HELPERS
  /**
   * Normalize
   */
  normalize(x) {
    return x;
  }

  // SECTION 3: MAJOR OPERATIONS
  run() {
    return 1;
  }

  /**
   * Normalize
   */
  normalize(x) {
    return "{" + x;
  }

  finish() {
  }
}
"""


def write_plugin(tmp_path, text=PLUGIN):
    path = tmp_path / "CriticalHit.plugin.js"
    path.write_text(text, encoding="utf-8")
    return path


def test_find_banner():
    lines = PLUGIN.splitlines()
    assert find_banner(lines, "SECTION 3: MAJOR OPERATIONS") == 9
    assert find_banner(lines, "SECTION 9") is None


def test_removes_only_the_copy_after_the_banner(tmp_path):
    path = write_plugin(tmp_path)

    assert remove_duplicate_functions(str(path), ["normalize"]) is True

    content = path.read_text(encoding="utf-8")
    assert content.count("normalize(x) {") == 1
    assert 'return "{" + x;' not in content
    assert "run() {" in content
    assert "finish() {" in content
    assert content.count("{") == content.count("}")


def test_backup_matches_original(tmp_path):
    path = write_plugin(tmp_path)
    remove_duplicate_functions(str(path), ["normalize"])
    assert (tmp_path / "CriticalHit.plugin.js.bak").read_text(encoding="utf-8") == PLUGIN


def test_dry_run_does_not_write(tmp_path):
    path = write_plugin(tmp_path)
    assert remove_duplicate_functions(str(path), ["normalize"], dry_run=True) is True
    assert path.read_text(encoding="utf-8") == PLUGIN


def test_missing_banner(tmp_path):
    path = write_plugin(tmp_path)
    assert remove_duplicate_functions(str(path), ["normalize"], after_marker="SECTION 7") is False


def test_nothing_to_remove(tmp_path):
    path = write_plugin(tmp_path)
    assert remove_duplicate_functions(str(path), ["doesNotExist"]) is False
    assert not (tmp_path / "CriticalHit.plugin.js.bak").exists()


def test_load_function_names(tmp_path):
    names_file = tmp_path / "names.txt"
    names_file.write_text("# helpers\nalpha\n\nbeta  # moved\n", encoding="utf-8")
    assert load_function_names("gamma, alpha", str(names_file)) == ["gamma", "alpha", "beta"]


def test_main_exit_codes(tmp_path):
    path = write_plugin(tmp_path)
    assert main([str(path)]) == 1
    assert main([str(path), "--functions", "normalize"]) == 0
    assert main([str(tmp_path / "missing.js"), "--functions", "x"]) == 1
