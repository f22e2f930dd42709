"""Test the golden suite runner.

Tests for rendiff.golden:
    - report.yaml contents (status, histogram, hashes, summary)
    - Per-case diff images under output_dir
    - Missing inputs and unwritable diff images become "error" cases,
      other cases still run
    - --case filtering, --output-dir override
    - Exit codes: 0 all pass, 1 any fail/error, 2 invalid or malformed suite

Suite layout used here:
    tmp/suite.yaml
    tmp/renders/{same,shifted,changed}-{actual,exp}.png

Run:
    pytest tests/test_golden.py -v
"""

import json

import pytest

from conftest import add_border, vertical_line
from rendiff import validators
from rendiff.golden import main, run_suite
from rendiff.interop import open_image
from rendiff.utils import fs, hashing

SUITE = """\
schema: golden_suite.v1
root: renders
output_dir: out
threshold: 0
logging:
  log_level: INFO
  log_file: out/golden.log
cases:
  - {name: same, actual: same-actual.png, expected: same-exp.png}
  - {name: shifted, actual: shifted-actual.png, expected: shifted-exp.png}
  - name: changed
    actual: changed-actual.png
    expected: changed-exp.png
    threshold:
      bands:
        - {magnitude: 4, allowance: unlimited}
        - {magnitude: 10, allowance: 1}
"""


@pytest.fixture
def suite_path(tmp_path, write_png, random_image):
    same = random_image(6, 5)
    write_png("renders/same-actual.png", same)
    write_png("renders/same-exp.png", same)
    write_png("renders/shifted-actual.png", vertical_line(8, 8, x=3))
    write_png("renders/shifted-exp.png", vertical_line(8, 8, x=4))
    write_png("renders/changed-actual.png", add_border([[[55, 0, 0, 255]]]))
    write_png("renders/changed-exp.png", add_border([[[0, 0, 0, 255]]]))

    path = tmp_path / "suite.yaml"
    path.write_text(SUITE)
    return path


def test_report_contents(suite_path, tmp_path, capsys):
    assert main([str(suite_path)]) == 1

    report = fs.load_yaml(tmp_path / "out" / "report.yaml")
    assert report['summary'] == {'total': 3, 'passed': 2, 'failed': 1, 'errors': 0}

    same = report['cases']['same']
    assert same['status'] == 'pass'
    assert same['max_difference'] == 0
    assert same['histogram'] == {}
    assert same['compared_pixels'] == 4 * 3
    assert same['inputs']['actual']['pixels_sha256'] == same['inputs']['expected']['pixels_sha256']
    assert same['inputs']['actual']['file_sha256'] == hashing.sha256_file(
        tmp_path / "renders" / "same-actual.png"
    )

    changed = report['cases']['changed']
    assert changed['status'] == 'fail'
    assert changed['max_difference'] == 11
    assert changed['histogram'] == {11: 1}
    assert changed['threshold'] == "Threshold({4: unlimited, 10: 1})"

    out = capsys.readouterr().out
    assert "PASS  same: max difference 0" in out
    assert "FAIL  changed: max difference 11" in out


def test_diff_images_written(suite_path, tmp_path):
    main([str(suite_path)])
    out_dir = tmp_path / "out"
    for name in ("same", "shifted", "changed"):
        assert (out_dir / f"{name}-diff.png").exists()
    assert open_image(out_dir / "changed-diff.png").pixel(0, 0) == (0, 255, 255, 255)


def test_log_file_has_case_context(suite_path, tmp_path):
    main([str(suite_path)])
    records = [
        json.loads(line)
        for line in (tmp_path / "out" / "golden.log").read_text().splitlines()
    ]
    changed = [r for r in records if r.get('case') == 'changed']
    assert changed
    assert any(r['lvl'] == 'WARNING' and r['msg'].startswith("FAIL") for r in changed)
    assert all(r.get('app') == 'golden' for r in records)


def test_missing_input_is_error_case(suite_path, tmp_path, capsys):
    (tmp_path / "renders" / "same-exp.png").unlink()

    assert main([str(suite_path), "--case", "same", "--case", "shifted"]) == 1

    report = fs.load_yaml(tmp_path / "out" / "report.yaml")
    assert set(report['cases']) == {'same', 'shifted'}
    assert report['cases']['same']['status'] == 'error'
    assert "not found" in report['cases']['same']['error']
    assert report['cases']['shifted']['status'] == 'pass'
    assert report['summary']['errors'] == 1
    assert "ERROR same:" in capsys.readouterr().out


def test_all_pass(suite_path, tmp_path):
    assert main([str(suite_path), "--case", "same", "--case", "shifted"]) == 0


def test_output_dir_override(suite_path, tmp_path):
    override = tmp_path / "elsewhere"
    assert main([str(suite_path), "--case", "same", "--output-dir", str(override)]) == 0
    assert (override / "report.yaml").exists()
    assert (override / "same-diff.png").exists()


def test_size_mismatch_case(tmp_path, write_png, random_image):
    write_png("renders/a.png", random_image(4, 4))
    write_png("renders/b.png", random_image(5, 4))
    path = tmp_path / "suite.yaml"
    path.write_text(
        "schema: golden_suite.v1\n"
        "root: renders\n"
        "output_dir: out\n"
        "threshold: 255\n"
        "cases:\n"
        "  - {name: sizes, actual: a.png, expected: b.png}\n"
    )
    results = run_suite(validators.load_golden_suite(path))

    assert len(results) == 1
    result = results[0]
    # no_bigger_than(255) accepts even maximally different images
    assert result.status == 'pass'
    assert result.size_mismatch
    assert result.diff_image is None
    assert result.histogram == {255: 20}
    assert not (tmp_path / "out" / "sizes-diff.png").exists()


def test_unknown_case_is_usage_error(suite_path):
    assert main([str(suite_path), "--case", "nope"]) == 2


def test_invalid_suite_is_usage_error(tmp_path):
    assert main([str(tmp_path / "missing.yaml")]) == 2

    path = tmp_path / "suite.yaml"
    path.write_text("schema: golden_suite.v1\ncases: []\n")
    assert main([str(path)]) == 2


def test_malformed_suite_yaml_is_usage_error(tmp_path, capsys):
    path = tmp_path / "suite.yaml"
    path.write_text("schema: golden_suite.v1\ncases: [{name: x\n")
    assert main([str(path)]) == 2
    assert "not valid YAML" in capsys.readouterr().err


def test_unwritable_diff_image_is_error_case(suite_path, tmp_path, capsys):
    # A directory where the diff image should go makes the rename fail
    blocker = tmp_path / "out" / "changed-diff.png"
    blocker.mkdir(parents=True)
    (blocker / "keep").write_text("x")

    assert main([str(suite_path)]) == 1

    report = fs.load_yaml(tmp_path / "out" / "report.yaml")
    assert report['summary'] == {'total': 3, 'passed': 2, 'failed': 0, 'errors': 1}
    changed = report['cases']['changed']
    assert changed['status'] == 'error'
    assert "changed-diff.png" in changed['error']
    assert changed['max_difference'] == 11
    assert changed['diff_image'] is None
    assert not (tmp_path / "out" / "changed-diff.png.tmp").exists()
    assert "ERROR changed:" in capsys.readouterr().out
