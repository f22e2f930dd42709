"""Test the `rendiff` command.

Tests for rendiff.cli:
    - Exit codes: 0 pass, 1 fail, 2 usage / I/O error
    - Threshold selection (--threshold, --band, --threshold-file)
    - Diff image output (-o) and its absence on size mismatch
    - Printed histogram and verdict

Run:
    pytest tests/test_cli.py -v -m cli
"""

import argparse

import pytest

from conftest import BLACK, WHITE, add_border, vertical_line
from rendiff import UNLIMITED, RgbaImage
from rendiff.cli import EXIT_ERROR, EXIT_FAIL, EXIT_PASS, main, parse_band
from rendiff.interop import open_image

pytestmark = pytest.mark.cli


@pytest.fixture
def pair(write_png):
    """Actual/expected PNGs differing by Δ11 in one interior pixel."""
    actual = write_png("actual.png", add_border([[[55, 0, 0, 255]]]))
    expected = write_png("expected.png", add_border([[[0, 0, 0, 255]]]))
    return str(actual), str(expected)


def test_identical_images_pass(write_png, random_image, capsys):
    image = random_image(6, 6)
    path = str(write_png("same.png", image))

    assert main([path, path]) == EXIT_PASS

    out = capsys.readouterr().out.splitlines()
    assert out == [
        "Histogram()",
        "max difference: 0",
        "result: PASS under Threshold({})",
    ]


def test_default_threshold_is_exact(pair, capsys):
    assert main(list(pair)) == EXIT_FAIL
    out = capsys.readouterr().out
    assert "Histogram(Δ11 ×1)" in out
    assert "max difference: 11" in out
    assert "result: FAIL" in out


def test_threshold_level(pair):
    assert main([*pair, "--threshold", "10"]) == EXIT_FAIL
    assert main([*pair, "-t", "11"]) == EXIT_PASS


def test_bands(pair, capsys):
    assert main([*pair, "--band", "4:unlimited", "--band", "16:1"]) == EXIT_PASS
    assert "Threshold({4: unlimited, 16: 1})" in capsys.readouterr().out
    assert main([*pair, "-b", "16:0"]) == EXIT_FAIL


def test_threshold_file(pair, tmp_path):
    config = tmp_path / "threshold.yaml"
    config.write_text("bands:\n  - {magnitude: 12, allowance: 1}\n")
    assert main([*pair, "--threshold-file", str(config)]) == EXIT_PASS

    config.write_text("level: 3\n")
    assert main([*pair, "--threshold-file", str(config)]) == EXIT_FAIL


def test_verbose_shows_equal_pixels(write_png, capsys):
    path = str(write_png("flat.png", RgbaImage.filled(4, 3, WHITE)))
    main([path, path, "--verbose"])
    assert capsys.readouterr().out.splitlines()[0] == "Histogram(Δ0 ×2)"


def test_diff_output_written(pair, tmp_path):
    out_path = tmp_path / "out" / "diff.png"
    assert main([*pair, "-o", str(out_path)]) == EXIT_FAIL

    diff_image = open_image(out_path)
    assert diff_image.dimensions == (1, 1)
    assert diff_image.pixel(0, 0) == (0, 255, 255, 255)


def test_mismatched_sizes_fail_without_diff_image(write_png, tmp_path, capsys):
    a = str(write_png("a.png", RgbaImage.filled(4, 4, BLACK)))
    b = str(write_png("b.png", RgbaImage.filled(5, 4, BLACK)))
    out_path = tmp_path / "diff.png"

    assert main([a, b, "-o", str(out_path), "-t", "254"]) == EXIT_FAIL
    assert not out_path.exists()
    assert "max difference: 255" in capsys.readouterr().out


def test_displaced_line_passes_exact(write_png):
    a = str(write_png("a.png", vertical_line(8, 8, x=3)))
    b = str(write_png("b.png", vertical_line(8, 8, x=4)))
    assert main([a, b]) == EXIT_PASS


def test_missing_input_is_error(pair, tmp_path, capsys):
    assert main([pair[0], str(tmp_path / "missing.png")]) == EXIT_ERROR
    assert "expected image" in capsys.readouterr().err


def test_undecodable_input_is_error(pair, tmp_path):
    junk = tmp_path / "junk.png"
    junk.write_bytes(b"\x00" * 32)
    assert main([str(junk), pair[1]]) == EXIT_ERROR


def test_invalid_band_is_error(pair):
    assert main([*pair, "--band", "0:5"]) == EXIT_ERROR
    assert main([*pair, "-t", "256"]) == EXIT_ERROR


def test_invalid_threshold_file_is_error(pair, tmp_path):
    config = tmp_path / "threshold.yaml"
    config.write_text("level: 3\nbands: []\n")
    assert main([*pair, "--threshold-file", str(config)]) == EXIT_ERROR
    assert main([*pair, "--threshold-file", str(tmp_path / "missing.yaml")]) == EXIT_ERROR


def test_malformed_threshold_file_is_error(pair, tmp_path, capsys):
    config = tmp_path / "threshold.yaml"
    config.write_text("level: [3\n")
    assert main([*pair, "--threshold-file", str(config)]) == EXIT_ERROR
    assert "not valid YAML" in capsys.readouterr().err


def test_unwritable_diff_output_is_error(pair, tmp_path):
    assert main([*pair, "-o", str(tmp_path / "diff.unknownext")]) == EXIT_ERROR


def test_threshold_options_are_exclusive(pair):
    with pytest.raises(SystemExit) as exc:
        main([*pair, "-t", "3", "-b", "4:1"])
    assert exc.value.code == 2


def test_parse_band():
    assert parse_band("4:unlimited") == (4, UNLIMITED)
    assert parse_band("64:3") == (64, 3)
    with pytest.raises(argparse.ArgumentTypeError):
        parse_band("64")
    with pytest.raises(argparse.ArgumentTypeError):
        parse_band("x:3")
