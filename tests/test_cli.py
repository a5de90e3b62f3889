"""Tests for the ips-patcher command line."""

import pytest
from click.testing import CliRunner

from conftest import LITERAL_PATCH, TRUNCATE_PATCH
from ips_patcher import logging_config
from ips_patcher.cli import main


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def files(tmp_path):
    patch = tmp_path / "fix.ips"
    patch.write_bytes(TRUNCATE_PATCH)
    target = tmp_path / "game.bin"
    target.write_bytes(bytes(64))
    return patch, target


def test_info_lists_records(runner, files):
    patch, _ = files
    result = runner.invoke(main, ["info", "--patch", str(patch)])
    assert result.exit_code == 0, result.output
    assert "Records: 1" in result.output
    assert "@0x000010 DATA   size=3" in result.output
    assert "Truncate: 100 bytes" in result.output


def test_info_yaml(runner, files):
    patch, _ = files
    result = runner.invoke(main, ["info", "--patch", str(patch), "--yaml"])
    assert result.exit_code == 0, result.output
    assert "data: AA BB CC" in result.output
    assert "truncate: 100" in result.output


def test_info_rejects_bad_patch(runner, tmp_path):
    bad = tmp_path / "bad.ips"
    bad.write_bytes(b"NOTAPATCH")
    result = runner.invoke(main, ["info", "--patch", str(bad)])
    assert result.exit_code == 1
    assert "Invalid header" in result.output


def test_apply_to_copy_then_check(runner, files, tmp_path):
    patch, target = files
    out = tmp_path / "out" / "patched.bin"
    result = runner.invoke(main, ["apply", "--patch", str(patch), "--target", str(target), "--out", str(out)])
    assert result.exit_code == 0, result.output
    assert "Result: 100 bytes" in result.output
    assert target.read_bytes() == bytes(64)
    assert out.read_bytes()[16:19] == b"\xAA\xBB\xCC"

    result = runner.invoke(main, ["check", "--patch", str(patch), "--target", str(out)])
    assert result.exit_code == 0, result.output
    assert "OK" in result.output


def test_apply_in_place_and_skip(runner, tmp_path):
    patch = tmp_path / "fix.ips"
    patch.write_bytes(LITERAL_PATCH)
    target = tmp_path / "game.bin"
    target.write_bytes(bytes(32))
    result = runner.invoke(main, ["apply", "--patch", str(patch), "--target", str(target)])
    assert result.exit_code == 0, result.output
    result = runner.invoke(main, ["apply", "--patch", str(patch), "--target", str(target), "--skip-if-applied"])
    assert result.exit_code == 0, result.output
    assert "Already applied" in result.output


def test_check_reports_mismatch(runner, files):
    patch, target = files
    result = runner.invoke(main, ["check", "--patch", str(patch), "--target", str(target)])
    assert result.exit_code == 1
    assert "Not applied" in result.output


def test_build_from_manifest(runner, tmp_path):
    manifest = tmp_path / "patch.yaml"
    manifest.write_text("truncate: 100\nrecords:\n  - offset: 0x10\n    data: AA BB CC\n", encoding="utf-8")
    out = tmp_path / "built.ips"
    result = runner.invoke(main, ["--verbose", "build", "--manifest", str(manifest), "--out", str(out)])
    assert result.exit_code == 0, result.output
    assert out.read_bytes() == TRUNCATE_PATCH


def test_build_reports_manifest_error(runner, tmp_path):
    manifest = tmp_path / "patch.yaml"
    manifest.write_text("records:\n  - data: AA\n", encoding="utf-8")
    result = runner.invoke(main, ["build", "--manifest", str(manifest), "--out", str(tmp_path / "x.ips")])
    assert result.exit_code == 1
    assert "missing 'offset'" in result.output


def test_apply_out_same_as_target(runner, files):
    patch, target = files
    result = runner.invoke(main, ["apply", "--patch", str(patch), "--target", str(target), "--out", str(target)])
    assert result.exit_code == 2
    assert "must differ from --target" in result.output
    assert target.read_bytes() == bytes(64)


def test_apply_copy_failure_is_reported(runner, files):
    patch, target = files
    # parent of --out is a regular file, so the copy cannot create it
    out = target / "patched.bin"
    result = runner.invoke(main, ["apply", "--patch", str(patch), "--target", str(target), "--out", str(out)])
    assert result.exit_code == 1
    assert "Cannot copy" in result.output
    assert not isinstance(result.exception, OSError)


def test_verbose_traces_records(runner, tmp_path, caplog):
    manifest = tmp_path / "patch.yaml"
    manifest.write_text("records:\n  - offset: 0x10\n    rle: {count: 4, fill: 0xFF}\n", encoding="utf-8")
    result = runner.invoke(main, ["--verbose", "build", "--manifest", str(manifest), "--out", str(tmp_path / "rle.ips")])
    assert result.exit_code == 0, result.output
    assert "Wrote record @0x000010 rle count=4" in caplog.text
    logging_config.set_verbose(False)
