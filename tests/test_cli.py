"""Tests for the irm command line driver."""

import json

import pytest
from typer.testing import CliRunner

from irmetrics import __version__
from irmetrics.cli import app
from irmetrics.config import DEFAULT_METRICS

runner = CliRunner()

QRELS = """\
q1 0 a 1
q1 0 c 2
q2 0 y 1
"""

RESULTS = """\
q1 Q0 a 1 9.0 runA
q1 Q0 b 2 8.0 runA
q1 Q0 c 3 7.0 runA
q1 Q0 d 4 6.0 runA
q2 Q0 x 1 9.5 runA
q2 Q0 y 2 9.1 runA
q1 Q0 a 1 3.0 runB
q1 Q0 b 2 2.0 runB
"""


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def files(tmp_path):
    qrels = tmp_path / "qrels.txt"
    qrels.write_text(QRELS)
    results = tmp_path / "results.txt"
    results.write_text(RESULTS)
    return str(qrels), str(results)


def test_selected_metrics(files):
    result = runner.invoke(app, [*files, "-m", "P@2", "-m", "P@4"])
    assert result.exit_code == 0, result.output
    assert result.stdout.splitlines() == [
        "runA\tQ0\tP@2\t0.5",
        "runA\tQ0\tP@4\t0.375",
        "runB\tQ0\tP@2\t0.5",
        "runB\tQ0\tP@4\t0.25",
    ]


def test_default_metrics(files):
    result = runner.invoke(app, list(files))
    assert result.exit_code == 0, result.output
    lines = result.stdout.splitlines()
    assert len(lines) == 2 * len(DEFAULT_METRICS)
    assert [line.split("\t")[2] for line in lines[: len(DEFAULT_METRICS)]] == DEFAULT_METRICS
    assert lines[0] == "runA\tQ0\tP@10\t0.15"


def test_float_format(files):
    result = runner.invoke(app, [*files, "-m", "RBP:50", "--float-format", ".3f"])
    assert result.exit_code == 0, result.output
    assert result.stdout.splitlines()[0] == "runA\tQ0\tRBP:50\t0.438"


def test_invalid_float_format(files):
    result = runner.invoke(app, [*files, "--float-format", "not-a-format"])
    assert result.exit_code == 1
    assert "Invalid float format" in result.output


def test_table_output(files):
    result = runner.invoke(app, [*files, "-m", "P@2", "--table"])
    assert result.exit_code == 0, result.output
    assert "Evaluation Results" in result.stdout
    assert "runA" in result.stdout
    assert "runB" in result.stdout


def test_unrecognized_metric(files):
    result = runner.invoke(app, [*files, "-m", "MAP"])
    assert result.exit_code == 1
    assert "Unrecognized metric: MAP" in result.output


def test_rbp_out_of_range(files):
    result = runner.invoke(app, [*files, "-m", "RBP:150"])
    assert result.exit_code == 1
    assert "p must be in [0, 100]%" in result.output


def test_malformed_results_file(tmp_path):
    qrels = tmp_path / "qrels.txt"
    qrels.write_text(QRELS)
    results = tmp_path / "results.txt"
    results.write_text("q1 Q0 a 1 9.0 runA\nq1 Q0 b 2 8.0\n")
    result = runner.invoke(app, [str(qrels), str(results)])
    assert result.exit_code == 1
    assert "too few fields" in result.output
    assert "runA" not in result.stdout


def test_malformed_qrels_file(tmp_path, files):
    qrels = tmp_path / "bad_qrels.txt"
    qrels.write_text("q1 0 a high\n")
    result = runner.invoke(app, [str(qrels), files[1]])
    assert result.exit_code == 1
    assert "cannot parse relevance" in result.output


def test_non_utf8_document_ids(tmp_path):
    qrels = tmp_path / "qrels.txt"
    qrels.write_bytes(b"q1 0 caf\xe9 1\n")
    results = tmp_path / "results.txt"
    results.write_bytes(b"q1 Q0 caf\xe9 1 9.0 runA\n")
    result = runner.invoke(app, [str(qrels), str(results), "-m", "P@1"])
    assert result.exit_code == 0, result.output
    assert result.stdout.splitlines() == ["runA\tQ0\tP@1\t1"]


def test_missing_file(tmp_path, files):
    result = runner.invoke(app, [str(tmp_path / "nope.txt"), files[1]])
    assert result.exit_code == 2


def test_missing_arguments():
    result = runner.invoke(app, ["-m", "P@1"])
    assert result.exit_code == 2
    assert "QRELS" in result.output


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.stdout
    assert "MIT License" in result.stdout


def test_rc_file_in_working_directory(files, tmp_path):
    (tmp_path / ".irmrc").write_text('metrics = ["P@1"]\nfloat-format = ".2f"\n')
    result = runner.invoke(app, list(files))
    assert result.exit_code == 0, result.output
    assert result.stdout.splitlines() == [
        "runA\tQ0\tP@1\t0.50",
        "runB\tQ0\tP@1\t1.00",
    ]


def test_command_line_overrides_rc(files, tmp_path):
    (tmp_path / ".irmrc").write_text('metrics = ["P@1"]\n')
    result = runner.invoke(app, [*files, "-m", "P@2"])
    assert result.exit_code == 0, result.output
    assert [line.split("\t")[2] for line in result.stdout.splitlines()] == ["P@2", "P@2"]


def test_show_config(files, tmp_path):
    rc = tmp_path / "extra.toml"
    rc.write_text('table = true\n')
    result = runner.invoke(app, [*files, "--config", str(rc), "-m", "P@3", "--show-config"])
    assert result.exit_code == 0, result.output
    snapshot = json.loads(result.stdout)
    assert snapshot["metrics"] == ["P@3"]
    assert snapshot["output"]["table"] is True


def test_show_config_without_files():
    result = runner.invoke(app, ["--show-config", "-m", "P@3"])
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout)["metrics"] == ["P@3"]


def test_empty_metric_list_in_rc_falls_back_to_defaults(files, tmp_path):
    (tmp_path / ".irmrc").write_text("metrics = []\n")
    result = runner.invoke(app, list(files))
    assert result.exit_code == 0, result.output
    assert len(result.stdout.splitlines()) == 2 * len(DEFAULT_METRICS)
