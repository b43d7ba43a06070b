import io
import json
import os
import tempfile

from click.testing import CliRunner

from piweave import formulas
from piweave.cli import _listen_for_enter, main
from piweave.errors import EvaluationFailure
from piweave.formulas import Formula


class _Recorder:
    def __init__(self):
        self.cancelled = 0

    def cancel(self):
        self.cancelled += 1


def test_calculate_txt():
    runner = CliRunner()
    res = runner.invoke(main, ["calculate", "--n", "1000", "--workers", "2", "--chunk-size", "100", "--executor", "thread", "--no-listen"])
    assert res.exit_code == 0, res.output
    lines = res.output.splitlines()
    assert lines[0].startswith("PI = 3.14")
    assert lines[0].endswith("with n->1000")
    assert lines[1].startswith("Time took: ")
    assert lines[2].startswith("Error: ")


def test_calculate_zero_json():
    runner = CliRunner()
    res = runner.invoke(main, ["calculate", "--n", "0", "--executor", "thread", "--format", "json", "--no-listen"])
    assert res.exit_code == 0, res.output
    payload = json.loads(res.output)
    assert payload["approximation"] == 4.0
    assert payload["reached_bound"] == 0
    assert payload["cancelled"] is False


def test_calculate_writes_out_file():
    runner = CliRunner()
    with tempfile.TemporaryDirectory() as td:
        path = os.path.join(td, "pi.csv")
        res = runner.invoke(main, ["calculate", "--n", "50", "--executor", "thread", "--format", "csv", "--out", path, "--no-listen"])
        assert res.exit_code == 0, res.output
        assert res.output.strip() == path
        with open(path, "r", encoding="utf-8") as f:
            assert f.readline().startswith("formula,n,reached_bound")


def test_calculate_rejects_unknown_formula():
    res = CliRunner().invoke(main, ["calculate", "--type", "chudnovsky", "--no-listen"])
    assert res.exit_code != 0
    assert "unknown formula" in res.output


def test_calculate_rejects_negative_n():
    res = CliRunner().invoke(main, ["calculate", "--n=-1", "--no-listen"])
    assert res.exit_code != 0
    assert "--n must be >= 0" in res.output


def test_formulas_command():
    res = CliRunner().invoke(main, ["formulas"])
    assert res.exit_code == 0
    assert res.output.split() == ["leibniz"]


def test_listener_cancels_on_enter():
    acc = _Recorder()
    _listen_for_enter(io.StringIO("abc\n\nmore\n"), acc)
    assert acc.cancelled == 1


def test_listener_stops_at_end_of_input():
    acc = _Recorder()
    _listen_for_enter(io.StringIO("abc\n"), acc)
    assert acc.cancelled == 0


def test_calculate_reports_evaluation_failure(monkeypatch):
    def boom(start, end):
        raise ZeroDivisionError("bad range")

    monkeypatch.setitem(formulas._RANGE_SUMS, Formula.LEIBNIZ, boom)
    res = CliRunner().invoke(main, ["calculate", "--n", "10", "--executor", "thread", "--no-listen"])
    assert res.exit_code == 1
    assert not isinstance(res.exception, EvaluationFailure)
    assert "Error while calculating Pi. Reason: bad range" in res.output
