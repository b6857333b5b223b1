from __future__ import annotations

import pytest
from click.testing import CliRunner

from kvlog.cli import cli


@pytest.fixture
def run(tmp_path, db_path):
    runner = CliRunner()

    def _run(*args, options=()):
        return runner.invoke(cli, ["--config", str(tmp_path), *options, str(db_path), *args])

    return _run


def test_set_then_get(run, db_path):
    assert run("set", "greeting", '"hello"').exit_code == 0
    result = run("get", "greeting")
    assert result.exit_code == 0
    assert result.output == '"hello"\n'
    assert db_path.read_text() == 'greeting,"hello"\n'


def test_set_structured_value(run, db_path):
    assert run("set", "cfg", '{"n": 1, "tags": ["a", "b"]}').exit_code == 0
    assert db_path.read_text() == 'cfg,{"n":1,"tags":["a","b"]}\n'
    assert run("get", "cfg").output == '{"n":1,"tags":["a","b"]}\n'


def test_get_absent_prints_empty_line(run):
    result = run("get", "missing")
    assert result.exit_code == 0
    assert result.output == "\n"


def test_unset(run, db_path):
    run("set", "k", "42")
    assert run("unset", "k").exit_code == 0
    assert run("get", "k").output == "\n"
    assert db_path.read_text() == "k,42\nk,null\n"


def test_has(run):
    run("set", "k", "true")
    assert run("has", "k").output == "true\n"
    assert run("has", "other").output == "false\n"


def test_dump(run):
    run("set", "a", "1")
    run("set", "b", '"x,y"')
    run("unset", "a")
    run("set", "c", "[1]")
    result = run("dump")
    assert result.exit_code == 0
    assert result.output.splitlines() == ['b,"x,y"', "c,[1]"]


def test_invalid_key_exits_nonzero(run, db_path):
    result = run("set", "bad,key", '"x"')
    assert result.exit_code == 1
    assert "Key `bad,key` contains invalid characters" in result.output
    assert db_path.read_text() == ""


def test_invalid_value_literal(run, db_path):
    result = run("set", "k", "not json")
    assert result.exit_code == 1
    assert "Invalid value literal" in result.output
    assert db_path.read_text() == ""


def test_null_literal_is_refused(run):
    result = run("set", "k", "null")
    assert result.exit_code == 1
    assert "Unable to write record" in result.output


def test_malformed_log_exits_nonzero(run, db_path):
    db_path.write_text("garbage\n")
    result = run("get", "k")
    assert result.exit_code == 1
    assert "Invalid data at line 0: `garbage`" in result.output


def test_repair_tail_option(run, db_path):
    db_path.write_bytes(b"a,1\nb")
    assert run("get", "a").exit_code == 1
    result = run("get", "a", options=["--repair-tail"])
    assert result.exit_code == 0
    assert result.output == "1\n"
    assert db_path.read_bytes() == b"a,1\n"


def test_repair_tail_from_config(tmp_path, run, db_path):
    (tmp_path / "kvlog.toml").write_text("[store]\nrepair_tail = true\n")
    db_path.write_bytes(b"a,1\nb,")
    result = run("dump")
    assert result.exit_code == 0
    assert result.output == "a,1\n"


def test_unknown_codec_in_config(tmp_path, run):
    (tmp_path / "kvlog.toml").write_text('[store]\ncodec = "nope"\n')
    result = run("get", "k")
    assert result.exit_code == 1
    assert "Unknown codec: nope" in result.output
