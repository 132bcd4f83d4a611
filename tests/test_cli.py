import json

import pytest
from typer.testing import CliRunner

from hypervol.domain.errors import RetrievalError
from hypervol.presentation import cli

from helpers import AAA, BBB, ScriptedRetrieval, page, transfer_log, tx

runner = CliRunner()
HEIGHT = 15_000_250


@pytest.fixture
def scripted(monkeypatch):
    """Swap the HTTP adapter for canned pages; returns a setter."""
    holder = {}

    def install(pages, height=HEIGHT):
        holder["retrieval"] = ScriptedRetrieval(pages, height=height)
        monkeypatch.setattr(cli, "HttpxHypersync", lambda *a, **kw: holder["retrieval"])
        return holder["retrieval"]

    return install


def _args(*extra):
    return ["scan", "--address", AAA, "--address", BBB, "--no-progress", *extra]


def test_prints_report_and_exits_zero(scripted):
    scripted([
        page(15_000_100, HEIGHT, logs=[transfer_log(AAA, BBB, 500)], txs=[tx(AAA, BBB, 10)]),
        page(HEIGHT, HEIGHT),
    ])
    res = runner.invoke(cli.app, _args())
    assert res.exit_code == 0, res.output
    assert f"ERC20 transfer volume for address {AAA} is 500" in res.stdout
    assert f"ERC20 transfer volume for address {BBB} is 500" in res.stdout
    assert f"WEI transfer volume for address {AAA} is 10" in res.stdout
    assert f"WEI transfer volume for address {BBB} is 10" in res.stdout


def test_progress_bar_path(scripted):
    retrieval = scripted([page(HEIGHT, HEIGHT)])
    res = runner.invoke(cli.app, _args()[:-1] + ["--progress"])
    assert res.exit_code == 0, res.output
    assert retrieval.from_blocks == [15_000_000]


def test_journal_written(scripted, tmp_path):
    scripted([page(HEIGHT, HEIGHT, txs=[tx(AAA, BBB, 1)])])
    path = tmp_path / "journal.jsonl"
    res = runner.invoke(cli.app, _args("--journal", str(path)))
    assert res.exit_code == 0, res.output
    (rec,) = [json.loads(l) for l in path.read_text().splitlines()]
    assert rec["status"] == "merged" and rec["transactions"] == 1


def test_bad_address_is_configuration_error(scripted):
    retrieval = scripted([])
    res = runner.invoke(cli.app, ["scan", "--address", "0xnothex", "--no-progress"])
    assert res.exit_code == cli.EXIT_CONFIG
    assert retrieval.queries == []


def test_missing_abi_file_is_configuration_error(scripted, tmp_path):
    scripted([])
    res = runner.invoke(cli.app, _args("--abi", str(tmp_path / "nope.json")))
    assert res.exit_code == cli.EXIT_CONFIG


def test_retrieval_error_exit_code(scripted):
    scripted([page(15_000_100, HEIGHT), RetrievalError("upstream 502")])
    res = runner.invoke(cli.app, _args())
    assert res.exit_code == cli.EXIT_RETRIEVAL
    assert "ERC20 transfer volume" not in res.stdout


def test_to_block_bounds_the_scan(scripted):
    retrieval = scripted([page(15_000_050, HEIGHT)])
    res = runner.invoke(cli.app, _args("--to-block", "15000050"))
    assert res.exit_code == 0, res.output
    assert [q.to_block for q in retrieval.queries] == [15_000_050]
