"""
Tests for the command line interface.
"""

import json
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import pytest

import cli
from conftest import make_party
from ledger_service import RoyaltyLedgerService


@pytest.fixture
def cli_service(monkeypatch, memory_store):
    service = RoyaltyLedgerService(memory_store)
    monkeypatch.setattr(cli, "_get_service", lambda: service)
    return service


class TestParser:
    def test_commands(self):
        parser = cli.build_parser()
        args = parser.parse_args(["resolve", "contract_1", "work_1"])
        assert args.command == "resolve"
        assert (args.contract_id, args.work_id) == ("contract_1", "work_1")

    def test_serve_options(self):
        args = cli.build_parser().parse_args(["serve", "--port", "8080", "--production", "--workers", "2"])
        assert args.port == 8080
        assert args.production is True
        assert args.workers == 2

    def test_no_command_exits(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main([])
        assert exc_info.value.code == 1


class TestCommands:
    def test_validate(self, cli_service, capsys):
        contract_id = cli_service.create_contract(counterparty="X", contract_type="publishing")[1]["id"]
        cli_service.add_party(contract_id, make_party("A", True, performance="70", mechanical="70"))
        cli_service.add_party(contract_id, make_party("B", True, performance="40", mechanical="40"))

        with pytest.raises(SystemExit) as exc_info:
            cli.main(["validate", contract_id])

        assert exc_info.value.code == 0
        report = json.loads(capsys.readouterr().out)
        assert report["controlled_total"] == "110"
        assert report["controlled_over_limit"] is True

    def test_validate_unknown_contract(self, cli_service, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["validate", "contract_missing"])
        assert exc_info.value.code == 1
        assert json.loads(capsys.readouterr().out)["error_type"] == "ContractNotFound"

    def test_export_manual_entry(self, cli_service, capsys):
        contract_id = cli_service.create_contract(counterparty="X", contract_type="publishing")[1]["id"]
        work_id = cli_service.add_work(contract_id, {"title": "Solo", "inherits_royalty_splits": False})[1]["id"]

        with pytest.raises(SystemExit) as exc_info:
            cli.main(["export", contract_id, work_id])

        assert exc_info.value.code == 1
        assert json.loads(capsys.readouterr().out)["error_type"] == "ManualEntryRequired"

    def test_info(self, monkeypatch, capsys):
        monkeypatch.setenv("STORAGE_BACKEND", "memory")
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["info"])
        assert exc_info.value.code == 0
        assert "MemoryStorage" in capsys.readouterr().out

    def test_backup(self, monkeypatch, tmp_path, capsys):
        from storage import JSONFileStorage

        data_file = tmp_path / "contracts.json"
        JSONFileStorage(str(data_file)).save_contract({"id": "contract_1", "counterparty": "X"})
        monkeypatch.setenv("STORAGE_BACKEND", "json")
        monkeypatch.setenv("CONTRACT_DATA_FILE", str(data_file))

        with pytest.raises(SystemExit) as exc_info:
            cli.main(["backup", "--output", str(tmp_path / "copy.json")])

        assert exc_info.value.code == 0
        assert JSONFileStorage(str(tmp_path / "copy.json")).load_contract("contract_1") is not None
        assert "copy.json" in capsys.readouterr().out

    def test_backup_memory_backend(self, monkeypatch, capsys):
        monkeypatch.setenv("STORAGE_BACKEND", "memory")
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["backup"])
        assert exc_info.value.code == 1
        assert "MemoryStorage" in capsys.readouterr().out
