"""Tests for scripts/market_admin.py."""

import importlib.util
import json
from decimal import Decimal
from pathlib import Path

import pytest
import yaml

import market_kernel.db.engine as engine_module
from market_kernel.services.event_runner import EventRunner

SCRIPT = Path(__file__).resolve().parents[2] / "scripts" / "market_admin.py"


@pytest.fixture(scope="module")
def market_admin():
    spec = importlib.util.spec_from_file_location("market_admin", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def keep_test_engine(monkeypatch):
    """main() installs and resets its own engine; restore the suite's afterwards."""
    monkeypatch.setattr(engine_module, "_engine", engine_module._engine)
    monkeypatch.setattr(engine_module, "_SessionFactory", engine_module._SessionFactory)


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    monkeypatch.delenv("MARKET_DATABASE_URL", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    db_url = f"sqlite:///{tmp_path / 'admin.db'}"
    path = tmp_path / "admin.yaml"
    path.write_text(yaml.safe_dump({"database": {"url": db_url}, "logging": {"level": "INFO"}}))
    return path, db_url


class TestBuildReport:
    def test_report_contents(
        self, market_admin, session, deterministic_clock, create_event, create_item
    ):
        event = create_event()
        item = create_item(event.id, price="6.00", starting_quantity=10)
        runner = EventRunner(session, event.id, clock=deterministic_clock)
        runner.start_day()
        runner.checkout([(item.id, 3)])
        runner.end_day()

        report = market_admin.build_report(session, event.id, top=3)

        assert report["event"]["name"] == "Saturday Market"
        assert report["event_to_date"]["revenue"] == Decimal("18.00")
        assert report["event_to_date"]["days_closed"] == 1
        assert report["ledger"]["items_sold"] == 3
        assert report["top_sellers"][0]["name"] == "Sourdough"
        assert report["days"][0]["day_number"] == 1
        json.dumps(report, default=str)


class TestMain:
    def test_init_db_and_list_events(
        self, market_admin, config_file, keep_test_engine, capsys
    ):
        path, _ = config_file

        assert market_admin.main(["--config", str(path), "init-db"]) == 0
        assert "Tables created (sqlite)" in capsys.readouterr().out

        assert market_admin.main(["--config", str(path), "events"]) == 0
        assert capsys.readouterr().out == ""

    def test_report_unknown_event(self, market_admin, config_file, keep_test_engine, capsys):
        path, _ = config_file
        market_admin.main(["--config", str(path), "init-db"])

        code = market_admin.main(
            ["--config", str(path), "report", "00000000-0000-4000-8000-000000000000"]
        )

        assert code == 1
        assert "EVENT_NOT_FOUND" in capsys.readouterr().err

    def test_missing_command(self, market_admin):
        with pytest.raises(SystemExit):
            market_admin.main([])
