"""Tests for the application wiring and CLI commands."""

import json
import logging

import pytest
import yaml

from redfish_monitor import main as main_module
from redfish_monitor.config.loader import ConfigLoader
from redfish_monitor.main import ExporterApp, generate_rule
from redfish_monitor.services.redfish_client import RedfishClient
from redfish_monitor.services.snapshot_file import FileSnapshotClient
from redfish_monitor.utils.errors import UnknownConverter


@pytest.fixture
def app_logger(monkeypatch):
    """Keep the application logger propagating so caplog sees it."""
    logger = logging.getLogger("test_app")
    monkeypatch.setattr(main_module, "setup_logger", lambda name, level="INFO": logger)
    return logger


@pytest.fixture
def snapshot_file(tmp_path):
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps([
        {"path": "/redfish/v1/Chassis/X", "data": {"Status": {"Health": "OK"}, "Fans": [{"Reading": 1200}]}},
        {"path": "/redfish/v1/Chassis/X/Blocks/0", "data": {"Status": {"Health": "Critical"}}},
    ]))
    return path


def write_config(tmp_path, testdata_dir, **exporter):
    exporter.setdefault("rule_file", str(testdata_dir / "redfish_collect.yml"))
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({"redfish": {"address": "bmc"}, "exporter": exporter}))
    return str(path)


class TestExporterApp:
    def test_uses_redfish_client_by_default(self, tmp_path, testdata_dir, app_logger):
        app = ExporterApp(write_config(tmp_path, testdata_dir))

        assert isinstance(app.client, RedfishClient)
        assert app.collector.namespace == "hw"
        assert len(app.rule.metrics) == 4

    @pytest.mark.asyncio
    async def test_update_cycle_with_dummy_data(self, tmp_path, testdata_dir, snapshot_file, app_logger):
        config = write_config(tmp_path, testdata_dir, dummy_data_file=str(snapshot_file), namespace="bmc")
        app = ExporterApp(config)
        assert isinstance(app.client, FileSnapshotClient)

        await app.run_update_cycle()

        samples = {(s.name, s.value) for s in app.collector.collect_samples()}
        assert samples == {("bmc_chassis_status_health", 0), ("bmc_block_status_health", 2)}

    @pytest.mark.asyncio
    async def test_update_cycle_failure_is_logged_and_raised(self, tmp_path, testdata_dir, app_logger, caplog):
        app = ExporterApp(write_config(tmp_path, testdata_dir))

        class BrokenClient:
            async def traverse(self, rule):
                raise RuntimeError("boom")

        app.collector.client = BrokenClient()

        with caplog.at_level(logging.ERROR, logger="test_app"):
            with pytest.raises(RuntimeError):
                await app.run_update_cycle()

        assert "Redfish update failed" in caplog.text

    @pytest.mark.asyncio
    async def test_show_writes_snapshot(self, tmp_path, testdata_dir, snapshot_file, app_logger, capsys):
        app = ExporterApp(write_config(tmp_path, testdata_dir, dummy_data_file=str(snapshot_file)))

        await app.show()

        records = json.loads(capsys.readouterr().out)
        assert [r["path"] for r in records] == [
            "/redfish/v1/Chassis/X",
            "/redfish/v1/Chassis/X/Blocks/0",
        ]

    def test_missing_config_exits(self, tmp_path, app_logger):
        with pytest.raises(SystemExit) as exc_info:
            ExporterApp(str(tmp_path / "missing.yaml"))
        assert exc_info.value.code == 1

    def test_invalid_rule_exits(self, tmp_path, testdata_dir, app_logger):
        rule = tmp_path / "rule.yml"
        rule.write_text("Metrics: []\n")
        with pytest.raises(SystemExit):
            ExporterApp(write_config(tmp_path, testdata_dir, rule_file=str(rule)))


class TestGenerateRule:
    def test_default_root(self, snapshot_file):
        text = generate_rule(str(snapshot_file), ["Health:health"])
        rule = ConfigLoader.parse_rule(text)

        assert rule.traverse.root == "/redfish/v1"
        assert [r.path for r in rule.metrics] == [
            "/redfish/v1/Chassis/X",
            "/redfish/v1/Chassis/X/Blocks/0",
        ]
        assert rule.metrics[0].properties[0].name == "chassis_x_status_health"

    def test_with_base_rule(self, snapshot_file, testdata_dir):
        text = generate_rule(
            str(snapshot_file),
            ["Health:health", "Reading:number"],
            base_rule_path=str(testdata_dir / "redfish_collect.yml"),
            root="/redfish/v1",
        )
        rule = ConfigLoader.parse_rule(text)

        assert rule.traverse.root == "/redfish/v1/Chassis/System.Embedded.1"
        assert [r.path for r in rule.metrics] == [
            "/redfish/v1/Chassis/{chassis}",
            "/redfish/v1/Chassis/{chassis}/Blocks/{block}",
        ]
        assert [p.pointer for p in rule.metrics[0].properties] == ["/Fans/{fan}/Reading", "/Status/Health"]

    def test_unknown_type(self, snapshot_file):
        with pytest.raises(UnknownConverter):
            generate_rule(str(snapshot_file), ["Health:bogus"])

    def test_missing_snapshot(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            generate_rule(str(tmp_path / "missing.json"), ["Health:health"])
