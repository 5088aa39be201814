"""Shared pytest configuration and fixtures."""

import json
import pytest
from pathlib import Path

import httpx

from redfish_monitor.config.loader import ConfigLoader
from redfish_monitor.config.models import RedfishConfig
from redfish_monitor.utils.logger import setup_logger


TESTDATA = Path(__file__).parent / "testdata"

CHASSIS_PATH = "/redfish/v1/Chassis/System.Embedded.1"
BLOCK_PATH = "/redfish/v1/Chassis/System.Embedded.1/Blocks/0"
TRASH_PATH = "/redfish/v1/Chassis/System.Embedded.1/Trashes/0"


def _load_json(name):
    with open(TESTDATA / name) as f:
        return json.load(f)


@pytest.fixture
def logger():
    """Create logger for tests."""
    return setup_logger("test")


@pytest.fixture
def testdata_dir():
    return TESTDATA


@pytest.fixture
def collect_rule():
    """Compiled rule from testdata/redfish_collect.yml."""
    return ConfigLoader.load_rule_file(str(TESTDATA / "redfish_collect.yml"))


@pytest.fixture
def chassis_document():
    return _load_json("redfish_chassis.json")


@pytest.fixture
def block_document():
    return _load_json("redfish_block.json")


@pytest.fixture
def trash_document():
    return _load_json("redfish_trash.json")


@pytest.fixture
def redfish_resources(chassis_document, block_document, trash_document):
    """URL path -> document served by the fake Redfish endpoint."""
    return {
        CHASSIS_PATH: chassis_document,
        BLOCK_PATH: block_document,
        TRASH_PATH: trash_document,
    }


@pytest.fixture
def redfish_config():
    return RedfishConfig(address="bmc.example.com", password="secret", timeout_seconds=1)


@pytest.fixture
def requested_paths():
    """Paths requested from the fake Redfish endpoint, in order."""
    return []


@pytest.fixture
def redfish_transport(redfish_resources, requested_paths):
    """httpx transport answering from ``redfish_resources``; unknown paths get 404."""

    def handler(request: httpx.Request) -> httpx.Response:
        requested_paths.append(request.url.path)
        document = redfish_resources.get(request.url.path)
        if document is None:
            return httpx.Response(404, json={"error": "not found"})
        return httpx.Response(200, json=document)

    return httpx.MockTransport(handler)
