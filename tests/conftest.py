# tests/conftest.py
"""
テスト共通のフィクスチャ。
"""
import base64
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlencode

import pytest
import requests

from bios_trap_bridge.arch.i8080.state import Cpu, I8080CpuState

READ_URL = "http://memory.test/api/v1/readRange"
INIT_URL = "http://memory.test/api/v1/initialise"
START_URL = "http://cpu.test/api/v1/start"


def make_cpu(computer_id: str = "00000000-0000-0000-0000-000000000000", **registers) -> Cpu:
    return Cpu(state=I8080CpuState(**registers), id=computer_id, opcode=0xD3)


def _response(status: int, body: bytes, url: str) -> requests.Response:
    response = requests.Response()
    response.status_code = status
    response._content = body
    response.url = url
    return response


# @intent:test_double 兄弟のメモリサービスと実行サービスをプロセス内で模倣するrequests.Session。
class FakeMemoryService(requests.Session):
    READ_URL = READ_URL
    INIT_URL = INIT_URL
    START_URL = START_URL

    def __init__(self):
        super().__init__()
        self.memory: Dict[str, bytes] = {}
        self.started: List[str] = []
        self.calls: List[Tuple[str, str, Optional[dict]]] = []
        self.fail_urls: Dict[str, int] = {}
        self.json_quoted = False
        self.override_body: Optional[bytes] = None

    def request(self, method, url, params=None, json=None, **kwargs):
        self.calls.append((method.upper(), url, params))
        if url in self.fail_urls:
            return _response(self.fail_urls[url], b"failure", url)

        if url == INIT_URL and method.upper() == "POST":
            self.memory[json["id"]] = base64.b64decode(json["memory"])
            return _response(200, b"", url)
        if url == START_URL and method.upper() == "POST":
            self.started.append(params["id"])
            return _response(202, b"", url)
        if url == READ_URL and method.upper() == "GET":
            image = self.memory.get(params["id"])
            if image is None:
                return _response(404, b"unknown computer", url + "?" + urlencode(params))
            start = params["address"]
            data = image[start:start + params["length"]]
            encoded = base64.b64encode(data) if self.override_body is None else self.override_body
            if self.json_quoted:
                encoded = b'"' + encoded + b'"'
            return _response(200, encoded, url)
        return _response(404, b"", url)


@pytest.fixture
def fake_service() -> FakeMemoryService:
    return FakeMemoryService()


@pytest.fixture
def cpu_factory():
    return make_cpu


@pytest.fixture
def cpu_json() -> dict:
    return {
        "state": {
            "a": 0x12, "b": 0x34, "c": 0x00, "d": 0x01, "e": 0x09,
            "h": 0xAB, "l": 0xCD,
            "stackPointer": 0xFF00,
            "programCounter": 0x0005,
            "cycles": 12345678901,
            "flags": {"sign": True, "zero": False, "auxCarry": True, "parity": False, "carry": True},
            "interruptsEnabled": True,
        },
        "id": "6f1c2a4e-58a3-4c3b-9d3c-0b7d1f0b9a11",
        "opcode": 0xD3,
    }
