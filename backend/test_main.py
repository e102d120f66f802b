from unittest.mock import MagicMock, PropertyMock

import pytest
import requests
from fastapi import FastAPI
from fastapi.testclient import TestClient

import main
import registry
from test_events import ALICE, FakeEventContract, liquidity_log


@pytest.fixture
def client():
    main.event_cache.clear()
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()


def _use_contracts(contracts):
    main.app.dependency_overrides[main.get_contracts] = lambda: contracts
    main.app.dependency_overrides[main.get_name_resolver] = lambda: None


def test_header(client):
    body = client.get("/api/header").json()
    assert body["title"] == "⚖️ Minimum Viable DEX"
    assert body["href"] == "https://github.com/austintgriffith/scaffold-eth"


def test_liquidity_events(client):
    _use_contracts({"DEX": FakeEventContract([liquidity_log(8), liquidity_log(2), liquidity_log(5)])})

    res = client.get("/api/events/DEX/LiquidityProvided", params={"start_block": 1})

    assert res.status_code == 200
    body = res.json()
    assert body["header"].startswith("➕")
    assert [row["block_number"] for row in body["rows"]] == [2, 5, 8]
    assert body["rows"][0]["cells"][1:] == ["1.0000", "0.0200", "0.0200"]


def test_ens_names_are_used_when_resolved(client):
    _use_contracts({"DEX": FakeEventContract([liquidity_log(3, provider=ALICE)])})
    main.app.dependency_overrides[main.get_name_resolver] = lambda: (lambda address: "alice.eth")

    body = client.get("/api/events/DEX/LiquidityProvided").json()

    assert body["rows"][0]["cells"][0] == "alice.eth"


def test_unknown_event_is_404(client):
    _use_contracts({"DEX": FakeEventContract([])})

    res = client.get("/api/events/DEX/Transfer")

    assert res.status_code == 404
    assert "Transfer" in res.json()["detail"]


def test_unknown_contract_is_404(client):
    _use_contracts({})

    assert client.get("/api/events/DEX/LiquidityProvided").status_code == 404


def test_undecodable_log_is_502(client):
    _use_contracts({"DEX": FakeEventContract([liquidity_log(3, minted="lots")])})

    assert client.get("/api/events/DEX/LiquidityProvided").status_code == 502


def test_node_down_while_polling_is_503(client):
    contract = FakeEventContract([])
    contract.get_logs.side_effect = requests.exceptions.ConnectionError("refused")
    _use_contracts({"DEX": contract})

    assert client.get("/api/events/DEX/LiquidityProvided").status_code == 503


def test_contracts_lists_registry(client, tmp_path, monkeypatch):
    monkeypatch.setattr(main, "DEPLOYMENTS_DIR", str(tmp_path))
    registry.save_deployment(
        main.NETWORK,
        registry.Deployment(name="DEX", address="0x" + "02" * 20, owner_account="0x" + "d0" * 20, block_number=2),
        tmp_path,
    )

    body = client.get("/api/contracts").json()

    assert body == {"DEX": {"address": "0x" + "02" * 20, "owner_account": "0x" + "d0" * 20, "block_number": 2}}


def test_status(client):
    web3 = MagicMock()
    web3.eth.chain_id = 31337
    web3.eth.block_number = 12
    main.app.dependency_overrides[main.get_local_web3] = lambda: web3

    assert client.get("/api/status").json() == {"network": main.NETWORK, "chain_id": 31337, "block_number": 12}


def test_status_node_down(client):
    web3 = MagicMock()
    type(web3.eth).chain_id = PropertyMock(side_effect=requests.exceptions.ConnectionError("refused"))
    main.app.dependency_overrides[main.get_local_web3] = lambda: web3

    assert client.get("/api/status").status_code == 503


@pytest.fixture
def react_build(tmp_path):
    (tmp_path / "static").mkdir()
    (tmp_path / "static" / "app.js").write_text("console.log('dex')")
    (tmp_path / "index.html").write_text("<div id=root></div>")
    return tmp_path


def test_frontend_serves_assets_and_falls_back_to_index(react_build):
    app = FastAPI()
    assert main.mount_frontend(app, react_build)
    web = TestClient(app)

    assert web.get("/static/app.js").text == "console.log('dex')"
    assert web.get("/some/route").text == "<div id=root></div>"
    assert web.get("/").text == "<div id=root></div>"


def test_frontend_does_not_answer_api_paths(react_build):
    app = FastAPI()
    main.mount_frontend(app, react_build)

    assert TestClient(app).get("/api/nope").status_code == 404


def test_missing_build_serves_api_only(tmp_path, capsys):
    app = FastAPI()

    assert not main.mount_frontend(app, tmp_path / "missing")
    assert "serving the API only" in capsys.readouterr().out
