import os
import threading
from pathlib import Path

import requests
from cachetools import TTLCache
from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles
from web3 import Web3

import registry
from dex_config import CONTRACT_ABIS
from events import (
    EventDecodingError,
    EventFeed,
    UnknownEventError,
    ens_resolver,
    page_header,
    render_event_view,
)

load_dotenv()

# --- 1. SETUP WEB3 CONNECTIONS ---
RPC_URL = os.getenv("RPC_URL", "http://127.0.0.1:8545")
MAINNET_RPC_URL = os.getenv("MAINNET_RPC_URL")
NETWORK = os.getenv("NETWORK", "localhost")
DEPLOYMENTS_DIR = os.getenv("DEPLOYMENTS_DIR", "deployments")

local_web3 = Web3(Web3.HTTPProvider(RPC_URL))
mainnet_web3 = Web3(Web3.HTTPProvider(MAINNET_RPC_URL)) if MAINNET_RPC_URL else None
if mainnet_web3 is None:
    print("⚠️  MAINNET_RPC_URL not set, addresses are shown without ENS names")

# --- 2. EVENT POLLING CACHE ---
EVENT_POLL_SECONDS = float(os.getenv("EVENT_POLL_SECONDS", 5))
event_cache = TTLCache(maxsize=100, ttl=EVENT_POLL_SECONDS)
event_cache_lock = threading.Lock()

app = FastAPI(title="Minimum Viable DEX", description="Balloons <-> ETH exchange event views", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_local_web3():
    return local_web3


def get_name_resolver():
    return ens_resolver(mainnet_web3)


def get_contracts(web3: Web3 = Depends(get_local_web3)):
    """Deployed contracts for this network, bound to the local node."""
    contracts = {}
    for name, deployment in registry.get_deployments(NETWORK, DEPLOYMENTS_DIR).items():
        abi = deployment.abi or CONTRACT_ABIS.get(name, [])
        contracts[name] = web3.eth.contract(address=Web3.to_checksum_address(deployment.address), abi=abi)
    return contracts


# --- API ENDPOINTS ---

@app.get("/api/header")
async def header():
    return page_header()


@app.get("/api/contracts")
async def contracts():
    return {
        name: {"address": d.address, "owner_account": d.owner_account, "block_number": d.block_number}
        for name, d in registry.get_deployments(NETWORK, DEPLOYMENTS_DIR).items()
    }


@app.get("/api/events/{contract_name}/{event_name}")
def events(
    contract_name: str,
    event_name: str,
    start_block: int = 1,
    contracts: dict = Depends(get_contracts),
    resolve_name=Depends(get_name_resolver),
):
    contract = contracts.get(contract_name)
    if contract is None:
        raise HTTPException(status_code=404, detail=f"Contract '{contract_name}' is not deployed on '{NETWORK}'")

    try:
        feed = EventFeed(contract, event_name, event_cache, lock=event_cache_lock, start_block=start_block)
        entries = feed.poll()
        return render_event_view(entries, event_name, resolve_name=resolve_name, strict=True)
    except UnknownEventError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except EventDecodingError as e:
        print(f"!! DECODE ERROR: {e}")
        raise HTTPException(status_code=502, detail=str(e))
    except requests.exceptions.ConnectionError as e:
        print(f"!! NODE UNREACHABLE: {e}")
        raise HTTPException(status_code=503, detail="Chain node unreachable")


@app.get("/api/status")
def status(web3: Web3 = Depends(get_local_web3)):
    try:
        return {"network": NETWORK, "chain_id": web3.eth.chain_id, "block_number": web3.eth.block_number}
    except requests.exceptions.ConnectionError as e:
        print(f"!! NODE UNREACHABLE: {e}")
        raise HTTPException(status_code=503, detail="Chain node unreachable")


# --- REACT FRONTEND ---

def mount_frontend(app: FastAPI, build_dir) -> bool:
    """Serves a React production build; unknown non-API paths fall back to index.html."""
    build = Path(build_dir)
    if not (build / "static").is_dir():
        print(f"⚠️  No React build at {build}, serving the API only")
        return False

    app.mount("/static", StaticFiles(directory=build / "static"), name="static")

    @app.get("/{full_path:path}")
    async def frontend(full_path: str):
        if full_path.startswith("api/"):
            raise HTTPException(status_code=404, detail=f"No API route /{full_path}")
        asset = build / full_path
        return FileResponse(asset if full_path and asset.is_file() else build / "index.html")

    print(f"✅ Serving React build from {build}")
    return True


# Registered last so the catch-all route does not shadow /api
mount_frontend(app, os.getenv("FRONTEND_BUILD", "../frontend/build"))
