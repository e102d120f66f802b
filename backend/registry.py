import json
import os
import shutil
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()

DEPLOYMENTS_DIR = os.getenv("DEPLOYMENTS_DIR", "deployments")
CHECKPOINT_FILE = ".checkpoints.json"


class Deployment(BaseModel):
    name: str
    address: str
    owner_account: str
    transaction_hash: Optional[str] = None
    block_number: Optional[int] = None
    abi: List[dict] = []


def network_dir(network: str, root=None) -> Path:
    return Path(root or DEPLOYMENTS_DIR) / network


# --- DEPLOYED CONTRACTS ---

def get_deployment(network: str, name: str, root=None) -> Optional[Deployment]:
    path = network_dir(network, root) / f"{name}.json"
    if not path.is_file():
        return None
    return Deployment.model_validate_json(path.read_text(encoding="utf-8"))


def save_deployment(network: str, deployment: Deployment, root=None):
    folder = network_dir(network, root)
    folder.mkdir(parents=True, exist_ok=True)
    path = folder / f"{deployment.name}.json"
    path.write_text(deployment.model_dump_json(indent=2), encoding="utf-8")
    print(f">> REGISTRY: {deployment.name} @ {deployment.address} ({network})")
    return deployment


def get_deployments(network: str, root=None) -> dict:
    folder = network_dir(network, root)
    if not folder.is_dir():
        return {}
    deployments = {}
    for path in sorted(folder.glob("*.json")):
        if path.name == CHECKPOINT_FILE:
            continue
        deployment = Deployment.model_validate_json(path.read_text(encoding="utf-8"))
        deployments[deployment.name] = deployment
    return deployments


# --- DEPLOY CHECKPOINTS ---

def completed_steps(network: str, root=None) -> List[str]:
    path = network_dir(network, root) / CHECKPOINT_FILE
    if not path.is_file():
        return []
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f).get("completed", [])


def record_step(network: str, step: str, root=None):
    """
    Appends a finished step to the network's checkpoint file.
    """
    steps = completed_steps(network, root)
    if step in steps:
        return steps
    steps.append(step)
    folder = network_dir(network, root)
    folder.mkdir(parents=True, exist_ok=True)
    with open(folder / CHECKPOINT_FILE, "w", encoding="utf-8") as f:
        json.dump({"completed": steps}, f, indent=2)
    return steps


def reset(network: str, root=None):
    folder = network_dir(network, root)
    if folder.is_dir():
        shutil.rmtree(folder)
        print(f">> REGISTRY: cleared {folder}")
