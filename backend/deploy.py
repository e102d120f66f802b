"""
Bootstraps the Balloons token and the DEX exchange, then wires them together.

Every step is an on-chain mutation that cannot be rolled back, so each
finished step is checkpointed in the registry. Re-running the script
resumes after the last completed step; --fresh starts over.
"""
import argparse
import os
import sys
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel
from web3 import Web3

import registry
from chain import ChainClient, ChainError, load_artifact
from dex_config import (
    APPROVE_AMOUNT,
    BALLOONS_ABI,
    DEX_ABI,
    EXCHANGE_CONFIRMATIONS,
    EXCHANGE_CONTRACT,
    INIT_ETH_VALUE,
    INIT_GAS_LIMIT,
    INIT_TOKEN_AMOUNT,
    LOCAL_CHAIN_ID,
    SEED_RECIPIENT,
    SEED_TRANSFER_AMOUNT,
    TOKEN_CONTRACT,
)

load_dotenv()

# Hardhat node account #0, only ever used against a local chain
LOCAL_DEV_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"

STEPS = (
    "deploy_token",
    "deploy_exchange",
    "seed_recipient",
    "approve_exchange",
    "init_exchange",
)


class DeployConfig(BaseModel):
    rpc_url: str = "http://127.0.0.1:8545"
    private_key: str = LOCAL_DEV_KEY
    network: str = "localhost"
    artifacts_dir: str = "artifacts"
    deployments_dir: str = "deployments"
    seed_recipient: Optional[str] = None
    confirmations: int = EXCHANGE_CONFIRMATIONS
    receipt_timeout: float = 120

    @classmethod
    def from_env(cls, network: Optional[str] = None):
        network = network or os.getenv("NETWORK", "localhost")
        private_key = os.getenv("PRIVATE_KEY")
        if not private_key:
            if network != "localhost":
                raise ValueError(f"PRIVATE_KEY must be set to deploy on '{network}'")
            private_key = LOCAL_DEV_KEY
        return cls(
            rpc_url=os.getenv("RPC_URL", "http://127.0.0.1:8545"),
            private_key=private_key,
            network=network,
            artifacts_dir=os.getenv("ARTIFACTS_DIR", "artifacts"),
            deployments_dir=os.getenv("DEPLOYMENTS_DIR", "deployments"),
            seed_recipient=os.getenv("SEED_RECIPIENT") or None,
            confirmations=int(os.getenv("CONFIRMATIONS", EXCHANGE_CONFIRMATIONS)),
            receipt_timeout=float(os.getenv("RECEIPT_TIMEOUT", 120)),
        )


class DeploySequencer:
    def __init__(self, client: ChainClient, config: DeployConfig):
        self.client = client
        self.config = config
        self.chain_id = None

    @property
    def is_local(self) -> bool:
        return self.chain_id == LOCAL_CHAIN_ID

    def run(self):
        self.chain_id = self.client.chain_id
        done = registry.completed_steps(self.config.network, self.config.deployments_dir)
        print(f"--- 🚀 Deploying DEX on '{self.config.network}' (chain {self.chain_id}) from {self.client.address} ---")

        for i, step in enumerate(STEPS, start=1):
            if step in done:
                print(f">> [{i}/{len(STEPS)}] {step}: already done, skipping")
                continue
            print(f">> [{i}/{len(STEPS)}] {step}")
            try:
                getattr(self, step)()
            except Exception as e:
                print(f"!! STEP FAILED: {step}: {e}")
                raise
            registry.record_step(self.config.network, step, self.config.deployments_dir)

        print("✅ DEX deployed and initialized")
        return registry.get_deployments(self.config.network, self.config.deployments_dir)

    # --- STEPS ---

    def deploy_token(self):
        self._deploy(TOKEN_CONTRACT, args=(), confirmations=1)

    def deploy_exchange(self):
        token = self._deployment(TOKEN_CONTRACT)
        confirmations = 1 if self.is_local else self.config.confirmations
        self._deploy(EXCHANGE_CONTRACT, args=(token.address,), confirmations=confirmations)

    def seed_recipient(self):
        recipient = self.seed_target()
        if recipient is None:
            print("⚠️  No seed recipient on a non-local chain, skipping transfer")
            return
        token = self._contract(TOKEN_CONTRACT, BALLOONS_ABI)
        print(f">> Sending {Web3.from_wei(SEED_TRANSFER_AMOUNT, 'ether')} balloons to {recipient}")
        self.client.transact(token.functions.transfer(recipient, SEED_TRANSFER_AMOUNT))

    def approve_exchange(self):
        token = self._contract(TOKEN_CONTRACT, BALLOONS_ABI)
        dex = self._deployment(EXCHANGE_CONTRACT)
        # On a testnet the deployer account needs enough ETH for this and init
        print(f">> Approving DEX ({dex.address}) to take Balloons from main account...")
        self.client.transact(token.functions.approve(dex.address, APPROVE_AMOUNT))

    def init_exchange(self):
        dex = self._contract(EXCHANGE_CONTRACT, DEX_ABI)
        print(">> INIT exchange...")
        self.client.transact(
            dex.functions.init(INIT_TOKEN_AMOUNT),
            value=INIT_ETH_VALUE,
            gas=INIT_GAS_LIMIT,
        )

    # --- HELPERS ---

    def seed_target(self) -> Optional[str]:
        if self.config.seed_recipient:
            return Web3.to_checksum_address(self.config.seed_recipient)
        if self.is_local:
            return SEED_RECIPIENT
        return None

    def _deploy(self, name: str, args, confirmations: int):
        """
        Deploys `name` unless an earlier run already recorded it, then waits
        for confirmations. The registry entry is written before the wait so
        a timeout never leaves an unrecorded contract on chain.
        """
        deployment = registry.get_deployment(self.config.network, name, self.config.deployments_dir)
        if deployment is not None:
            print(f">> Reusing {name} @ {deployment.address} from an earlier run")
        else:
            abi, bytecode = load_artifact(self.config.artifacts_dir, name)
            receipt = self.client.deploy(abi, bytecode, args=args)
            tx_hash = receipt["transactionHash"]
            deployment = registry.save_deployment(
                self.config.network,
                registry.Deployment(
                    name=name,
                    address=receipt["contractAddress"],
                    owner_account=self.client.address,
                    transaction_hash=tx_hash if isinstance(tx_hash, str) else Web3.to_hex(tx_hash),
                    block_number=receipt["blockNumber"],
                    abi=abi,
                ),
                self.config.deployments_dir,
            )

        if confirmations > 1:
            print(f">> Waiting for {confirmations} confirmations of {name}...")
            self.client.wait_for_confirmations(
                {"blockNumber": deployment.block_number, "transactionHash": deployment.transaction_hash},
                confirmations,
            )
        return deployment

    def _deployment(self, name: str) -> registry.Deployment:
        deployment = registry.get_deployment(self.config.network, name, self.config.deployments_dir)
        if deployment is None:
            raise ChainError(f"{name} is not deployed on '{self.config.network}'")
        return deployment

    def _contract(self, name: str, fallback_abi):
        deployment = self._deployment(name)
        return self.client.contract(deployment.address, deployment.abi or fallback_abi)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Deploy Balloons + DEX and seed the pool.")
    parser.add_argument("--network", default=None, help="deployments folder / network name (default: $NETWORK or localhost)")
    parser.add_argument("--fresh", action="store_true", help="forget checkpoints and deploy from scratch")
    args = parser.parse_args(argv)

    config = DeployConfig.from_env(network=args.network)
    if args.fresh:
        registry.reset(config.network, config.deployments_dir)

    try:
        client = ChainClient.connect(config.rpc_url, config.private_key, receipt_timeout=config.receipt_timeout)
        DeploySequencer(client, config).run()
    except (ChainError, FileNotFoundError) as e:
        print(f"!! DEPLOY FAILED: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
