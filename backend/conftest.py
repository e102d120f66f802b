import json

import pytest

from chain import ConfirmationTimeoutError, TransactionRevertedError
from deploy import DeployConfig
from dex_config import BALLOONS_ABI, DEX_ABI

DEPLOYER = "0x" + "d0" * 20
TOTAL_SUPPLY = 1000 * 10**18


class FakeCall:
    def __init__(self, contract, fn, args):
        self.contract = contract
        self.fn = fn
        self.args = args


class FakeFunctions:
    def __init__(self, contract):
        self._contract = contract

    def __getattr__(self, fn):
        return lambda *args: FakeCall(self._contract, fn, args)


class FakeContract:
    def __init__(self, address, abi):
        self.address = address
        self.abi = abi
        self.functions = FakeFunctions(self)


class FakeChainClient:
    """In-memory stand-in for ChainClient that tracks Balloons balances."""

    address = DEPLOYER

    def __init__(self, chain_id=31337, fail_on=None):
        self.chain_id = chain_id
        self.fail_on = fail_on
        self.deployed = []
        self.calls = []
        self.balances = {}
        self.allowances = {}
        self.eth_balances = {}
        self.token_address = None
        self.waits = []

    def deploy(self, abi, bytecode, args=()):
        if self.fail_on == "deploy":
            raise TransactionRevertedError("deploy reverted")
        address = "0x" + f"{len(self.deployed) + 1:040x}"
        self.deployed.append({"address": address, "args": tuple(args)})
        if not args:
            self.token_address = address
            self.balances[self.address] = TOTAL_SUPPLY
        return {
            "contractAddress": address,
            "transactionHash": "0x" + f"{len(self.deployed):064x}",
            "blockNumber": len(self.deployed),
            "status": 1,
        }

    def wait_for_confirmations(self, receipt, confirmations):
        self.waits.append((receipt["blockNumber"], confirmations))
        if self.fail_on == "confirmations":
            raise ConfirmationTimeoutError(f"1/{confirmations} confirmations")
        return receipt["blockNumber"] + confirmations - 1

    def contract(self, address, abi):
        return FakeContract(address, abi)

    def transact(self, call, value=0, gas=None, confirmations=1):
        if self.fail_on == call.fn:
            raise TransactionRevertedError(f"{call.fn} reverted")
        self.calls.append({"fn": call.fn, "to": call.contract.address, "args": call.args, "value": value, "gas": gas})

        if call.fn == "transfer":
            to, amount = call.args
            self._move(self.address, to, amount)
        elif call.fn == "approve":
            spender, amount = call.args
            self.allowances[(self.address, spender)] = amount
        elif call.fn == "init":
            (tokens,) = call.args
            dex = call.contract.address
            if self.allowances.get((self.address, dex), 0) < tokens:
                raise TransactionRevertedError("ERC20: insufficient allowance")
            self.allowances[(self.address, dex)] -= tokens
            self._move(self.address, dex, tokens)
            self.eth_balances[dex] = self.eth_balances.get(dex, 0) + value
        return {"status": 1, "blockNumber": len(self.deployed) + len(self.calls)}

    def _move(self, sender, to, amount):
        if self.balances.get(sender, 0) < amount:
            raise TransactionRevertedError("ERC20: transfer amount exceeds balance")
        self.balances[sender] -= amount
        self.balances[to] = self.balances.get(to, 0) + amount


@pytest.fixture
def artifacts_dir(tmp_path):
    root = tmp_path / "artifacts"
    for name, abi in (("Balloons", BALLOONS_ABI), ("DEX", DEX_ABI)):
        folder = root / "contracts" / f"{name}.sol"
        folder.mkdir(parents=True)
        (folder / f"{name}.json").write_text(json.dumps({"abi": abi, "bytecode": "0x6080604052"}))
    return root


@pytest.fixture
def deploy_config(tmp_path, artifacts_dir):
    return DeployConfig(
        artifacts_dir=str(artifacts_dir),
        deployments_dir=str(tmp_path / "deployments"),
    )
