import json
import time
from pathlib import Path

import requests
from eth_account import Account
from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted


class ChainError(Exception):
    pass


class ChainUnavailableError(ChainError):
    pass


class TransactionRevertedError(ChainError):
    pass


class ConfirmationTimeoutError(ChainError):
    pass


def load_artifact(artifacts_dir, name: str):
    """
    Reads a hardhat build artifact (artifacts/contracts/<Name>.sol/<Name>.json).
    Returns the (abi, bytecode) pair.
    """
    path = Path(artifacts_dir) / "contracts" / f"{name}.sol" / f"{name}.json"
    if not path.is_file():
        raise FileNotFoundError(f"Missing artifact for {name}: {path}. Compile the contracts first.")
    with open(path, "r", encoding="utf-8") as f:
        artifact = json.load(f)
    return artifact["abi"], artifact["bytecode"]


class ChainClient:
    """Signs and sends transactions for a single deployer account."""

    def __init__(self, web3: Web3, account, receipt_timeout: float = 120, poll_interval: float = 1.0):
        self.web3 = web3
        self.account = account
        self.receipt_timeout = receipt_timeout
        self.poll_interval = poll_interval

    @classmethod
    def connect(cls, rpc_url: str, private_key: str, **kwargs):
        web3 = Web3(Web3.HTTPProvider(rpc_url))
        if not web3.is_connected():
            raise ChainUnavailableError(f"No node answering at {rpc_url}")
        return cls(web3, Account.from_key(private_key), **kwargs)

    @property
    def address(self) -> str:
        return self.account.address

    @property
    def chain_id(self) -> int:
        try:
            return self.web3.eth.chain_id
        except requests.exceptions.ConnectionError as e:
            raise ChainUnavailableError(str(e)) from e

    def contract(self, address: str, abi):
        return self.web3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    def deploy(self, abi, bytecode: str, args=()):
        """Returns the receipt as soon as the deployment is mined; confirmations are up to the caller."""
        factory = self.web3.eth.contract(abi=abi, bytecode=bytecode)
        return self._send(factory.constructor(*args), value=0, gas=None)

    def transact(self, call, value: int = 0, gas: int = None, confirmations: int = 1):
        receipt = self._send(call, value=value, gas=gas)
        if confirmations > 1:
            self.wait_for_confirmations(receipt, confirmations)
        return receipt

    def wait_for_confirmations(self, receipt, confirmations: int):
        mined_in = receipt["blockNumber"]
        deadline = time.monotonic() + self.receipt_timeout
        while True:
            try:
                head = self.web3.eth.block_number
            except requests.exceptions.ConnectionError as e:
                raise ChainUnavailableError(str(e)) from e
            if head - mined_in + 1 >= confirmations:
                return head
            if time.monotonic() > deadline:
                raise ConfirmationTimeoutError(
                    f"{self._hex(receipt['transactionHash'])} has "
                    f"{head - mined_in + 1}/{confirmations} confirmations after {self.receipt_timeout}s"
                )
            time.sleep(self.poll_interval)

    def _hex(self, tx_hash) -> str:
        return tx_hash if isinstance(tx_hash, str) else self.web3.to_hex(tx_hash)

    def _send(self, call, value: int, gas: int):
        params = {
            "from": self.account.address,
            "value": value,
        }
        if gas is not None:
            params["gas"] = gas

        try:
            params["nonce"] = self.web3.eth.get_transaction_count(self.account.address)
            params["chainId"] = self.web3.eth.chain_id
            tx = call.build_transaction(params)

            # Sign & Send
            signed_tx = self.web3.eth.account.sign_transaction(tx, self.account.key)
            tx_hash = self.web3.eth.send_raw_transaction(signed_tx.raw_transaction)
            receipt = self.web3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout)
        except requests.exceptions.ConnectionError as e:
            raise ChainUnavailableError(str(e)) from e
        except ContractLogicError as e:
            raise TransactionRevertedError(str(e)) from e
        except TimeExhausted as e:
            raise ConfirmationTimeoutError(str(e)) from e

        if receipt["status"] != 1:
            raise TransactionRevertedError(f"Transaction {self.web3.to_hex(tx_hash)} reverted")
        return receipt
