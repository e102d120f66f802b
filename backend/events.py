"""
Event view for the DEX: header labels, typed event entries and row rendering.

Entries come from web3's decoded logs. Each argument carries the kind
declared for its event in dex_config.EVENT_SCHEMAS, and rendering
dispatches on that kind.
"""
import threading
from enum import Enum
from typing import Any, Callable, List, Optional

import requests
from ens import ENS
from ens.exceptions import ENSException
from pydantic import BaseModel, ConfigDict
from web3 import Web3
from web3.exceptions import Web3Exception

from dex_config import (
    ADDRESS,
    BALANCE,
    EVENT_SCHEMAS,
    HEADER_LABELS,
    PAGE_LINK,
    PAGE_SUBTITLE,
    PAGE_TITLE,
    SYMBOL,
)


class EventViewError(Exception):
    pass


class UnknownEventError(EventViewError):
    pass


class EventDecodingError(EventViewError):
    pass


class EventKind(str, Enum):
    ETH_TO_TOKEN_SWAP = "EthToTokenSwap"
    TOKEN_TO_ETH_SWAP = "TokenToEthSwap"
    LIQUIDITY_PROVIDED = "LiquidityProvided"
    LIQUIDITY_REMOVED = "LiquidityRemoved"

    @classmethod
    def parse(cls, event_name: str) -> "EventKind":
        try:
            return cls(event_name)
        except ValueError:
            raise UnknownEventError(f"Unknown DEX event '{event_name}'") from None


def header_label(event_name: str, strict: bool = False) -> str:
    """
    Column header for an event list. Names outside EventKind get the
    withdrawal header with a warning, or raise UnknownEventError when strict.
    """
    try:
        kind = EventKind.parse(event_name)
    except UnknownEventError:
        if strict:
            raise
        print(f"⚠️  Unknown event '{event_name}', showing the LiquidityRemoved header")
        kind = EventKind.LIQUIDITY_REMOVED
    return HEADER_LABELS[kind.value]


# --- ENTRIES ---

class TypedArg(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: str
    value: Any


class EventEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    block_number: int
    transaction_hash: str
    log_index: int
    args: List[TypedArg]

    @classmethod
    def from_log(cls, log, kinds) -> "EventEntry":
        values = list(log["args"].values())
        if len(values) != len(kinds):
            raise EventDecodingError(
                f"Expected {len(kinds)} args, log at block {log['blockNumber']} has {len(values)}"
            )
        args = [TypedArg(kind=kind, value=_check_arg(kind, value)) for kind, value in zip(kinds, values)]
        tx_hash = log["transactionHash"]
        return cls(
            block_number=log["blockNumber"],
            transaction_hash=tx_hash if isinstance(tx_hash, str) else Web3.to_hex(tx_hash),
            log_index=log["logIndex"],
            args=args,
        )


def _check_arg(kind: str, value):
    if kind == ADDRESS:
        if not Web3.is_address(value):
            raise EventDecodingError(f"Not an address: {value!r}")
        return value
    if kind == BALANCE:
        if isinstance(value, bool) or not isinstance(value, int):
            raise EventDecodingError(f"Not a token amount: {value!r}")
        return value
    if kind == SYMBOL:
        return str(value)
    raise EventDecodingError(f"Unknown argument kind '{kind}'")


def row_key(entry: EventEntry) -> str:
    return f"{entry.transaction_hash}:{entry.log_index}"


def legacy_row_key(entry: EventEntry) -> str:
    # block + first arg, collides when one address logs the same event twice in a block
    return f"{entry.block_number}_{entry.args[0].value}"


def find_key_collisions(entries, key=row_key) -> List[str]:
    seen = set()
    duplicates = []
    for entry in entries:
        k = key(entry)
        if k in seen and k not in duplicates:
            duplicates.append(k)
        seen.add(k)
    return duplicates


# --- FORMATTING ---

def format_address(address: str, resolve_name: Optional[Callable] = None) -> str:
    checksum = Web3.to_checksum_address(address)
    if resolve_name is None:
        return checksum
    try:
        name = resolve_name(checksum)
    except (ENSException, Web3Exception, requests.exceptions.RequestException) as e:
        print(f"⚠️  ENS lookup failed for {checksum}: {e}")
        return checksum
    return name or checksum


def format_balance(value: int) -> str:
    return f"{Web3.from_wei(value, 'ether'):.4f}"


def format_arg(arg: TypedArg, resolve_name: Optional[Callable] = None) -> str:
    if arg.kind == ADDRESS:
        return format_address(arg.value, resolve_name)
    if arg.kind == BALANCE:
        return format_balance(arg.value)
    return str(arg.value)


class EventRow(BaseModel):
    key: str
    block_number: int
    cells: List[str]


class EventView(BaseModel):
    title: str
    header: str
    rows: List[EventRow]


def render_rows(entries, resolve_name: Optional[Callable] = None, key=row_key) -> List[EventRow]:
    ordered = sorted(entries, key=lambda e: (e.block_number, e.log_index))
    duplicates = find_key_collisions(ordered, key=key)
    if duplicates:
        print(f"⚠️  Duplicate row keys: {', '.join(duplicates)}")
    return [
        EventRow(
            key=key(entry),
            block_number=entry.block_number,
            cells=[format_arg(arg, resolve_name) for arg in entry.args],
        )
        for entry in ordered
    ]


def render_event_view(entries, event_name: str, resolve_name: Optional[Callable] = None, strict: bool = False) -> EventView:
    return EventView(
        title=f"{event_name} events",
        header=header_label(event_name, strict=strict),
        rows=render_rows(entries, resolve_name),
    )


# --- SUBSCRIPTION ---

class EventFeed:
    """
    Polls decoded logs of one event on one contract from start_block.
    Each poll returns a new list, sorted by block then log index.

    `cache` is shared between feeds (a cachetools TTLCache in the app), so
    every access to it goes through `lock`.
    """

    def __init__(self, contract, event_name: str, cache, lock=None, start_block: int = 1):
        self.kind = EventKind.parse(event_name)
        self.kinds = EVENT_SCHEMAS[self.kind.value]
        self.contract = contract
        self.start_block = start_block
        self.cache = cache
        self.lock = lock or threading.Lock()

    def poll(self) -> List[EventEntry]:
        key = (self.contract.address, self.kind.value, self.start_block)
        with self.lock:
            try:
                entries = self.cache[key]
            except KeyError:
                entries = None
        if entries is not None:
            return list(entries)

        event = self.contract.events[self.kind.value]()
        logs = event.get_logs(from_block=self.start_block)
        entries = sorted(
            (EventEntry.from_log(log, self.kinds) for log in logs),
            key=lambda e: (e.block_number, e.log_index),
        )
        with self.lock:
            self.cache[key] = entries
        return list(entries)


def ens_resolver(mainnet_web3) -> Optional[Callable]:
    """Reverse ENS lookups against mainnet, None when no mainnet node is set up."""
    if mainnet_web3 is None:
        return None
    ns = ENS.from_web3(mainnet_web3)
    return ns.name


# --- PAGE HEADER ---

class PageHeader(BaseModel):
    title: str
    subtitle: str
    href: str


def page_header() -> PageHeader:
    return PageHeader(title=PAGE_TITLE, subtitle=PAGE_SUBTITLE, href=PAGE_LINK)
