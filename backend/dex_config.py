# dex_config.py

LOCAL_CHAIN_ID = 31337

# Hardhat account #0, gets 10 balloons on a local deploy
SEED_RECIPIENT = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"

# --- AMOUNTS (base units, 10**18 per whole token) ---
WEI_PER_ETHER = 10**18
SEED_TRANSFER_AMOUNT = 10 * WEI_PER_ETHER
APPROVE_AMOUNT = 100 * WEI_PER_ETHER
INIT_TOKEN_AMOUNT = 2 * WEI_PER_ETHER // 100  # 0.02
INIT_ETH_VALUE = 2 * WEI_PER_ETHER // 100  # 0.02

INIT_GAS_LIMIT = 200000
EXCHANGE_CONFIRMATIONS = 5

TOKEN_CONTRACT = "Balloons"
EXCHANGE_CONTRACT = "DEX"

# Argument kinds, declared per event instead of guessed from rendered values
ADDRESS = "address"
SYMBOL = "symbol"
BALANCE = "balance"

EVENT_SCHEMAS = {
    "EthToTokenSwap": (ADDRESS, SYMBOL, BALANCE, BALANCE),
    "TokenToEthSwap": (ADDRESS, SYMBOL, BALANCE, BALANCE),
    "LiquidityProvided": (ADDRESS, BALANCE, BALANCE, BALANCE),
    "LiquidityRemoved": (ADDRESS, BALANCE, BALANCE, BALANCE),
}

HEADER_LABELS = {
    "EthToTokenSwap": "Ξ $ETH → 🎈 $BAL | Address | Trade | AmountIn | AmountOut",
    "TokenToEthSwap": "🎈 $BAL → Ξ $ETH | Address | Trade | AmountOut | AmountIn",
    "LiquidityProvided": "➕ Address | Liquidity Minted | Ξ $ETH in | 🎈 $BAL in",
    "LiquidityRemoved": "➖ Address | Liquidity Withdrawn | Ξ $ETH out | 🎈 $BAL out ",
}

PAGE_TITLE = "⚖️ Minimum Viable DEX"
PAGE_SUBTITLE = "The simples decentralized exchange example. Trade Ξ ETH for 🎈 balloons"
PAGE_LINK = "https://github.com/austintgriffith/scaffold-eth"


def _event(name, inputs):
    return {
        "anonymous": False,
        "inputs": [
            {"indexed": False, "internalType": t, "name": n, "type": t} for n, t in inputs
        ],
        "name": name,
        "type": "event",
    }


BALLOONS_ABI = [
    {
        "inputs": [
            {"internalType": "address", "name": "to", "type": "address"},
            {"internalType": "uint256", "name": "amount", "type": "uint256"}
        ],
        "name": "transfer",
        "outputs": [{"internalType": "bool", "name": "", "type": "bool"}],
        "stateMutability": "nonpayable",
        "type": "function"
    },
    {
        "inputs": [
            {"internalType": "address", "name": "spender", "type": "address"},
            {"internalType": "uint256", "name": "amount", "type": "uint256"}
        ],
        "name": "approve",
        "outputs": [{"internalType": "bool", "name": "", "type": "bool"}],
        "stateMutability": "nonpayable",
        "type": "function"
    },
    {
        "inputs": [{"internalType": "address", "name": "account", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [],
        "name": "totalSupply",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function"
    },
]

DEX_ABI = [
    {
        "inputs": [{"internalType": "address", "name": "token_addr", "type": "address"}],
        "stateMutability": "nonpayable",
        "type": "constructor"
    },
    {
        "inputs": [{"internalType": "uint256", "name": "tokens", "type": "uint256"}],
        "name": "init",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "payable",
        "type": "function"
    },
    _event("EthToTokenSwap", [
        ("swapper", "address"), ("txDetails", "string"),
        ("ethInput", "uint256"), ("tokenOutput", "uint256"),
    ]),
    _event("TokenToEthSwap", [
        ("swapper", "address"), ("txDetails", "string"),
        ("tokensInput", "uint256"), ("ethOutput", "uint256"),
    ]),
    _event("LiquidityProvided", [
        ("liquidityProvider", "address"), ("liquidityMinted", "uint256"),
        ("ethInput", "uint256"), ("tokensInput", "uint256"),
    ]),
    _event("LiquidityRemoved", [
        ("liquidityRemover", "address"), ("liquidityWithdrawn", "uint256"),
        ("ethOutput", "uint256"), ("tokensOutput", "uint256"),
    ]),
]

# Fallback ABIs for contracts whose registry entry carries none
CONTRACT_ABIS = {
    TOKEN_CONTRACT: BALLOONS_ABI,
    EXCHANGE_CONTRACT: DEX_ABI,
}
