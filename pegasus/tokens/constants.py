"""Token addresses, decimals, logos, default prices and contract ABIs."""

# 1inch sentinel for the chain's native token
NATIVE_TOKEN_ADDRESS = "0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee"

DEFAULT_DECIMALS = 18

# Canonical token addresses per chain: symbol -> address (lowercase)
TOKEN_ADDRESSES: dict[int, dict[str, str]] = {
    1: {
        "ETH": NATIVE_TOKEN_ADDRESS,
        "WETH": "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2",
        "USDC": "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48",
        "USDT": "0xdac17f958d2ee523a2206206994597c13d831ec7",
        "DAI": "0x6b175474e89094c44da98b954eedeac495271d0f",
        "WBTC": "0x2260fac5e5542a773aa44fbcfedf7c193bc2c599",
        "1INCH": "0x111111111117dc0aa78b770fa6a738034120c302",
    },
    42161: {
        "ETH": NATIVE_TOKEN_ADDRESS,
        "WETH": "0x82af49447d8a07e3bd95bd0d56f35241523fbab1",
        "USDC": "0xaf88d065e77c8cc2239327c5edb3a432268e5831",
        "USDT": "0xfd086bc7cd5c481dcc9c85ebe478a1c0b69fcbb9",
        "WBTC": "0x2f2a2543b76a4166549f7aab2e75bef0aefc5b0f",
        "ARB": "0x912ce59144191c1204e64559fe8253a0e49e6548",
        "1INCH": "0x6314c31a7a1652ce482cffe247e9cb7c3f4bb9af",
    },
    137: {
        "MATIC": NATIVE_TOKEN_ADDRESS,
        "WETH": "0x7ceb23fd6bc0add59e62ac25578270cff1b9f619",
        "USDC": "0x2791bca1f2de4661ed88a30c99a7a9449aa84174",
        "USDT": "0xc2132d05d31c914a87c6611c10748aeb04b58e8f",
        "1INCH": "0x9c2c5fd7b07e95ee044ddeba0e97a665f142394f",
    },
    56: {
        "BNB": NATIVE_TOKEN_ADDRESS,
        "WETH": "0x2170ed0880ac9a755fd29b2688956bd959f933f8",
        "USDC": "0x8ac76a51cc950d9822d68b83fe1ad97b32cd580d",
        "USDT": "0x55d398326f99059ff775485246999027b3197955",
        "1INCH": "0x111111111117dc0aa78b770fa6a738034120c302",
    },
    43114: {
        "AVAX": NATIVE_TOKEN_ADDRESS,
    },
}

# Decimals by symbol. Chain-specific exceptions (BSC pegged stables use 18) go in
# TOKEN_DECIMALS_BY_CHAIN.
TOKEN_DECIMALS: dict[str, int] = {
    "ETH": 18,
    "WETH": 18,
    "USDC": 6,
    "USDT": 6,
    "DAI": 18,
    "WBTC": 8,
    "BTC": 8,
    "BNB": 18,
    "MATIC": 18,
    "AVAX": 18,
    "ARB": 18,
    "1INCH": 18,
    "XTZ": 6,
    "KUSD": 18,
    "PGS": 18,
}

TOKEN_DECIMALS_BY_CHAIN: dict[int, dict[str, int]] = {
    56: {"USDC": 18, "USDT": 18},
}

# CoinGecko ids for the secondary price source
COINGECKO_IDS: dict[str, str] = {
    "ETH": "ethereum",
    "WETH": "weth",
    "USDC": "usd-coin",
    "USDT": "tether",
    "DAI": "dai",
    "BTC": "bitcoin",
    "WBTC": "wrapped-bitcoin",
    "BNB": "binancecoin",
    "MATIC": "matic-network",
    "AVAX": "avalanche-2",
    "ARB": "arbitrum",
    "1INCH": "1inch",
    "XTZ": "tezos",
    "KUSD": "kolibri-usd",
}

STABLECOINS: frozenset[str] = frozenset({"USDC", "USDT", "DAI", "KUSD"})

# Last-resort USD prices when every upstream source is down
DEFAULT_PRICES_USD: dict[str, str] = {
    "ETH": "2450",
    "WETH": "2450",
    "USDC": "1",
    "USDT": "1",
    "DAI": "1",
    "BTC": "45000",
    "WBTC": "45000",
    "XTZ": "1.2",
    "KUSD": "1",
    "BNB": "320",
    "MATIC": "0.8",
    "AVAX": "25",
    "ARB": "1.1",
    "1INCH": "0.4",
}

_COINGECKO_IMAGES = "https://assets.coingecko.com/coins/images"

TOKEN_LOGOS: dict[str, str] = {
    "ETH": f"{_COINGECKO_IMAGES}/279/small/ethereum.png",
    "WETH": f"{_COINGECKO_IMAGES}/2518/small/weth.png",
    "USDC": f"{_COINGECKO_IMAGES}/6319/small/USD_Coin_icon.png",
    "USDT": f"{_COINGECKO_IMAGES}/325/small/Tether.png",
    "DAI": f"{_COINGECKO_IMAGES}/9956/small/dai-multi-collateral-mcd.png",
    "BTC": f"{_COINGECKO_IMAGES}/1/small/bitcoin.png",
    "WBTC": f"{_COINGECKO_IMAGES}/7598/small/wrapped_bitcoin_wbtc.png",
    "BNB": f"{_COINGECKO_IMAGES}/825/small/bnb-icon2_2x.png",
    "MATIC": f"{_COINGECKO_IMAGES}/4713/small/matic-token-icon.png",
    "AVAX": f"{_COINGECKO_IMAGES}/12559/small/Avalanche_Circle_RedWhite_Trans.png",
    "XTZ": f"{_COINGECKO_IMAGES}/976/small/Tezos-logo.png",
    "KUSD": f"{_COINGECKO_IMAGES}/14441/small/kolibri-logo.png",
}

GENERIC_TOKEN_LOGO = "https://assets.coingecko.com/coins/images/1/small/generic-token.png"

# PGS reward token (consumed, not deployed here)
REWARD_TOKEN_ABI = [
    {
        "inputs": [],
        "name": "getPricingInfo",
        "outputs": [
            {"name": "currentMultiplier", "type": "uint256"},
            {"name": "totalSwapped", "type": "uint256"},
            {"name": "nextHalveningAt", "type": "uint256"},
            {"name": "halvenings", "type": "uint256"},
            {"name": "tokensPerDollar", "type": "uint256"},
        ],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "totalSupply",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "name",
        "outputs": [{"name": "", "type": "string"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "symbol",
        "outputs": [{"name": "", "type": "string"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "rewardAmount", "type": "uint256"},
            {"name": "usdSwapped", "type": "uint256"},
        ],
        "name": "mintRewardForSwap",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "name": "from", "type": "address"},
            {"indexed": True, "name": "to", "type": "address"},
            {"indexed": False, "name": "value", "type": "uint256"},
        ],
        "name": "Transfer",
        "type": "event",
    },
]

_GASLESS_SWAP_COMPONENTS = [
    {"name": "user", "type": "address"},
    {"name": "fromToken", "type": "address"},
    {"name": "toToken", "type": "address"},
    {"name": "fromAmount", "type": "uint256"},
    {"name": "minToAmount", "type": "uint256"},
    {"name": "deadline", "type": "uint256"},
    {"name": "nonce", "type": "uint256"},
]

GASLESS_SWAP_ABI = [
    {
        "inputs": [
            {"name": "swap", "type": "tuple", "components": _GASLESS_SWAP_COMPONENTS},
            {"name": "signature", "type": "bytes"},
        ],
        "name": "executeGaslessSwap",
        "outputs": [],
        "stateMutability": "payable",
        "type": "function",
    },
    {
        "inputs": [{"name": "user", "type": "address"}],
        "name": "userNonces",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "maxGasPrice",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
]

# EIP-712 struct signed by users for gasless swaps
GASLESS_SWAP_TYPES = {
    "GaslessSwap": _GASLESS_SWAP_COMPONENTS,
}
