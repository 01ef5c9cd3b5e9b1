"""Chains the gateway can settle on, keyed by chain_id."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ChainConfig:
    chain_id: int
    name: str
    native_token: str
    explorer: str
    is_poa: bool = False
    is_testnet: bool = False

    def tx_url(self, tx_hash: str) -> str:
        return f"{self.explorer}/tx/{tx_hash}"


CHAINS: dict[int, ChainConfig] = {
    1: ChainConfig(1, "ethereum", "ETH", "https://etherscan.io"),
    42161: ChainConfig(42161, "arbitrum", "ETH", "https://arbiscan.io", is_poa=True),
    421614: ChainConfig(421614, "arbitrum-sepolia", "ETH", "https://sepolia.arbiscan.io", is_poa=True, is_testnet=True),
    137: ChainConfig(137, "polygon", "MATIC", "https://polygonscan.com", is_poa=True),
    56: ChainConfig(56, "bsc", "BNB", "https://bscscan.com", is_poa=True),
    43114: ChainConfig(43114, "avalanche", "AVAX", "https://snowtrace.io", is_poa=True),
}

CHAIN_NAME_TO_ID: dict[str, int] = {c.name: c.chain_id for c in CHAINS.values()}


def get_chain_config(chain_id: int) -> ChainConfig:
    if chain_id not in CHAINS:
        raise ValueError(f"Unsupported chain_id={chain_id}. Supported: {sorted(CHAINS)}")
    return CHAINS[chain_id]


def resolve_chain(name_or_id: str | int) -> ChainConfig:
    """Accept 42161, "42161" or "arbitrum"."""
    if isinstance(name_or_id, int) or str(name_or_id).isdigit():
        return get_chain_config(int(name_or_id))
    name = str(name_or_id).lower()
    if name not in CHAIN_NAME_TO_ID:
        raise ValueError(f"Unknown chain '{name}'. Supported: {sorted(CHAIN_NAME_TO_ID)}")
    return CHAINS[CHAIN_NAME_TO_ID[name]]
