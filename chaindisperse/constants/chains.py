from dataclasses import dataclass, field
from typing import Dict, List


@dataclass(frozen=True)
class ChainParams:
    """Parameters a wallet needs to switch to, or register, a chain."""
    chain_id: int
    chain_name: str
    native_symbol: str
    native_name: str
    rpc_urls: List[str] = field(default_factory=list)
    explorer_urls: List[str] = field(default_factory=list)
    native_decimals: int = 18

    @property
    def chain_id_hex(self) -> str:
        return hex(self.chain_id)

    @property
    def explorer_base(self) -> str:
        return self.explorer_urls[0].rstrip('/') if self.explorer_urls else ''

    def add_chain_params(self) -> Dict:
        """Payload for the wallet_addEthereumChain request."""
        return {
            'chainId': self.chain_id_hex,
            'chainName': self.chain_name,
            'nativeCurrency': {
                'name': self.native_name,
                'symbol': self.native_symbol,
                'decimals': self.native_decimals,
            },
            'rpcUrls': list(self.rpc_urls),
            'blockExplorerUrls': list(self.explorer_urls),
        }


BSC_MAINNET = ChainParams(
    chain_id=56,
    chain_name="BNB Smart Chain",
    native_symbol="BNB",
    native_name="BNB",
    rpc_urls=["https://bsc-dataseed.binance.org/"],
    explorer_urls=["https://bscscan.com"],
)

# Wallet provider error codes (EIP-1193 / MetaMask)
USER_REJECTED_CODE: int = 4001
UNRECOGNIZED_CHAIN_CODE: int = 4902
