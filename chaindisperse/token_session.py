import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from web3 import Web3
from web3.exceptions import Web3Exception

from chaindisperse.constants.evm_blockchain import TokenConstants
from chaindisperse.exceptions import InvalidAssetError, NetworkFailure
from chaindisperse.log import logger
from chaindisperse.utils.async_utils import RequestFence, with_timeout
from chaindisperse.utils.blockchain_utils import format_units
from chaindisperse.wallet_session import WalletSession


class AssetKind(Enum):
    NATIVE = "native"
    NAMED_TOKEN = "named"
    CUSTOM_TOKEN = "custom"


@dataclass(frozen=True)
class AssetDescriptor:
    kind: AssetKind
    contract_address: Optional[str]
    symbol: str
    decimals: int
    holder_balance: int
    loading: bool = False

    @property
    def is_native(self) -> bool:
        return self.kind is AssetKind.NATIVE

    @property
    def display_balance(self) -> str:
        return format_units(self.holder_balance, self.decimals)

    @classmethod
    def placeholder(cls, kind: AssetKind, contract_address: Optional[str] = None) -> 'AssetDescriptor':
        """Descriptor shown while resolution is in flight."""
        return cls(
            kind=kind,
            contract_address=contract_address,
            symbol='',
            decimals=TokenConstants.NATIVE_DECIMALS,
            holder_balance=0,
            loading=True
        )


class TokenSession:
    """
    Resolves which asset is being dispersed and fetches its metadata.

    Only the most recently started resolution may set ``current``; results
    from superseded resolutions are discarded when they arrive.
    """
    def __init__(
            self,
            session: WalletSession,
            named_token_address: str = TokenConstants.NAMED_TOKEN,
            read_timeout: Optional[float] = None
    ):
        """
        Args:
            session: The connected wallet session.
            named_token_address: Contract address of the fixed secondary token.
            read_timeout: Seconds to wait for the metadata reads, None to wait indefinitely.
        """
        self.session = session
        self.named_token_address = Web3.to_checksum_address(named_token_address)
        self.read_timeout = read_timeout
        self.current: Optional[AssetDescriptor] = None
        self._fence = RequestFence()

    @property
    def is_loading(self) -> bool:
        return self.current is not None and self.current.loading

    def clear(self) -> None:
        self._fence.invalidate()
        self.current = None

    async def resolve(self, kind: AssetKind, address: Optional[str] = None) -> Optional[AssetDescriptor]:
        """Resolve an asset and make it the current one.

        Args:
            kind: Which asset kind is selected.
            address: Token contract address, required for CUSTOM_TOKEN.

        Returns:
            The new descriptor, or None if a newer resolution started while this
            one was in flight.

        Raises:
            InvalidAssetError: The address is not a usable token contract.
            NetworkFailure: The node could not be reached.
        """
        token = self._fence.issue()
        try:
            contract_address = self._contract_address_for(kind, address)
            self.current = AssetDescriptor.placeholder(kind, contract_address)
            if kind is AssetKind.NATIVE:
                descriptor = await self._fetch_native()
            else:
                descriptor = await self._fetch_token(kind, contract_address)
        except (InvalidAssetError, NetworkFailure) as e:
            if not self._fence.is_current(token):
                logger.info(f'Discarding failed resolution {token} superseded by {self._fence.latest}: {e}')
                return None
            self.current = None
            logger.warning(f'Asset resolution failed: {e}')
            raise

        if not self._fence.is_current(token):
            logger.info(f'Discarding stale resolution {token} for {descriptor.symbol or kind.value}.')
            return None

        self.current = descriptor
        logger.info(f'Resolved asset {descriptor.symbol} ({kind.value}) with {descriptor.decimals} decimals.')
        return descriptor

    def _contract_address_for(self, kind: AssetKind, address: Optional[str]) -> Optional[str]:
        if kind is AssetKind.NATIVE:
            return None
        if kind is AssetKind.NAMED_TOKEN:
            return self.named_token_address
        if not address or not Web3.is_address(address):
            raise InvalidAssetError(address, 'Not a valid contract address.')
        return Web3.to_checksum_address(address)

    async def _fetch_native(self) -> AssetDescriptor:
        balance = await with_timeout(self.session.get_native_balance(), self.read_timeout, 'Balance lookup')
        return AssetDescriptor(
            kind=AssetKind.NATIVE,
            contract_address=None,
            symbol=self.session.chain.native_symbol,
            decimals=TokenConstants.NATIVE_DECIMALS,
            holder_balance=balance
        )

    async def _fetch_token(self, kind: AssetKind, contract_address: str) -> AssetDescriptor:
        token = self.session.load_contract(contract_address, TokenConstants.ERC20_ABI)
        try:
            symbol, decimals, balance = await with_timeout(
                asyncio.gather(
                    token.functions.symbol().call(),
                    token.functions.decimals().call(),
                    token.functions.balanceOf(self.session.address).call()
                ),
                self.read_timeout,
                'Token metadata lookup'
            )
        except NetworkFailure:
            raise
        except (ConnectionError, OSError) as e:
            raise NetworkFailure(f'Could not reach node: {e}') from e
        except (Web3Exception, ValueError, OverflowError) as e:
            raise InvalidAssetError(contract_address, str(e)) from e

        if not isinstance(symbol, str) or not isinstance(decimals, int) or not 0 <= decimals <= 255:
            raise InvalidAssetError(contract_address, 'Malformed token metadata.')
        if not isinstance(balance, int) or balance < 0:
            raise InvalidAssetError(contract_address, 'Malformed balance.')

        return AssetDescriptor(
            kind=kind,
            contract_address=contract_address,
            symbol=symbol,
            decimals=decimals,
            holder_balance=balance
        )
