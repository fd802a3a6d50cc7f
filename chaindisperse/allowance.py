from enum import Enum
from typing import Optional, Tuple

from web3 import Web3
from web3.exceptions import Web3Exception

from chaindisperse.constants.evm_blockchain import DisperseConstants, TokenConstants
from chaindisperse.exceptions import AllowanceError, NetworkFailure
from chaindisperse.log import logger
from chaindisperse.token_session import AssetDescriptor
from chaindisperse.transaction import ContractTransaction, TransactionOutcome
from chaindisperse.utils.async_utils import RequestFence, with_timeout
from chaindisperse.wallet_session import WalletSession


class AllowanceState(Enum):
    UNKNOWN = "unknown"
    INSUFFICIENT = "insufficient"
    SUFFICIENT = "sufficient"
    APPROVING = "approving"
    REVOKING = "revoking"


BUSY_STATES = (AllowanceState.APPROVING, AllowanceState.REVOKING)


def _asset_key(asset: Optional[AssetDescriptor]) -> Optional[Tuple]:
    return (asset.kind, asset.contract_address) if asset else None


class AllowanceTracker:
    """
    Tracks whether the disperse contract may move the batch total of a token.

    State follows the (asset, total) pair handed to ``bind``. Allowance reads
    are fenced so only the newest one is applied, and a change of asset
    discards everything observed for the previous one.
    """
    def __init__(
            self,
            session: WalletSession,
            transactions: ContractTransaction,
            spender: str = DisperseConstants.DISPERSE_CONTRACT,
            read_timeout: Optional[float] = None
    ):
        self.session = session
        self.transactions = transactions
        self.spender = Web3.to_checksum_address(spender)
        self.read_timeout = read_timeout

        self.asset: Optional[AssetDescriptor] = None
        self.total: int = 0
        self.observed_allowance: Optional[int] = None
        self.state = AllowanceState.UNKNOWN
        self._fence = RequestFence()
        self._epoch = 0

    @property
    def busy(self) -> bool:
        return self.state in BUSY_STATES

    def can_send(self) -> bool:
        """Send is only enabled for native assets or a sufficient allowance."""
        if self.asset is None or self.asset.loading:
            return False
        return self.asset.is_native or self.state is AllowanceState.SUFFICIENT

    def bind(self, asset: Optional[AssetDescriptor], total: int) -> AllowanceState:
        """Attach the tracker to a new (asset, total) pair.

        A new asset drops the observed allowance and fences off in-flight reads.
        A new total is compared against the last observed allowance without
        reading the chain again.
        """
        if _asset_key(asset) != _asset_key(self.asset):
            self._epoch += 1
            self._fence.invalidate()
            self.observed_allowance = None
            self.asset = asset
            self.total = total
            self.state = self._evaluate()
            return self.state

        self.asset = asset
        self.total = total
        if not self.busy:
            self.state = self._evaluate()
        return self.state

    def _needs_allowance(self) -> bool:
        return self.asset is not None and not self.asset.loading and not self.asset.is_native

    def _evaluate(self) -> AllowanceState:
        if not self._needs_allowance() or self.total == 0 or self.observed_allowance is None:
            return AllowanceState.UNKNOWN
        if self.observed_allowance >= self.total:
            return AllowanceState.SUFFICIENT
        return AllowanceState.INSUFFICIENT

    def _token_contract(self):
        return self.session.load_contract(self.asset.contract_address, TokenConstants.ERC20_ABI)

    async def _read_allowance(self) -> int:
        call = self._token_contract().functions.allowance(self.session.address, self.spender).call()
        try:
            return await with_timeout(call, self.read_timeout, 'Allowance lookup')
        except NetworkFailure:
            raise
        except (Web3Exception, ConnectionError, OSError) as e:
            raise NetworkFailure(f'Could not read allowance: {e}') from e

    async def refresh(self) -> AllowanceState:
        """Read the on-chain allowance and re-evaluate sufficiency.

        Returns:
            The state after the read, or the unchanged state if a newer read or
            an asset change superseded this one.

        Raises:
            NetworkFailure: The read failed and was still the newest request.
        """
        if not self._needs_allowance():
            return self.state

        token = self._fence.issue()
        try:
            allowance = await self._read_allowance()
        except NetworkFailure:
            if not self._fence.is_current(token):
                return self.state
            raise

        if not self._fence.is_current(token):
            logger.info(f'Discarding stale allowance read {token}.')
            return self.state

        self.observed_allowance = allowance
        if not self.busy:
            self.state = self._evaluate()
        logger.info(f'Allowance for {self.asset.symbol}: {allowance} against total {self.total} ({self.state.value}).')
        return self.state

    async def approve(self) -> TransactionOutcome:
        """Grant the disperse contract an unlimited allowance."""
        if self.state is not AllowanceState.INSUFFICIENT:
            raise AllowanceError(f'Cannot approve while allowance is {self.state.value}.')
        return await self._submit_allowance(TokenConstants.MAX_UINT256, AllowanceState.APPROVING, 'approve')

    async def revoke(self) -> TransactionOutcome:
        """Set the disperse contract's allowance back to zero."""
        if self.busy or not self._needs_allowance() or not self.observed_allowance:
            raise AllowanceError(f'Nothing to revoke while allowance is {self.state.value}.')
        return await self._submit_allowance(0, AllowanceState.REVOKING, 'revoke')

    async def _submit_allowance(self, amount: int, busy_state: AllowanceState, action: str) -> TransactionOutcome:
        epoch = self._epoch
        label = f'{action} {self.asset.symbol}'
        contract_function = self._token_contract().functions.approve(self.spender, amount)

        self.state = busy_state
        try:
            outcome = await self.transactions.execute(contract_function, action=label)
        except Exception:
            if epoch == self._epoch:
                self.state = self._evaluate()
            raise

        if epoch != self._epoch:
            logger.info(f'Asset changed during {label}; result not applied to the current asset.')
            return outcome

        self.state = self._evaluate()
        if not outcome.success:
            return outcome

        try:
            await self.refresh()
        except NetworkFailure as e:
            logger.warning(f'Allowance re-check after {label} failed: {e}')
            self.observed_allowance = None
            self.state = AllowanceState.UNKNOWN
        return outcome
