from typing import Optional

from chaindisperse.allowance import AllowanceState, AllowanceTracker
from chaindisperse.batch_parser import ParsedBatch, parse
from chaindisperse.constants.evm_blockchain import DisperseConstants, TokenConstants, TransactionFields
from chaindisperse.disperser import Disperser
from chaindisperse.exceptions import AllowanceError, EmptyBatchError, NetworkFailure
from chaindisperse.log import logger
from chaindisperse.token_session import AssetDescriptor, AssetKind, TokenSession
from chaindisperse.transaction import ContractTransaction, TransactionOutcome
from chaindisperse.utils.csv_utils import export_batch_to_csv, load_recipients_text_from_csv
from chaindisperse.wallet_session import WalletSession


class DisperseManager:
    """
    One user's disperse session: recipient text, selected asset and allowance.

    Owns exactly one batch, one asset descriptor and one allowance state. The
    batch is re-parsed whenever the text changes or a new asset (and with it a
    new decimal scale) is applied.
    """

    def __init__(
            self,
            session: WalletSession,
            disperse_address: str = DisperseConstants.DISPERSE_CONTRACT,
            named_token_address: str = TokenConstants.NAMED_TOKEN,
            receipt_timeout: float = TransactionFields.RECEIPT_TIMEOUT,
            read_timeout: Optional[float] = None,
            max_fee: float = None,
            max_priority_fee: float = None
    ):
        """
        Args:
            session: The connected wallet session.
            disperse_address: The deployed disperse contract.
            named_token_address: The fixed secondary token.
            receipt_timeout: Seconds to wait for transaction receipts.
            read_timeout: Seconds to wait for chain reads.
            max_fee: Max gas fee in gwei (local signing only).
            max_priority_fee: Max priority fee in gwei (local signing only).
        """
        self.session = session
        self.transactions = ContractTransaction(session, receipt_timeout, max_fee, max_priority_fee)
        self.token_session = TokenSession(session, named_token_address, read_timeout=read_timeout)
        self.allowance = AllowanceTracker(session, self.transactions, spender=disperse_address,
                                          read_timeout=read_timeout)
        self.disperser = Disperser(session, self.transactions, disperse_address=disperse_address)
        self.recipients_text = ''
        self._batch: Optional[ParsedBatch] = None
        self._batch_asset: Optional[AssetDescriptor] = None

    @property
    def asset(self) -> Optional[AssetDescriptor]:
        return self.token_session.current

    @property
    def batch(self) -> Optional[ParsedBatch]:
        """The batch parsed against the current asset, None while no asset is resolved."""
        asset = self.asset
        if asset is None or asset.loading or self._batch_asset is not asset:
            return None
        return self._batch

    @property
    def allowance_state(self) -> AllowanceState:
        return self.allowance.state

    def can_send(self) -> bool:
        batch = self.batch
        return (
            batch is not None
            and not batch.is_empty
            and self.allowance.asset is self.asset
            and self.allowance.can_send()
        )

    def _rebuild(self) -> None:
        asset = self.asset
        if asset is None or asset.loading:
            self._batch = None
            self._batch_asset = None
            self.allowance.bind(None, 0)
            return
        self._batch = parse(self.recipients_text, asset.decimals)
        self._batch_asset = asset
        self.allowance.bind(asset, self._batch.total)

    def set_recipients_text(self, text: str) -> Optional[ParsedBatch]:
        """Replace the recipient text and re-parse it against the current asset."""
        self.recipients_text = text or ''
        self._rebuild()
        return self.batch

    def load_recipients_csv(self, file_path: str) -> Optional[ParsedBatch]:
        """Load recipients from a csv file with address and amount columns."""
        text = load_recipients_text_from_csv(file_path)
        logger.info(f'Loaded recipients from {file_path}.')
        return self.set_recipients_text(text)

    def export_batch_csv(self, file_path: str) -> None:
        """Exports the current batch to a CSV file."""
        assert self.batch is not None, 'No asset selected, nothing to export.'
        export_batch_to_csv(self.batch, file_path)

    async def select_asset(self, kind: AssetKind, address: Optional[str] = None) -> Optional[AssetDescriptor]:
        """Switch the asset being dispersed.

        The batch is invalidated until the new asset resolves, then re-parsed
        with its decimals and its allowance is read.

        Returns:
            The applied descriptor, or None if a newer selection superseded it.
        """
        try:
            descriptor = await self.token_session.resolve(kind, address)
        finally:
            self._rebuild()
        if descriptor is not None and descriptor is self.asset and not descriptor.is_native:
            await self.refresh_allowance()
        return descriptor

    async def refresh_allowance(self) -> AllowanceState:
        return await self.allowance.refresh()

    async def approve(self) -> TransactionOutcome:
        return await self.allowance.approve()

    async def revoke(self) -> TransactionOutcome:
        return await self.allowance.revoke()

    async def send(self) -> TransactionOutcome:
        """Disperse the current batch.

        Raises:
            EmptyBatchError: There are no valid recipients.
            AllowanceError: A token disperse is not yet authorized.
        """
        batch = self.batch
        if batch is None or batch.is_empty:
            raise EmptyBatchError()
        asset = self.asset
        if not self.can_send():
            raise AllowanceError(f'Allowance is {self.allowance.state.value}; approve {asset.symbol} first.')

        outcome = await self.disperser.submit(batch, asset)
        if outcome.success and not asset.is_native:
            try:
                await self.refresh_allowance()
            except NetworkFailure as e:
                logger.warning(f'Allowance re-check after disperse failed: {e}')
        return outcome

    def explorer_link(self, outcome: TransactionOutcome) -> Optional[str]:
        return outcome.explorer_url(self.session.chain.explorer_base)

    def disconnect(self) -> None:
        self.token_session.clear()
        self._rebuild()
        self.session.disconnect()
