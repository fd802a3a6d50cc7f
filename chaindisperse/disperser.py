from typing import Dict, List, Optional

from web3 import Web3

from chaindisperse.batch_parser import ParsedBatch
from chaindisperse.constants.evm_blockchain import DisperseConstants
from chaindisperse.exceptions import EmptyBatchError, InvalidAssetError
from chaindisperse.log import logger
from chaindisperse.token_session import AssetDescriptor
from chaindisperse.transaction import ContractTransaction, TransactionOutcome
from chaindisperse.utils.blockchain_utils import format_units
from chaindisperse.wallet_session import WalletSession


class Disperser:
    """
    Used for dispersing the native coin & erc-20 tokens in a single transaction.
    """
    def __init__(
            self,
            session: WalletSession,
            transactions: ContractTransaction,
            disperse_address: str = DisperseConstants.DISPERSE_CONTRACT,
            disperse_abi: Optional[List[Dict]] = None,
            native_function: str = DisperseConstants.NATIVE_FUNCTION,
            token_function: str = DisperseConstants.TOKEN_FUNCTION
    ):
        """
        Args:
            session: The connected wallet session.
            transactions: Transaction handler used to submit and confirm.
            disperse_address: The deployed disperse contract.
            disperse_abi: ABI of the disperse contract.
            native_function: Entry point for batched native transfers.
            token_function: Entry point for batched token transfers.
        """
        self.session = session
        self.transactions = transactions
        self.disperse_address = Web3.to_checksum_address(disperse_address)
        self.disperse_abi = disperse_abi or DisperseConstants.DISPERSE_ABI
        self.native_function = native_function
        self.token_function = token_function

    def load_disperse_contract(self):
        return self.session.load_contract(self.disperse_address, self.disperse_abi)

    async def submit(self, batch: ParsedBatch, asset: AssetDescriptor) -> TransactionOutcome:
        """Disperse a batch to its recipients in one transaction.

        Native transfers attach the batch total as the call value; token
        transfers pass the token address and carry no value. Recipients and
        amounts are passed positionally in input order.

        Args:
            batch: The parsed batch.
            asset: The resolved asset.

        Returns:
            The transaction outcome.

        Raises:
            EmptyBatchError: The batch has no recipients.
            InvalidAssetError: The asset is still resolving.
        """
        if batch.is_empty:
            raise EmptyBatchError()
        if asset.loading:
            raise InvalidAssetError(asset.contract_address, 'Asset is still loading.')

        if asset.holder_balance < batch.total:
            logger.warning(f'{asset.symbol} balance of {asset.display_balance} is below the '
                           f'{format_units(batch.total, asset.decimals)} batch total.')

        disperse_instance = self.load_disperse_contract()
        recipients = batch.recipients
        amounts = list(batch.scaled_amounts)

        if asset.is_native:
            contract_function = getattr(disperse_instance.functions, self.native_function)(recipients, amounts)
            value = batch.total
        else:
            contract_function = getattr(disperse_instance.functions, self.token_function)(
                asset.contract_address, recipients, amounts
            )
            value = 0

        logger.info(f'Dispersing {format_units(batch.total, asset.decimals)} {asset.symbol} '
                    f'to {len(recipients)} wallets.')
        return await self.transactions.execute(contract_function, value=value, action=f'disperse {asset.symbol}')
