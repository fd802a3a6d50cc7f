import asyncio
from dataclasses import dataclass, field
from typing import Dict, Optional

from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted, Web3Exception, Web3RPCError

from chaindisperse.constants.chains import USER_REJECTED_CODE
from chaindisperse.constants.evm_blockchain import TransactionFields
from chaindisperse.exceptions import ChainReverted, NetworkFailure, TransactionError, UserRejected
from chaindisperse.log import logger
from chaindisperse.utils.blockchain_utils import explorer_tx_url, to_hex_hash
from chaindisperse.wallet_session import WalletSession


@dataclass(frozen=True)
class TransactionOutcome:
    """Display-only result of one user-initiated submit (approve, revoke or disperse)."""
    action: str
    tx_hash: Optional[str] = None
    reason: Optional[str] = None
    error: Optional[TransactionError] = field(default=None, compare=False)

    @classmethod
    def failure(cls, action: str, error: TransactionError, tx_hash: Optional[str] = None) -> 'TransactionOutcome':
        return cls(action=action, tx_hash=tx_hash, reason=str(error) or error.__class__.__name__, error=error)

    @property
    def success(self) -> bool:
        return self.tx_hash is not None and self.error is None

    def explorer_url(self, explorer_base: str) -> Optional[str]:
        return explorer_tx_url(explorer_base, self.tx_hash) if self.tx_hash else None

    def summary(self) -> str:
        if self.success:
            return f'{self.action} succeeded: {self.tx_hash}'
        return f'{self.action} failed: {self.reason}'


def _rpc_error(exc: Web3RPCError) -> Dict:
    response = getattr(exc, 'rpc_response', None) or {}
    error = response.get('error') if isinstance(response, dict) else None
    return error if isinstance(error, dict) else {}


def classify_error(exc: Exception) -> Optional[TransactionError]:
    """Map a web3/provider exception onto the transaction error taxonomy.

    Returns None for exceptions that are not chain or provider failures, which
    callers should let propagate.
    """
    if isinstance(exc, TransactionError):
        return exc
    if isinstance(exc, ContractLogicError):
        return ChainReverted(f'Execution reverted: {exc.message or "no reason given"}')
    if isinstance(exc, Web3RPCError):
        error = _rpc_error(exc)
        code = error.get('code')
        message = error.get('message') or str(exc)
        if code == USER_REJECTED_CODE:
            return UserRejected(message)
        if 'revert' in message.lower():
            return ChainReverted(message)
        return NetworkFailure(message, code=code)
    if isinstance(exc, TimeExhausted):
        return NetworkFailure(f'Timed out waiting for confirmation: {exc}')
    if isinstance(exc, (ConnectionError, OSError, asyncio.TimeoutError)):
        return NetworkFailure(f'Network error: {exc}')
    if isinstance(exc, Web3Exception):
        return NetworkFailure(str(exc))
    return None


class ContractTransaction:
    """
    Methods relating to sending/querying transactions for a wallet session.
    """
    def __init__(
            self,
            session: WalletSession,
            receipt_timeout: float = TransactionFields.RECEIPT_TIMEOUT,
            max_fee: float = None,
            max_priority_fee: float = None
    ):
        """
        Args:
            session: The connected wallet session.
            receipt_timeout: Seconds to wait for a transaction receipt.
            max_fee: Max gas fee in gwei, for locally signed transactions.
            max_priority_fee: Max priority fee in gwei, for locally signed transactions.
        """
        assert (max_fee is not None and max_priority_fee is not None) or (
                max_fee is None and max_priority_fee is None), \
            "Either both max_fee and max_priority_fee should be provided or both should be None."
        self.session = session
        self.receipt_timeout = receipt_timeout
        self.max_fee = max_fee
        self.max_priority_fee = max_priority_fee

    async def build_transaction(self, contract_function, value: int = 0) -> Dict:
        """Build a fully populated transaction for local signing."""
        w3 = self.session.w3
        sender = self.session.address

        gas_estimate = await contract_function.estimate_gas({'from': sender, 'value': value})
        nonce = await w3.eth.get_transaction_count(sender)

        if self.max_fee is not None:
            gas_price = {
                TransactionFields.MAX_FEE_KEY: Web3.to_wei(self.max_fee, 'gwei'),
                TransactionFields.MAX_PRIORITY_KEY: Web3.to_wei(self.max_priority_fee, 'gwei')
            }
            logger.info(f'Custom gas settings: {self.max_fee} max fee {self.max_priority_fee} priority fee.')
        else:
            gas_price = {'gasPrice': await w3.eth.gas_price}
            est_gwei = round(float(Web3.from_wei(gas_price['gasPrice'], 'gwei')))
            logger.info(f'Gas estimate for current tx: {est_gwei} gwei.')

        transaction = await contract_function.build_transaction({
            'from': sender,
            'value': value,
            'gas': gas_estimate,
            'nonce': nonce,
            'chainId': await w3.eth.chain_id,
            **gas_price
        })
        return transaction

    async def send_transaction(self, contract_function, value: int = 0) -> str:
        """Sign and send a contract call, returning its hash.

        Signs locally when the session holds a private key, otherwise hands the
        call to the wallet provider to sign.
        """
        if self.session.private_key:
            transaction = await self.build_transaction(contract_function, value)
            signed_txn = self.session.w3.eth.account.sign_transaction(transaction, self.session.private_key)
            tx_hash = await self.session.w3.eth.send_raw_transaction(signed_txn.raw_transaction)
        else:
            params = {'from': self.session.address}
            if value:
                params['value'] = value
            tx_hash = await contract_function.transact(params)
        return to_hex_hash(tx_hash)

    async def wait_for_confirmation(self, tx_hash: str) -> Dict:
        receipt = await self.session.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout)
        if receipt['status'] == 0:
            raise ChainReverted(f'Transaction {tx_hash} reverted.', tx_hash=tx_hash)
        return receipt

    async def execute(self, contract_function, value: int = 0, action: str = 'transaction') -> TransactionOutcome:
        """Submit a contract call and wait until it is confirmed or fails.

        Args:
            contract_function: A prepared contract function call.
            value: Native value in wei to attach.
            action: Label used in logs and in the outcome.

        Returns:
            The outcome; chain and provider failures are reported in it rather
            than raised.
        """
        tx_hash = None
        try:
            tx_hash = await self.send_transaction(contract_function, value)
            logger.info(f'{action} submitted at hash {tx_hash}.')
            await self.wait_for_confirmation(tx_hash)
        except Exception as e:
            error = classify_error(e)
            if error is None:
                raise
            logger.warning(f'{action} failed{f" at hash {tx_hash}" if tx_hash else ""}: {error}')
            return TransactionOutcome.failure(action, error, tx_hash)

        logger.info(f'{action} confirmed at hash {tx_hash}.')
        return TransactionOutcome(action=action, tx_hash=tx_hash)
