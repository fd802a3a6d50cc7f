import asyncio
from typing import Any, Dict, List, Optional

from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.contract import AsyncContract
from web3.exceptions import Web3Exception
from web3.types import RPCEndpoint

from chaindisperse.constants.chains import BSC_MAINNET, ChainParams, UNRECOGNIZED_CHAIN_CODE, USER_REJECTED_CODE
from chaindisperse.exceptions import ChainMismatch, NetworkFailure, SessionError, UserRejected
from chaindisperse.log import logger
from chaindisperse.utils.blockchain_utils import get_wallet_balance


def _error_code(error: Dict) -> Optional[int]:
    """Extract a provider error code, including MetaMask's nested originalError."""
    code = error.get('code')
    data = error.get('data')
    if isinstance(data, dict):
        original = data.get('originalError')
        if isinstance(original, dict) and original.get('code') is not None:
            code = original['code']
    return code


class WalletSession:
    """
    The connected wallet: web3 handle, account and target chain.

    Created by ``connect`` and cleared by ``disconnect``; every component that
    needs the signer or the chain is handed the session explicitly.
    """
    def __init__(
            self,
            w3: AsyncWeb3,
            address: str,
            private_key: Optional[str] = None,
            chain: ChainParams = BSC_MAINNET
    ):
        self._w3 = w3
        self._address = Web3.to_checksum_address(address)
        self._private_key = private_key
        self.chain = chain

    @classmethod
    async def connect(
            cls,
            w3: Optional[AsyncWeb3] = None,
            rpc_url: Optional[str] = None,
            private_key: Optional[str] = None,
            chain: ChainParams = BSC_MAINNET
    ) -> 'WalletSession':
        """Open a session against a wallet provider or a node.

        With a private key the account is derived locally and transactions are
        signed in-process. Without one, the provider is asked for its accounts
        and signs on our behalf.

        Args:
            w3: An existing AsyncWeb3 instance (e.g. wrapping a browser wallet).
            rpc_url: Node URL, used when no w3 instance is supplied.
            private_key: Optional key for local signing.
            chain: The chain the disperse contract lives on.

        Returns:
            A connected session.
        """
        if w3 is None:
            assert rpc_url or chain.rpc_urls, 'Need an RPC url or a web3 instance to connect.'
            w3 = AsyncWeb3(AsyncHTTPProvider(rpc_url or chain.rpc_urls[0]))

        if private_key:
            address = w3.eth.account.from_key(private_key).address
        else:
            accounts = await cls._provider_request(w3, 'eth_requestAccounts', [])
            if not accounts:
                raise SessionError('Wallet provider returned no accounts.')
            address = accounts[0]

        session = cls(w3, address, private_key=private_key, chain=chain)
        logger.info(f'Wallet session connected for {session.address} on {chain.chain_name}.')
        return session

    @property
    def connected(self) -> bool:
        return self._w3 is not None

    @property
    def w3(self) -> AsyncWeb3:
        if self._w3 is None:
            raise SessionError('Wallet session is disconnected.')
        return self._w3

    @property
    def address(self) -> str:
        if self._address is None:
            raise SessionError('Wallet session is disconnected.')
        return self._address

    @property
    def private_key(self) -> Optional[str]:
        return self._private_key

    def disconnect(self) -> None:
        logger.info(f'Wallet session for {self._address} disconnected.')
        self._w3 = None
        self._address = None
        self._private_key = None

    def load_contract(self, contract_address: str, contract_abi: List[Dict]) -> AsyncContract:
        contract_address = Web3.to_checksum_address(contract_address)
        return self.w3.eth.contract(address=contract_address, abi=contract_abi)

    async def get_native_balance(self) -> int:
        try:
            return await get_wallet_balance(self.w3, self.address)
        except (Web3Exception, ConnectionError, OSError, asyncio.TimeoutError) as e:
            raise NetworkFailure(f'Could not fetch balance: {e}') from e

    async def wallet_request(self, method: str, params: List[Any]) -> Any:
        return await self._provider_request(self.w3, method, params)

    @staticmethod
    async def _provider_request(w3: AsyncWeb3, method: str, params: List[Any]) -> Any:
        try:
            response = await w3.provider.make_request(RPCEndpoint(method), params)
        except (ConnectionError, OSError, asyncio.TimeoutError) as e:
            raise NetworkFailure(f'{method} failed: {e}') from e

        error = response.get('error')
        if error:
            code = _error_code(error)
            message = error.get('message') or f'{method} failed.'
            if code == USER_REJECTED_CODE:
                raise UserRejected(message)
            raise NetworkFailure(message, code=code)
        return response.get('result')

    async def current_chain_id(self) -> int:
        try:
            return await self.w3.eth.chain_id
        except (Web3Exception, ConnectionError, OSError, asyncio.TimeoutError) as e:
            raise NetworkFailure(f'Could not query chain id: {e}') from e

    async def check_chain(self) -> None:
        """Raises ChainMismatch when the provider is not on the session's chain."""
        actual = await self.current_chain_id()
        if actual != self.chain.chain_id:
            raise ChainMismatch(expected=self.chain.chain_id, actual=actual)

    async def ensure_chain(self) -> bool:
        """Prompt the wallet to switch to (or add) the session's chain.

        Returns:
            True when the provider ends up on the expected chain, False if the
            user declined. A declined switch leaves the session usable; later
            contract calls may fail with NetworkFailure.
        """
        try:
            await self.check_chain()
            return True
        except ChainMismatch as mismatch:
            logger.info(f'{mismatch} Requesting chain switch.')

        try:
            await self.wallet_request('wallet_switchEthereumChain', [{'chainId': self.chain.chain_id_hex}])
        except UserRejected:
            logger.warning(f'User declined switching to {self.chain.chain_name}.')
            return False
        except NetworkFailure as e:
            if e.code != UNRECOGNIZED_CHAIN_CODE:
                raise
            logger.info(f'{self.chain.chain_name} unknown to wallet, requesting it be added.')
            try:
                await self.wallet_request('wallet_addEthereumChain', [self.chain.add_chain_params()])
            except UserRejected:
                logger.warning(f'User declined adding {self.chain.chain_name}.')
                return False

        logger.info(f'Wallet switched to {self.chain.chain_name}.')
        return True
