import unittest

from web3.exceptions import Web3RPCError

from chaindisperse.constants.chains import BSC_MAINNET
from chaindisperse.exceptions import ChainMismatch, NetworkFailure, SessionError, UserRejected
from chaindisperse.tests.fakes import FakeWeb3, make_session, rpc_error
from chaindisperse.tests.test_constants import HOLDER_ADDRESS, ONE_ETHER, TEST_PRIVATE_KEY
from chaindisperse.wallet_session import WalletSession


class TestWalletSession(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.w3 = FakeWeb3(chain_id=1)

    async def test_connect_with_provider_accounts(self):
        self.w3.provider.responses['eth_requestAccounts'] = {'result': [HOLDER_ADDRESS.lower()]}
        session = await WalletSession.connect(w3=self.w3)
        self.assertEqual(session.address, HOLDER_ADDRESS)
        self.assertIsNone(session.private_key)
        self.assertTrue(session.connected)

    async def test_connect_rejected(self):
        self.w3.provider.responses['eth_requestAccounts'] = rpc_error(4001, 'User rejected the request.')
        with self.assertRaises(UserRejected):
            await WalletSession.connect(w3=self.w3)

    async def test_connect_without_accounts(self):
        self.w3.provider.responses['eth_requestAccounts'] = {'result': []}
        with self.assertRaises(SessionError):
            await WalletSession.connect(w3=self.w3)

    async def test_connect_with_private_key(self):
        session = await WalletSession.connect(w3=self.w3, private_key=TEST_PRIVATE_KEY)
        self.assertEqual(session.address, HOLDER_ADDRESS)
        self.assertEqual(self.w3.provider.requests, [])

    async def test_disconnect_clears_session(self):
        session = make_session(self.w3, private_key=TEST_PRIVATE_KEY)
        session.disconnect()
        self.assertFalse(session.connected)
        self.assertIsNone(session.private_key)
        with self.assertRaises(SessionError):
            session.address
        with self.assertRaises(SessionError):
            await session.get_native_balance()

    async def test_native_balance(self):
        self.w3.eth.balances[HOLDER_ADDRESS] = ONE_ETHER
        self.assertEqual(await make_session(self.w3).get_native_balance(), ONE_ETHER)

    async def test_native_balance_rpc_error(self):
        async def rate_limited(address):
            raise Web3RPCError('rate limited')
        self.w3.eth.get_balance = rate_limited
        with self.assertRaises(NetworkFailure):
            await make_session(self.w3).get_native_balance()

    async def test_check_chain(self):
        session = make_session(self.w3)
        with self.assertRaises(ChainMismatch) as context:
            await session.check_chain()
        self.assertEqual(context.exception.expected, BSC_MAINNET.chain_id)
        self.assertEqual(context.exception.actual, 1)

    async def test_ensure_chain_already_correct(self):
        self.w3.eth.chain_id_value = BSC_MAINNET.chain_id
        self.assertTrue(await make_session(self.w3).ensure_chain())
        self.assertEqual(self.w3.provider.requests, [])

    async def test_ensure_chain_switches(self):
        self.assertTrue(await make_session(self.w3).ensure_chain())
        self.assertEqual(self.w3.provider.requests, [('wallet_switchEthereumChain', [{'chainId': '0x38'}])])

    async def test_ensure_chain_adds_unknown_chain(self):
        self.w3.provider.responses['wallet_switchEthereumChain'] = rpc_error(4902, 'Unrecognized chain ID')
        self.assertTrue(await make_session(self.w3).ensure_chain())

        method, params = self.w3.provider.requests[-1]
        self.assertEqual(method, 'wallet_addEthereumChain')
        self.assertEqual(params[0]['chainId'], '0x38')
        self.assertEqual(params[0]['nativeCurrency']['symbol'], 'BNB')
        self.assertEqual(params[0]['rpcUrls'], BSC_MAINNET.rpc_urls)
        self.assertEqual(params[0]['blockExplorerUrls'], BSC_MAINNET.explorer_urls)

    async def test_ensure_chain_nested_unknown_chain_code(self):
        self.w3.provider.responses['wallet_switchEthereumChain'] = {
            'error': {'code': -32603, 'message': 'Internal error', 'data': {'originalError': {'code': 4902}}}
        }
        self.assertTrue(await make_session(self.w3).ensure_chain())
        self.assertEqual(self.w3.provider.requests[-1][0], 'wallet_addEthereumChain')

    async def test_ensure_chain_declined(self):
        self.w3.provider.responses['wallet_switchEthereumChain'] = rpc_error(4001, 'User rejected the request.')
        session = make_session(self.w3)
        self.assertFalse(await session.ensure_chain())
        self.assertTrue(session.connected)

    async def test_ensure_chain_add_declined(self):
        self.w3.provider.responses['wallet_switchEthereumChain'] = rpc_error(4902)
        self.w3.provider.responses['wallet_addEthereumChain'] = rpc_error(4001)
        self.assertFalse(await make_session(self.w3).ensure_chain())

    async def test_ensure_chain_other_error(self):
        self.w3.provider.responses['wallet_switchEthereumChain'] = rpc_error(-32002, 'Request already pending')
        with self.assertRaises(NetworkFailure):
            await make_session(self.w3).ensure_chain()


if __name__ == '__main__':
    unittest.main()
