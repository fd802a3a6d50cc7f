import asyncio
import unittest

from chaindisperse.exceptions import NetworkFailure
from chaindisperse.tests.fakes import FakeWeb3
from chaindisperse.tests.test_constants import HOLDER_ADDRESS, ONE_ETHER
from chaindisperse.utils.async_utils import RequestFence, with_timeout
from chaindisperse.utils.blockchain_utils import explorer_tx_url, format_units, get_wallet_balance, to_hex_hash


class TestBlockchainUtils(unittest.TestCase):
    def test_format_units(self):
        self.assertEqual(format_units(ONE_ETHER, 18), '1')
        self.assertEqual(format_units(1500000, 6), '1.5')
        self.assertEqual(format_units(1, 18), '0.000000000000000001')
        self.assertEqual(format_units(0, 18), '0')
        self.assertEqual(format_units(42, 0), '42')
        self.assertEqual(format_units(2 ** 256 - 1, 18),
                         '115792089237316195423570985008687907853269984665640564039457.584007913129639935')

    def test_explorer_tx_url(self):
        self.assertEqual(explorer_tx_url('https://bscscan.com/', '0xabc'), 'https://bscscan.com/tx/0xabc')

    def test_to_hex_hash(self):
        self.assertEqual(to_hex_hash(b'\x01\x02'), '0x0102')
        self.assertEqual(to_hex_hash('0102'), '0x0102')
        self.assertEqual(to_hex_hash('0x0102'), '0x0102')


class TestWalletBalance(unittest.IsolatedAsyncioTestCase):
    async def test_balance(self):
        w3 = FakeWeb3()
        w3.eth.balances[HOLDER_ADDRESS] = ONE_ETHER
        self.assertEqual(await get_wallet_balance(w3, HOLDER_ADDRESS.lower()), ONE_ETHER)

    async def test_invalid_address(self):
        with self.assertRaises(ValueError):
            await get_wallet_balance(FakeWeb3(), '0x1234')


class TestRequestFence(unittest.TestCase):
    def test_only_latest_is_current(self):
        fence = RequestFence()
        first = fence.issue()
        second = fence.issue()
        self.assertFalse(fence.is_current(first))
        self.assertTrue(fence.is_current(second))
        self.assertEqual(fence.latest, second)

    def test_invalidate(self):
        fence = RequestFence()
        token = fence.issue()
        fence.invalidate()
        self.assertFalse(fence.is_current(token))


class TestWithTimeout(unittest.IsolatedAsyncioTestCase):
    async def test_result_passes_through(self):
        async def value():
            return 5
        self.assertEqual(await with_timeout(value(), 1.0, 'Lookup'), 5)
        self.assertEqual(await with_timeout(value(), None, 'Lookup'), 5)

    async def test_timeout_is_network_failure(self):
        with self.assertRaises(NetworkFailure):
            await with_timeout(asyncio.sleep(1), 0.01, 'Lookup')


if __name__ == '__main__':
    unittest.main()
