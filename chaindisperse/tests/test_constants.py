from web3 import Web3

from chaindisperse.constants.evm_blockchain import DisperseConstants, TokenConstants

HOLDER_ADDRESS = Web3.to_checksum_address('0x90f8bf6a479f320ead074411a4b0e7944ea8c9c1')
RECIPIENT_ONE = '0x1111111111111111111111111111111111111111'
RECIPIENT_TWO = '0x2222222222222222222222222222222222222222'
VITALIK_ADDRESS = '0xAb5801a7D398351b8bE11C439e05C5B3259aeC9B'
BAD_CHECKSUM_ADDRESS = '0xab5801a7D398351b8bE11C439e05C5B3259aeC9B'

NAMED_TOKEN = Web3.to_checksum_address(TokenConstants.NAMED_TOKEN)
CUSTOM_TOKEN = Web3.to_checksum_address('0xdac17f958d2ee523a2206206994597c13d831ec7')
OTHER_TOKEN = Web3.to_checksum_address('0x6b175474e89094c44da98b954eedeac495271d0f')
DISPERSE_ADDRESS = Web3.to_checksum_address(DisperseConstants.DISPERSE_CONTRACT)

TEST_PRIVATE_KEY = '0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318'
ONE_ETHER = 10 ** 18
