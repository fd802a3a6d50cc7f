from typing import Dict, List
import json

class DisperseConstants:
    DISPERSE_CONTRACT: str = "0x59b990c626853DC951A38EFC1dF50abb4d48Ca75"  # BSC disperse deployment
    NATIVE_FUNCTION: str = "disperseBNB"
    TOKEN_FUNCTION: str = "disperseToken"
    DISPERSE_ABI: List[Dict] = json.loads(
        '''
        [{"inputs":[{"name":"recipients","type":"address[]"},{"name":"amounts","type":"uint256[]"}],
        "name":"disperseBNB","outputs":[],"stateMutability":"payable","type":"function"},{"inputs":[{"name":"token","type":"address"},
        {"name":"recipients","type":"address[]"},{"name":"amounts","type":"uint256[]"}],"name":"disperseToken","outputs":[],
        "stateMutability":"nonpayable","type":"function"}]
        '''
    )

class TokenConstants:
    NAMED_TOKEN: str = "0xa41F142b6eb2b164f8164CAE0716892Ce02f311f"  # AVG
    NATIVE_DECIMALS: int = 18
    MAX_UINT256: int = 2 ** 256 - 1
    ERC20_ABI: List[Dict] = json.loads(
        '''
        [{"constant":true,"inputs":[],"name":"symbol","outputs":[{"name":"","type":"string"}],"stateMutability":"view","type":"function"},
        {"constant":true,"inputs":[],"name":"decimals","outputs":[{"name":"","type":"uint8"}],"stateMutability":"view","type":"function"},
        {"constant":true,"inputs":[{"name":"account","type":"address"}],"name":"balanceOf","outputs":[{"name":"","type":"uint256"}],
        "stateMutability":"view","type":"function"},{"constant":true,"inputs":[{"name":"owner","type":"address"},{"name":"spender","type":"address"}],
        "name":"allowance","outputs":[{"name":"","type":"uint256"}],"stateMutability":"view","type":"function"},{"constant":false,
        "inputs":[{"name":"spender","type":"address"},{"name":"amount","type":"uint256"}],"name":"approve","outputs":[{"name":"","type":"bool"}],
        "stateMutability":"nonpayable","type":"function"}]
        '''
    )

class TransactionFields:
    MAX_FEE_KEY: str = "maxFeePerGas"
    MAX_PRIORITY_KEY: str = "maxPriorityFeePerGas"
    RECEIPT_TIMEOUT: float = 120.0
