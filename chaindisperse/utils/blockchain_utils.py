from web3 import AsyncWeb3, Web3


async def get_wallet_balance(w3: AsyncWeb3, wallet_address: str) -> int:
    """Returns the native balance of the specified wallet in wei.

    Args:
        w3: AsyncWeb3 instance.
        wallet_address: The wallet address.

    Returns:
        The balance of the specified wallet.
    """
    if not wallet_address or not Web3.is_address(wallet_address):
        raise ValueError("Invalid wallet address")
    wallet = Web3.to_checksum_address(wallet_address)
    return await w3.eth.get_balance(wallet)


def format_units(amount: int, decimals: int) -> str:
    """Format a base-unit integer as a human readable decimal string."""
    sign = '-' if amount < 0 else ''
    whole, fraction = divmod(abs(amount), 10 ** decimals)
    fraction_text = str(fraction).rjust(decimals, '0').rstrip('0') if decimals else ''
    return f'{sign}{whole}.{fraction_text}' if fraction_text else f'{sign}{whole}'


def to_hex_hash(tx_hash) -> str:
    if isinstance(tx_hash, str):
        return tx_hash if tx_hash.startswith('0x') else f'0x{tx_hash}'
    return Web3.to_hex(tx_hash)


def explorer_tx_url(explorer_base: str, tx_hash: str) -> str:
    return f"{explorer_base.rstrip('/')}/tx/{tx_hash}"
