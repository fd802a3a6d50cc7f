import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from web3 import Web3

from chaindisperse.constants.evm_blockchain import TokenConstants
from chaindisperse.log import logger

SEPARATOR_PATTERN = re.compile(r'[,=\s]+')
AMOUNT_PATTERN = re.compile(r'^([0-9]+\.?[0-9]*|\.[0-9]+)$')


@dataclass(frozen=True)
class RecipientEntry:
    address: str
    raw_amount: str


@dataclass(frozen=True)
class ParsedBatch:
    """
    A validated batch of recipients and the amounts they receive, in base units.

    Entries and scaled amounts are positional: ``scaled_amounts[i]`` is paid to
    ``entries[i].address``.
    """
    entries: Tuple[RecipientEntry, ...] = ()
    scaled_amounts: Tuple[int, ...] = ()
    total: int = 0
    decimals: int = TokenConstants.NATIVE_DECIMALS
    skipped_lines: Tuple[int, ...] = field(default=(), compare=False)

    @property
    def recipients(self) -> List[str]:
        return [entry.address for entry in self.entries]

    @property
    def is_empty(self) -> bool:
        return not self.entries

    def __len__(self) -> int:
        return len(self.entries)


def scale_amount(raw_amount: str, decimals: int) -> Optional[int]:
    """Convert a decimal string into the asset's integer base unit.

    Uses integer arithmetic only, so arbitrarily large amounts stay exact.

    Args:
        raw_amount: Non-negative decimal string, e.g. "1.5" or ".25".
        decimals: The asset's decimal precision.

    Returns:
        The scaled amount, or None if the string is not a plain non-negative
        decimal or carries more fractional digits than the asset supports.
    """
    if not AMOUNT_PATTERN.fullmatch(raw_amount):
        return None
    whole, _, fraction = raw_amount.partition('.')
    fraction = fraction.rstrip('0')
    if len(fraction) > decimals:
        return None
    return int(whole or '0') * 10 ** decimals + int(fraction.ljust(decimals, '0') or '0')


def parse_line(line: str, decimals: int) -> Optional[Tuple[RecipientEntry, int]]:
    tokens = [token for token in SEPARATOR_PATTERN.split(line.strip()) if token]
    if len(tokens) != 2:
        return None
    address, raw_amount = tokens
    if not Web3.is_address(address):
        return None
    scaled = scale_amount(raw_amount, decimals)
    if scaled is None:
        return None
    return RecipientEntry(address=Web3.to_checksum_address(address), raw_amount=raw_amount), scaled


def parse(text: str, decimals: int = TokenConstants.NATIVE_DECIMALS) -> ParsedBatch:
    """Parse free-form recipient text into a batch.

    Each line is ``<address><sep><amount>`` where the separator is one or more
    commas, spaces or equals signs. Lines that don't match are dropped from the
    batch; their line numbers are kept in ``skipped_lines``.

    Args:
        text: Raw multi-line input.
        decimals: Decimal precision of the currently resolved asset.

    Returns:
        The parsed batch.
    """
    entries = []
    scaled_amounts = []
    skipped = []
    for line_number, line in enumerate((text or '').split('\n'), start=1):
        if not line.strip():
            continue
        parsed = parse_line(line, decimals)
        if parsed is None:
            skipped.append(line_number)
            logger.debug(f'Skipping malformed recipient line {line_number}.')
            continue
        entry, scaled = parsed
        entries.append(entry)
        scaled_amounts.append(scaled)

    return ParsedBatch(
        entries=tuple(entries),
        scaled_amounts=tuple(scaled_amounts),
        total=sum(scaled_amounts),
        decimals=decimals,
        skipped_lines=tuple(skipped),
    )
