import pandas as pd

from chaindisperse.batch_parser import ParsedBatch
from chaindisperse.utils.blockchain_utils import format_units


def load_recipients_text_from_csv(file_path: str) -> str:
    """Load a recipients CSV and render it as ``address, amount`` lines.

    The file needs ``address`` and ``amount`` columns (header case is ignored).
    Rows are rendered as-is, so the batch parser applies the same validation
    it applies to pasted text.
    """
    recipients_df = pd.read_csv(file_path, dtype=str, keep_default_na=False)
    recipients_df.columns = [column.strip().lower() for column in recipients_df.columns]
    missing = {'address', 'amount'} - set(recipients_df.columns)
    if missing:
        raise ValueError(f"CSV file is missing columns: {', '.join(sorted(missing))}")
    lines = [
        f"{row['address'].strip()}, {row['amount'].strip()}"
        for _, row in recipients_df.iterrows()
    ]
    return '\n'.join(lines)


def export_batch_to_csv(batch: ParsedBatch, file_path: str) -> None:
    """Export a parsed batch to a csv file."""
    batch_df = pd.DataFrame(
        [
            {
            'address': entry.address,
            'amount': format_units(scaled, batch.decimals),
            'scaled_amount': str(scaled)
            }
        for entry, scaled in zip(batch.entries, batch.scaled_amounts)
        ],
        columns=['address', 'amount', 'scaled_amount']
    )
    batch_df.to_csv(file_path, index=False)
