"""
Identifier Formatting

Presentation of counter values as human-readable identifiers.
"""

SEQUENCE_PAD_WIDTH = 4


def format_identifier(key: str, year: int, seq: int) -> str:
    """
    Format a sequence value as {key}-{year}-{seq}.

    The sequence is zero-padded to four digits and never truncated:
    ("GWH", 2026, 7) -> "GWH-2026-0007", ("GWH", 2026, 10000) -> "GWH-2026-10000".
    """
    return f"{key}-{year}-{seq:0{SEQUENCE_PAD_WIDTH}d}"
