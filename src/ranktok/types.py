"""
Core types for rank-based tokenization.
"""

from typing_extensions import TypeAliasType

Rank = TypeAliasType("Rank", int)
Piece = TypeAliasType("Piece", bytes)
EncoderTable = TypeAliasType("EncoderTable", dict[bytes, Rank])
DecoderTable = TypeAliasType("DecoderTable", dict[Rank, bytes])
SpecialTable = TypeAliasType("SpecialTable", dict[str, Rank])
