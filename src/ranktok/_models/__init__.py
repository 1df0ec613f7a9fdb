"""Rank tables and the encodings built on top of them."""

from .encoding import DecodeMode, Encoding
from .table import RankTable


__all__ = ["DecodeMode", "Encoding", "RankTable"]
