"""Core module for bingo card generation."""

from .assembler import CardAssembler, CardState
from .builder import BatchGenerator, BatchResult, BuildParams, Card

__all__ = ["BatchGenerator", "BatchResult", "BuildParams", "Card", "CardAssembler", "CardState"]
