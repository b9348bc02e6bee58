"""Ingest stages: tokenize an upload, detect its format, build candidates."""

from .builder import build_transactions
from .detectors import detect_format
from .tokenizer import TokenizedFile, tokenize

__all__ = ["tokenize", "TokenizedFile", "detect_format", "build_transactions"]
