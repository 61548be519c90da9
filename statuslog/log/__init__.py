"""Project log codec and storage."""

from .codec import ParseResult, decode_name, encode, parse_line, record_name
from .store import LogStore, resolve_log_path

__all__ = [
    "ParseResult",
    "decode_name",
    "encode",
    "parse_line",
    "record_name",
    "LogStore",
    "resolve_log_path",
]
