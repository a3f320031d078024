from .markdown import BoardFormatError, format_board, is_board, parse_board
from .store import MarkdownBoardStore, override_from_settings

__all__ = [
    "BoardFormatError",
    "MarkdownBoardStore",
    "format_board",
    "is_board",
    "override_from_settings",
    "parse_board",
]
