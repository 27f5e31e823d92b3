# -*- coding: utf-8 -*-
"""Quote-aware CSV tokenizer used by every feed parser.

Sheet exports put commas inside item names and newlines inside tracking
cells, so a plain line/comma split misparses them. This scanner follows the
export format: quotes toggle quoted mode, a doubled quote inside a quoted
field is one literal quote, and commas / CR / LF / CRLF only separate
outside quotes.
"""

from typing import List


def tokenize_csv(text: str) -> List[List[str]]:
    r'''Split CSV text into rows of raw (untrimmed) fields.

    Args:
        text: Full CSV export text.

    Returns:
        List of rows; each row is a list of field strings. Empty input
        returns an empty list.

    Example:
        >>> tokenize_csv('a,"b, c"\r\n"say ""hi""",d')
        [['a', 'b, c'], ['say "hi"', 'd']]
    '''
    if not text:
        return []

    rows: List[List[str]] = []
    row: List[str] = []
    field: List[str] = []
    in_quotes = False
    i = 0
    length = len(text)

    while i < length:
        char = text[i]
        if char == '"':
            if in_quotes and i + 1 < length and text[i + 1] == '"':
                field.append('"')
                i += 1
            else:
                in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            row.append("".join(field))
            field = []
        elif char in "\r\n" and not in_quotes:
            if char == "\r" and i + 1 < length and text[i + 1] == "\n":
                i += 1
            row.append("".join(field))
            rows.append(row)
            row = []
            field = []
        else:
            field.append(char)
        i += 1

    if field or row:
        row.append("".join(field))
        rows.append(row)

    return rows


def cell(row: List[str], index: int) -> str:
    """Get a trimmed cell, or "" when the row is too short."""
    if index < len(row):
        return row[index].strip()
    return ""
