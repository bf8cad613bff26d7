"""Row codec for the comma-separated data files.

Fields that contain the delimiter, the quote character or a line break
are quoted, with inner quotes doubled. Everything else is written as is,
so plain rows stay readable in a text editor.
"""

from __future__ import annotations

import csv
import io
from pathlib import Path
from typing import Iterable, Iterator, Sequence

DELIMITER = ","
QUOTE = '"'

_SPECIAL_CHARS = (DELIMITER, QUOTE, "\n", "\r")


def encode_field(value: str) -> str:
    if not any(char in value for char in _SPECIAL_CHARS):
        return value
    return QUOTE + value.replace(QUOTE, QUOTE * 2) + QUOTE


def encode_row(fields: Sequence[str]) -> str:
    if len(fields) == 1 and fields[0] == "":
        # A bare empty line would read back as no field at all.
        return QUOTE * 2
    return DELIMITER.join(encode_field(field) for field in fields)


def decode_row(line: str) -> list[str]:
    reader = csv.reader(io.StringIO(line), delimiter=DELIMITER, quotechar=QUOTE, strict=False)
    record = next(reader, None)
    return record or [""]


def read_rows(path: Path) -> Iterator[tuple[int, list[str]]]:
    """Yield ``(line_number, fields)`` for every record in ``path``.

    Quoted fields may span several physical lines; the line number is the
    one the record starts on.
    """
    with path.open("r", encoding="utf-8", newline="") as handle:
        reader = csv.reader(handle, delimiter=DELIMITER, quotechar=QUOTE, strict=False)
        line_number = 1
        for record in reader:
            yield line_number, record or [""]
            line_number = reader.line_num + 1


def write_rows(handle: io.TextIOBase, rows: Iterable[Sequence[str]]) -> None:
    for row in rows:
        handle.write(encode_row(row))
        handle.write("\n")
