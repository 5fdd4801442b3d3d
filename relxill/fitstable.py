"""Reading and writing of FITS files made of binary table extensions."""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path
from typing import Any

import numpy as np

from relxill.relutility import RelxillError

BLOCK_SIZE = 2880
CARD_SIZE = 80

_TFORM = re.compile(r"^\s*(\d*)([A-Z])")
_STRING_VALUE = re.compile(r"'((?:[^']|'')*)'")

_NUMERIC_TYPES = {
    "B": ">u1",
    "I": ">i2",
    "J": ">i4",
    "K": ">i8",
    "E": ">f4",
    "D": ">f8",
    "C": ">c8",
    "M": ">c16",
}


class FitsError(RelxillError):
    """Raised when a FITS file cannot be read or written."""


class BinTable:
    """A binary table: named columns of equal length, with its header cards."""

    def __init__(self, name: str, columns: Mapping[str, Any],
                 header: Mapping[str, Any] | None = None) -> None:
        self.name = name
        self.header = dict(header or {})
        self.columns: dict[str, np.ndarray] = {}
        for key, values in columns.items():
            arr = np.asarray(values)
            if arr.ndim == 0:
                raise FitsError(f"column {key!r} must hold one value per row")
            self.columns[str(key)] = arr
        lengths = {len(arr) for arr in self.columns.values()}
        if len(lengths) > 1:
            raise FitsError(f"columns of table {name!r} differ in their number of rows")
        self._nrows = lengths.pop() if lengths else int(self.header.get("NAXIS2", 0))

    @property
    def nrows(self) -> int:
        return self._nrows

    def column(self, name: str) -> np.ndarray:
        """Return the values of a column; the name is matched case-insensitively."""
        if name in self.columns:
            return self.columns[name]
        lowered = name.lower()
        for key, values in self.columns.items():
            if key.lower() == lowered:
                return values
        raise FitsError(f"column {name!r} not found in table {self.name!r}")

    def read(self, name: str, row: int) -> Any:
        """Return the value(s) of column ``name`` in the 0-based ``row``."""
        values = self.column(name)
        if not 0 <= row < len(values):
            raise FitsError(f"row {row} out of range for table {self.name!r} "
                            f"with {len(values)} rows")
        return values[row]


class FitsFile:
    """All header-data units of a FITS file; binary tables are decoded."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        try:
            buf = self.path.read_bytes()
        except OSError as err:
            raise FitsError(f"cannot read FITS file {self.path}: {err}") from err
        if not buf.startswith(b"SIMPLE  ="):
            raise FitsError(f"{self.path} is not a FITS file")
        self._hdus: list[BinTable | None] = list(_parse_hdus(buf))

    def __len__(self) -> int:
        return len(self._hdus)

    def table(self, name: str) -> BinTable:
        """Return the first binary table whose EXTNAME matches ``name`` (case-insensitive)."""
        lowered = name.lower()
        for hdu in self._hdus:
            if hdu is not None and hdu.name.lower() == lowered:
                return hdu
        raise FitsError(f"no binary table named {name!r} in {self.path}")

    def table_at(self, index: int) -> BinTable:
        """Return the binary table at the 1-based HDU number ``index`` (primary is 1)."""
        if not 1 <= index <= len(self._hdus):
            raise FitsError(f"HDU {index} does not exist in {self.path}")
        hdu = self._hdus[index - 1]
        if hdu is None:
            raise FitsError(f"HDU {index} of {self.path} is not a binary table")
        return hdu


def write_bintables(path: str | Path, tables: Iterable[BinTable]) -> Path:
    """Write an empty primary HDU followed by the given binary tables."""
    path = Path(path)
    parts = [_header_bytes([("SIMPLE", True), ("BITPIX", 8), ("NAXIS", 0), ("EXTEND", True)])]
    parts.extend(_table_bytes(table) for table in tables)
    path.write_bytes(b"".join(parts))
    return path


# ---- reading ----

def _cards(block: bytes) -> Iterator[str]:
    for start in range(0, len(block), CARD_SIZE):
        yield block[start:start + CARD_SIZE].decode("ascii", "replace")


def _parse_value(text: str) -> Any:
    text = text.strip()
    if text.startswith("'"):
        match = _STRING_VALUE.match(text)
        if match is None:
            raise FitsError(f"malformed string value: {text!r}")
        return match.group(1).replace("''", "'").rstrip()
    value = text.split("/", 1)[0].strip()
    if value == "T":
        return True
    if value == "F":
        return False
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value.replace("D", "E"))
    except ValueError:
        return value


def _read_header(buf: bytes, pos: int) -> tuple[dict[str, Any], int]:
    header: dict[str, Any] = {}
    while True:
        if pos + BLOCK_SIZE > len(buf):
            raise FitsError("truncated FITS header")
        block = buf[pos:pos + BLOCK_SIZE]
        pos += BLOCK_SIZE
        for card in _cards(block):
            key = card[:8].strip()
            if key == "END":
                return header, pos
            if card[8:10] == "= ":
                header[key] = _parse_value(card[10:])


def _data_size(header: Mapping[str, Any]) -> int:
    naxis = int(header.get("NAXIS", 0))
    if naxis == 0:
        return 0
    dims = [int(header.get(f"NAXIS{axis}", 0)) for axis in range(1, naxis + 1)]
    bits = abs(int(header.get("BITPIX", 8)))
    gcount = int(header.get("GCOUNT", 1))
    pcount = int(header.get("PCOUNT", 0))
    return bits * gcount * (pcount + math.prod(dims)) // 8


def _parse_hdus(buf: bytes) -> Iterator[BinTable | None]:
    pos = 0
    while pos < len(buf):
        if not buf[pos:pos + BLOCK_SIZE].strip(b"\x00 "):
            break
        header, pos = _read_header(buf, pos)
        size = _data_size(header)
        data = buf[pos:pos + size]
        if len(data) < size:
            raise FitsError("truncated FITS data unit")
        pos += -(-size // BLOCK_SIZE) * BLOCK_SIZE
        if str(header.get("XTENSION", "")).strip() == "BINTABLE":
            yield _parse_bintable(header, data)
        else:
            yield None


def _parse_tform(tform: str) -> tuple[int, str, int]:
    match = _TFORM.match(tform.upper())
    if match is None:
        raise FitsError(f"unknown column format {tform!r}")
    repeat = int(match.group(1)) if match.group(1) else 1
    code = match.group(2)
    if code in _NUMERIC_TYPES:
        width = repeat * np.dtype(_NUMERIC_TYPES[code]).itemsize
    elif code in "LA":
        width = repeat
    elif code == "X":
        width = (repeat + 7) // 8
    elif code == "P":
        width = 8 * repeat
    elif code == "Q":
        width = 16 * repeat
    else:
        raise FitsError(f"unknown column format {tform!r}")
    return repeat, code, width


def _decode_column(block: np.ndarray, repeat: int, code: str,
                   header: Mapping[str, Any], index: int) -> np.ndarray | None:
    nrows = block.shape[0]
    if code == "A":
        if repeat == 0:
            return np.array([""] * nrows, dtype=str)
        raw = np.ascontiguousarray(block).view(f"S{repeat}").reshape(nrows)
        return np.array([s.decode("ascii", "replace").rstrip(" \x00") for s in raw], dtype=str)
    if code not in _NUMERIC_TYPES and code != "L":
        return None
    if repeat == 0:
        return np.zeros((nrows, 0))
    if code == "L":
        values = block == ord("T")
    else:
        dtype = np.dtype(_NUMERIC_TYPES[code])
        values = np.ascontiguousarray(block).view(dtype).astype(dtype.newbyteorder("="))
        scale = header.get(f"TSCAL{index}", 1)
        zero = header.get(f"TZERO{index}", 0)
        if code not in "CM" and (scale != 1 or zero != 0):
            values = values * scale + zero
    values = values.reshape(nrows, repeat)
    return values[:, 0] if repeat == 1 else values


def _parse_bintable(header: Mapping[str, Any], data: bytes) -> BinTable:
    row_len = int(header.get("NAXIS1", 0))
    nrows = int(header.get("NAXIS2", 0))
    tfields = int(header.get("TFIELDS", 0))
    if row_len * nrows == 0:
        raw = np.zeros((nrows, row_len), dtype=np.uint8)
    else:
        raw = np.frombuffer(data, dtype=np.uint8, count=row_len * nrows).reshape(nrows, row_len)

    columns: dict[str, np.ndarray] = {}
    offset = 0
    for index in range(1, tfields + 1):
        name = str(header.get(f"TTYPE{index}", f"COL{index}"))
        tform = header.get(f"TFORM{index}")
        if tform is None:
            raise FitsError(f"column {index} has no TFORM keyword")
        repeat, code, width = _parse_tform(str(tform))
        values = _decode_column(raw[:, offset:offset + width], repeat, code, header, index)
        offset += width
        if values is not None:
            columns[name] = values
    if offset > row_len:
        raise FitsError("column widths exceed the table row length")
    return BinTable(str(header.get("EXTNAME", "")), columns, header)


# ---- writing ----

def _card(key: str, value: Any) -> str:
    if isinstance(value, (bool, np.bool_)):
        text = f"{'T' if value else 'F':>20}"
    elif isinstance(value, (int, np.integer)):
        text = f"{int(value):>20}"
    elif isinstance(value, (float, np.floating)):
        text = f"{float(value)!r:>20}"
    else:
        escaped = str(value).replace("'", "''")
        text = f"'{escaped:<8}'"
    card = f"{key:<8}= {text}"
    if len(card) > CARD_SIZE:
        raise FitsError(f"header card for {key} is too long")
    return card.ljust(CARD_SIZE)


def _header_bytes(cards: Iterable[tuple[str, Any]]) -> bytes:
    text = "".join(_card(key, value) for key, value in cards) + "END".ljust(CARD_SIZE)
    padded = -(-len(text) // BLOCK_SIZE) * BLOCK_SIZE
    return text.ljust(padded).encode("ascii")


def _numeric_format(dtype: np.dtype) -> tuple[str, str]:
    kind, size = dtype.kind, dtype.itemsize
    if kind == "f":
        return ("E", ">f4") if size == 4 else ("D", ">f8")
    if kind == "c":
        return ("C", ">c8") if size == 8 else ("M", ">c16")
    if kind == "u" and size == 1:
        return "B", ">u1"
    if kind in "iu":
        width = size * 2 if kind == "u" else size
        if width <= 2:
            return "I", ">i2"
        if width <= 4:
            return "J", ">i4"
        return "K", ">i8"
    raise FitsError(f"cannot store values of type {dtype} in a FITS table")


def _encode_column(name: str, arr: np.ndarray) -> tuple[str, np.ndarray]:
    nrows = arr.shape[0]
    if arr.ndim > 2:
        raise FitsError(f"column {name!r} has more than two dimensions")
    if arr.dtype.kind in "USO":
        if arr.ndim != 1:
            raise FitsError(f"string column {name!r} must be one-dimensional")
        strings = [v if isinstance(v, bytes) else str(v).encode("ascii") for v in arr]
        width = max((len(s) for s in strings), default=0) or 1
        joined = b"".join(s.ljust(width) for s in strings)
        block = np.array(bytearray(joined), dtype=np.uint8).reshape(nrows, width)
        return f"{width}A", block

    repeat = int(math.prod(arr.shape[1:]))
    if repeat == 0:
        raise FitsError(f"column {name!r} holds empty vectors")
    flat = arr.reshape(nrows, repeat)
    if arr.dtype.kind == "b":
        block = np.where(flat, ord("T"), ord("F")).astype(np.uint8)
        return f"{repeat}L", block
    code, dtype = _numeric_format(arr.dtype)
    big = np.ascontiguousarray(flat.astype(np.dtype(dtype)))
    return f"{repeat}{code}", big.view(np.uint8)


def _table_bytes(table: BinTable) -> bytes:
    encoded = [(name, *_encode_column(name, values)) for name, values in table.columns.items()]
    nrows = table.nrows
    if encoded:
        rows = np.concatenate([block for _, _, block in encoded], axis=1)
    else:
        rows = np.zeros((nrows, 0), dtype=np.uint8)

    cards: list[tuple[str, Any]] = [
        ("XTENSION", "BINTABLE"), ("BITPIX", 8), ("NAXIS", 2),
        ("NAXIS1", rows.shape[1]), ("NAXIS2", nrows),
        ("PCOUNT", 0), ("GCOUNT", 1), ("TFIELDS", len(encoded)),
    ]
    for index, (name, tform, _) in enumerate(encoded, start=1):
        cards.append((f"TTYPE{index}", name))
        cards.append((f"TFORM{index}", tform))
    if table.name:
        cards.append(("EXTNAME", table.name))

    data = rows.tobytes()
    padded = -(-len(data) // BLOCK_SIZE) * BLOCK_SIZE
    return _header_bytes(cards) + data.ljust(padded, b"\x00")