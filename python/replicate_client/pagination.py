"""Cursor-paginated result containers."""

import json
import re
from dataclasses import dataclass, field
from typing import Callable, Generic, Iterator, List, Optional, TypeVar, Union

T = TypeVar("T")

_WHITESPACE = re.compile(r"[ \t\n\r]*")
_decoder = json.JSONDecoder()


@dataclass
class Page(Generic[T]):
    """One page of a listing, with cursor URLs for its neighbours."""
    results: List[T] = field(default_factory=list)
    next: Optional[str] = None
    previous: Optional[str] = None

    @property
    def has_next(self) -> bool:
        return bool(self.next)

    @classmethod
    def from_json(
        cls,
        data: Union[str, bytes],
        decode: Callable[[Union[str, bytes]], T],
    ) -> "Page[T]":
        """
        Build a page from a listing document.

        Each entry of ``results`` is handed to ``decode`` as its own
        JSON text, exactly as it appears in ``data`` (bytes in, bytes out).

        Raises:
            ValueError: If ``data`` is not a listing object.
        """
        text = data.decode("utf-8") if isinstance(data, bytes) else data
        page = cls()
        for key, raw in _iter_members(text):
            if key == "results":
                items = _iter_array_items(raw) if raw != "null" else ()
                page.results = [
                    decode(item.encode("utf-8") if isinstance(data, bytes) else item)
                    for item in items
                ]
            elif key in ("next", "previous"):
                value = json.loads(raw)
                if value is not None and not isinstance(value, str):
                    raise ValueError(f"expected {key} to be a URL, got {type(value).__name__}")
                setattr(page, key, value)
        return page


def _skip(text: str, idx: int) -> int:
    return _WHITESPACE.match(text, idx).end()


def _expect(text: str, idx: int, char: str) -> int:
    if text[idx:idx + 1] != char:
        raise ValueError(f"expected {char!r} at position {idx}")
    return idx + 1


def _iter_members(text: str) -> Iterator[tuple]:
    """Yield (key, raw value text) for each member of a top-level object."""
    idx = _expect(text, _skip(text, 0), "{")
    idx = _skip(text, idx)
    if text[idx:idx + 1] == "}":
        idx += 1
    else:
        while True:
            key, idx = _decoder.raw_decode(text, idx)
            idx = _skip(text, _expect(text, _skip(text, idx), ":"))
            _, end = _decoder.raw_decode(text, idx)
            yield key, text[idx:end]
            idx = _skip(text, end)
            if text[idx:idx + 1] == "}":
                idx += 1
                break
            idx = _skip(text, _expect(text, idx, ","))
    if _skip(text, idx) != len(text):
        raise ValueError(f"extra data at position {idx}")


def _iter_array_items(text: str) -> Iterator[str]:
    """Yield the raw text of each element of a JSON array."""
    idx = _skip(text, _expect(text, 0, "["))
    if text[idx:idx + 1] == "]":
        return
    while True:
        _, end = _decoder.raw_decode(text, idx)
        yield text[idx:end]
        idx = _skip(text, end)
        if text[idx:idx + 1] == "]":
            return
        idx = _skip(text, _expect(text, idx, ","))
