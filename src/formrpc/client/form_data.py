"""Client-side form data: ordered text fields and binary files, sent as multipart."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO, Iterator, Mapping, Union


@dataclass(frozen=True)
class File:
    """Binary form value. content: bytes or a binary file object (read by httpx when sending)."""

    content: Union[bytes, BinaryIO]
    filename: str
    content_type: str = "application/octet-stream"

    @classmethod
    def from_path(cls, path: str | Path, content_type: str = "application/octet-stream") -> File:
        p = Path(path)
        return cls(p.read_bytes(), p.name, content_type)


FormValue = Union[str, File]


class FormData:
    """
    Ordered multi-map, like a browser FormData.

        form = FormData()
        form.append("name", "bob")
        form.append("avatar", File(b"...", "bob.png", "image/png"))
    """

    def __init__(self) -> None:
        self._items: list[tuple[str, FormValue]] = []

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> FormData:
        """Lists append one entry per element; non-File values are sent as text."""
        form = cls()
        for name, value in data.items():
            values = value if isinstance(value, (list, tuple)) else [value]
            for v in values:
                form.append(name, v)
        return form

    def append(self, name: str, value: Any) -> FormData:
        self._items.append((name, value if isinstance(value, File) else str(value)))
        return self

    def get(self, name: str) -> FormValue | None:
        for key, value in self._items:
            if key == name:
                return value
        return None

    def get_all(self, name: str) -> list[FormValue]:
        return [value for key, value in self._items if key == name]

    def items(self) -> Iterator[tuple[str, FormValue]]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"FormData({self._items!r})"


def is_form_data(value: Any) -> bool:
    """Default split condition: route FormData inputs to the multipart link."""
    return isinstance(value, FormData)
