from __future__ import annotations

from typing import Protocol


class KeyValueStorage(Protocol):
    """String key/value contract for persistence backends.

    Mirrors the browser ``localStorage`` API the state document was designed
    around. Writes that the backend rejects raise ``StorageWriteFailure``.
    """

    def get_item(self, key: str) -> str | None:
        ...

    def set_item(self, key: str, value: str) -> None:
        ...

    def remove_item(self, key: str) -> None:
        ...

    def keys(self) -> list[str]:
        ...
