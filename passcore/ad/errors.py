from __future__ import annotations


class DirectoryError(Exception):
    """A directory operation was rejected or could not be performed."""

    def __init__(self, message: str, result: dict | None = None) -> None:
        super().__init__(message)
        self.result = dict(result or {})

    @classmethod
    def from_result(cls, action: str, result: dict | None) -> "DirectoryError":
        res = dict(result or {})
        desc = res.get("description", "") or "unknown error"
        msg = (res.get("message", "") or "").strip()
        text = f"{action}: {desc}"
        if msg and msg != desc:
            text += f" ({msg})"
        return cls(text, res)
