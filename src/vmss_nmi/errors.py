from __future__ import annotations

from .const import ERRORS


class VmssError(Exception):
    """Fatal decode or patch error. Nothing is recoverable mid-stream."""

    def __init__(self, code: str, detail: str | None = None, offset: int | None = None):
        self.code = code
        self.detail = detail or ERRORS[code]
        self.offset = offset
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.offset is None:
            return self.detail
        return f"{self.detail} at offset 0x{self.offset:x}"

    def as_dict(self) -> dict:
        d = {"code": self.code, "message": ERRORS[self.code], "detail": self.detail}
        if self.offset is not None:
            d["offset"] = f"0x{self.offset:x}"
        return d


class FormatError(VmssError):
    pass


class VmssIOError(VmssError, OSError):
    pass


class SchemaViolation(VmssError):
    pass
