from __future__ import annotations


class UploadError(Exception):
    """Request-fatal upload failure. Rendered as a plain-text body."""

    def __init__(self, message: str, *, status_code: int = 500):
        super().__init__(message)
        self.message = message
        self.status_code = int(status_code)
