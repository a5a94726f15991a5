from typing import Any, Dict, Optional


class RelayError(Exception):
    """
    An error the relay reports to the client as {"error", "details", ...extra}.
    Messages here are user-facing; provider internals never go in them.
    """

    def __init__(
        self,
        status_code: int,
        error: str,
        details: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(error)
        self.status_code = status_code
        self.error = error
        self.details = details
        self.extra = extra or {}
        self.headers = headers

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.error}
        if self.details is not None:
            body["details"] = self.details
        body.update({k: v for k, v in self.extra.items() if v is not None})
        return body
