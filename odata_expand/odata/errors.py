"""
odata_expand.odata.errors - Request error taxonomy
===================================================
"""

from __future__ import annotations

from typing import Any, Dict


class ODataRequestError(ValueError):
    """
    Base class for malformed-request errors.

    Rendered to the caller as HTTP 400 with an OData error body.
    """

    code = "BadRequest"
    status_code = 400

    def to_payload(self) -> Dict[str, Any]:
        """Return the OData JSON error body for this error."""
        return {"error": {"code": self.code, "message": str(self)}}


class ExpandRewriteError(ODataRequestError):
    """Raised when the ``$expand`` parameter cannot be rewritten."""


class ODataQueryError(ODataRequestError):
    """Raised when a system query option is invalid."""
