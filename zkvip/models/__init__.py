"""
Shared Models
=============

Response envelopes used by the HTTP services.
"""

from zkvip.models.common import BaseResponse, ErrorResponse, HealthResponse


__all__ = ["BaseResponse", "ErrorResponse", "HealthResponse"]
