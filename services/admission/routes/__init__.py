"""
Admission Service Routes
========================

API route handlers for the admission service.
"""

from services.admission.routes import attestations, groups


__all__ = ["attestations", "groups"]
