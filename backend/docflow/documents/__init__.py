"""
Document generation — data assembly, fingerprinting and rendering.
"""

from docflow.documents.data import build_document_data, enrollment_terms
from docflow.documents.fingerprint import compute_fingerprint
from docflow.documents.renderer import DocumentRenderer, build_renderer, template_for

__all__ = [
    "DocumentRenderer",
    "build_document_data",
    "build_renderer",
    "compute_fingerprint",
    "enrollment_terms",
    "template_for",
]
