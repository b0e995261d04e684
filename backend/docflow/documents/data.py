"""
Structured data handed to the document templates.

Everything a template may print is assembled here from the enrollment, its
course and the resolved periods, so templates never touch the ORM.
"""

from __future__ import annotations

from typing import Any

from docflow.core.constants import DocumentKind


def enrollment_terms(enrollment: Any) -> dict[str, Any]:
    """Commercial terms agreed for this enrollment (fingerprinted)."""
    return {
        "subtotal": enrollment.subtotal,
        "discount": enrollment.discount,
        "total": enrollment.total,
        "validity_days": enrollment.validity_days,
    }


def linked_contract_ids(periods: list[dict[str, Any]]) -> list[Any]:
    """Distinct contract ids referenced by the periods, first-seen order."""
    seen: list[Any] = []
    for unit in periods:
        ids = unit.get("id_contratos") if isinstance(unit, dict) else None
        for contract_id in ids or []:
            if contract_id not in seen:
                seen.append(contract_id)
    return seen


def build_document_data(
    *,
    kind: str,
    enrollment: Any,
    course: Any,
    periods: list[dict[str, Any]],
) -> dict[str, Any]:
    """Template context for one document."""
    return {
        "kind": str(DocumentKind(kind)),
        "enrollment": {
            "id": enrollment.id,
            "token": enrollment.token,
            "enrolled_at": enrollment.enrolled_at.date().isoformat() if enrollment.enrolled_at else None,
        },
        "client": {
            "name": enrollment.client_name,
            "email": enrollment.client_email,
            "tax_id": enrollment.client_tax_id,
        },
        "course": {
            "id": course.id,
            "name": course.name,
            "title": course.title or course.name,
            "duration": course.duration,
            "duration_unit": course.duration_unit,
            "aircraft": course.aircraft or [],
        },
        "financial": course.financial_snapshot(),
        "terms": enrollment_terms(enrollment),
        "periods": periods,
        "contract_ids": linked_contract_ids(periods),
    }
