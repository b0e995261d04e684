"""Signer list for an enrollment envelope: client first, then countersigners."""

from __future__ import annotations

from typing import Any

from docflow.core.config import settings

CPF_AUTH_MODE = "CPF"


def _signer(name: str, email: str | None, cpf: str | None, order_group: int, **extra: Any) -> dict[str, Any]:
    signer = {
        "name": name,
        "email": email or "",
        "cpf": cpf or "",
        "send_automatic_email": True,
        "send_automatic_whatsapp": False,
        "order_group": order_group,
    }
    signer.update(extra)
    return signer


def build_signers(enrollment: Any, countersigners: list[dict[str, str]] | None = None) -> list[dict[str, Any]]:
    """
    Client in order group 1, then each countersigner (contracted party,
    witnesses) in its own group from 2 on, authenticated by CPF.
    """
    if countersigners is None:
        countersigners = settings.ENVELOPE_COUNTERSIGNERS

    signers = [
        _signer(enrollment.client_name, enrollment.client_email, enrollment.client_tax_id, 1),
    ]
    for offset, person in enumerate(countersigners):
        signers.append(
            _signer(
                person.get("name", ""),
                person.get("email"),
                person.get("cpf"),
                2 + offset,
                auth_mode=CPF_AUTH_MODE,
            )
        )
    return signers
