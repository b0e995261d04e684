"""
E-signature dispatch — provider client, signer list and the at-most-once dispatcher.
"""

from docflow.signature.dispatcher import DispatchOutcome, EnvelopeDispatcher
from docflow.signature.provider import (
    ENVELOPE_ALREADY_SENT_MESSAGE,
    SignatureProviderClient,
    build_provider_client,
    is_already_sent_message,
)

__all__ = [
    "ENVELOPE_ALREADY_SENT_MESSAGE",
    "DispatchOutcome",
    "EnvelopeDispatcher",
    "SignatureProviderClient",
    "build_provider_client",
    "is_already_sent_message",
]
