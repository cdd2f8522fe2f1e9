"""Email verification: syntax, third-party APIs, DNS MX."""

from leadsleuth.verification.base import VerificationOutcome
from leadsleuth.verification.cascade import EmailVerifier
from leadsleuth.verification.dns_mx import DnsPythonResolver, MXResolver, MXVerifier
from leadsleuth.verification.emaillistverify import EmailListVerifyVerifier
from leadsleuth.verification.hunter import HunterVerifier

__all__ = [
    "DnsPythonResolver",
    "EmailListVerifyVerifier",
    "EmailVerifier",
    "HunterVerifier",
    "MXResolver",
    "MXVerifier",
    "VerificationOutcome",
]
