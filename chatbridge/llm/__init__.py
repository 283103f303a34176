"""Claude backend access with credential failover."""

from chatbridge.llm.errors import AllCredentialsExhausted, BackendError
from chatbridge.llm.orchestrator import RequestOrchestrator
from chatbridge.llm.rotator import Credential, CredentialRotator, build_handles

__all__ = [
    "AllCredentialsExhausted",
    "BackendError",
    "Credential",
    "CredentialRotator",
    "RequestOrchestrator",
    "build_handles",
]
