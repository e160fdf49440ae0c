from __future__ import annotations


class CertificateError(RuntimeError):
    """Base class for certificate pipeline failures."""


class RenderFailure(CertificateError):
    """Raised when a template asset or font cannot be read or drawn."""


class StorageFailure(CertificateError):
    """Raised when the object store cannot complete an operation."""


class ObjectNotFound(StorageFailure):
    """Raised when a key is read that the object store does not hold."""


class NotificationFailure(CertificateError):
    """Raised when the certificate email could not be handed to SMTP."""


class CertificateBusy(CertificateError):
    """Raised when another worker holds the lock for a certificate code."""
