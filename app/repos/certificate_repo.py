from __future__ import annotations

from typing import Protocol
from uuid import UUID

from app.models.certificate import Certificate
from app.services.errors import CertificateCodeCollisionError, DuplicateCertificateError


class CertificateRepo(Protocol):
    async def get_by_enrollment(self, enrollment_id: UUID) -> Certificate | None: ...
    async def get_by_code(self, code: str) -> Certificate | None: ...
    async def add(self, certificate: Certificate) -> None:
        """Insert; raises DuplicateCertificateError or CertificateCodeCollisionError."""
        ...


class InMemoryCertificateRepo:
    def __init__(self) -> None:
        self._by_enrollment: dict[UUID, Certificate] = {}
        self._by_code: dict[str, Certificate] = {}

    async def get_by_enrollment(self, enrollment_id: UUID) -> Certificate | None:
        return self._by_enrollment.get(enrollment_id)

    async def get_by_code(self, code: str) -> Certificate | None:
        return self._by_code.get(code)

    async def add(self, certificate: Certificate) -> None:
        if certificate.enrollment_id in self._by_enrollment:
            raise DuplicateCertificateError(str(certificate.enrollment_id))
        if certificate.code in self._by_code:
            raise CertificateCodeCollisionError(certificate.code)
        self._by_enrollment[certificate.enrollment_id] = certificate
        self._by_code[certificate.code] = certificate
