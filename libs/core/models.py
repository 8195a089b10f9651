"""Pydantic models for the RAA verifier."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Verification
# =============================================================================

class VerificationResult(BaseModel):
    """Structured record scraped from the registry result page.

    Immutable once produced. Serialized with the camelCase keys the HTTP
    clients expect (`fechaRegistro`, `fechaAprobacion`).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    valid: bool = False
    active: bool = False
    nombre: Optional[str] = None
    era: Optional[str] = None
    estado: Optional[str] = None
    fecha_registro: Optional[str] = Field(default=None, alias="fechaRegistro")
    fecha_aprobacion: Optional[str] = Field(default=None, alias="fechaAprobacion")
    codigo: Optional[str] = None

    def to_public_dict(self) -> dict[str, Any]:
        """Dump with the external (aliased) field names."""
        return self.model_dump(by_alias=True)


class VerificationOutcome(BaseModel):
    """What the orchestrator hands back to the HTTP layer."""

    model_config = ConfigDict(frozen=True)

    code: str
    result: VerificationResult
    cached: bool = False

    def to_response(self) -> dict[str, Any]:
        return {"cached": self.cached, "code": self.code, **self.result.to_public_dict()}


# =============================================================================
# HTTP payloads
# =============================================================================

class VerifyRequest(BaseModel):
    """Body of POST /verify. Anything that is not a string is coerced."""

    model_config = ConfigDict(extra="ignore")

    code: Any = None
