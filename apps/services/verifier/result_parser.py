"""
verifier/result_parser.py

Turns the text of the registry's result cards into a VerificationResult.

The page renders one `div.top-item` per field with no stable markup inside:
the first three cards are name, ERA and status by position; the rest carry a
human-readable label prefix ("Código: AVAL-...").
"""

from typing import Optional, Sequence

from libs.core.models import VerificationResult

LABEL_FECHA_REGISTRO = "Fecha de registro:"
LABEL_CODIGO = "Código:"
LABEL_FECHA_APROBACION = "Fecha de Aprobación:"

ACTIVE_STATUS = "activo"


def _positional(fragments: Sequence[str], index: int) -> Optional[str]:
    if index >= len(fragments):
        return None
    return fragments[index] or None


def _labeled(fragments: Sequence[str], label: str) -> Optional[str]:
    """First fragment starting with `label`, prefix removed and trimmed."""
    for fragment in fragments:
        if fragment and fragment.startswith(label):
            return fragment[len(label):].strip() or None
    return None


def parse_fragments(fragments: Sequence[str]) -> VerificationResult:
    """
    Build a VerificationResult from result-card texts in DOM order.

    Total: never raises. Missing fields become None; `valid` requires name
    and status, `active` additionally requires status == "activo"
    (case-insensitive).
    """
    items = [f if isinstance(f, str) else "" for f in (fragments or [])]

    nombre = _positional(items, 0)
    era = _positional(items, 1)
    estado = _positional(items, 2)

    valid = bool(nombre and estado)
    active = valid and estado.casefold() == ACTIVE_STATUS

    return VerificationResult(
        valid=valid,
        active=active,
        nombre=nombre,
        era=era,
        estado=estado,
        fecha_registro=_labeled(items, LABEL_FECHA_REGISTRO),
        fecha_aprobacion=_labeled(items, LABEL_FECHA_APROBACION),
        codigo=_labeled(items, LABEL_CODIGO),
    )
