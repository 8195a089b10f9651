"""
verifier/page_selectors.py

Selector catalogue for the registry page.

The registry has no API and no versioned markup, so every selector the
automation relies on lives here, in priority order. A deployment can
override any list from a YAML file (VERIFIER_SELECTORS_FILE) without a code
change:

    code_field:
      - "#edit-code"
      - 'input[type="text"]'
    result_item: "div.top-item"

Keys not present in the file keep their defaults.
"""

import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import List, Optional, Union

import yaml

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SelectorCatalog:
    """Ordered selector candidates for each element the session touches."""

    # Form
    code_field: List[str] = field(default_factory=lambda: [
        'input[type="text"]',
        '#edit-code',
    ])
    submit_button: List[str] = field(default_factory=lambda: [
        'input[type="submit"][value="Revisar"]',
        '#edit-submit',
        'input[value="VALIDAR"]',
    ])
    result_item: str = "div.top-item"

    # Maintenance dialog (jQuery UI)
    popup_close: List[str] = field(default_factory=lambda: [
        '.ui-dialog .ui-dialog-titlebar .ui-dialog-titlebar-close',
        '.ui-dialog-titlebar-close',
        'button[aria-label="Close"]',
        'button[title="Close"]',
        'button:has-text("×")',
        'button:has-text("Cerrar")',
    ])
    popup_dialog: str = ".ui-dialog:visible"
    popup_overlay: str = ".ui-widget-overlay, .ui-front.ui-widget-overlay"


_LIST_KEYS = {"code_field", "submit_button", "popup_close"}


def load_selector_catalog(path: Optional[Union[str, Path]] = None) -> SelectorCatalog:
    """
    Build the selector catalogue, applying overrides from a YAML file.

    Args:
        path: YAML file with any subset of SelectorCatalog keys. None = defaults.

    Raises:
        ValueError: file content is not a mapping, has unknown keys, or a
            value has the wrong shape
    """
    catalog = SelectorCatalog()
    if path is None:
        return catalog

    path = Path(path)
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Selector file {path} must contain a mapping")

    known = {f.name for f in fields(SelectorCatalog)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown selector keys in {path}: {sorted(unknown)}")

    overrides = {}
    for key, value in data.items():
        if key in _LIST_KEYS:
            if isinstance(value, str):
                value = [value]
            if not isinstance(value, list) or not value or not all(isinstance(v, str) and v for v in value):
                raise ValueError(f"Selector key {key!r} in {path} must be a non-empty list of strings")
            overrides[key] = list(value)
        else:
            if not isinstance(value, str) or not value:
                raise ValueError(f"Selector key {key!r} in {path} must be a non-empty string")
            overrides[key] = value

    logger.info(f"[Selectors] Loaded {len(overrides)} override(s) from {path}")
    return replace(catalog, **overrides)
