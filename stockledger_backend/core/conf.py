# core/conf.py

"""
Accessor for the STOCK_LEDGER settings dict.

Services read defaults (VAT rate/mode, default location, document numbering)
through here so tests can override them with `override_settings(STOCK_LEDGER=...)`.
"""

from django.conf import settings

DEFAULTS = {
    "DEFAULT_VAT_RATE_BPS": 1500,
    "DEFAULT_VAT_MODE": "exclusive",
    "DEFAULT_LOCATION_CODE": "main",
    "DEFAULT_LOCATION_NAME": "Main Warehouse",
    "GRV_NUMBER_PREFIX": "GRV",
    "DOCUMENT_NUMBER_PADDING": 6,
}


def ledger_setting(name: str):
    if name not in DEFAULTS:
        raise KeyError(f"Unknown STOCK_LEDGER setting: {name}")
    configured = getattr(settings, "STOCK_LEDGER", None) or {}
    return configured.get(name, DEFAULTS[name])
