#error codes + exceptions shared by the engine

UNKNOWN_ADDON         = "UnknownAddon"
REQUIRED_ADDON_UNMET  = "RequiredAddonUnmet"
QUANTITY_EXCEEDS_MAX  = "QuantityExceedsMax"
INVALID_CONFIGURATION = "InvalidConfiguration"
INVALID_QUANTITY      = "InvalidQuantity"

# cost diagnostics (never raised)
MISSING_REFERENCE  = "missing_reference"
CYCLIC_COMPOSITION = "cyclic_composition"


class PricingInputError(ValueError):
    """Caller passed a value the engine refuses to price (negative qty, bad discount...)."""
