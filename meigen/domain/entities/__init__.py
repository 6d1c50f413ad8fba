from .quote import QUOTE_TEMPLATE, QUOTE_TEMPLATE_OVERHEAD, Quote

__all__ = [
    "Quote",
    "QUOTE_TEMPLATE",
    "QUOTE_TEMPLATE_OVERHEAD",
]
