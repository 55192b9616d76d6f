"""
CBV Vocabulary Conversion Module

Core Business Vocabulary (CBV) values appear in three forms in EPCIS events:
- Legacy URNs: urn:epcglobal:cbv:bizstep:shipping
- Bare words (JSON-LD compact form): shipping
- Web URIs: https://ref.gs1.org/cbv/BizStep-shipping

The event hash always uses the Web URI form.
"""

from typing import Dict

CBV_WEB_ROOT = "https://ref.gs1.org/cbv/"
GS1_VOC_ROOT = "https://gs1.org/voc/"

# Legacy URN prefix -> Web URI prefix
CBV_URN_PREFIXES: Dict[str, str] = {
    "urn:epcglobal:cbv:bizstep:": CBV_WEB_ROOT + "BizStep-",
    "urn:epcglobal:cbv:disp:": CBV_WEB_ROOT + "Disp-",
    "urn:epcglobal:cbv:btt:": CBV_WEB_ROOT + "BTT-",
    "urn:epcglobal:cbv:sdt:": CBV_WEB_ROOT + "SDT-",
    "urn:epcglobal:cbv:er:": CBV_WEB_ROOT + "ER-",
}

# Vocabulary field -> Web URI prefix for bare words
BARE_WORD_PREFIXES: Dict[str, str] = {
    "bizStep": CBV_WEB_ROOT + "BizStep-",
    "disposition": CBV_WEB_ROOT + "Disp-",
    "persistentDisposition": CBV_WEB_ROOT + "Disp-",
    "bizTransactionList": CBV_WEB_ROOT + "BTT-",
    "sourceList": CBV_WEB_ROOT + "SDT-",
    "destinationList": CBV_WEB_ROOT + "SDT-",
}

# Sensor report attribute -> Web URI prefix
SENSOR_PREFIXES: Dict[str, str] = {
    "type": GS1_VOC_ROOT,
    "exception": GS1_VOC_ROOT,
    "component": CBV_WEB_ROOT + "Comp-",
}


def is_cbv_urn(value: str) -> bool:
    return value.startswith(tuple(CBV_URN_PREFIXES))


def cbv_urn_to_web_uri(value: str) -> str:
    """
    Rewrite a legacy CBV URN to its Web URI.

    Example:
        >>> cbv_urn_to_web_uri("urn:epcglobal:cbv:disp:in_progress")
        'https://ref.gs1.org/cbv/Disp-in_progress'
    """
    for urn_prefix, web_prefix in CBV_URN_PREFIXES.items():
        if value.startswith(urn_prefix):
            return web_prefix + value[len(urn_prefix):]
    return value


def to_cbv_vocabulary(value: str, field: str) -> str:
    """
    Expand a bare CBV word using the vocabulary of the field it belongs to.

    Args:
        value: Field value, e.g. "shipping" or "inv"
        field: Vocabulary field, e.g. "bizStep" or "bizTransactionList"

    Returns:
        Web URI for bare words; URNs are converted, other URIs are unchanged
    """
    if is_cbv_urn(value):
        return cbv_urn_to_web_uri(value)
    if ":" in value or field not in BARE_WORD_PREFIXES:
        return value
    return BARE_WORD_PREFIXES[field] + value


def sensor_vocabulary(field: str, value: str) -> str:
    """
    Format a sensor report type, exception or component value.

    "gs1:Temperature" and "Temperature" both become
    "https://gs1.org/voc/Temperature"; full URIs are unchanged.
    """
    prefix = SENSOR_PREFIXES[field]
    if value.startswith("gs1:"):
        return prefix + value[len("gs1:"):]
    if ":" not in value:
        return prefix + value
    return value
