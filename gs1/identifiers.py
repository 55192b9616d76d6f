"""
GS1 Identifier Conversion Module

This module converts the identifier forms found in EPCIS events into the
canonical GS1 Digital Link URI form used by the event hash:
- EPC instance URNs (urn:epc:id:sgtin:..., urn:epc:id:sscc:..., ...)
- EPC class-level URNs (urn:epc:class:lgtin:..., urn:epc:idpat:sgtin:...)
- Digital Link URIs using short names or a custom resolver domain

All canonical URIs are rooted at https://id.gs1.org and use numeric
application identifiers (AIs).
"""

import re
from typing import Dict, List, Optional
from urllib.parse import urlsplit

DIGITAL_LINK_ROOT = "https://id.gs1.org"

INSTANCE_URN_PREFIX = "urn:epc:id:"
CLASS_URN_PREFIXES = ("urn:epc:class:", "urn:epc:idpat:")

# Primary key short names -> numeric AI
PRIMARY_KEYS: Dict[str, str] = {
    "gtin": "01",
    "sscc": "00",
    "gln": "414",
    "party": "417",
    "grai": "8003",
    "giai": "8004",
    "gsrn": "8018",
    "gsrnp": "8017",
    "gdti": "253",
    "cpid": "8010",
    "gcn": "255",
    "ginc": "401",
    "gsin": "402",
    "itip": "8006",
}

# Key qualifier short names -> numeric AI
QUALIFIERS: Dict[str, str] = {
    "ser": "21",
    "lot": "10",
    "cpv": "22",
    "glnx": "254",
    "cpsn": "8011",
    "tpx": "235",
    "srin": "8019",
}

_NUMERIC_AIS = set(PRIMARY_KEYS.values()) | set(QUALIFIERS.values())
_DIGITS = re.compile(r"^\d+$")


def calculate_check_digit(code: str) -> str:
    """
    Calculate GS1 check digit using the standard algorithm.

    Args:
        code: Numeric string without check digit

    Returns:
        Single digit check digit as string

    Example:
        >>> calculate_check_digit("0952000112346")
        '7'
    """
    # GS1 mod-10: weight alternates 3,1,3,1... starting from the rightmost digit
    total = sum(int(digit) * (3 if i % 2 == 0 else 1) for i, digit in enumerate(reversed(code)))
    return str((10 - (total % 10)) % 10)


def _split(urn: str, prefix: str, parts: int) -> List[str]:
    body = urn[len(prefix):]
    fields = body.split(".", parts - 1)
    if len(fields) != parts or not all(fields[:parts - 1]):
        raise ValueError(f"Malformed EPC URN: {urn}")
    return fields


def _with_check_digit(digits: str, length: int, urn: str) -> str:
    if len(digits) != length or not _DIGITS.match(digits):
        raise ValueError(f"Invalid GS1 key length in {urn}: expected {length} digits")
    return digits + calculate_check_digit(digits)


def _gtin(company_prefix: str, item_ref: str, urn: str) -> str:
    # Indicator digit moves from the item reference to the front
    return _with_check_digit(item_ref[:1] + company_prefix + item_ref[1:], 13, urn)


def to_digital_link(urn: str) -> str:
    """
    Convert an EPC instance URN to its GS1 Digital Link URI.

    Serial components are kept exactly as written, including URN
    percent-escapes. Schemes that are not GS1 keys are returned unchanged.

    Args:
        urn: EPC URN such as "urn:epc:id:sgtin:0614141.107346.2017"

    Returns:
        Digital Link URI rooted at https://id.gs1.org

    Raises:
        ValueError: If a known scheme has missing or malformed components

    Example:
        >>> to_digital_link("urn:epc:id:sgtin:0614141.107346.2017")
        'https://id.gs1.org/01/10614141073464/21/2017'
    """
    if not urn.startswith(INSTANCE_URN_PREFIX):
        return urn

    scheme = urn[len(INSTANCE_URN_PREFIX):].partition(":")[0]
    prefix = f"{INSTANCE_URN_PREFIX}{scheme}:"

    if scheme == "sgtin":
        cp, ir, serial = _split(urn, prefix, 3)
        return f"{DIGITAL_LINK_ROOT}/01/{_gtin(cp, ir, urn)}/21/{serial}"
    if scheme == "sscc":
        cp, sr = _split(urn, prefix, 2)
        return f"{DIGITAL_LINK_ROOT}/00/{_with_check_digit(sr[:1] + cp + sr[1:], 17, urn)}"
    if scheme == "sgln":
        cp, lr, ext = _split(urn, prefix, 3)
        gln = _with_check_digit(cp + lr, 12, urn)
        if ext and ext != "0":
            return f"{DIGITAL_LINK_ROOT}/414/{gln}/254/{ext}"
        return f"{DIGITAL_LINK_ROOT}/414/{gln}"
    if scheme == "grai":
        cp, asset_type, serial = _split(urn, prefix, 3)
        return f"{DIGITAL_LINK_ROOT}/8003/0{_with_check_digit(cp + asset_type, 12, urn)}{serial}"
    if scheme == "giai":
        cp, asset_ref = _split(urn, prefix, 2)
        return f"{DIGITAL_LINK_ROOT}/8004/{cp}{asset_ref}"
    if scheme in ("gsrn", "gsrnp"):
        cp, service_ref = _split(urn, prefix, 2)
        ai = "8018" if scheme == "gsrn" else "8017"
        return f"{DIGITAL_LINK_ROOT}/{ai}/{_with_check_digit(cp + service_ref, 17, urn)}"
    if scheme == "gdti":
        cp, doc_type, serial = _split(urn, prefix, 3)
        return f"{DIGITAL_LINK_ROOT}/253/{_with_check_digit(cp + doc_type, 12, urn)}{serial}"
    if scheme == "cpi":
        cp, part_ref, serial = _split(urn, prefix, 3)
        return f"{DIGITAL_LINK_ROOT}/8010/{cp}{part_ref}/8011/{serial}"
    if scheme == "sgcn":
        cp, coupon_ref, serial = _split(urn, prefix, 3)
        return f"{DIGITAL_LINK_ROOT}/255/{_with_check_digit(cp + coupon_ref, 12, urn)}{serial}"
    if scheme == "ginc":
        cp, consignment_ref = _split(urn, prefix, 2)
        return f"{DIGITAL_LINK_ROOT}/401/{cp}{consignment_ref}"
    if scheme == "gsin":
        cp, shipper_ref = _split(urn, prefix, 2)
        return f"{DIGITAL_LINK_ROOT}/402/{_with_check_digit(cp + shipper_ref, 16, urn)}"
    if scheme == "itip":
        cp, ir, piece, total, serial = _split(urn, prefix, 5)
        return f"{DIGITAL_LINK_ROOT}/8006/{_gtin(cp, ir, urn)}{piece}{total}/21/{serial}"
    if scheme == "upui":
        cp, ir, tpx = _split(urn, prefix, 3)
        return f"{DIGITAL_LINK_ROOT}/01/{_gtin(cp, ir, urn)}/235/{tpx}"
    if scheme == "pgln":
        cp, party_ref = _split(urn, prefix, 2)
        return f"{DIGITAL_LINK_ROOT}/417/{_with_check_digit(cp + party_ref, 12, urn)}"

    return urn


def to_class_digital_link(urn: str) -> str:
    """
    Convert a class-level EPC URN (LGTIN or ID pattern) to a Digital Link URI.

    Args:
        urn: Class URN such as "urn:epc:class:lgtin:4012345.012345.998877"
             or "urn:epc:idpat:sgtin:4012345.012345.*"

    Returns:
        Digital Link URI, or the input unchanged for unsupported schemes

    Example:
        >>> to_class_digital_link("urn:epc:class:lgtin:4012345.012345.998877")
        'https://id.gs1.org/01/04012345123456/10/998877'
    """
    if urn.startswith("urn:epc:class:lgtin:"):
        cp, ir, lot = _split(urn, "urn:epc:class:lgtin:", 3)
        return f"{DIGITAL_LINK_ROOT}/01/{_gtin(cp, ir, urn)}/10/{lot}"

    if not urn.startswith("urn:epc:idpat:"):
        return urn

    scheme, _, rest = urn[len("urn:epc:idpat:"):].partition(":")
    fields = rest.split(".")
    if len(fields) < 2:
        raise ValueError(f"Malformed EPC ID pattern: {urn}")
    cp, ref = fields[0], fields[1]

    if scheme in ("sgtin", "upui"):
        return f"{DIGITAL_LINK_ROOT}/01/{_gtin(cp, ref, urn)}"
    if scheme == "itip":
        if len(fields) < 4:
            raise ValueError(f"Malformed EPC ID pattern: {urn}")
        return f"{DIGITAL_LINK_ROOT}/8006/{_gtin(cp, ref, urn)}{fields[2]}{fields[3]}"
    if scheme == "grai":
        return f"{DIGITAL_LINK_ROOT}/8003/0{_with_check_digit(cp + ref, 12, urn)}"
    if scheme == "gdti":
        return f"{DIGITAL_LINK_ROOT}/253/{_with_check_digit(cp + ref, 12, urn)}"
    if scheme == "sgcn":
        return f"{DIGITAL_LINK_ROOT}/255/{_with_check_digit(cp + ref, 12, urn)}"
    if scheme == "cpi":
        return f"{DIGITAL_LINK_ROOT}/8010/{cp}{ref}"

    return urn


def is_instance_urn(value: str) -> bool:
    return value.startswith(INSTANCE_URN_PREFIX)


def is_class_urn(value: str) -> bool:
    return value.startswith(CLASS_URN_PREFIXES)


def _ai_for(segment: str) -> Optional[str]:
    if segment in _NUMERIC_AIS:
        return segment
    return PRIMARY_KEYS.get(segment) or QUALIFIERS.get(segment)


def expand_short_names(uri: str) -> str:
    """
    Normalize a GS1 Digital Link URI to the canonical id.gs1.org form.

    Any resolver domain and any path prefix before the primary key are
    accepted. Short names (gtin, ser, lot, ...) are replaced by their numeric
    AIs and the query string is dropped. Values that are not Digital Link
    URIs are returned unchanged.

    Args:
        uri: Candidate Digital Link URI

    Returns:
        Canonical Digital Link URI or the unchanged input

    Example:
        >>> expand_short_names("https://example.com/gtin/09520123456788/ser/12345?17=201225")
        'https://id.gs1.org/01/09520123456788/21/12345'
    """
    parts = urlsplit(uri)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return uri

    segments = [s for s in parts.path.split("/") if s]
    start = next(
        (i for i, s in enumerate(segments)
         if (s in PRIMARY_KEYS or s in PRIMARY_KEYS.values()) and i + 1 < len(segments)),
        None,
    )
    if start is None:
        return uri

    pairs = segments[start:]
    if len(pairs) % 2:
        return uri

    rebuilt = []
    for i in range(0, len(pairs), 2):
        ai = _ai_for(pairs[i])
        if ai is None:
            return uri
        value = pairs[i + 1]
        if ai == "01" and _DIGITS.match(value) and len(value) < 14:
            value = value.zfill(14)
        rebuilt.append(f"{ai}/{value}")

    return f"{DIGITAL_LINK_ROOT}/" + "/".join(rebuilt)


if __name__ == "__main__":
    import sys

    for arg in sys.argv[1:]:
        if is_class_urn(arg):
            print(to_class_digital_link(arg))
        elif is_instance_urn(arg):
            print(to_digital_link(arg))
        else:
            print(expand_short_names(arg))
