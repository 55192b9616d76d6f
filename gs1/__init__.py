"""GS1 identifier and CBV vocabulary conversions"""

from .identifiers import (
    calculate_check_digit,
    to_digital_link,
    to_class_digital_link,
    expand_short_names,
    is_instance_urn,
    is_class_urn,
)
from .vocabulary import (
    cbv_urn_to_web_uri,
    to_cbv_vocabulary,
    sensor_vocabulary,
    is_cbv_urn,
)

__all__ = [
    "calculate_check_digit",
    "to_digital_link",
    "to_class_digital_link",
    "expand_short_names",
    "is_instance_urn",
    "is_class_urn",
    "cbv_urn_to_web_uri",
    "to_cbv_vocabulary",
    "sensor_vocabulary",
    "is_cbv_urn",
]
