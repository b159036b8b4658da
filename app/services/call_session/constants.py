"""Emergency transfer destinations."""
from typing import Dict

# ISO 3166-1 alpha-2 caller country to the local emergency number.
# Countries missing here dial the configured default number.
EMERGENCY_NUMBERS: Dict[str, str] = {
    "US": "911",
    "CA": "911",
    "PK": "1122",
    "GB": "999",
    "IN": "112",
    "AE": "999",
    "SA": "997",
    "AU": "000",
}
