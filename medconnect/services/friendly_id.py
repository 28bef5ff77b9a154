"""
Human-friendly account identifiers (e.g. DR4821093456)

Generated client-side at signup with no collision check against existing
profiles. Use them as a display reference only, never as an auth key.
"""

import random
import re
from typing import Optional

from medconnect.auth.session import Role

FRIENDLY_ID_MIN = 1_000_000_000
FRIENDLY_ID_MAX = 9_999_999_999
FRIENDLY_ID_PATTERN = re.compile(r"^(PT|DR|LB)\d{10}$")

ROLE_PREFIXES = {
    Role.PATIENT: "PT",
    Role.DOCTOR: "DR",
    Role.LAB_OWNER: "LB",
}


def generate_friendly_id(role, rng: Optional[random.Random] = None) -> str:
    """Role prefix followed by ten random digits; unknown roles get the patient prefix"""
    digits = (rng or random).randint(FRIENDLY_ID_MIN, FRIENDLY_ID_MAX)
    prefix = ROLE_PREFIXES.get(Role.parse(role), ROLE_PREFIXES[Role.PATIENT])
    return f"{prefix}{digits}"
