import os
from decimal import Decimal

# Record store
DB_FILE = os.getenv(
    "MEMBERSHIP_REPORTER_DB", "membership_reporter/data/membership_data.db"
)

# Gym labels broken out in the monthly history, e.g. "North,South,City"
KNOWN_GYMS = tuple(
    label.strip()
    for label in os.getenv("MEMBERSHIP_REPORTER_GYMS", "").split(",")
    if label.strip()
)

# Roster filters
EXCLUDED_JOURNEY_STAGE = "no_sale"
EXCLUDED_STATUS = "f&f"

# Cost calculator
GST_DIVISOR = Decimal("1.1")
DEFAULT_MEMBERSHIP_WEEKS = 26
PERFORM_PATTERN = "PERFORM"
VO2_PATTERN = "VO2"
RM_PATTERN = "RM"

## Ordered (substring, weeks) pairs; "12" must be tested before "3" and "6"
duration_weeks_rules = (
    ("12", 52),
    ("3", 12),
    ("6", 26),
)

## Ordered (substring, class name) pairs for membership type names, matched lowercase
membership_class_keywords = (
    ("online coaching", "ONLINE_COACHING"),
    ("pack", "PACK"),
    ("flexible", "PACK"),
    ("vo2", "VO2"),
)
