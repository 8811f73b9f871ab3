"""
Residential Tenancies Act 1986 (NZ) thresholds.

These are statutory values; change only after legal review.
- s55(1)(a): 21 days in arrears
- s55(1)(aa): 3 strikes within 90 days, apply within 28 days of the third
- s56: 14-day notice to remedy
- s136: service rules (5pm cutoff, letterbox and postal buffers)
"""

from datetime import time

# Calendar-day thresholds
REMEDY_NOTICE_ELIGIBLE_DAYS = 1
TERMINATION_ELIGIBLE_DAYS = 21

# Working-day thresholds for strike tiers (strike 1, 2, 3)
STRIKE_NOTICE_WORKING_DAYS = 5
STRIKE_2_TIER_WORKING_DAYS = 10
STRIKE_3_TIER_WORKING_DAYS = 15

# Notice periods (calendar days)
REMEDY_PERIOD_DAYS = 14
STRIKE_WINDOW_DAYS = 90
TRIBUNAL_FILING_WINDOW_DAYS = 28

# Service
SERVICE_CUTOFF = time(17, 0)
LETTERBOX_SERVICE_WORKING_DAYS = 2
POSTAL_SERVICE_WORKING_DAYS = 4

MAX_STRIKES = 3

CITATIONS = {
    "arrears_21_days": "Residential Tenancies Act 1986, s55(1)(a)",
    "three_strikes": "Residential Tenancies Act 1986, s55(1)(aa)",
    "unremedied_breach": "Residential Tenancies Act 1986, s56",
}
