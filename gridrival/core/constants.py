"""Market conventions shared by the clearing engine and the round lifecycle."""
from __future__ import annotations

# Price bounds ($/MWh)
PRICE_CAP_MWH = 20000.0
PRICE_FLOOR_MWH = -1000.0

# Every round is four 6-hour periods
PERIOD_HOURS = 6.0
PERIODS_PER_ROUND = 4

# Shortfall settlement: one emergency hour at the cap, the rest at the restored price
EMERGENCY_RESPONSE_HOURS = 1.0
RESTORED_PRICE_FALLBACK_MWH = 200.0  # typical peaker SRMC

# Gross oversupply when offered capacity reaches this multiple of demand
OVERSUPPLY_RATIO = 3.0

# Post-dispatch monitoring
WITHHOLDING_THRESHOLD = 0.25
BALANCING_THRESHOLD_PERCENT = 40.0

# Game sizing
MIN_TEAMS = 2
MAX_TEAMS = 15
DEFAULT_BIDDING_SECONDS = 240
DEFAULT_MAX_BID_BANDS = 10

# Float tolerance when comparing MW quantities
MW_TOLERANCE = 1e-6
