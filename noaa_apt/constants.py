"""APT protocol constants.

Row geometry, rates and telemetry layout of the NOAA Automatic Picture
Transmission format.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Rates (Hz)
# ---------------------------------------------------------------------------
FINAL_RATE = 4160          # One sample per pixel
CARRIER_FREQ = 2400        # AM subcarrier

# ---------------------------------------------------------------------------
# Row geometry (pixels)
# ---------------------------------------------------------------------------
PX_SYNC_FRAME = 39         # Channel sync frame
PX_SPACE_DATA = 47         # Deep space data and minute markers
PX_CHANNEL_IMAGE_DATA = 909
PX_TELEMETRY_DATA = 45

PX_PER_CHANNEL = (
    PX_SYNC_FRAME
    + PX_SPACE_DATA
    + PX_CHANNEL_IMAGE_DATA
    + PX_TELEMETRY_DATA
)

# 1040 * 2 = 2080
PX_PER_ROW = PX_PER_CHANNEL * 2

# Two rows per second
ROW_RATE = FINAL_RATE // PX_PER_ROW

# ---------------------------------------------------------------------------
# Sync
# ---------------------------------------------------------------------------
SYNC_PULSES = 7            # Square pulses on the channel A sync frame
SYNC_LEADER_PX = 8         # Black pixels after the pulses
MIN_SYNC_FRAMES = 5
MIN_ROWS = 10              # Rows required after the first resample

# ---------------------------------------------------------------------------
# Telemetry
# ---------------------------------------------------------------------------
TELEMETRY_A_START = 994
TELEMETRY_B_START = 2034
TELEMETRY_BAND_WIDTH = 44
WEDGE_HEIGHT = 8           # Rows per wedge
WEDGES_PER_FRAME = 16
CONTRAST_WEDGES = 9

# Nominal values of contrast wedges 1 to 9
CONTRAST_WEDGE_VALUES = (31., 63., 95., 127., 159., 191., 224., 255., 0.)

# Channel names by the contrast wedge closest to the identification wedge
CHANNEL_NAMES = ('1', '2', '3a', '4', '5', '3b', 'Unknown', 'Unknown', 'Unknown')

# ---------------------------------------------------------------------------
# Image
# ---------------------------------------------------------------------------
DEFAULT_PERCENT = 0.98     # Fraction of samples kept inside the mapped range
