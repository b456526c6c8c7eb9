# ---------------- Basic settings ----------------
DEFAULT_TARGET_TONNAGE = 10000.0

DEFAULT_FE_MIN = 62.0
DEFAULT_SIO2_MAX = 6.0
DEFAULT_AL_MAX = 1.5
DEFAULT_P_MAX = 0.06

# Order matters: results are reported in this order.
PRODUCT_SIZES = ("10-40mm", "Fines")
DEFAULT_PRODUCT_SIZE = "10-40mm"

# Idealized corrective material assumed by the reverse adjustment estimate.
REFERENCE_GRADES = {"fe": 65.0, "sio2": 2.0, "al2o3": 0.8, "p": 0.01}

# Decimal places used when reporting blended chemistry.
PRECISION = {"fe": 3, "sio2": 3, "al2o3": 4, "p": 4}

# Imports without a usable tonnage column get this lot size.
DEFAULT_LOT_TONNAGE = 1000.0

LOG_LEVEL_ENV = "IRON_BLENDER_LOG_LEVEL"
