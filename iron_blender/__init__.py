from iron_blender.adjustments import estimate_adjustments
from iron_blender.allocator import allocate
from iron_blender.models import (
    AdjustmentReport,
    AdjustmentStatus,
    Allocation,
    AllocationStatus,
    BlendSummary,
    Chemistry,
    ForcedAlarm,
    Lot,
    ParameterAdjustment,
    SizeResult,
    SizeSpecOverride,
    SpecSet,
)
from iron_blender.solver import solve_blends
from iron_blender.specs import GLOBAL_DEFAULT_SPECS, resolve_specs

__version__ = "0.1.0"
