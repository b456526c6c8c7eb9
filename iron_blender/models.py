"""Input records and result structures for blend allocation."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from iron_blender.config import DEFAULT_PRODUCT_SIZE, PRECISION

PARAMETERS = ("fe", "sio2", "al2o3", "p")
PARAMETER_LABELS = {"fe": "Fe", "sio2": "SiO2", "al2o3": "Al2O3", "p": "P"}


# --------------- Inputs ---------------
@dataclass(frozen=True)
class Lot:
    lot_id: str
    tonnage: float
    fe: float
    sio2: float
    al2o3: float
    p: float
    product_size: str = DEFAULT_PRODUCT_SIZE
    fe_spec_min: float | None = None
    sio2_spec_max: float | None = None

    def grade(self, param):
        return getattr(self, param)


@dataclass(frozen=True)
class SpecSet:
    fe_min: float
    sio2_max: float
    al_max: float
    p_max: float

    def limit(self, param):
        return {"fe": self.fe_min, "sio2": self.sio2_max, "al2o3": self.al_max, "p": self.p_max}[param]

    def met(self, chem):
        """Per-parameter pass flags for a chemistry."""
        return {
            "fe": chem.fe >= self.fe_min,
            "sio2": chem.sio2 <= self.sio2_max,
            "al2o3": chem.al2o3 <= self.al_max,
            "p": chem.p <= self.p_max,
        }

    def accepts(self, chem):
        return all(self.met(chem).values())

    def accepts_fe_sio2(self, chem):
        # Recovery rule: only Fe and SiO2 are checked.
        return chem.fe >= self.fe_min and chem.sio2 <= self.sio2_max


@dataclass(frozen=True)
class SizeSpecOverride:
    """Per-size spec values; None or 0 falls back to the global field."""

    fe_min: float | None = None
    sio2_max: float | None = None
    al_max: float | None = None
    p_max: float | None = None


# --------------- Blend results ---------------
@dataclass(frozen=True)
class Chemistry:
    fe: float
    sio2: float
    al2o3: float
    p: float

    def get(self, param):
        return getattr(self, param)

    def rounded(self):
        return Chemistry(**{k: round(getattr(self, k), PRECISION[k]) for k in PARAMETERS})

    def describe(self):
        return ", ".join(
            f"{PARAMETER_LABELS[k]}={getattr(self, k):.{PRECISION[k]}f}%" for k in PARAMETERS
        )


class AllocationStatus(str, Enum):
    ACCEPTED = "ACCEPTED"
    RECOVERED = "RECOVERED"
    FORCED = "FORCED"


@dataclass(frozen=True)
class Allocation:
    lot_id: str
    product_size: str
    allocated: float
    fe_contrib: float
    sio2_contrib: float
    al_contrib: float
    p_contrib: float
    status: AllocationStatus
    lot_index: int | None = None

    @classmethod
    def from_lot(cls, lot, take, status, lot_index=None):
        return cls(
            lot_id=lot.lot_id,
            product_size=lot.product_size,
            allocated=take,
            fe_contrib=take * lot.fe,
            sio2_contrib=take * lot.sio2,
            al_contrib=take * lot.al2o3,
            p_contrib=take * lot.p,
            status=status,
            lot_index=lot_index,
        )


@dataclass(frozen=True)
class Rejection:
    index: int
    lot: Lot
    candidate: Chemistry

    @property
    def reason(self):
        return self.candidate.describe()


@dataclass(frozen=True)
class BlendSummary:
    product_size: str
    chemistry: Chemistry
    total_allocated: float
    target_tonnage: float
    specs: SpecSet
    met_specs: dict
    rejected_count: int
    recovered_count: int
    forced_count: int
    allocations: tuple
    used_fallback: bool = False

    @property
    def all_met(self):
        return all(self.met_specs.values())

    @property
    def shortfall(self):
        return max(0.0, self.target_tonnage - self.total_allocated)

    @property
    def contributions(self):
        return {
            "fe": sum(a.fe_contrib for a in self.allocations),
            "sio2": sum(a.sio2_contrib for a in self.allocations),
            "al2o3": sum(a.al_contrib for a in self.allocations),
            "p": sum(a.p_contrib for a in self.allocations),
        }


# --------------- Reverse adjustments ---------------
class AdjustmentStatus(str, Enum):
    MET = "MET"
    ADJUST = "ADJUST"
    UNREACHABLE = "UNREACHABLE"


@dataclass(frozen=True)
class ParameterAdjustment:
    parameter: str
    current: float
    limit: float
    gap: float
    reference_grade: float
    required_tonnage: float | None
    status: AdjustmentStatus
    recommendation: str = ""


@dataclass(frozen=True)
class ForcedAlarm:
    message: str
    lots: tuple
    total_forced_tonnage: float
    severity: str = "HIGH"
    kind: str = "SIDECAST_REQUIRED"


@dataclass(frozen=True)
class AdjustmentReport:
    adjustments: dict
    alarms: tuple = ()
    recommendations: tuple = ()

    @property
    def requires_attention(self):
        return bool(self.alarms)


@dataclass(frozen=True)
class SizeResult:
    summary: BlendSummary
    report: AdjustmentReport
    rejections: tuple = field(default=())
