import logging

from iron_blender.config import PRECISION, REFERENCE_GRADES
from iron_blender.models import (
    PARAMETER_LABELS,
    PARAMETERS,
    AdjustmentReport,
    AdjustmentStatus,
    AllocationStatus,
    ForcedAlarm,
    ParameterAdjustment,
)

logger = logging.getLogger(__name__)

_MATERIAL = {
    "fe": "high-Fe material",
    "sio2": "low-SiO2 material",
    "al2o3": "low-Al2O3 material",
    "p": "low-P material",
}


def _adjust_parameter(param, current, limit, total, reference):
    label = PARAMETER_LABELS[param]
    dp = PRECISION[param]
    if param == "fe":
        out_of_spec = current < limit
        gap = limit - current
        headroom = reference - current
        word, bound = "LOW", "min"
    else:
        out_of_spec = current > limit
        gap = current - limit
        headroom = current - reference
        word, bound = "HIGH", "max"

    if not out_of_spec:
        return ParameterAdjustment(
            parameter=param, current=current, limit=limit, gap=0.0,
            reference_grade=reference, required_tonnage=0.0, status=AdjustmentStatus.MET,
        )

    if total <= 0 or headroom <= 0:
        if total <= 0:
            reason = "no tonnage was allocated, value is the full lot-set average"
        else:
            reason = f"reference {_MATERIAL[param]} at {reference}% cannot close the gap"
        text = f"{label} is {word} ({current:.{dp}f}% vs {bound} {limit}%): {reason}"
        return ParameterAdjustment(
            parameter=param, current=current, limit=limit, gap=gap,
            reference_grade=reference, required_tonnage=None,
            status=AdjustmentStatus.UNREACHABLE, recommendation=text,
        )

    required = gap * total / headroom
    text = (
        f"{label} is {word} ({current:.{dp}f}% vs {bound} {limit}%): "
        f"need ~{required:.2f}t additional {_MATERIAL[param]} ({reference}% {label})"
    )
    return ParameterAdjustment(
        parameter=param, current=current, limit=limit, gap=gap,
        reference_grade=reference, required_tonnage=required,
        status=AdjustmentStatus.ADJUST, recommendation=text,
    )


def forced_alarm(allocations):
    forced = [a for a in allocations if a.status is AllocationStatus.FORCED]
    if not forced:
        return None
    return ForcedAlarm(
        message=f"SIDECAST REQUIRED: {len(forced)} lot(s) with FORCED allocation (specs exceeded)",
        lots=tuple((a.lot_id, a.allocated) for a in forced),
        total_forced_tonnage=sum(a.allocated for a in forced),
    )


def estimate_adjustments(summary, reference_grades=None):
    """Estimate corrective tonnage per out-of-spec parameter.

    required = gap * total / (reference - current), using an idealized
    reference material per parameter. The summary is not modified.
    """
    refs = dict(REFERENCE_GRADES)
    refs.update(reference_grades or {})
    adjustments = {}
    for param in PARAMETERS:
        adjustments[param] = _adjust_parameter(
            param,
            summary.chemistry.get(param),
            summary.specs.limit(param),
            summary.total_allocated,
            refs[param],
        )

    recommendations = tuple(a.recommendation for a in adjustments.values() if a.recommendation)
    alarm = forced_alarm(summary.allocations)
    alarms = (alarm,) if alarm else ()
    if alarm:
        logger.warning("%s: %s (%.2ft)", summary.product_size, alarm.message, alarm.total_forced_tonnage)
    return AdjustmentReport(adjustments=adjustments, alarms=alarms, recommendations=recommendations)
