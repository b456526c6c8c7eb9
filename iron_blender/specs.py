import logging

from iron_blender.config import DEFAULT_AL_MAX, DEFAULT_FE_MIN, DEFAULT_P_MAX, DEFAULT_SIO2_MAX
from iron_blender.models import SpecSet

logger = logging.getLogger(__name__)

GLOBAL_DEFAULT_SPECS = SpecSet(
    fe_min=DEFAULT_FE_MIN,
    sio2_max=DEFAULT_SIO2_MAX,
    al_max=DEFAULT_AL_MAX,
    p_max=DEFAULT_P_MAX,
)


def _pick(value, fallback):
    # 0 and None both mean "not set" on override forms.
    return value if value else fallback


def resolve_specs(global_specs, lots, size_overrides=None, size=None):
    """Resolve the single effective SpecSet for one product-size partition.

    Precedence: per-size override, then the first lot's embedded Fe/SiO2
    specs, then the global set. Al2O3 and P never come from a lot.
    """
    override = (size_overrides or {}).get(size)
    if override is not None:
        specs = SpecSet(
            fe_min=_pick(override.fe_min, global_specs.fe_min),
            sio2_max=_pick(override.sio2_max, global_specs.sio2_max),
            al_max=_pick(override.al_max, global_specs.al_max),
            p_max=_pick(override.p_max, global_specs.p_max),
        )
        source = "size override"
    else:
        first = lots[0] if lots else None
        fe_min = global_specs.fe_min
        sio2_max = global_specs.sio2_max
        if first is not None and first.fe_spec_min is not None:
            fe_min = first.fe_spec_min
        if first is not None and first.sio2_spec_max is not None:
            sio2_max = first.sio2_spec_max
        specs = SpecSet(fe_min=fe_min, sio2_max=sio2_max, al_max=global_specs.al_max, p_max=global_specs.p_max)
        source = "lot data" if specs != global_specs else "global"

    logger.info(
        "Product size %s: using %s specs Fe min=%s%%, SiO2 max=%s%%, Al2O3 max=%s%%, P max=%s%%",
        size, source, specs.fe_min, specs.sio2_max, specs.al_max, specs.p_max,
    )
    return specs
