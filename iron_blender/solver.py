import logging
from dataclasses import replace

from iron_blender.adjustments import estimate_adjustments
from iron_blender.allocator import allocate
from iron_blender.config import DEFAULT_PRODUCT_SIZE, PRODUCT_SIZES
from iron_blender.models import SizeResult
from iron_blender.specs import GLOBAL_DEFAULT_SPECS, resolve_specs

logger = logging.getLogger(__name__)


def partition_by_size(lots, sizes=PRODUCT_SIZES):
    parts = {size: [] for size in sizes}
    for lot in lots:
        size = lot.product_size or DEFAULT_PRODUCT_SIZE
        if size not in parts:
            logger.warning("Skipping lot %s: unknown product size %r", lot.lot_id, size)
            continue
        parts[size].append(lot if lot.product_size == size else replace(lot, product_size=size))
    return parts


def solve_size(lots, target, specs, product_size):
    summary, rejections = allocate(lots, target, specs, product_size)
    report = estimate_adjustments(summary)
    return SizeResult(summary=summary, report=report, rejections=rejections)


def solve_blends(lots, target, global_specs=GLOBAL_DEFAULT_SPECS, size_overrides=None, sizes=PRODUCT_SIZES):
    """Blend each product size independently.

    Returns {size label: SizeResult} in ``sizes`` order; sizes without
    lots are left out.
    """
    results = {}
    for size, part in partition_by_size(lots, sizes).items():
        if not part:
            continue
        specs = resolve_specs(global_specs, part, size_overrides, size)
        results[size] = solve_size(part, target, specs, size)
    return results
