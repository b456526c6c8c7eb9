import pytest

from iron_blender.models import Lot, SpecSet


def make_lot(lot_id, tonnage, fe, sio2, al2o3=0.5, p=0.02, product_size="10-40mm", **kw):
    return Lot(lot_id=lot_id, tonnage=tonnage, fe=fe, sio2=sio2, al2o3=al2o3, p=p,
               product_size=product_size, **kw)


@pytest.fixture
def specs():
    return SpecSet(fe_min=62.0, sio2_max=6.0, al_max=1.5, p_max=0.06)


@pytest.fixture
def two_lot_blend():
    # 6000t high grade + 4000t of a low grade lot still averages in spec.
    return [
        make_lot("A", 6000, 65, 2, 0.5, 0.02),
        make_lot("B", 6000, 58, 8, 2, 0.08),
    ]


@pytest.fixture
def recoverable_lots():
    # R fails SiO2 on its own but fits once blended with G.
    return [
        make_lot("R", 2000, 64, 8),
        make_lot("G", 6000, 63, 2),
    ]


@pytest.fixture
def forced_lots():
    return [
        make_lot("GOOD", 4000, 63, 3, 0.5, 0.02),
        make_lot("BAD", 8000, 55, 9, 2.5, 0.1),
    ]
