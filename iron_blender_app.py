import logging

import streamlit as st

from iron_blender.config import (
    DEFAULT_AL_MAX,
    DEFAULT_FE_MIN,
    DEFAULT_P_MAX,
    DEFAULT_SIO2_MAX,
    DEFAULT_TARGET_TONNAGE,
    PRODUCT_SIZES,
)
from iron_blender.export import (
    adjustments_frame,
    allocations_frame,
    composition_frame,
    forced_frame,
    kpis,
    leftover_inventory,
    result_sheets,
    to_xlsx_bytes,
)
from iron_blender.logging_utils import configure_logging
from iron_blender.lot_import import LotImportError, frame_to_lots, normalize_lots, read_lot_table
from iron_blender.models import SizeSpecOverride, SpecSet
from iron_blender.solver import solve_blends

configure_logging()
logger = logging.getLogger("iron_blender.app")

# ---------------- Basic settings ----------------
st.set_page_config(page_title="Iron Ore Blending Allocator", layout="wide")
st.title("Iron Ore Blending Allocator (per product size)")

SIZE_LABELS = {"10-40mm": "10-40mm (Coarse Grade)", "Fines": "Fines (Fine Grade)"}

# --------------------------- UI ---------------------------
st.sidebar.header("Inputs")
uploaded = st.sidebar.file_uploader("Upload lot CSV/XLSX", type=["csv", "xlsx"])

target = st.sidebar.number_input("Shipment target (t)", min_value=0.0, max_value=1000000.0,
                                 value=float(DEFAULT_TARGET_TONNAGE), step=500.0)

st.sidebar.subheader("Quality specifications")
fe_min = st.sidebar.number_input("Fe min (%)", min_value=0.0, max_value=100.0, value=DEFAULT_FE_MIN, step=0.1)
sio2_max = st.sidebar.number_input("SiO2 max (%)", min_value=0.0, max_value=100.0, value=DEFAULT_SIO2_MAX, step=0.1)
al_max = st.sidebar.number_input("Al2O3 max (%)", min_value=0.0, max_value=100.0, value=DEFAULT_AL_MAX, step=0.01)
p_max = st.sidebar.number_input("P max (%)", min_value=0.0, max_value=10.0, value=DEFAULT_P_MAX, step=0.01, format="%.3f")
global_specs = SpecSet(fe_min=fe_min, sio2_max=sio2_max, al_max=al_max, p_max=p_max)

overrides = {}
for size in PRODUCT_SIZES:
    with st.sidebar.expander(f"{SIZE_LABELS[size]} spec override (0 = use global)"):
        if st.checkbox("Override", value=False, key=f"ov_{size}"):
            overrides[size] = SizeSpecOverride(
                fe_min=st.number_input("Fe min (%)", min_value=0.0, value=0.0, step=0.1, key=f"fe_{size}"),
                sio2_max=st.number_input("SiO2 max (%)", min_value=0.0, value=0.0, step=0.1, key=f"si_{size}"),
                al_max=st.number_input("Al2O3 max (%)", min_value=0.0, value=0.0, step=0.01, key=f"al_{size}"),
                p_max=st.number_input("P max (%)", min_value=0.0, value=0.0, step=0.01, format="%.3f", key=f"p_{size}"),
            )

if uploaded is None:
    st.info("Upload a lot CSV/XLSX to begin.")
    st.stop()

try:
    raw_df = read_lot_table(uploaded.name, uploaded.getvalue())
    norm_df = normalize_lots(raw_df)
except LotImportError as e:
    st.error(str(e))
    st.stop()

st.subheader("Normalized Preview")
st.dataframe(norm_df.head(50))
lots = frame_to_lots(norm_df)
if not lots:
    st.error("No usable lots found in the uploaded file.")
    st.stop()

logger.info("Solving %d lots for a %.0ft target", len(lots), target)
results = solve_blends(lots, target, global_specs, overrides)

st.header("Blending Results by Product Size")
for size, res in results.items():
    summary, report = res.summary, res.report
    st.subheader(SIZE_LABELS.get(size, size))

    for alarm in report.alarms:
        st.error(f"{alarm.message}: total {alarm.total_forced_tonnage:.2f}t")
        st.dataframe(forced_frame(report))

    st.markdown("**Blended Composition**")
    st.dataframe(composition_frame(summary))
    st.write(kpis(summary))
    if summary.shortfall > 0:
        st.warning(f"Residual shortfall: {summary.total_allocated:.2f} / {target:.2f} t allocated.")

    st.markdown("**Lot Allocations**")
    st.dataframe(allocations_frame(summary))

    st.markdown("**Reverse Adjustments**")
    st.dataframe(adjustments_frame(report))
    for line in report.recommendations:
        st.write(f"- {line}")

    st.markdown("**Leftover Inventory**")
    st.dataframe(leftover_inventory(lots, summary))

if results:
    st.download_button(
        "Download XLSX",
        data=to_xlsx_bytes(result_sheets(results, lots)),
        file_name=f"blend_{int(target)}t.xlsx",
        mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )
else:
    st.info("No product size produced a blend.")
