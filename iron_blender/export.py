from io import BytesIO

import pandas as pd

from iron_blender.config import PRECISION
from iron_blender.models import PARAMETER_LABELS, PARAMETERS
from iron_blender.solver import partition_by_size

_BOUND = {"fe": "≥", "sio2": "≤", "al2o3": "≤", "p": "≤"}
_TONNAGE_DP = {"fe": 2, "sio2": 2, "al2o3": 3, "p": 4}


def allocations_frame(summary):
    rows = []
    for a in summary.allocations:
        rows.append({
            "LotID": a.lot_id,
            "Product_Size": a.product_size,
            "Allocated_t": round(a.allocated, 2),
            "Fe_Contrib_t": round(a.fe_contrib, 2),
            "SiO2_Contrib_t": round(a.sio2_contrib, 2),
            "Al2O3_Contrib_t": round(a.al_contrib, 3),
            "P_Contrib_t": round(a.p_contrib, 4),
            "Status": a.status.value,
        })
    columns = ["LotID", "Product_Size", "Allocated_t", "Fe_Contrib_t", "SiO2_Contrib_t",
               "Al2O3_Contrib_t", "P_Contrib_t", "Status"]
    return pd.DataFrame(rows, columns=columns)


def composition_frame(summary):
    contrib = summary.contributions
    chem = summary.chemistry.rounded()
    rows = []
    for k in PARAMETERS:
        rows.append({
            "Parameter": PARAMETER_LABELS[k],
            "Value_%": chem.get(k),
            "Tonnage": round(contrib[k], _TONNAGE_DP[k]),
            "Specification": f"{_BOUND[k]} {summary.specs.limit(k)}%",
            "Status": "PASS" if summary.met_specs[k] else "FAIL",
        })
    return pd.DataFrame(rows)


def kpis(summary):
    return {
        "Total_Allocated_t": round(summary.total_allocated, 2),
        "Target_t": summary.target_tonnage,
        "Shortfall_t": round(summary.shortfall, 2),
        "Rejected_Lots": summary.rejected_count,
        "Recovered_Lots": summary.recovered_count,
        "Forced_Lots": summary.forced_count,
        "All_Specs_Met": summary.all_met,
        "Fallback_Average": summary.used_fallback,
    }


def adjustments_frame(report):
    rows = []
    for k, adj in report.adjustments.items():
        rows.append({
            "Parameter": PARAMETER_LABELS[k],
            "Current_%": round(adj.current, PRECISION[k]),
            "Limit_%": adj.limit,
            "Reference_%": adj.reference_grade,
            "Required_t": round(adj.required_tonnage, 2) if adj.required_tonnage is not None else None,
            "Status": adj.status.value,
        })
    return pd.DataFrame(rows)


def forced_frame(report):
    rows = []
    for alarm in report.alarms:
        for lot_id, tonnage in alarm.lots:
            rows.append({"LotID": lot_id, "Forced_t": round(tonnage, 2), "Severity": alarm.severity})
    return pd.DataFrame(rows, columns=["LotID", "Forced_t", "Severity"])


# --------------- Inventory & leftovers ---------------
def leftover_inventory(lots, summary):
    part = partition_by_size(lots).get(summary.product_size, [])
    used = [0.0] * len(part)
    for a in summary.allocations:
        used[a.lot_index] += a.allocated
    # Positions, not LotIDs: two lots in one size may share an ID.
    inv = pd.DataFrame({
        "LotID": [str(lot.lot_id) for lot in part],
        "Fe_%": [lot.fe for lot in part],
        "Tonnage_available": [lot.tonnage for lot in part],
        "Allocated_t": [round(u, 2) for u in used],
    }, columns=["LotID", "Fe_%", "Tonnage_available", "Allocated_t"])
    inv["Tonnage_remaining"] = (inv["Tonnage_available"] - inv["Allocated_t"]).clip(lower=0)
    inv["Fe_units_remaining_t"] = inv["Tonnage_remaining"] * inv["Fe_%"] / 100.0
    return inv


def result_sheets(results, lots=None):
    sheets = {}
    for size, res in results.items():
        sheets[f"{size} Composition"] = composition_frame(res.summary)
        sheets[f"{size} Allocations"] = allocations_frame(res.summary)
        sheets[f"{size} Adjustments"] = adjustments_frame(res.report)
        if lots is not None:
            sheets[f"{size} Leftover"] = leftover_inventory(lots, res.summary)
    return sheets


def to_xlsx_bytes(sheets):
    bio = BytesIO()
    with pd.ExcelWriter(bio, engine="openpyxl") as writer:
        for name, df in sheets.items():
            (df if isinstance(df, pd.DataFrame) else pd.DataFrame(df)).to_excel(
                writer, sheet_name=str(name)[:31], index=False
            )
    return bio.getvalue()
