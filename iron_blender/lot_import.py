"""Read lot tables (CSV or XLSX) into normalized Lot records."""

import io
import logging
import re

import pandas as pd

from iron_blender.config import DEFAULT_LOT_TONNAGE, DEFAULT_PRODUCT_SIZE
from iron_blender.models import Lot

logger = logging.getLogger(__name__)

HEADER_TOKENS = {"lot", "sample", "tonnage", "tonnes", "tons", "qty", "wmt", "fe", "sio2", "al2o3", "size"}

# Production analysis report layout: F, G, J, K, L, O.
REPORT_POSITIONS = {"product_size": 5, "tonnage": 6, "fe": 9, "sio2": 10, "al2o3": 11, "p": 14}

# Mapped in this order; a column claimed earlier is not offered again.
COLUMN_CANDIDATES = {
    "fe_spec_min": ["fespecmin", "fe_spec_min", "fespec", "femin"],
    "sio2_spec_max": ["sio2specmax", "sio2_spec_max", "sio2spec", "sio2max"],
    "tonnage": ["tonnage", "tonnes", "tons", "wmt", "representativelotqty", "lotqty", "qty"],
    "product_size": ["productsize", "product_size", "size", "product"],
    "fe": ["fe(%)", "fe%", "fe", "iron"],
    "sio2": ["sio2(%)", "sio2%", "sio2", "silica"],
    "al2o3": ["al2o3(%)", "al2o3%", "al2o3", "alumina"],
    "p": ["p(%)", "p%", "p", "phosphorus"],
    "lot_id": ["lotid", "lot_id", "lot", "sampleid", "sample_id", "sample", "id"],
}

LOT_COLUMNS = ["lot_id", "tonnage", "fe", "sio2", "al2o3", "p", "product_size", "fe_spec_min", "sio2_spec_max"]


class LotImportError(ValueError):
    pass


# --------------- Helpers: IO ---------------
def _looks_like_header(cells):
    # Whole words only: "Feb" must not count as "fe".
    words = set(re.findall(r"[a-z0-9]+", " ".join(str(c).lower() for c in cells)))
    return bool(words & HEADER_TOKENS)


def detect_header_and_delim(file_bytes):
    text = file_bytes.decode("utf-8-sig", errors="ignore")
    lines = text.splitlines()
    head = lines[:20]
    delim = ";" if sum(l.count(";") for l in head) > sum(l.count(",") for l in head) else ","
    header_idx = 0
    for i, line in enumerate(lines[:100]):
        if _looks_like_header([line]) and line.count(delim) >= 2:
            header_idx = i
            break
    return delim, header_idx, lines


def read_csv_table(content):
    delim, header_idx, lines = detect_header_and_delim(content)
    text = "\n".join(lines[header_idx:])
    try:
        df = pd.read_csv(io.StringIO(text), sep=delim, engine="python", dtype=str)
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise LotImportError(f"Could not read CSV table: {e}") from e
    df.columns = [str(c).strip() for c in df.columns]
    return df


def read_xlsx_table(content):
    try:
        raw = pd.read_excel(io.BytesIO(content), header=None, engine="openpyxl", dtype=object)
    except Exception as e:
        raise LotImportError(f"Could not read XLSX workbook ({type(e).__name__}: {e})") from e
    if raw.empty:
        raise LotImportError("XLSX workbook has no rows")
    header_idx = 0
    for i in range(min(len(raw), 100)):
        cells = [c for c in raw.iloc[i].tolist() if pd.notna(c)]
        if len(cells) >= 3 and _looks_like_header(cells):
            header_idx = i
            break
    header = raw.iloc[header_idx].tolist()
    df = raw.iloc[header_idx + 1:].reset_index(drop=True)
    df.columns = [str(c).strip() if pd.notna(c) else f"col_{j}" for j, c in enumerate(header)]
    return df


def read_lot_table(filename, content):
    name = filename.lower()
    if name.endswith(".xlsx"):
        return read_xlsx_table(content)
    if name.endswith(".csv"):
        return read_csv_table(content)
    raise LotImportError(f"Unsupported file format: {filename}. Please use .xlsx or .csv")


# --------------- Helpers: mapping & normalize ---------------
def _key(col):
    return str(col).lower().replace(" ", "")


def map_columns(df):
    cols = list(df.columns)
    claimed = set()

    def find_col(cands):
        free = [c for c in cols if c not in claimed]
        for cand in cands:
            for c in free:
                if cand == _key(c):
                    return c
        for cand in cands:
            if len(cand) < 3:
                continue
            for c in free:
                if cand in _key(c):
                    return c
        return None

    mapping = {}
    for std, cands in COLUMN_CANDIDATES.items():
        col = find_col(cands)
        mapping[std] = col
        if col is not None:
            claimed.add(col)

    if (mapping["fe"] is None or mapping["sio2"] is None) and len(cols) > max(REPORT_POSITIONS.values()):
        logger.info("Using production report column positions")
        for std, idx in REPORT_POSITIONS.items():
            if mapping[std] is None and cols[idx] not in claimed:
                mapping[std] = cols[idx]
                claimed.add(cols[idx])
    return mapping


def _to_number(series):
    return pd.to_numeric(
        series.astype(str)
              .str.replace(",", ".", regex=False)
              .str.replace(r"[^0-9\.\-eE]", "", regex=True),
        errors="coerce",
    )


def classify_product_size(value):
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return DEFAULT_PRODUCT_SIZE
    low = str(value).lower()
    if "fine" in low:
        return "Fines"
    if "10-40" in low or "coarse" in low:
        return "10-40mm"
    return DEFAULT_PRODUCT_SIZE


def normalize_lots(df, mapping=None):
    mapping = mapping or map_columns(df)
    if mapping.get("fe") is None or mapping.get("sio2") is None:
        raise LotImportError("Could not find required columns: Fe, SiO2")

    norm = pd.DataFrame(index=df.index)
    if mapping.get("lot_id") is not None:
        norm["lot_id"] = df[mapping["lot_id"]].astype(str).str.strip()
    else:
        norm["lot_id"] = [f"Lot_{i + 1}" for i in range(len(df))]

    for c in ["tonnage", "fe", "sio2", "al2o3", "p", "fe_spec_min", "sio2_spec_max"]:
        src = mapping.get(c)
        norm[c] = _to_number(df[src]) if src is not None else float("nan")

    src = mapping.get("product_size")
    norm["product_size"] = df[src].map(classify_product_size) if src is not None else DEFAULT_PRODUCT_SIZE

    before = len(norm)
    norm = norm.dropna(subset=["fe", "sio2"], how="any")
    norm = norm[norm["fe"] > 0].copy()
    norm["tonnage"] = norm["tonnage"].fillna(DEFAULT_LOT_TONNAGE)
    norm = norm[norm["tonnage"] > 0].copy()
    norm[["al2o3", "p"]] = norm[["al2o3", "p"]].fillna(0.0)
    if len(norm) < before:
        logger.info("Dropped %d rows without usable chemistry or tonnage", before - len(norm))

    norm = norm.round({"fe": 2, "sio2": 2, "al2o3": 3, "p": 4})
    return norm[LOT_COLUMNS].reset_index(drop=True)


def _optional(value):
    return None if pd.isna(value) else float(value)


def frame_to_lots(norm_df):
    lots = []
    for _, r in norm_df.iterrows():
        lots.append(Lot(
            lot_id=str(r["lot_id"]),
            tonnage=float(r["tonnage"]),
            fe=float(r["fe"]),
            sio2=float(r["sio2"]),
            al2o3=float(r["al2o3"]),
            p=float(r["p"]),
            product_size=r["product_size"],
            fe_spec_min=_optional(r["fe_spec_min"]),
            sio2_spec_max=_optional(r["sio2_spec_max"]),
        ))
    return lots


def load_lots(filename, content):
    df = read_lot_table(filename, content)
    norm_df = normalize_lots(df)
    lots = frame_to_lots(norm_df)
    logger.info("Imported %d lots from %s", len(lots), filename)
    return lots
