"""Tests for reading lot tables from CSV and XLSX uploads."""

from io import BytesIO

import pandas as pd
import pytest

from iron_blender.lot_import import (
    LotImportError,
    classify_product_size,
    detect_header_and_delim,
    load_lots,
    map_columns,
    normalize_lots,
    read_lot_table,
)
from iron_blender.models import Lot

SEMICOLON_CSV = (
    "Production report Aug\n"
    ";;\n"
    "Lot ID;Tonnage;Fe;SiO2;Al2O3;P;Product Size\n"
    "L1;6000;65,2;2,1;0,5;0,02;10-40mm Coarse\n"
    "L2;;58;8;2;0,08;Fines\n"
    "L3;4000;;5;1;0,03;Fines\n"
    "L4;3000;61;4;;;\n"
).encode("utf-8")

SPEC_CSV = (
    "lot,tonnage,fe,sio2,al2o3,p,size,fe spec min,sio2 spec max\n"
    "A,5000,63.5,3.2,0.9,0.04,fines,60,7\n"
    "B,2000,62.1,4.4,1.1,0.05,coarse,,\n"
).encode("utf-8")

# Compound-document header of a legacy .xls file, not a zip archive.
OLE_BYTES = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1" + b"\x00" * 64


class TestDetectHeader:

    def test_semicolon_with_preamble(self):
        delim, header_idx, _ = detect_header_and_delim(SEMICOLON_CSV)
        assert delim == ";"
        assert header_idx == 2

    def test_comma_header_first_line(self):
        delim, header_idx, _ = detect_header_and_delim(SPEC_CSV)
        assert delim == ","
        assert header_idx == 0

    def test_month_name_in_preamble_is_not_a_header(self):
        content = (
            "Report for Feb;;\n"
            "Lot ID;Tonnage;Fe;SiO2;Al2O3;P;Product Size\n"
            "L1;5000;63,5;3,2;0,9;0,04;10-40mm\n"
        ).encode("utf-8")
        delim, header_idx, _ = detect_header_and_delim(content)
        assert delim == ";"
        assert header_idx == 1
        assert [l.lot_id for l in load_lots("lots.csv", content)] == ["L1"]


class TestCsvImport:

    def test_semicolon_csv_with_decimal_commas(self):
        lots = load_lots("lots.csv", SEMICOLON_CSV)
        assert [l.lot_id for l in lots] == ["L1", "L2", "L4"]
        assert lots[0] == Lot("L1", 6000.0, 65.2, 2.1, 0.5, 0.02, "10-40mm")

    def test_missing_tonnage_defaults(self):
        lots = load_lots("lots.csv", SEMICOLON_CSV)
        assert lots[1].tonnage == 1000.0
        assert lots[1].product_size == "Fines"

    def test_missing_impurities_become_zero(self):
        l4 = load_lots("lots.csv", SEMICOLON_CSV)[2]
        assert l4.al2o3 == 0.0
        assert l4.p == 0.0
        assert l4.product_size == "10-40mm"

    def test_embedded_spec_columns(self):
        a, b = load_lots("lots.csv", SPEC_CSV)
        assert a.product_size == "Fines"
        assert a.fe_spec_min == 60.0
        assert a.sio2_spec_max == 7.0
        assert b.fe_spec_min is None
        assert b.sio2_spec_max is None

    def test_spec_columns_not_mistaken_for_chemistry(self):
        df = read_lot_table("lots.csv", SPEC_CSV)
        mapping = map_columns(df)
        assert mapping["sio2"] == "sio2"
        assert mapping["sio2_spec_max"] == "sio2 spec max"
        assert mapping["fe_spec_min"] == "fe spec min"

    def test_report_layout_falls_back_to_positions(self):
        header = ["c0", "c1", "c2", "c3", "c4", "Size", "Qty", "c7", "c8", "g1", "g2", "g3", "c12", "c13", "g4", "c15"]
        row = ["S1", "x", "x", "x", "x", "Fines", "2500", "x", "x", "62,4", "4,1", "1,2", "x", "x", "0,05", "x"]
        text = "Production Analysis Report\n" + ";".join(header) + "\n" + ";".join(row) + "\n"
        (lot,) = load_lots("report.csv", text.encode("utf-8"))
        assert lot.lot_id == "Lot_1"
        assert lot.tonnage == 2500.0
        assert (lot.fe, lot.sio2, lot.al2o3, lot.p) == (62.4, 4.1, 1.2, 0.05)
        assert lot.product_size == "Fines"

    def test_missing_fe_column_raises(self):
        with pytest.raises(LotImportError):
            load_lots("lots.csv", b"lot,tonnage,sio2\nA,100,3\n")

    def test_unsupported_extension_raises(self):
        with pytest.raises(LotImportError, match="Unsupported file format"):
            load_lots("lots.txt", b"lot,fe\n")


class TestXlsxImport:

    def test_xlsx_round_trip(self):
        df = pd.DataFrame({
            "Lot ID": ["X1", "X2"],
            "Tonnage": [6000, 4000],
            "Fe": [64.123, 59.5],
            "SiO2": [2.5, 7.25],
            "Al2O3": [0.8123, 1.9],
            "P": [0.03456, 0.07],
            "Product Size": ["10-40mm", "Fines"],
        })
        bio = BytesIO()
        df.to_excel(bio, index=False, engine="openpyxl")
        lots = load_lots("lots.xlsx", bio.getvalue())
        assert [l.lot_id for l in lots] == ["X1", "X2"]
        assert lots[0].fe == 64.12
        assert lots[0].al2o3 == 0.812
        assert lots[0].p == 0.0346
        assert lots[1].product_size == "Fines"

    def test_legacy_xls_is_rejected(self):
        with pytest.raises(LotImportError, match="Unsupported file format"):
            load_lots("lots.xls", OLE_BYTES)

    def test_corrupt_xlsx_raises_import_error(self):
        with pytest.raises(LotImportError, match="Could not read XLSX"):
            load_lots("lots.xlsx", OLE_BYTES)


class TestNormalize:

    @pytest.mark.parametrize("raw, expected", [
        ("Fines", "Fines"),
        ("FINE ORE", "Fines"),
        ("10-40mm", "10-40mm"),
        ("Coarse", "10-40mm"),
        ("lump", "10-40mm"),
        (None, "10-40mm"),
        (float("nan"), "10-40mm"),
    ])
    def test_classify_product_size(self, raw, expected):
        assert classify_product_size(raw) == expected

    def test_drops_non_positive_fe(self):
        df = pd.DataFrame({"lot": ["a", "b"], "fe": ["0", "63"], "sio2": ["3", "3"]})
        norm = normalize_lots(df)
        assert list(norm["lot_id"]) == ["b"]
        assert list(norm.columns) == [
            "lot_id", "tonnage", "fe", "sio2", "al2o3", "p", "product_size", "fe_spec_min", "sio2_spec_max",
        ]
