"""
Unit tests for the SAE materials report parser.
"""

from datetime import date
from decimal import Decimal
import pytest

from exceptions import LayoutError
from parsers.parse_result import MismatchKind
from parsers.sae_parser import (
    find_sae_header,
    parse_decimal,
    parse_sae_report,
    resolve_material_project,
)
from tests.factories import sae_workbook, to_xlsx


# ===================
# HELPERS
# ===================

class TestParseDecimal:

    def test_currency_string(self):
        assert parse_decimal("$1,234.50") == Decimal("1234.50")

    def test_numbers(self):
        assert parse_decimal(3) == Decimal("3")
        assert parse_decimal(10.5) == Decimal("10.5")

    def test_blank_and_garbage_are_zero(self):
        assert parse_decimal(None) == Decimal("0")
        assert parse_decimal("") == Decimal("0")
        assert parse_decimal("N/A") == Decimal("0")

    def test_non_finite_is_zero(self):
        assert parse_decimal("Infinity") == Decimal("0")
        assert parse_decimal("-inf") == Decimal("0")
        assert parse_decimal("sNaN") == Decimal("0")
        assert parse_decimal(float("inf")) == Decimal("0")


class TestFindSaeHeader:

    def test_clave_de_articulo_header(self):
        grid = [["titulo"], ["CLAVE DE ARTÍCULO", "DESCRIPCIÓN", "CANTIDAD", "COSTO", "IMPORTE"]]
        header_row, columns = find_sae_header(grid)
        assert header_row == 1
        assert columns["part_number"] == 0
        assert columns["amount"] == 4

    def test_descripcion_and_cantidad_header(self):
        grid = [["Descripcion", "Cantidad", "Costo unitario", "Referencia"]]
        header_row, columns = find_sae_header(grid)
        assert header_row == 0
        assert "part_number" not in columns
        assert columns["unit_cost"] == 2
        assert columns["project"] == 3

    def test_no_header(self):
        assert find_sae_header([["Notas"], ["Sin datos"]]) is None


class TestResolveMaterialProject:

    def test_resolution_order(self, catalog):
        assert resolve_material_project(catalog, "pr100").id == "1"
        assert resolve_material_project(catalog, "INT-2").id == "2"
        assert resolve_material_project(catalog, "Gondola Norte").id == "2"

    def test_pr_prefix_stripped(self, catalog):
        assert resolve_material_project(catalog, "PR-25-046-00").id == "2"
        assert resolve_material_project(catalog, "PR25-046-00").id == "2"

    def test_unknown(self, catalog):
        assert resolve_material_project(catalog, "PR-999") is None
        assert resolve_material_project(catalog, "") is None


# ===================
# END-TO-END PARSING
# ===================

class TestParseSaeReport:

    def test_amount_computed_from_quantity_and_cost(self, catalog):
        """IMPORTE blank, CANTIDAD=3, COSTO=10.5 → 31.5."""
        content = sae_workbook({
            "Consumos": [["MAT-01", "Tornillo", 3, 10.5, None, "06/10/2025", "PR100"]],
        })

        result = parse_sae_report(content, catalog)

        assert len(result.candidates) == 1
        candidate = result.candidates[0]
        assert candidate.total_cost == Decimal("31.50")
        assert candidate.to_record()["costo_total_material"] == 31.5
        assert candidate.project_id == "1"
        assert candidate.movement_date == date(2025, 10, 6)
        assert candidate.source_sheet == "Consumos"

    def test_currency_strings(self, catalog):
        content = sae_workbook({
            "Compras_Dir": [["MAT-02", "Lámina", "2", "$500.00", "$1,000.00", "07/10/2025", "PR100"]],
        })

        result = parse_sae_report(content, catalog)

        candidate = result.candidates[0]
        assert candidate.quantity == Decimal("2")
        assert candidate.unit_cost == Decimal("500.00")
        assert candidate.total_cost == Decimal("1000.00")

    def test_multiple_sheets_and_summary(self, catalog):
        content = sae_workbook({
            "Compras_Dir": [
                ["MAT-01", "Tornillo", 10, 2, 20, "06/10/2025", "PR100"],
                ["MAT-02", "Lámina", 1, 100, 100, "06/10/2025", "25-046-00"],
            ],
            "Consumos": [
                ["MAT-03", "Pintura", 1, 50, 50, "08/10/2025", "PR100"],
            ],
        })

        result = parse_sae_report(content, catalog)

        assert len(result.candidates) == 3
        summary = result.summary()
        assert summary["total_materials_cost"] == 170.0
        assert summary["materials_count"] == 3
        assert summary["cost_by_sheet"] == {"Compras_Dir": 120.0, "Consumos": 50.0}

    def test_sheet_without_header_skipped(self, catalog):
        content = to_xlsx({
            "Notas": [["Reporte generado por SAE"], ["Sin movimientos"]],
            "Consumos": [
                ["Clave de artículo", "Descripción", "Cantidad", "Costo", "Importe", "Fecha", "Proyecto"],
                ["MAT-01", "Tornillo", 1, 5, 5, "06/10/2025", "PR100"],
            ],
        })

        result = parse_sae_report(content, catalog)

        assert [c.source_sheet for c in result.candidates] == ["Consumos"]

    def test_alternate_column_names(self, catalog):
        header = ["Descripción", "Cantidad", "Costo unitario", "Costo total", "Fecha de movimiento", "Referencia"]
        content = sae_workbook(
            {"Hoja1": [["Cable", 4, 2.5, None, "09/10/2025", "INT-2"]]},
            header=header,
        )

        result = parse_sae_report(content, catalog)

        candidate = result.candidates[0]
        assert candidate.part_number == ""
        assert candidate.description == "Cable"
        assert candidate.total_cost == Decimal("10.00")
        assert candidate.project_id == "2"

    def test_excel_serial_date(self, catalog):
        content = sae_workbook({"Consumos": [["MAT-01", "Tornillo", 1, 5, 5, 45936, "PR100"]]})

        result = parse_sae_report(content, catalog)

        assert result.candidates[0].movement_date == date(2025, 10, 6)

    def test_iso_date_string(self, catalog):
        content = sae_workbook({"Consumos": [["MAT-01", "Tornillo", 3, 10.5, None, "2025-10-06", "PR100"]]})

        result = parse_sae_report(content, catalog)

        assert result.candidates[0].movement_date == date(2025, 10, 6)

    def test_infinite_quantity_does_not_abort_workbook(self, catalog):
        content = sae_workbook({
            "Consumos": [
                ["MAT-09", "Ajuste", "Infinity", 5, None, "06/10/2025", "PR100"],
                ["MAT-01", "Tornillo", 1, 5, 5, "06/10/2025", "PR100"],
            ],
        })

        result = parse_sae_report(content, catalog)

        assert [c.part_number for c in result.candidates] == ["MAT-01"]
        assert result.candidates[0].total_cost == Decimal("5.00")

    def test_unparseable_date_falls_back_to_today(self, catalog):
        content = sae_workbook({"Consumos": [["MAT-01", "Tornillo", 1, 5, 5, "pendiente", "PR100"]]})

        result = parse_sae_report(content, catalog)

        assert result.candidates[0].movement_date == date.today()

    def test_noise_rows_dropped(self, catalog):
        content = sae_workbook({
            "Consumos": [
                ["MAT-01", "Tornillo", 1, 5, 5, "06/10/2025", "PR100"],
                ["MAT-00", "Ajuste", 0, 5, 0, "06/10/2025", "PR100"],
                [None, None, 10, 5, 50, "06/10/2025", "PR100"],
            ],
        })

        result = parse_sae_report(content, catalog)

        assert len(result.candidates) == 1
        assert result.mismatches == []

    def test_empty_project_token_dropped(self, catalog):
        content = sae_workbook({
            "Consumos": [
                ["MAT-01", "Tornillo", 1, 5, 5, "06/10/2025", None],
                ["MAT-02", "Tuerca", 1, 5, 5, "06/10/2025", "PR100"],
            ],
        })

        result = parse_sae_report(content, catalog)

        assert [c.part_number for c in result.candidates] == ["MAT-02"]
        assert result.mismatches == []

    def test_unresolved_project_mismatch(self, catalog):
        content = sae_workbook({
            "Consumos": [["MAT-01", "Tornillo", 3, 10.5, None, "06/10/2025", "PR-999"]],
        })

        result = parse_sae_report(content, catalog)

        assert result.success
        assert result.candidates == []
        mismatch = result.mismatches[0]
        assert mismatch.kind == MismatchKind.UNRESOLVED_PROJECT
        assert mismatch.raw_value == "PR-999"
        assert mismatch.sheet_name == "Consumos"
        assert mismatch.row_index == 3
        assert mismatch.recovered_context["amount"] == Decimal("31.50")
        assert mismatch.recovered_context["date"] == date(2025, 10, 6)

    def test_finished_project_warning(self, catalog):
        content = sae_workbook({
            "Consumos": [["MAT-01", "Tornillo", 1, 5, 5, "06/10/2025", "PR300"]],
        })

        result = parse_sae_report(content, catalog)

        assert result.candidates == []
        assert result.warnings[0].kind == MismatchKind.PROJECT_FINISHED

    def test_no_recognizable_columns(self, catalog):
        content = to_xlsx({"Hoja1": [["Folio", "Total"], ["A-1", 100]]})

        with pytest.raises(LayoutError) as exc_info:
            parse_sae_report(content, catalog)
        assert "recognizable columns" in exc_info.value.message

    def test_header_without_usable_rows_is_failure(self, catalog):
        content = sae_workbook({"Consumos": [["MAT-01", "Tornillo", 1, 5, 5, "06/10/2025", None]]})

        with pytest.raises(LayoutError):
            parse_sae_report(content, catalog)
