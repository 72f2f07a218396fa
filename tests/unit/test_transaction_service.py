"""
Unit tests for TransactionService (batch sink).
"""

from datetime import date
from decimal import Decimal
import pytest

from exceptions import TransactionSinkError
from parsers.parse_result import HourTransactionCandidate, MaterialTransactionCandidate
from services.transaction_service import TransactionService


def hour_candidate(**overrides) -> HourTransactionCandidate:
    data = dict(
        project_id="1",
        project_name="Tienda Centro",
        employee_id="E1",
        employee_name="Juan Pérez",
        date=date(2025, 10, 6),
        week_number=41,
        hours=Decimal("4.5"),
        rate=Decimal("100"),
        cost_total=Decimal("450.00"),
    )
    data.update(overrides)
    return HourTransactionCandidate(**data)


def material_candidate() -> MaterialTransactionCandidate:
    return MaterialTransactionCandidate(
        project_id="2",
        project_name="Góndola Norte",
        part_number="MAT-01",
        description="Tornillo",
        quantity=Decimal("3"),
        unit_cost=Decimal("10.5"),
        total_cost=Decimal("31.50"),
        movement_date=date(2025, 10, 6),
        source_sheet="Consumos",
    )


class TestSubmitBatch:

    def test_hours_batch_single_insert(self, mock_db):
        service = TransactionService()

        result = service.submit_batch("hours", [hour_candidate(), hour_candidate(employee_id="E2")])

        assert result.success
        assert result.created == 2
        table = mock_db.table("hour_transactions")
        assert len(table.insert_calls) == 1
        row = table.insert_calls[0][0]
        assert row["proyecto_id"] == "1"
        assert row["fecha_registro"] == "2025-10-06"
        assert row["semana_del_anio"] == 41
        assert row["horas_registradas"] == 4.5
        assert row["costo_total_mo"] == 450.0
        assert row["tipo_hora"] == "Normal"
        assert row["is_deleted"] is False

    def test_materials_go_to_material_table(self, mock_db):
        service = TransactionService()

        service.submit_batch("sae", [material_candidate()])

        row = mock_db.table("material_transactions").insert_calls[0][0]
        assert row["numero_parte_sae"] == "MAT-01"
        assert row["costo_total_material"] == 31.5
        assert row["origen_dato"] == "Consumos"

    def test_store_failure_raises_sink_error(self, mock_db):
        mock_db.fail_table("hour_transactions", RuntimeError("connection reset"))
        service = TransactionService()

        with pytest.raises(TransactionSinkError) as exc_info:
            service.submit_batch("hours", [hour_candidate()])

        assert exc_info.value.status_code == 503
        assert "connection reset" in exc_info.value.details["original_error"]

    def test_unknown_kind(self, mock_db):
        with pytest.raises(TransactionSinkError):
            TransactionService().submit_batch("costs", [])
