from __future__ import annotations

from contaflow.aggregate.companies import ActiveCompanies
from contaflow.aggregate.obligations import ObligationsByStatus, PendingObligations
from contaflow.aggregate.processes import InProgressProcesses, OnHoldProcesses
from contaflow.aggregate.state import Loaded
from contaflow.db import CORPORATE_PROCESSES, TAX_OBLIGATIONS
from tests.conftest import add_company, add_sub


def _seed_obligations(db) -> None:
    add_company(db, "A")
    add_company(db, "B")
    add_company(db, "C")  # no obligations at all
    add_sub(
        db, "A", TAX_OBLIGATIONS,
        {"status": "Pendente"}, {"status": "Atrasada"}, {"status": "Entregue"},
        {"status": "gerar"},  # office workflow substate, not a known status
    )
    add_sub(db, "B", TAX_OBLIGATIONS, {"status": "Pendente"}, {"status": "Em Andamento"})


def test_pending_obligations_sums_over_companies(db) -> None:
    _seed_obligations(db)
    expected = sum(
        db[f"companies.{cid}.taxObligations"].count_documents({"status": {"$in": ["Pendente", "Atrasada"]}})
        for cid in ("A", "B", "C")
    )
    assert expected == 3
    assert PendingObligations(db, max_workers=2).compute() == Loaded(expected)


def test_obligations_by_status_ignores_unknown_statuses(db) -> None:
    _seed_obligations(db)
    state = ObligationsByStatus(db).compute()
    assert state.value == {"Pendente": 2, "Em Andamento": 1, "Entregue": 1, "Atrasada": 1}


def test_obligations_by_status_zero_companies(db) -> None:
    assert ObligationsByStatus(db).compute().value == {
        "Pendente": 0, "Em Andamento": 0, "Entregue": 0, "Atrasada": 0,
    }


def test_in_progress_and_on_hold_processes(db) -> None:
    add_company(db, "A")
    add_company(db, "B")
    add_sub(
        db, "A", CORPORATE_PROCESSES,
        {"status": "Aguardando Documentação"}, {"status": "Em Exigência"}, {"status": "Concluído"},
    )
    add_sub(
        db, "B", CORPORATE_PROCESSES,
        {"status": "Em Análise"}, {"status": "Em Exigência"}, {"status": "Cancelado"},
        {"status": "Protocolado"},
    )

    assert InProgressProcesses(db).compute() == Loaded(4)
    assert OnHoldProcesses(db).compute() == Loaded(2)


def test_active_companies_counts_only_ativa(db) -> None:
    add_company(db, "A", status="ATIVA")
    add_company(db, "B", status="ATIVA")
    add_company(db, "C", status="BAIXADA")
    add_company(db, "D")
    assert ActiveCompanies(db).compute() == Loaded(2)
