from __future__ import annotations

import pandas as pd
import streamlit as st
import altair as alt

from contaflow.activity_log import recent_activities
from contaflow.aggregate.state import AggregateState, Failed
from contaflow.config import get_settings
from contaflow.db import get_client, get_db
from contaflow.kpis import build_aggregators, compute_all
from contaflow.logging_config import configure_logging
from contaflow.notifications import NotificationsFeed

# =====================================================
# Page config
# =====================================================
st.set_page_config(page_title="ContaFlow", layout="wide")
st.title("📊 ContaFlow — Painel do Escritório")

# =====================================================
# MongoDB connection
# =====================================================
try:
    settings = get_settings()
except RuntimeError as exc:
    st.error(f"Invalid configuration in `.env`: {exc}")
    st.stop()

configure_logging(level=settings.log_level)

try:
    client = get_client(settings.mongo_uri, tls=settings.mongo_tls)
    # fail fast: ensure the client can reach the server
    client.admin.command("ping")
    db = get_db(client, settings.mongo_db)
except Exception as exc:  # pragma: no cover - runtime failure handling
    st.error(f"Unable to connect to MongoDB: {exc}")
    st.stop()

# =====================================================
# Helpers
# =====================================================
def brl(value) -> str:
    """Format a Decimal amount as Brazilian currency (R$ 1.234,56)."""
    text = f"{value:,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    return f"R$ {text}"


def kpi(label: str, state: AggregateState, fmt=str, help: str | None = None) -> None:
    """Display one KPI card: '…' while loading, a warning icon on failure.

    Args:
        label: Metric label.
        state: Aggregator state to render.
        fmt: Formatter applied to the value.
        help: Optional tooltip.
    """
    if state.is_loading:
        st.metric(label, "…", help=help)
        return
    st.metric(label, fmt(state.value), help=help)
    if isinstance(state, Failed):
        st.caption(f"⚠️ valor desatualizado: {state.reason}")


def center_dataframe(df: pd.DataFrame):
    """Center-align column headers and values for display."""
    return (
        df.style
        .set_properties(**{"text-align": "center"})
        .set_table_styles(
            [{"selector": "th", "props": [("text-align", "center")]}]
        )
    )

# =====================================================
# SECTION 0 — KPIs
# =====================================================
st.header("📌 Visão Geral")

states = compute_all(build_aggregators(db, settings))
fiscal = states["fiscal_summary"]
financial = states["financial_summary"]

c1, c2, c3, c4 = st.columns(4)
with c1:
    kpi("Empresas Ativas", states["active_companies"], help='Clientes com status "ATIVA"')
with c2:
    kpi("Obrigações Pendentes", states["pending_obligations"], help='Status "Pendente" ou "Atrasada"')
with c3:
    kpi("Processos em Andamento", states["in_progress_processes"], help="Processos societários ativos")
with c4:
    kpi("Processos em Exigência", states["on_hold_processes"])

c5, c6, c7, c8 = st.columns(4)
with c5:
    kpi(
        "Certificados Vencendo",
        states["expiring_certificates"],
        help=f"A1 e e-CPF nos próximos {settings.expiry_window_days} dias",
    )
with c6:
    kpi(f"XML Pendentes ({fiscal.value.period})", fiscal, fmt=lambda v: v.pending)
with c7:
    kpi(f"Recebimentos ({financial.value.period})", financial, fmt=lambda v: brl(v.received))
with c8:
    kpi("A Receber", financial, fmt=lambda v: brl(v.pending), help='Faturas "Pendente" ou "Atrasada"')

st.divider()

# =====================================================
# SECTION 1 — OBLIGATIONS BY STATUS
# =====================================================
st.header("📈 Obrigações por Status")

by_status = states["obligations_by_status"]
df_status = pd.DataFrame(
    [{"status": k, "total": v} for k, v in by_status.value.items()]
)

if by_status.is_loading or df_status["total"].sum() == 0:
    st.info("Nenhuma obrigação cadastrada.")
else:
    chart = (
        alt.Chart(df_status)
        .mark_bar()
        .encode(
            x=alt.X("status:N", title=None, sort=list(by_status.value)),
            y=alt.Y("total:Q", title="Obrigações"),
            color=alt.Color("status:N", legend=None),
            tooltip=["status:N", "total:Q"],
        )
        .properties(height=320)
    )
    st.altair_chart(chart, width="stretch")

st.divider()

# =====================================================
# SECTION 2 — NOTIFICATIONS
# =====================================================
st.header("🔔 Notificações")

feed = NotificationsFeed.from_settings(db, settings).compute()

if isinstance(feed, Failed):
    st.warning(f"Notificações indisponíveis: {feed.reason}")
elif not feed.value:
    st.info("Nenhuma notificação.")
else:
    df_feed = pd.DataFrame([n.model_dump(mode="json") for n in feed.value])
    df_feed = df_feed[["when", "severity", "title", "message", "link"]]
    st.dataframe(center_dataframe(df_feed.head(50)), width="stretch")

st.divider()

# =====================================================
# SECTION 3 — RECENT ACTIVITIES
# =====================================================
st.header("🕑 Atividades Recentes")

activities = recent_activities(db, limit=5)
if not activities:
    st.info("Nenhuma atividade recente.")
else:
    df_act = pd.DataFrame(activities)
    cols = [c for c in ("timestamp", "userName", "description") if c in df_act.columns]
    st.dataframe(center_dataframe(df_act[cols]), width="stretch")

# =====================================================
# Footer
# =====================================================
st.caption("ContaFlow • MongoDB • Dask • Streamlit")
