from pathlib import Path
import sys

import streamlit as st

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.app.config import load_settings
from backend.app.db import ensure_db, read_sessions_page
from data.models import TrialOutcome
from game.session_metrics import game_title, summarize_session

st.set_page_config(page_title="Cogtrials Records", layout="wide")
settings = load_settings()
ensure_db(settings.db_path)

st.title("Cogtrials Records")
st.caption("Прошедшие сессии, сначала новые")

col1, col2 = st.columns([1, 1])
with col1:
    limit = st.number_input("Строк на странице", min_value=5, max_value=settings.max_page_size, value=10, step=5)
with col2:
    page = st.number_input("Страница", min_value=1, value=1, step=1)

sessions, total_count = read_sessions_page(settings.db_path, page=int(page), limit=int(limit))

if not sessions:
    if total_count:
        st.info(f"Страница {int(page)} пуста, всего сессий: {total_count}.")
    else:
        st.warning("Пока нет записанных сессий.")
    st.stop()

rows = []
for session in sessions:
    outcomes = [TrialOutcome.from_dict(r) for r in session["results"]]
    stats = summarize_session(outcomes)
    rows.append(
        {
            "session_id": session["session_id"],
            "game": game_title(session["game_code"]),
            "played_at": session["play_datetime"],
            "trials": len(outcomes),
            "accuracy_pct": round(stats.overall_accuracy, 2),
            "mean_rt_ms": round(stats.average_response_time_ms, 1),
            "score": stats.total_score,
        }
    )

st.dataframe(rows, use_container_width=True, hide_index=True)
st.caption(f"Всего сессий: {total_count}. Источник данных: {settings.db_path}")
