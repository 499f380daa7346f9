import pandas as pd
import streamlit as st

from hcx_toolkit.timeutils import format_date
from utils.api_client import PAYER, PROVIDER, error_message, get
from utils.banners import show_sandbox_banner

st.set_page_config(page_title="Transaction Log", layout="wide")

show_sandbox_banner()

st.title("Transaction Log")

col1, col2, col3, col4 = st.columns(4)
with col1:
    participant = st.selectbox("Participant", ["Provider", "Payer"])
with col2:
    workflow = st.selectbox(
        "Workflow", ["", "coverageeligibility", "claim", "preauth", "communication", "insuranceplan"]
    )
with col3:
    status = st.selectbox(
        "Status", ["", "pending", "sent", "received", "approved", "rejected", "queried", "complete", "error"]
    )
with col4:
    limit = st.number_input("Limit", min_value=1, max_value=1000, value=100)

params = {"limit": int(limit)}
if workflow:
    params["workflow"] = workflow
if status:
    params["status"] = status

base_url = PROVIDER if participant == "Provider" else PAYER
resp = get(base_url, "/hcx/v1/transactions", params=params)
if resp.status_code != 200:
    st.error(f"Failed to load transactions: {error_message(resp)}")
    st.stop()

transactions = resp.json().get("transactions", [])
if not transactions:
    st.info("No transactions found")
    st.stop()

st.caption(resp.json().get("message", ""))
st.dataframe(
    pd.DataFrame(
        [
            {
                "correlationId": t["correlationId"],
                "workflow": t.get("workflow"),
                "status": t.get("status"),
                "created": format_date(t.get("createdAt")),
                "updated": format_date(t.get("updatedAt")),
                "error": t.get("error", ""),
            }
            for t in transactions
        ]
    ),
    use_container_width=True,
)

selected = st.selectbox("Inspect", [t["correlationId"] for t in transactions])
detail = next(t for t in transactions if t["correlationId"] == selected)
left, right = st.columns(2)
with left:
    st.subheader("Request")
    st.json(detail.get("requestFHIR") or {})
with right:
    st.subheader("Response")
    st.json(detail.get("responseFHIR") or {})
