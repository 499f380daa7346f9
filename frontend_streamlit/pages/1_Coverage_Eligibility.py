import pandas as pd
import streamlit as st

from hcx_toolkit.timeutils import format_date
from utils.api_client import PAYER, PROVIDER, error_message, get, post
from utils.banners import show_sandbox_banner

st.set_page_config(page_title="Coverage Eligibility", layout="wide")

show_sandbox_banner()

st.title("Coverage Eligibility")

provider_tab, payer_tab = st.tabs(["Provider: send request", "Payer: review and respond"])

with provider_tab:
    with st.form("eligibility_request"):
        col1, col2 = st.columns(2)
        with col1:
            patient_name = st.text_input("Patient name", "Rajesh Kumar Sharma")
            abha_id = st.text_input("ABHA number", "12-3456-7890-1234")
            gender = st.selectbox("Gender", ["male", "female", "other", "unknown"])
            birth_date = st.date_input("Birth date", value=None)
        with col2:
            insurer = st.text_input("Insurer", "Star Health Insurance")
            provider = st.text_input("Provider", "City Hospital")
            policy_number = st.text_input("Policy number", "POL-2024-001234")
            purpose = st.multiselect(
                "Purpose",
                ["auth-requirements", "benefits", "discovery", "validation"],
                default=["benefits"],
            )
        service_code = st.text_input("Service code (optional)")
        submitted = st.form_submit_button("Send eligibility check")

    if submitted:
        form = {
            "patient": {
                "name": patient_name,
                "abha_id": abha_id,
                "gender": gender,
                "birth_date": birth_date.isoformat() if birth_date else None,
            },
            "insurer": {"name": insurer},
            "provider": {"name": provider},
            "policy_number": policy_number,
            "purpose": purpose or ["benefits"],
            "items": [{"code": service_code}] if service_code else [],
        }
        resp = post(PROVIDER, "/hcx/v1/coverageeligibility/check", json=form)
        if resp.status_code != 200:
            st.error(f"Request failed: {error_message(resp)}")
        else:
            result = resp.json()
            st.success(f"Sent with correlation id {result['correlation_id']}")
            with st.expander("Request bundle"):
                st.json(result.get("bundle", {}))

with payer_tab:
    resp = get(PAYER, "/hcx/v1/coverageeligibility/requests")
    if resp.status_code != 200:
        st.error(f"Failed to load requests: {error_message(resp)}")
        st.stop()

    requests_ = resp.json().get("requests", [])
    if not requests_:
        st.info("No eligibility requests received yet")
        st.stop()

    rows = [
        {
            "correlationId": r["correlationId"],
            "patient": r.get("patient", {}).get("name"),
            "abha": r.get("patient", {}).get("identifier"),
            "insurer": r.get("insurer", {}).get("name"),
            "purpose": ", ".join(r.get("purpose") or []),
            "status": r.get("status"),
            "received": format_date(r.get("createdAt")),
        }
        for r in requests_
    ]
    st.dataframe(pd.DataFrame(rows), use_container_width=True)

    pending = [r["correlationId"] for r in requests_ if r.get("status") == "pending"]
    if not pending:
        st.info("Every request has been answered")
        st.stop()

    with st.form("eligibility_response"):
        correlation_id = st.selectbox("Request", pending)
        outcome = st.selectbox("Outcome", ["complete", "partial", "queued", "error"])
        inforce = st.checkbox("Coverage in force", value=True)
        disposition = st.text_input("Disposition", "Policy is active")
        benefit_type = st.text_input("Benefit type", "benefit")
        allowed = st.number_input("Allowed amount (INR)", min_value=0.0, value=100000.0)
        respond = st.form_submit_button("Send response")

    if respond:
        payload = {
            "correlationId": correlation_id,
            "responseForm": {
                "outcome": outcome,
                "inforce": inforce,
                "disposition": disposition,
                "items": [{"benefits": [{"type": benefit_type, "allowed_amount": allowed}]}],
            },
        }
        resp = post(PAYER, "/hcx/v1/coverageeligibility/on_check", json=payload)
        if resp.status_code != 200:
            st.error(f"Response failed: {error_message(resp)}")
        else:
            result = resp.json()
            forward = result.get("forward", {})
            if forward.get("status") == "error":
                st.warning(f"Response stored but forwarding failed: {forward.get('error')}")
            else:
                st.success("Response sent")
            st.json(result.get("bundle", {}))
