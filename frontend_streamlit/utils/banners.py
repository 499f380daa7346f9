import streamlit as st

from utils.api_client import PAYER, PROVIDER, get


def show_sandbox_banner() -> None:
    st.info("Sandbox toolkit: messages are exchanged as plaintext FHIR bundles, not encrypted JWE.")


def show_service_status() -> None:
    """Sidebar health indicator for the two stub services."""
    st.sidebar.subheader("Services")
    for label, base_url in (("Provider", PROVIDER), ("Payer", PAYER)):
        resp = get(base_url, "/hcx/v1/health")
        if resp.status_code == 200:
            st.sidebar.success(f"{label}: online")
        else:
            st.sidebar.error(f"{label}: unavailable")
