import streamlit as st

from utils.banners import show_sandbox_banner, show_service_status

st.set_page_config(page_title="HCX Toolkit", layout="wide")

show_sandbox_banner()
show_service_status()

st.title("HCX Toolkit")
st.write("Exercise Health Claims Exchange workflows between a provider and a payer stub.")

col1, col2, col3 = st.columns(3)
with col1:
    st.subheader("Provider")
    st.markdown("- Coverage eligibility checks\n- Claim and pre-auth submission\n- Communication inbox")
with col2:
    st.subheader("Payer")
    st.markdown("- Adjudicate eligibility and claims\n- Request more information\n- Registry of plans and policies")
with col3:
    st.subheader("Tools")
    st.markdown("- Insurance plan converter\n- FHIR utility builder\n- Transaction log")

st.caption("Select a page from the sidebar.")
