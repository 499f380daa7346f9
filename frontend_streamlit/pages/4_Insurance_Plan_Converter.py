import json

import streamlit as st

from hcx_toolkit.timeutils import get_ist_timestamp
from utils.api_client import CONVERTER, error_message, json_object, post_file
from utils.banners import show_sandbox_banner

st.set_page_config(page_title="Insurance Plan Converter", layout="wide")

show_sandbox_banner()

st.title("Insurance Plan Converter")
st.write("Convert a plan brochure (PDF) or benefit table (Excel) into a FHIR InsurancePlan bundle.")

upload = st.file_uploader("Plan document", type=["pdf", "xlsx", "xls"])

if st.button("Convert", disabled=upload is None):
    with st.spinner("Converting, this can take a minute..."):
        resp = post_file(CONVERTER, "/api/insuranceplan/convert", upload)

    body = json_object(resp)

    if body is None:
        st.error(f"Unexpected response from converter (HTTP {resp.status_code}): {error_message(resp)}")
    elif resp.status_code == 200:
        st.success(body.get("message", "Conversion successful"))
        for warning in body.get("warnings") or []:
            st.warning(warning)
        st.session_state["converted_bundle"] = body.get("bundle")
    else:
        st.error(error_message(resp))
        for error in body.get("errors") or []:
            st.write(f"- {error}")
        if body.get("bundle"):
            with st.expander("Bundle as returned"):
                st.json(body["bundle"])

bundle = st.session_state.get("converted_bundle")
if bundle:
    plans = [e.get("resource", {}) for e in bundle.get("entry") or []]
    st.subheader(f"{len(plans)} plan(s)")
    for plan in plans:
        st.markdown(f"- **{plan.get('name', 'Unnamed plan')}** ({plan.get('status', 'unknown')})")
    st.json(bundle)
    stamp = get_ist_timestamp().replace(":", "-")
    st.download_button(
        "Download bundle",
        data=json.dumps(bundle, indent=2),
        file_name=f"insurance-plan-bundle-{stamp}.json",
        mime="application/fhir+json",
    )
