import pandas as pd
import streamlit as st

from hcx_toolkit.timeutils import format_date
from utils.api_client import PAYER, PROVIDER, error_message, get, post
from utils.banners import show_sandbox_banner

st.set_page_config(page_title="Communications", layout="wide")

show_sandbox_banner()

st.title("Communications")

request_tab, inbox_tab, thread_tab = st.tabs(["Payer: request information", "Provider: inbox", "Threads"])

with request_tab:
    resp = get(PAYER, "/api/claims")
    claims = resp.json().get("claims", []) if resp.status_code == 200 else []
    if resp.status_code != 200:
        st.error(f"Failed to load claims: {error_message(resp)}")
    elif not claims:
        st.info("No claims to query")
    else:
        labels = {c["correlationId"]: f"{c.get('claimId')} ({c.get('status')})" for c in claims}
        with st.form("communication_request"):
            correlation_id = st.selectbox("Claim", list(labels), format_func=labels.get)
            message = st.text_area("Message", "Please share the discharge summary for this claim.")
            documents = st.text_input("Requested documents (comma separated)", "Discharge summary")
            priority = st.selectbox("Priority", ["routine", "urgent", "asap", "stat"])
            due_date = st.date_input("Due date", value=None)
            send = st.form_submit_button("Send request")

        if send:
            payload = {
                "correlationId": correlation_id,
                "message": message,
                "requested_documents": [d.strip() for d in documents.split(",") if d.strip()],
                "priority": priority,
                "due_date": due_date.isoformat() if due_date else None,
            }
            resp = post(PAYER, "/hcx/v1/communication/request", json=payload)
            if resp.status_code != 200:
                st.error(f"Request failed: {error_message(resp)}")
            else:
                result = resp.json()
                st.success(f"Communication {result['communicationId']} created")
                if result.get("forward", {}).get("status") == "error":
                    st.warning(f"Forwarding failed: {result['forward'].get('error')}")

with inbox_tab:
    resp = get(PROVIDER, "/hcx/v1/communication/inbox")
    if resp.status_code != 200:
        st.error(f"Failed to load inbox: {error_message(resp)}")
    else:
        inbox = resp.json().get("communications", [])
        if not inbox:
            st.info("Inbox is empty")
        else:
            st.dataframe(
                pd.DataFrame(
                    [
                        {
                            "communicationId": c["communicationId"],
                            "claimId": c.get("claimId"),
                            "priority": c.get("priority"),
                            "message": " / ".join(c.get("messages") or []),
                            "due": c.get("dueDate"),
                            "status": c.get("status"),
                            "received": format_date(c.get("createdAt")),
                        }
                        for c in inbox
                    ]
                ),
                use_container_width=True,
            )
            pending = [c["communicationId"] for c in inbox if c.get("status") == "pending"]
            if pending:
                with st.form("communication_response"):
                    communication_id = st.selectbox("Request", pending)
                    reply = st.text_area("Reply", "Response from provider with requested information.")
                    attachment_url = st.text_input("Attachment URL (optional)")
                    attachment_title = st.text_input("Attachment title", "Supporting Document")
                    respond = st.form_submit_button("Send reply")

                if respond:
                    payload = {"communicationId": communication_id, "message": reply}
                    if attachment_url:
                        payload["attachments"] = [{"url": attachment_url, "title": attachment_title}]
                    resp = post(PROVIDER, "/hcx/v1/communication/respond", json=payload)
                    if resp.status_code != 200:
                        st.error(f"Reply failed: {error_message(resp)}")
                    else:
                        st.success("Reply sent")

with thread_tab:
    communication_id = st.text_input("Communication id")
    if communication_id:
        resp = get(PAYER, f"/hcx/v1/communication/thread/{communication_id}")
        if resp.status_code == 404:
            st.warning("Communication not found")
        elif resp.status_code != 200:
            st.error(f"Failed to load thread: {error_message(resp)}")
        else:
            for item in resp.json().get("communications", []):
                who = "Payer" if item.get("direction") == "outbound" else "Provider"
                with st.chat_message("assistant" if who == "Payer" else "user"):
                    st.markdown(f"**{who}** · {format_date(item.get('createdAt'))}")
                    for text in item.get("messages") or []:
                        st.write(text)
                    for attachment in item.get("attachments") or []:
                        st.markdown(f"[{attachment.get('title', 'Attachment')}]({attachment.get('url')})")
