import streamlit as st
import html
import os
import sys

# --- PATH CONFIGURATION ---
current_dir = os.path.dirname(os.path.abspath(__file__))
project_root = os.path.abspath(os.path.join(current_dir, "../../"))
if project_root not in sys.path:
    sys.path.append(project_root)

# --- IMPORTS ---
from src.core.models import TranscriptEntry  # noqa: E402
from src.services.export_service import make_csv, make_pdf_bytes, make_plain_text  # noqa: E402
from src.services.screenshot_ingestion import ScreenshotIngestionService  # noqa: E402

# --- CONFIGURATION ---
st.set_page_config(
    page_title="Chat Screenshot Export",
    page_icon="💬",
    layout="centered",
    initial_sidebar_state="expanded",
)


# --- HELPER FUNCTIONS ---
def render_entry(entry: TranscriptEntry) -> None:
    text = html.escape(entry.text).replace("\n", "<br>")

    if not entry.is_message:
        st.markdown(
            f"<div style='text-align:center;margin:8px 0;'>"
            f"<span style='background:#e6e6e6;border-radius:12px;padding:2px 10px;"
            f"font-size:0.8em;color:#444;'>{text}</span></div>",
            unsafe_allow_html=True,
        )
        return

    align = "flex-end" if entry.is_outgoing else "flex-start"
    color = "#0a84ff" if entry.is_outgoing else "#d9d9d9"
    text_color = "white" if entry.is_outgoing else "black"
    time_html = (
        f"<div style='text-align:right;font-size:0.7em;opacity:0.8;'>"
        f"{html.escape(entry.time_text)}</div>"
        if entry.time_text
        else ""
    )
    st.markdown(
        f"<div style='display:flex;justify-content:{align};margin:4px 0;'>"
        f"<div style='max-width:72%;background:{color};color:{text_color};"
        f"border-radius:18px;padding:6px 10px;'>{text}{time_html}</div></div>",
        unsafe_allow_html=True,
    )


# --- SESSION STATE ---
if "transcript" not in st.session_state:
    st.session_state.transcript = []


# 1. SIDEBAR
with st.sidebar:
    st.title("📸 Screenshots")

    uploaded_files = st.file_uploader(
        "Screenshots (in scroll order)",
        type=["png", "jpg", "jpeg"],
        accept_multiple_files=True,
    )

    if st.button("🚀 Rebuild Transcript", type="primary", use_container_width=True):
        if uploaded_files:
            with st.status("🏗️ Running OCR pipeline...", expanded=True) as status:
                status.write(f"👁️ Reading {len(uploaded_files)} screenshots (OCR)...")
                service = ScreenshotIngestionService()
                st.session_state.transcript = service.process_uploads(uploaded_files)

                if st.session_state.transcript:
                    status.update(label="✅ Transcript ready", state="complete")
                else:
                    status.update(label="⚠️ No chat text detected", state="error")
        else:
            st.error("Please upload at least one screenshot.")

    if st.session_state.transcript:
        st.markdown("---")
        st.download_button(
            "⬇️ Download TXT",
            make_plain_text(st.session_state.transcript),
            file_name="ChatExport.txt",
            mime="text/plain",
            use_container_width=True,
        )
        st.download_button(
            "⬇️ Download CSV",
            make_csv(st.session_state.transcript),
            file_name="ChatExport.csv",
            mime="text/csv",
            use_container_width=True,
        )
        st.download_button(
            "⬇️ Download PDF",
            make_pdf_bytes(st.session_state.transcript),
            file_name="ChatExport.pdf",
            mime="application/pdf",
            use_container_width=True,
        )

# 2. MAIN AREA
st.title("💬 Chat Export")

if not st.session_state.transcript:
    st.info("Upload screenshots and press 'Rebuild Transcript'.")

for entry in st.session_state.transcript:
    render_entry(entry)
