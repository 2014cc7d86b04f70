import streamlit as st
import asyncio

import nest_asyncio
nest_asyncio.apply()

from legal_clarify.config.document_catalog import get_document_catalog
from legal_clarify.config.logging_config import configure_logging
from legal_clarify.config.settings import settings
from legal_clarify.domain.models import DocumentAnalysis
from legal_clarify.llm_integration.exceptions import APIError, FileTooLargeError
from legal_clarify.services.analysis_requester import AnalysisRequester
from legal_clarify.services.chat_session import ChatSession
from legal_clarify.services.prompt_builder import build_grounding_context
from legal_clarify.services.resource_provider import ResourceProvider
from legal_clarify.services.text_extractor import extract_text

# --- UI HELPER FUNCTIONS ---

def run_async(coro):
    loop = asyncio.get_event_loop(); return loop.run_until_complete(coro)

async def _collect_reply(session: ChatSession, question: str, placeholder) -> str:
    reply = ""
    async for fragment in session.send(question):
        reply += fragment
        placeholder.markdown(reply + "▌")
    placeholder.markdown(reply)
    return reply

def reset_document():
    """Drops everything tied to the current document; view state is per browser session."""
    chat = st.session_state.get('chat_session')
    if chat is not None:
        chat.reset()
    st.session_state.document_text = ""
    st.session_state.analysis = None
    st.session_state.chat_session = None
    st.session_state.expanded_terms = set()

def render_analysis(analysis: DocumentAnalysis):
    st.subheader("Summary")
    st.info(analysis.summary)

    c1, c2, c3 = st.columns(3)
    c1.metric("Key points", len(analysis.key_points))
    c2.metric("Terms explained", len(analysis.important_terms))
    c3.metric("Warnings", len(analysis.warnings))

    st.subheader("Key Points")
    for point in analysis.key_points:
        st.markdown(f"- {point}")

    st.subheader("Important Terms")
    term_count = len(analysis.important_terms)
    all_expanded = term_count > 0 and len(st.session_state.expanded_terms) == term_count
    if term_count and st.button("Collapse all terms" if all_expanded else "Expand all terms", key="toggle_terms"):
        st.session_state.expanded_terms = set() if all_expanded else set(range(term_count))
        st.rerun()
    for index, item in enumerate(analysis.important_terms):
        expanded = index in st.session_state.expanded_terms
        with st.expander(item.term, expanded=expanded):
            st.write(item.simple_explanation)

    st.subheader("Things to Know")
    for thing in analysis.things_to_know:
        st.markdown(f"- {thing}")

    if analysis.warnings:
        st.subheader("Warnings")
        for warning in analysis.warnings:
            st.warning(warning)

# --- CORE APP LOGIC ---

st.set_page_config(layout="wide", page_title="LegalClarify")
configure_logging(settings.log_level)

@st.cache_resource
def initialize_base_resources():
    return ResourceProvider(settings)

resources = initialize_base_resources()
catalog = get_document_catalog()

st.session_state.setdefault('document_text', "")
st.session_state.setdefault('document_type', None)
st.session_state.setdefault('analysis', None)
st.session_state.setdefault('chat_session', None)
st.session_state.setdefault('expanded_terms', set())
st.session_state.setdefault('document_source', None)

# --- UI LAYOUT ---

st.title("LegalClarify")
st.caption("Understand what a legal document actually says, in plain language.")

if not settings.is_configured:
    st.error("GOOGLE_GENERATIVE_AI_API_KEY is not set. Add it to your environment or .env file.")

upload_tab, results_tab, chat_tab = st.tabs(["Upload", "Results", "Ask Questions"])

with upload_tab:
    method = st.radio("How would you like to provide the document?", ["Upload File", "Paste Text"], horizontal=True)

    if method == "Upload File":
        uploaded = st.file_uploader("Upload your legal document (PDF, DOCX or TXT, max 10MB)", type=["pdf", "docx", "txt"])
        # A different file replaces the document along with its analysis and chat.
        if uploaded is not None and (uploaded.name, uploaded.size) != st.session_state.document_source:
            reset_document()
            st.session_state.document_source = (uploaded.name, uploaded.size)
            try:
                data = uploaded.getvalue()
                if len(data) > settings.max_upload_bytes:
                    raise FileTooLargeError(
                        f"File is too large. The maximum size is {settings.max_upload_bytes // (1024 * 1024)}MB."
                    )
                st.session_state.document_text = extract_text(data, uploaded.type, uploaded.name)
                st.success(f"Extracted {len(st.session_state.document_text):,} characters from {uploaded.name}.")
            except APIError as e:
                st.error(e.message)
    else:
        pasted = st.text_area(
            "Paste your document text", value=st.session_state.document_text, height=300
        )
        if pasted != st.session_state.document_text:
            reset_document()
            st.session_state.document_text = pasted

    with st.expander("Try a Sample Document"):
        for sample in catalog.samples:
            if st.button(sample.name, help=sample.description, key=f"sample_{sample.name}"):
                reset_document()
                st.session_state.document_text = sample.text
                st.session_state.document_type = sample.document_type
                st.rerun()

    type_values = [option.value for option in catalog.document_types]
    current_type = st.session_state.document_type
    st.session_state.document_type = st.selectbox(
        "Document type",
        type_values,
        index=type_values.index(current_type) if current_type in type_values else None,
        format_func=lambda value: catalog.label_for(value) or value,
        placeholder="Select a document type",
    )

    col_analyze, col_reset = st.columns([3, 1])
    if col_analyze.button("Explain This Document", type="primary", use_container_width=True):
        if not st.session_state.document_text.strip():
            st.error("Please provide document text to analyze.")
        elif not st.session_state.document_type:
            st.error("Please select a document type.")
        else:
            with st.spinner("Analyzing your document..."):
                try:
                    analysis = run_async(AnalysisRequester(resources).request_analysis(
                        st.session_state.document_text, catalog.label_for(st.session_state.document_type)
                    ))
                    st.session_state.analysis = analysis
                    st.session_state.expanded_terms = set()
                    context = build_grounding_context(st.session_state.document_text, analysis)
                    st.session_state.chat_session = ChatSession(resources.get_gemini_client(), document_context=context)
                    st.success("Analysis complete. Open the Results tab.")
                except APIError as e:
                    st.error(e.message)
    if col_reset.button("Start Over", use_container_width=True):
        reset_document()
        st.rerun()

with results_tab:
    if st.session_state.analysis is None:
        st.info("Analyze a document to see its plain-language explanation here.")
    else:
        render_analysis(st.session_state.analysis)

with chat_tab:
    chat = st.session_state.chat_session
    if chat is None:
        st.info("Analyze a document first, then ask questions about it here.")
    else:
        for turn in chat.turns:
            with st.chat_message(turn.role):
                st.markdown(turn.content)

        question = st.chat_input("Ask about your document...")
        if question:
            with st.chat_message("user"):
                st.markdown(question)
            with st.chat_message("assistant"):
                placeholder = st.empty()
                try:
                    run_async(_collect_reply(chat, question, placeholder))
                except APIError as e:
                    placeholder.error(e.message)
