"""
Natural Language Data Analyst - Streamlit UI

Two stages:
1. Upload: a CSV is parsed and its schema shown
2. Analysis: chat over the loaded dataset; every answer carries the generated
   code, its result (chart and/or table) and an audit log

Run with: streamlit run src/nl_data_analyst/ui/app.py
"""

import sys
from pathlib import Path

import streamlit as st

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

# Configure logging ONCE at entry point
from nl_data_analyst.ui.config import LOG_LEVEL  # noqa: E402
from nl_data_analyst.ui.logging_config import configure_logging  # noqa: E402

configure_logging(level=LOG_LEVEL)

# Imports after logging config (intentional - logging must be configured first)
import structlog  # noqa: E402

from nl_data_analyst.core.analysis_session import AnalysisSession  # noqa: E402
from nl_data_analyst.core.code_executor import CodeExecutor  # noqa: E402
from nl_data_analyst.core.config_loader import load_analyst_config  # noqa: E402
from nl_data_analyst.core.csv_ingest import ParsedDataset, load_csv_bytes  # noqa: E402
from nl_data_analyst.core.errors import IngestionError, SessionBusyError  # noqa: E402
from nl_data_analyst.core.llm_client import OllamaClient  # noqa: E402
from nl_data_analyst.ui import messages  # noqa: E402
from nl_data_analyst.ui.components.renderers import clear_artifact_cache, render_message, table_frame  # noqa: E402
from nl_data_analyst.ui.config import MAX_UPLOAD_SIZE_MB, PREVIEW_ROWS  # noqa: E402
from nl_data_analyst.ui.ollama_init import initialize_reasoning_service  # noqa: E402

logger = structlog.get_logger()

SESSION_KEY = "analysis_session"
FILENAME_KEY = "dataset_filename"
PENDING_KEY = "pending_question"
UPLOADER_GENERATION_KEY = "uploader_generation"


@st.cache_resource
def get_services() -> tuple[OllamaClient, CodeExecutor, dict[str, bool | str]]:
    """Build the reasoning client and executor once per server process."""
    config = load_analyst_config()
    client = OllamaClient.from_config(config)
    executor = CodeExecutor.from_config(config)
    status = initialize_reasoning_service(client)
    if not status["ready"]:
        # Log warning but don't block app startup
        logger.warning("reasoning_service_not_ready", message=status["message"])
    return client, executor, status


def render_schema(dataset: ParsedDataset) -> None:
    """Show columns with inferred types and the preview rows."""
    with st.expander(messages.SCHEMA_HEADER, expanded=False):
        st.dataframe(
            [
                {
                    "Column": field.name,
                    "Type": field.inferred_type,
                    "Sample": "" if field.sample is None else str(field.sample),
                }
                for field in dataset.schema.fields
            ],
            use_container_width=True,
            hide_index=True,
        )
        st.caption(messages.DATASET_PREVIEW)
        frame, _ = table_frame(list(dataset.schema.preview), limit=PREVIEW_ROWS)
        st.dataframe(frame, use_container_width=True, hide_index=True)


def render_upload_stage(client: OllamaClient, executor: CodeExecutor) -> None:
    """File upload; on success a new AnalysisSession replaces any previous one."""
    st.write(messages.APP_TAGLINE)
    uploaded = st.file_uploader(
        messages.UPLOAD_PROMPT,
        type=["csv"],
        help=messages.UPLOAD_HELP.format(max_mb=MAX_UPLOAD_SIZE_MB),
        # A fresh key drops the previous file after "New dataset"
        key=f"uploader_{st.session_state.get(UPLOADER_GENERATION_KEY, 0)}",
    )
    if uploaded is None:
        return

    try:
        dataset = load_csv_bytes(
            uploaded.getvalue(),
            uploaded.name,
            max_size_mb=MAX_UPLOAD_SIZE_MB,
            preview_rows=PREVIEW_ROWS,
        )
    except IngestionError as e:
        st.error(messages.UPLOAD_FAILED.format(error=e))
        return

    st.session_state[SESSION_KEY] = AnalysisSession(dataset=dataset, client=client, executor=executor)
    st.session_state[FILENAME_KEY] = uploaded.name
    logger.info("analysis_session_started", filename=uploaded.name, rows=dataset.schema.row_count)
    st.rerun()


def render_analysis_stage(session: AnalysisSession) -> None:
    """Chat over the loaded dataset."""
    dataset = session.dataset
    st.success(
        messages.DATASET_LOADED.format(
            filename=st.session_state.get(FILENAME_KEY, "dataset.csv"),
            rows=dataset.schema.row_count,
            columns=len(dataset.headers),
        )
    )
    if dataset.skipped_rows:
        st.warning(messages.UPLOAD_ROWS_SKIPPED.format(count=dataset.skipped_rows))
    render_schema(dataset)

    transcript = session.conversation.get_transcript()
    if not transcript:
        st.markdown(messages.EMPTY_CHAT_HINT)

    for message in transcript:
        question = None
        if message.role == "assistant":
            previous = session.conversation.last_user_message_before(message.id)
            question = previous.text if previous is not None else None
        render_message(message, question=question)

    pending = st.session_state.get(PENDING_KEY)
    submitted = st.chat_input(
        messages.CHAT_BUSY_PLACEHOLDER if pending else messages.CHAT_PLACEHOLDER,
        disabled=pending is not None or session.busy,
    )
    if submitted and submitted.strip():
        # Rerun first so the input renders disabled while the question runs
        st.session_state[PENDING_KEY] = submitted
        st.rerun()

    if pending:
        try:
            with st.spinner(messages.ANALYZING):
                session.ask(pending)
        except SessionBusyError:
            st.warning(messages.QUESTION_BUSY)
        finally:
            st.session_state[PENDING_KEY] = None
        st.rerun()


def main() -> None:
    st.set_page_config(page_title="NL Data Analyst", page_icon="📊", layout="wide")
    st.title(messages.APP_TITLE)

    client, executor, status = get_services()
    session: AnalysisSession | None = st.session_state.get(SESSION_KEY)

    with st.sidebar:
        if status["ready"]:
            st.caption(str(status["message"]))
        else:
            st.warning(f"{messages.SERVICE_NOT_READY}\n\n{status['message']}")

        if session is not None:
            if st.button(messages.CLEAR_CHAT, use_container_width=True):
                session.reset()
                clear_artifact_cache()
                st.rerun()
            if st.button(messages.NEW_DATASET, use_container_width=True):
                session.reset()
                clear_artifact_cache()
                for key in (SESSION_KEY, FILENAME_KEY, PENDING_KEY):
                    st.session_state.pop(key, None)
                st.session_state[UPLOADER_GENERATION_KEY] = st.session_state.get(UPLOADER_GENERATION_KEY, 0) + 1
                logger.info("analysis_session_discarded")
                st.rerun()

    if session is None:
        render_upload_stage(client, executor)
    else:
        render_analysis_stage(session)


if __name__ == "__main__":
    main()
