"""
AnalysisSession - Orchestrates one question/answer turn over a loaded dataset.

Pipeline per question:
    question -> reasoning service -> AnalysisResponse
             -> CodeExecutor(code, rows) -> raw value
             -> classify -> ClassifiedResult
             -> appended to the session log

A failure in one turn never touches earlier turns.
"""

from __future__ import annotations

import time

import structlog

from nl_data_analyst.core.analysis_request import request_analysis
from nl_data_analyst.core.code_executor import CodeExecutor
from nl_data_analyst.core.conversation_manager import ChatMessage, ConversationManager
from nl_data_analyst.core.csv_ingest import ParsedDataset
from nl_data_analyst.core.errors import GenerationError, SessionBusyError
from nl_data_analyst.core.llm_client import ReasoningClient
from nl_data_analyst.core.result_classifier import ClassifiedResult, classify

logger = structlog.get_logger()

GENERATION_FAILED_MESSAGE = (
    "I apologize, but I encountered an error processing your request. Please try again or rephrase your question."
)


class AnalysisSession:
    """
    One dataset, one conversation, one question in flight at a time.

    The reasoning client and the executor are injected so tests (and the UI) can
    swap them freely.
    """

    def __init__(
        self,
        dataset: ParsedDataset,
        client: ReasoningClient,
        executor: CodeExecutor,
        conversation: ConversationManager | None = None,
    ) -> None:
        self.dataset = dataset
        self.client = client
        self.executor = executor
        self.conversation = conversation or ConversationManager()
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    def ask(self, question: str) -> ChatMessage:
        """
        Run one full turn for a question.

        Args:
            question: User question

        Returns:
            The assistant message appended for this turn (error=True when the
            reasoning service failed)

        Raises:
            ValueError: If the question is blank
            SessionBusyError: If another question is still being processed
        """
        if not question or not question.strip():
            raise ValueError("Question must not be empty")
        if self._busy:
            raise SessionBusyError("A question is already being processed.")

        self._busy = True
        start_time = time.perf_counter()
        try:
            self.conversation.add_user_message(question)

            try:
                response = request_analysis(self.client, self.dataset.schema, question)
            except GenerationError as e:
                logger.warning("analysis_turn_generation_failed", reason=e.reason, error=str(e))
                return self.conversation.add_fault_message(GENERATION_FAILED_MESSAGE)

            outcome = self.executor.run(response.code, self.dataset.rows)
            if outcome.fault is not None:
                response = response.with_execution_note(outcome.fault.describe())
                result = ClassifiedResult()
            else:
                result = classify(outcome.value)

            message = self.conversation.add_assistant_turn(response, result)
            logger.info(
                "analysis_turn_completed",
                latency_ms=(time.perf_counter() - start_time) * 1000,
                execution_ok=outcome.ok,
                has_chart=result.chart is not None,
                table_rows=len(result.table_rows) if result.table_rows is not None else 0,
            )
            return message
        finally:
            self._busy = False

    def reset(self) -> None:
        """Clear the session log (the dataset stays loaded)."""
        self.conversation.clear()
        logger.info("analysis_session_reset")
