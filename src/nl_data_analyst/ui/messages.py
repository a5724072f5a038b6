"""
UI Messages - Centralized message constants.

Simple module-level constants for consistent UI messaging.
Keep it lightweight - no classes or complex structures.
"""

# Upload stage
APP_TITLE = "📊 Natural Language Data Analyst"
APP_TAGLINE = "Upload a CSV and ask questions in plain English. Every answer comes with the code and an audit log."
UPLOAD_PROMPT = "Upload a CSV file"
UPLOAD_HELP = "Comma-separated, first row is the header. Max {max_mb} MB."
UPLOAD_FAILED = "Could not load the file: {error}"
UPLOAD_ROWS_SKIPPED = "{count} malformed row(s) were skipped."
DATASET_LOADED = "Loaded **{filename}**: {rows:,} rows, {columns} columns"
DATASET_PREVIEW = "Preview"
SCHEMA_HEADER = "Schema"

# Analysis stage
CHAT_PLACEHOLDER = "Ask a question about your data..."
CHAT_BUSY_PLACEHOLDER = "Analyzing your previous question..."
ANALYZING = "Analyzing..."
NEW_DATASET = "📁 New dataset"
CLEAR_CHAT = "🗑️ Clear conversation"
EMPTY_CHAT_HINT = "Try: *\"What is the average value per category?\"* or *\"Plot the top 5 rows by total\"*"
QUESTION_BUSY = "Please wait for the current question to finish."

# Assistant turn sections
REASONING_HEADER = "🧠 Reasoning"
CODE_HEADER = "💻 Executed code"
AUDIT_HEADER = "📋 Audit log"
TABLE_TRUNCATED = "Showing first {shown:,} of {total:,} rows. The exported report contains all rows."
DOWNLOAD_REPORT = "⬇️ Download report"
DOWNLOAD_CHART = "⬇️ Download chart"

# Reasoning service status
SERVICE_NOT_READY = "The reasoning service is not ready. Questions will fail until it is available."
